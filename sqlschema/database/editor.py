"""Executes the DDL that needs live catalog state: sequence resets, integrity toggles, key bootstrap."""

import logging
from typing import List, Optional

from .base import SchemaDiscoverer

logger = logging.getLogger(__name__)


class SchemaEditor:
    """Runs generated DDL over a discovery session's connection."""

    def __init__(self, discoverer: SchemaDiscoverer):
        self.discoverer = discoverer

    @property
    def connection(self):
        return self.discoverer.connection

    @property
    def ddl(self):
        return self.discoverer.dialect.ddl

    def execute(self, statements: List[str]) -> int:
        for sql in statements:
            self.connection.execute(sql)
        return len(statements)

    def reset_sequence(self, table_name: str, value: Optional[int] = None) -> List[str]:
        """Make ``value`` (default: max(primary key) + 1) the next generated key.

        Returns:
            The statements executed; empty if the table has no sequence
        """
        table = self.discoverer.get_table(table_name)
        if table is None or table.sequence_name is None:
            return []
        if value is None:
            if not isinstance(table.primary_key, str):
                return []
            current = self.connection.query_scalar(
                f"SELECT MAX({self.ddl.quote_column_name(table.primary_key)}) FROM {table.raw_name}"
            )
            value = int(current or 0) + 1
        statements = self.ddl.reset_sequence(table, value)
        self.execute(statements)
        logger.info("Reset sequence for %s to %d", table.display_name, value)
        return statements

    def check_integrity(self, check: bool = True, schema: str = "") -> List[str]:
        """Enable or disable constraint checking for every table in a schema."""
        schema = schema or self.discoverer.default_schema
        catalog = self.discoverer.catalog
        constraints = {
            table: catalog.find_constraint_names(self.connection, schema, table)
            for table in catalog.find_table_names(self.connection, schema, include_views=False)
        }
        statements = self.ddl.check_integrity(check, schema, constraints)
        self.execute(statements)
        return statements

    def create_primary_key_sequence(self, table: str, column: str) -> List[str]:
        """Create the sequence and trigger a primary key needs on dialects without auto-increment."""
        statements = self.ddl.get_primary_key_commands(table, column)
        self.execute(statements)
        return statements
