"""Catalog queries and the schema discovery session."""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional, Tuple

from ..errors import DiscoveryError, SchemaError
from .models import ColumnDescriptor, PrimaryKey, TableDescriptor
from .relationship import ForeignKeyRow, RelationshipDetector

if TYPE_CHECKING:
    from .connection import Connection
    from .dialects import Dialect

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CatalogColumn:
    """One column row as returned by a dialect's catalog query."""
    name: str
    db_type: str
    allow_null: bool = True
    default: Any = None
    is_primary_key: bool = False
    is_unique: bool = False
    is_index: bool = False
    auto_increment: bool = False
    comment: Optional[str] = ""


class Catalog(ABC):
    """Dialect-specific catalog queries.

    Implementations are stateless; every method receives the connection.
    Not-found is reported as ``None`` or an empty list, never an exception.
    """

    # Override in subclasses to exclude system schemas
    EXCLUDED_SCHEMAS: set = set()

    @abstractmethod
    def find_default_schema(self, connection: "Connection") -> str:
        """Schema that unqualified table names resolve against."""
        pass

    @abstractmethod
    def find_schema_names(self, connection: "Connection") -> List[str]:
        """All user schemas, excluding system schemas."""
        pass

    @abstractmethod
    def find_table_names(self, connection: "Connection", schema: str, include_views: bool = True) -> List[str]:
        """Table (and optionally view) names in one schema.

        Args:
            connection: Open connection
            schema: Schema name
            include_views: Whether to include views

        Returns:
            List of table names, unqualified
        """
        pass

    @abstractmethod
    def find_columns(self, connection: "Connection", schema: str, table: str) -> List[CatalogColumn]:
        """Column rows for a table, in ordinal order. Empty if the table does not exist."""
        pass

    @abstractmethod
    def find_foreign_keys(self, connection: "Connection", default_schema: str) -> List[ForeignKeyRow]:
        """Every foreign key column in the database."""
        pass

    @abstractmethod
    def find_routine_names(self, connection: "Connection", routine_type: str, schema: str) -> List[str]:
        """Names of stored routines of ``routine_type`` (PROCEDURE or FUNCTION) in a schema."""
        pass

    def find_sequence_name(
        self,
        connection: "Connection",
        schema: str,
        table: str,
        columns: List[CatalogColumn],
    ) -> Optional[str]:
        """Name of the sequence feeding the primary key, if the table has one.

        Dialects with native auto-increment report it on the column rows
        instead and return the table name here when any column auto-increments.
        """
        if any(c.auto_increment for c in columns):
            return table
        return None

    def find_constraint_names(self, connection: "Connection", schema: str, table: str) -> List[str]:
        """Constraint names of a table, for dialects that toggle them one by one."""
        return []


def accumulate_primary_key(primary_key: PrimaryKey, column: str) -> PrimaryKey:
    """Add a column to a primary key: ``None`` -> name -> list of names."""
    if primary_key is None:
        return column
    if isinstance(primary_key, str):
        return [primary_key, column]
    return primary_key + [column]


class SchemaDiscoverer:
    """A discovery session over one connection.

    Loaded tables are kept in a registry keyed by lower-cased display name
    until ``refresh()`` is called. Tables refer to each other by name only.
    """

    def __init__(self, connection: "Connection", dialect: "Dialect"):
        self.connection = connection
        self.dialect = dialect
        self._default_schema: Optional[str] = None
        self._tables: Dict[str, TableDescriptor] = {}

    @property
    def catalog(self):
        return self.dialect.catalog

    @property
    def default_schema(self) -> str:
        if self._default_schema is None:
            self._default_schema = self._query(self.catalog.find_default_schema) or ""
            logger.debug("Default schema for %s: %s", self.dialect.name, self._default_schema)
        return self._default_schema

    def _query(self, method: Callable, *args, **kwargs):
        try:
            return method(self.connection, *args, **kwargs)
        except SchemaError:
            raise
        except Exception as e:
            raise DiscoveryError(
                f"Catalog query failed: {e}",
                details={"dialect": self.dialect.name, "query": method.__name__},
            ) from e

    def resolve_table_name(self, name: str) -> Tuple[str, str]:
        """Split a possibly schema-qualified name into ``(schema, table)``."""
        quotes = self.dialect.ddl.profile.quote_open + self.dialect.ddl.profile.quote_close
        parts = [part.strip(quotes) for part in name.split(".", 1)]
        if len(parts) == 2:
            return parts[0], parts[1]
        return self.default_schema, parts[0]

    def display_name(self, schema: str, table: str) -> str:
        if not schema or schema.lower() == self.default_schema.lower():
            return table
        return f"{schema}.{table}"

    def get_schema_names(self) -> List[str]:
        return self._query(self.catalog.find_schema_names)

    def get_table_names(self, schema: str = "", include_views: bool = True) -> List[str]:
        """Table names in a schema; names in the default schema carry no prefix."""
        schema = schema or self.default_schema
        names = self._query(self.catalog.find_table_names, schema, include_views)
        return [self.display_name(schema, name) for name in names]

    def get_table(self, name: str, refresh: bool = False) -> Optional[TableDescriptor]:
        """Load one table, or return it from the registry.

        Returns:
            TableDescriptor, or None if the table has no columns in the catalog
        """
        schema, table = self.resolve_table_name(name)
        key = self.display_name(schema, table).lower()
        if not refresh and key in self._tables:
            return self._tables[key]
        foreign_keys = self._query(self.catalog.find_foreign_keys, self.default_schema)
        return self._load_table(schema, table, foreign_keys)

    def get_tables(self, names: Optional[List[str]] = None, schema: str = "") -> List[TableDescriptor]:
        """Load several tables with a single foreign key query."""
        if names is None:
            names = self.get_table_names(schema)
        foreign_keys: Optional[List[ForeignKeyRow]] = None
        tables = []
        for name in names:
            schema_name, table_name = self.resolve_table_name(name)
            key = self.display_name(schema_name, table_name).lower()
            table = self._tables.get(key)
            if table is None:
                if foreign_keys is None:
                    foreign_keys = self._query(self.catalog.find_foreign_keys, self.default_schema)
                table = self._load_table(schema_name, table_name, foreign_keys)
            if table is not None:
                tables.append(table)
        return tables

    def refresh(self) -> None:
        """Forget every loaded table."""
        self._tables.clear()

    def _load_table(self, schema: str, table: str, foreign_keys: List[ForeignKeyRow]) -> Optional[TableDescriptor]:
        rows = self._query(self.catalog.find_columns, schema, table)
        if not rows:
            return None

        display_name = self.display_name(schema, table)
        raw_name = self.dialect.ddl.quote_table_name(display_name)
        classifier = self.dialect.classifier

        columns: Dict[str, ColumnDescriptor] = {}
        primary_key: PrimaryKey = None
        for row in rows:
            column = classifier.classify(
                name=row.name,
                db_type=row.db_type,
                raw_name=self.dialect.ddl.quote_column_name(row.name),
                allow_null=row.allow_null,
                default=row.default,
                is_primary_key=row.is_primary_key,
                is_unique=row.is_unique,
                is_index=row.is_index,
                auto_increment=row.auto_increment,
                comment=row.comment,
            )
            columns[column.name] = column
            if column.is_primary_key:
                primary_key = accumulate_primary_key(primary_key, column.name)

        sequence_name = self._query(self.catalog.find_sequence_name, schema, table, rows)
        # Trigger-fed sequences mark a single-column key; native identity is already on the rows
        native = any(row.auto_increment for row in rows)
        if sequence_name is not None and isinstance(primary_key, str) and not native:
            columns[primary_key] = replace(columns[primary_key], auto_increment=True)

        detected = RelationshipDetector(foreign_keys, self.default_schema).detect(schema, table, columns)

        descriptor = TableDescriptor(
            name=table,
            schema_name=schema,
            raw_name=raw_name,
            display_name=display_name,
            primary_key=primary_key,
            sequence_name=sequence_name,
            columns=detected.columns,
            foreign_keys=detected.foreign_keys,
            relations=detected.relations,
        )
        self._tables[display_name.lower()] = descriptor
        logger.debug(
            "Loaded %s: %d columns, %d relations", display_name, len(descriptor.columns), len(descriptor.relations)
        )
        return descriptor
