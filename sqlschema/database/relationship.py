"""Relationship inference from foreign key constraints."""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from .models import ColumnDescriptor, JunctionDescriptor, RelationDescriptor, RelationType


@dataclass(frozen=True)
class ForeignKeyRow:
    """One column of a foreign key constraint as reported by the catalog."""
    table_schema: str
    table_name: str
    column_name: str
    referenced_table_schema: str
    referenced_table_name: str
    referenced_column_name: str
    constraint_name: Optional[str] = None


@dataclass
class RelationResult:
    """Columns, foreign keys and relations inferred for one table."""
    columns: Dict[str, ColumnDescriptor]
    foreign_keys: Dict[str, Tuple[str, str]] = field(default_factory=dict)
    relations: Dict[str, RelationDescriptor] = field(default_factory=dict)


def _same(a: Optional[str], b: Optional[str]) -> bool:
    return (a or "").lower() == (b or "").lower()


class RelationshipDetector:
    """Infers belongs_to, has_many and many_many relations for tables.

    The detector works on the database-wide list of foreign key rows, so a
    table sees both the keys it owns and the keys pointing at it.
    """

    def __init__(self, foreign_keys: List[ForeignKeyRow], default_schema: str):
        self.foreign_keys = foreign_keys
        self.default_schema = default_schema

    def qualified_name(self, schema: str, table: str) -> str:
        """Name another table the way the registry does: bare in the default schema."""
        if not schema or _same(schema, self.default_schema):
            return table
        return f"{schema}.{table}"

    def _owned_by(self, row: ForeignKeyRow, schema: str, table: str) -> bool:
        return _same(row.table_schema, schema) and _same(row.table_name, table)

    def _references(self, row: ForeignKeyRow, schema: str, table: str) -> bool:
        return _same(row.referenced_table_schema, schema) and _same(row.referenced_table_name, table)

    def _is_junction_partner(self, row: ForeignKeyRow, other: ForeignKeyRow, schema: str, table: str) -> bool:
        """Whether ``other`` forms a many-to-many junction with ``row``."""
        if other is row or not (_same(other.table_schema, row.table_schema) and _same(other.table_name, row.table_name)):
            return False
        if row.constraint_name and _same(other.constraint_name, row.constraint_name):
            # Another column of the same composite key
            return False
        if not self._references(other, schema, table):
            return True
        # Self-referencing junction: a second column pointing back at this table
        return not _same(other.column_name, row.column_name)

    def detect(self, schema: str, table: str, columns: Dict[str, ColumnDescriptor]) -> RelationResult:
        """Infer relations for ``schema.table``.

        Args:
            schema: Schema of the table (empty for the default schema)
            table: Table name
            columns: The table's classified columns, keyed by name

        Returns:
            RelationResult with foreign key columns promoted
        """
        schema = schema or self.default_schema
        result = RelationResult(columns=dict(columns))

        for row in self.foreign_keys:
            if self._owned_by(row, schema, table):
                ref_table = self.qualified_name(row.referenced_table_schema, row.referenced_table_name)
                key = self._column_key(result.columns, row.column_name)
                if key is not None:
                    result.columns[key] = result.columns[key].as_foreign_key(ref_table, row.referenced_column_name)
                    result.foreign_keys[key] = (ref_table, row.referenced_column_name)
                relation = RelationDescriptor(
                    type=RelationType.BELONGS_TO,
                    ref_table=ref_table,
                    ref_field=row.referenced_column_name,
                    field=row.column_name,
                )
                result.relations[relation.name] = relation

            elif self._references(row, schema, table):
                owner = self.qualified_name(row.table_schema, row.table_name)
                relation = RelationDescriptor(
                    type=RelationType.HAS_MANY,
                    ref_table=owner,
                    ref_field=row.column_name,
                    field=row.referenced_column_name,
                )
                result.relations[relation.name] = relation

                for other in self.foreign_keys:
                    if not self._is_junction_partner(row, other, schema, table):
                        continue
                    relation = RelationDescriptor(
                        type=RelationType.MANY_MANY,
                        ref_table=self.qualified_name(other.referenced_table_schema, other.referenced_table_name),
                        ref_field=other.referenced_column_name,
                        field=row.referenced_column_name,
                        junction=JunctionDescriptor(owner, row.column_name, other.column_name),
                    )
                    result.relations[relation.name] = relation

        return result

    @staticmethod
    def _column_key(columns: Dict[str, ColumnDescriptor], name: str) -> Optional[str]:
        if name in columns:
            return name
        for key in columns:
            if _same(key, name):
                return key
        return None
