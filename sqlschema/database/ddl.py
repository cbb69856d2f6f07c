"""Dialect-aware DDL generation.

``DdlGenerator`` turns abstract column specifications (``{'type': 'string',
'length': 64, 'allow_null': False}``) into vendor column definitions and
builds schema-mutation statements. Everything dialect-specific comes from the
``DdlProfile`` it is composed with; the generator itself is stateless and
never touches a connection.
"""

import logging
import re
import zlib
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, FrozenSet, List, Mapping, Optional, Sequence, Union

from ..errors import InvalidSpecificationError, UnsupportedOperationError
from .models import RawExpression, TableDescriptor

logger = logging.getLogger(__name__)

DEFAULT_STRING_MAX_SIZE = 255

ColumnSpec = Dict[str, Any]
Definition = Union[str, Mapping[str, Any]]
Columns = Union[str, Sequence[str]]

_TRUE_STRINGS = {"1", "true", "t", "yes", "y", "on"}
_TYPE_STRING_RE = re.compile(r"^(\w+)\s*(?:\(([^)]*)\))?\s*(.*)$", re.DOTALL)


def get_bool(info: Mapping[str, Any], key: str, default: bool = False) -> bool:
    """Read a flag from a spec, accepting booleans, numbers and strings."""
    value = info.get(key)
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_STRINGS
    return bool(value)


def set_length(info: ColumnSpec, default_size: Optional[int] = None) -> None:
    """Apply ``(length)`` from length/size, falling back to ``default_size``.

    A length of -1 stands for an unbounded ``(max)`` column.
    """
    length = info.get("length", info.get("size"))
    if length == -1:
        info["type_extras"] = "(max)"
    elif length is not None:
        info["type_extras"] = f"({length})"
    elif default_size is not None:
        info["type_extras"] = f"({default_size})"


def set_precision(info: ColumnSpec) -> None:
    """Apply ``(precision[,scale])`` unless extras are already present."""
    if info.get("type_extras") is None:
        length = info.get("length", info.get("precision"))
        if length:
            scale = info.get("scale", info.get("decimals"))
            info["type_extras"] = f"({length},{scale})" if scale else f"({length})"
    normalize_numeric_default(info)


def normalize_numeric_default(info: ColumnSpec) -> None:
    default = info.get("default")
    if isinstance(default, RawExpression) or isinstance(default, bool):
        return
    if isinstance(default, str):
        try:
            number = float(default)
        except ValueError:
            return
        info["default"] = int(number) if number.is_integer() else number


def timestamp_default(info: ColumnSpec, on_update_supported: bool) -> None:
    """Fill the default for ``timestamp_on_create`` / ``timestamp_on_update``."""
    if info.get("default") is None:
        default = "CURRENT_TIMESTAMP"
        if info.get("type") == "timestamp_on_update" and on_update_supported:
            default += " ON UPDATE CURRENT_TIMESTAMP"
        info["default"] = RawExpression(default)


def boolean_default_as_bit(info: ColumnSpec) -> None:
    default = info.get("default")
    if default is not None and not isinstance(default, RawExpression):
        info["default"] = 1 if get_bool(info, "default") else 0


def money_default(info: ColumnSpec) -> None:
    default = info.get("default")
    if default is not None and not isinstance(default, RawExpression):
        info["default"] = float(default)


SpecHook = Callable[[ColumnSpec, int], None]


def _noop(info: ColumnSpec, max_size: int) -> None:
    return None


@dataclass(frozen=True)
class DdlProfile:
    """Dialect-specific DDL vocabulary and statement shapes.

    Templates are ``str.format`` strings; identifiers passed to them are
    already quoted. Callables receive the generator so they can quote.
    """
    name: str
    quote_open: str = '"'
    quote_close: str = '"'
    translate: SpecHook = _noop
    validate: SpecHook = _noop
    unique_clause: str = " UNIQUE"
    auto_increment_clause: str = ""
    supports_on_update: bool = True
    max_identifier_length: Optional[int] = None
    rename_table_template: str = "ALTER TABLE {table} RENAME TO {new_name}"
    rename_column_template: str = "ALTER TABLE {table} RENAME COLUMN {column} TO {new_name}"
    alter_column_template: str = "ALTER TABLE {table} ALTER COLUMN {column} {definition}"
    drop_index_template: str = "DROP INDEX {name} ON {table}"
    drop_foreign_key_template: str = "ALTER TABLE {table} DROP CONSTRAINT {name}"
    alter_column: Optional[Callable[["DdlGenerator", str, str, Definition], str]] = None
    reset_sequence: Optional[Callable[["DdlGenerator", TableDescriptor, int], List[str]]] = None
    check_integrity: Optional[Callable[["DdlGenerator", bool, str, Mapping[str, Sequence[str]]], List[str]]] = None
    primary_key_commands: Optional[Callable[["DdlGenerator", str, str], List[str]]] = None
    unsupported: FrozenSet[str] = field(default_factory=frozenset)


class DdlGenerator:
    """Builds DDL text for one dialect."""

    def __init__(self, profile: DdlProfile, default_string_max_size: int = DEFAULT_STRING_MAX_SIZE):
        self.profile = profile
        self.default_string_max_size = default_string_max_size

    @property
    def dialect_name(self) -> str:
        return self.profile.name

    def with_string_max_size(self, size: int) -> "DdlGenerator":
        return DdlGenerator(self.profile, default_string_max_size=size)

    def _ensure_supported(self, operation: str) -> None:
        if operation in self.profile.unsupported:
            raise UnsupportedOperationError(self.profile.name, operation)

    # Quoting

    def quote_simple_name(self, name: str) -> str:
        close = self.profile.quote_close
        if name.startswith(self.profile.quote_open) and name.endswith(close) and len(name) > 1:
            return name
        return self.profile.quote_open + name.replace(close, close + close) + close

    def quote_table_name(self, name: str) -> str:
        """Quote a table name, quoting each part of a ``schema.table`` name."""
        if "." not in name:
            return self.quote_simple_name(name)
        return ".".join(self.quote_simple_name(part) for part in name.split("."))

    def quote_column_name(self, name: str) -> str:
        return self.quote_table_name(name)

    def quote_columns(self, columns: Columns) -> str:
        if isinstance(columns, str):
            columns = [c.strip() for c in columns.split(",")]
        return ", ".join(self.quote_column_name(c) for c in columns)

    @staticmethod
    def quote_value(value: Any) -> str:
        return "'" + str(value).replace("'", "''") + "'"

    # Column specifications

    def translate_simple_column_types(self, info: Mapping[str, Any]) -> ColumnSpec:
        """Rewrite an abstract column request into vendor type + extras + flags."""
        result = dict(info)
        if result.get("type") is not None:
            result["type"] = str(result["type"]).lower()
        self.profile.translate(result, self.default_string_max_size)
        return result

    def validate_column_settings(self, info: Mapping[str, Any]) -> ColumnSpec:
        """Fill in required length clauses and normalize numeric defaults."""
        result = dict(info)
        self.profile.validate(result, self.default_string_max_size)
        return result

    def build_column_definition(self, info: Mapping[str, Any]) -> str:
        """Concatenate a vendor spec into a column definition fragment.

        Raises:
            InvalidSpecificationError: if both unique and primary key are requested
        """
        is_unique = get_bool(info, "is_unique")
        is_primary_key = get_bool(info, "is_primary_key")
        if is_unique and is_primary_key:
            raise InvalidSpecificationError(
                "Unique and Primary designations not allowed simultaneously.",
                details={"column": info.get("name"), "type": info.get("type")},
            )

        definition = f"{info.get('type') or ''}{info.get('type_extras') or ''}"

        default = info.get("default")
        if default is not None:
            if isinstance(default, bool):
                default = "TRUE" if default else "FALSE"
            elif get_bool(info, "quote_default") and not isinstance(default, RawExpression):
                default = self.quote_value(default)
            definition += f" DEFAULT {default}"

        if is_unique:
            definition += self.profile.unique_clause
        elif is_primary_key:
            definition += " PRIMARY KEY"

        if get_bool(info, "auto_increment") and self.profile.auto_increment_clause:
            definition += self.profile.auto_increment_clause

        definition += " NULL" if get_bool(info, "allow_null", True) else " NOT NULL"
        return definition

    def get_column_type(self, definition: Definition) -> str:
        """Convert a column definition into physical DDL.

        A mapping is translated, validated and built. A string whose first
        word is an abstract type has that word replaced by the vendor type;
        anything else is returned unchanged.
        """
        if isinstance(definition, Mapping):
            info = self.translate_simple_column_types(definition)
            info = self.validate_column_settings(info)
            return self.build_column_definition(info)

        text = definition.strip()
        match = _TYPE_STRING_RE.match(text)
        if match is None or match.group(1).lower() not in _ABSTRACT_NAMES:
            return text
        base, args, rest = match.groups()
        spec: ColumnSpec = {"type": base}
        if args is not None:
            # string(64), decimal(10, 2), string(max)
            sizes = [_parse_size(part, text) for part in args.split(",") if part.strip()]
            if sizes:
                spec["length"] = sizes[0]
            if len(sizes) > 1:
                spec["scale"] = sizes[1]
        if not rest:
            return self.get_column_type(spec)
        info = self.validate_column_settings(self.translate_simple_column_types(spec))
        return f"{info.get('type')}{info.get('type_extras') or ''} {rest}"

    # Tables and columns

    def create_table(self, table: str, columns: Mapping[str, Definition], options: Optional[str] = None) -> str:
        lines = []
        for name, definition in columns.items():
            if isinstance(name, int):
                # Positional entries are table-level clauses such as constraints
                lines.append(f"\t{definition}")
            else:
                lines.append(f"\t{self.quote_column_name(name)} {self.get_column_type(definition)}")
        sql = f"CREATE TABLE {self.quote_table_name(table)} (\n" + ",\n".join(lines) + "\n)"
        return f"{sql} {options}" if options else sql

    def drop_table(self, table: str) -> str:
        return f"DROP TABLE {self.quote_table_name(table)}"

    def rename_table(self, table: str, new_name: str) -> str:
        self._ensure_supported("rename_table")
        return self.profile.rename_table_template.format(
            table=self.quote_table_name(table),
            new_name=self.quote_table_name(new_name),
            table_literal=self.quote_value(table),
            new_name_literal=self.quote_value(new_name),
        )

    def add_column(self, table: str, column: str, definition: Definition) -> str:
        return (
            f"ALTER TABLE {self.quote_table_name(table)} "
            f"ADD {self.quote_column_name(column)} {self.get_column_type(definition)}"
        )

    def drop_column(self, table: str, column: str) -> str:
        self._ensure_supported("drop_column")
        return f"ALTER TABLE {self.quote_table_name(table)} DROP COLUMN {self.quote_column_name(column)}"

    def rename_column(self, table: str, column: str, new_name: str) -> str:
        self._ensure_supported("rename_column")
        return self.profile.rename_column_template.format(
            table=self.quote_table_name(table),
            column=self.quote_column_name(column),
            new_name=self.quote_column_name(new_name),
            column_literal=self.quote_value(f"{table}.{column}"),
            new_name_literal=self.quote_value(new_name),
        )

    def alter_column(self, table: str, column: str, definition: Definition) -> str:
        """Change a column's definition, re-running the type translation."""
        self._ensure_supported("alter_column")
        if self.profile.alter_column is not None:
            return self.profile.alter_column(self, table, column, definition)
        return self.profile.alter_column_template.format(
            table=self.quote_table_name(table),
            column=self.quote_column_name(column),
            definition=self.get_column_type(definition),
        )

    # Constraints and indexes

    def make_constraint_name(self, prefix: str, table: str, column: str) -> str:
        name = f"{prefix}_{table}_{column}".replace(".", "_")
        limit = self.profile.max_identifier_length
        if limit and len(name) > limit:
            checksum = zlib.crc32(f"{table}_{column}".encode("utf-8"))
            name = f"{prefix}_{checksum:08x}"
        return name

    def add_foreign_key(
        self,
        name: str,
        table: str,
        columns: Columns,
        ref_table: str,
        ref_columns: Columns,
        delete: Optional[str] = None,
        update: Optional[str] = None,
    ) -> str:
        """Build an ADD CONSTRAINT ... FOREIGN KEY statement.

        ``ON UPDATE`` is left out on dialects that do not support it.
        """
        self._ensure_supported("add_foreign_key")
        sql = (
            f"ALTER TABLE {self.quote_table_name(table)} "
            f"ADD CONSTRAINT {self.quote_column_name(name)} "
            f"FOREIGN KEY ({self.quote_columns(columns)}) "
            f"REFERENCES {self.quote_table_name(ref_table)} ({self.quote_columns(ref_columns)})"
        )
        if delete:
            sql += f" ON DELETE {delete}"
        if update:
            if self.profile.supports_on_update:
                sql += f" ON UPDATE {update}"
            else:
                logger.debug("Dropping ON UPDATE %s for %s foreign key %s", update, self.profile.name, name)
        return sql

    def drop_foreign_key(self, name: str, table: str) -> str:
        self._ensure_supported("drop_foreign_key")
        return self.profile.drop_foreign_key_template.format(
            name=self.quote_column_name(name),
            table=self.quote_table_name(table),
        )

    def create_index(self, name: str, table: str, columns: Columns, unique: bool = False) -> str:
        keyword = "CREATE UNIQUE INDEX" if unique else "CREATE INDEX"
        return (
            f"{keyword} {self.quote_table_name(name)} "
            f"ON {self.quote_table_name(table)} ({self.quote_columns(columns)})"
        )

    def drop_index(self, name: str, table: str) -> str:
        return self.profile.drop_index_template.format(
            name=self.quote_table_name(name),
            table=self.quote_table_name(table),
        )

    # Sequences and integrity

    def reset_sequence(self, table: TableDescriptor, value: int) -> List[str]:
        """Statements that make ``value`` the next generated primary key."""
        if table.sequence_name is None or self.profile.reset_sequence is None:
            return []
        return self.profile.reset_sequence(self, table, int(value))

    def check_integrity(
        self,
        check: bool,
        schema: str,
        constraints: Mapping[str, Sequence[str]],
    ) -> List[str]:
        """Statements enabling or disabling constraint checking.

        Args:
            check: True to enable checking, False to disable
            schema: Schema the tables live in
            constraints: Table name -> constraint names in that table
        """
        if self.profile.check_integrity is None:
            return []
        return self.profile.check_integrity(self, check, schema, constraints)

    def get_primary_key_commands(self, table: str, column: str) -> List[str]:
        """Auxiliary statements a primary key needs to auto-increment."""
        if self.profile.primary_key_commands is None:
            return []
        return self.profile.primary_key_commands(self, table, column)

    def timestamp_expression(self, update: bool = False) -> RawExpression:
        return RawExpression("(CURRENT_TIMESTAMP)")


_ABSTRACT_NAMES = {
    "pk", "id", "fk", "reference", "bigpk", "string", "text", "smallint", "integer",
    "bigint", "float", "double", "decimal", "datetime", "timestamp", "time", "date",
    "binary", "boolean", "money", "timestamp_on_create", "timestamp_on_update",
}


def _parse_size(value: str, definition: str) -> int:
    value = value.strip()
    if value.lower() == "max":
        return -1
    try:
        return int(value)
    except ValueError:
        raise InvalidSpecificationError(
            f"Invalid size {value!r} in column type {definition!r}", details={"definition": definition}
        )
