"""SQLite dialect.

SQLite has one schema per attached database (``main`` by default) and keeps
foreign keys per table, so the database-wide foreign key list is assembled
from ``PRAGMA foreign_key_list`` over every table.
"""

from typing import Any, List, Optional

from .base import Catalog, CatalogColumn
from .ddl import DdlGenerator, DdlProfile, boolean_default_as_bit, get_bool, money_default, set_length, set_precision
from .models import HostType, RawExpression, TableDescriptor
from .relationship import ForeignKeyRow
from .routines import RoutineSyntax
from .type_mappers import DefaultContext, TypeClassifier, typecast

DEFAULT_SCHEMA = "main"


def extract_sqlite_default(raw: Any, context: DefaultContext) -> Any:
    if context.db_type.lower() == "timestamp" and raw == "CURRENT_TIMESTAMP":
        return None
    if isinstance(raw, str) and raw.lower() == "null":
        raw = None
    value = typecast(raw, context.host_type, context.allow_null)
    if context.host_type == HostType.STRING and isinstance(value, str) and not isinstance(value, RawExpression):
        value = value.strip('\'"')
    return value


CLASSIFIER = TypeClassifier(name="sqlite", default_hook=extract_sqlite_default)


def _pragma_name(name: str) -> str:
    return '"' + name.replace('"', '""') + '"'


class SqliteCatalog(Catalog):
    """Catalog queries over sqlite_master and PRAGMA table functions."""

    def find_default_schema(self, connection) -> str:
        return DEFAULT_SCHEMA

    def find_schema_names(self, connection) -> List[str]:
        return [row["name"] for row in connection.query_all("PRAGMA database_list")]

    def find_table_names(self, connection, schema: str, include_views: bool = True) -> List[str]:
        types = "('table', 'view')" if include_views else "('table')"
        master = "sqlite_temp_master" if schema == "temp" else f"{_pragma_name(schema or DEFAULT_SCHEMA)}.sqlite_master"
        return connection.query_column(
            f"SELECT name FROM {master} WHERE type IN {types} AND name NOT LIKE 'sqlite_%' ORDER BY name"
        )

    def find_columns(self, connection, schema: str, table: str) -> List[CatalogColumn]:
        prefix = f"{_pragma_name(schema)}." if schema else ""
        rows = connection.query_all(f"PRAGMA {prefix}table_info({_pragma_name(table)})")
        unique = self._unique_columns(connection, prefix, table)
        primary = [row for row in rows if row["pk"]]
        columns = []
        for row in rows:
            db_type = row["type"] or ""
            # Only a lone INTEGER PRIMARY KEY aliases the rowid and auto-increments
            is_rowid = bool(row["pk"]) and len(primary) == 1 and db_type.upper() == "INTEGER"
            columns.append(CatalogColumn(
                name=row["name"],
                db_type=db_type.lower(),
                allow_null=not row["notnull"] and not row["pk"],
                default=row["dflt_value"],
                is_primary_key=bool(row["pk"]),
                is_unique=row["name"] in unique,
                auto_increment=is_rowid,
            ))
        return columns

    def _unique_columns(self, connection, prefix: str, table: str) -> set:
        unique = set()
        for index in connection.query_all(f"PRAGMA {prefix}index_list({_pragma_name(table)})"):
            if not index["unique"] or index.get("origin") == "pk":
                continue
            info = connection.query_all(f"PRAGMA {prefix}index_info({_pragma_name(index['name'])})")
            if len(info) == 1:
                unique.add(info[0]["name"])
        return unique

    def find_foreign_keys(self, connection, default_schema: str) -> List[ForeignKeyRow]:
        rows = []
        for table in self.find_table_names(connection, DEFAULT_SCHEMA, include_views=False):
            for fk in connection.query_all(f"PRAGMA foreign_key_list({_pragma_name(table)})"):
                rows.append(ForeignKeyRow(
                    table_schema=DEFAULT_SCHEMA,
                    table_name=table,
                    column_name=fk["from"],
                    referenced_table_schema=DEFAULT_SCHEMA,
                    referenced_table_name=fk["table"],
                    referenced_column_name=fk["to"] or self._primary_key(connection, fk["table"]),
                    constraint_name=f"{table}_fk_{fk['id']}",
                ))
        return rows

    def _primary_key(self, connection, table: str) -> Optional[str]:
        for row in connection.query_all(f"PRAGMA table_info({_pragma_name(table)})"):
            if row["pk"]:
                return row["name"]
        return None

    def find_routine_names(self, connection, routine_type: str, schema: str) -> List[str]:
        return []


def translate_sqlite(info: dict, max_size: int) -> None:
    abstract = info.get("type")
    if abstract in ("pk", "id", "bigpk"):
        info.update(type="integer", allow_null=False, auto_increment=True, is_primary_key=True)
    elif abstract in ("fk", "reference"):
        info.update(type="integer", is_foreign_key=True)
    elif abstract in ("timestamp_on_create", "timestamp_on_update"):
        info["type"] = "timestamp"
        if info.get("default") is None:
            info["default"] = RawExpression("CURRENT_TIMESTAMP")
    elif abstract == "boolean":
        boolean_default_as_bit(info)
    elif abstract == "money":
        info.update(type="decimal", type_extras="(19,4)")
        money_default(info)
    elif abstract == "string":
        info["type"] = "char" if get_bool(info, "fixed_length") else "varchar"
    elif abstract == "binary":
        info["type"] = "blob"


def validate_sqlite(info: dict, max_size: int) -> None:
    db_type = str(info.get("type") or "").lower()
    if db_type in ("decimal", "numeric", "float", "double", "real"):
        set_precision(info)
    elif db_type == "char":
        set_length(info)
    elif db_type == "varchar":
        set_length(info, max_size)


def _reset_sqlite_sequence(generator: DdlGenerator, table: TableDescriptor, value: int) -> List[str]:
    return [f"UPDATE sqlite_sequence SET seq = {value - 1} WHERE name = {generator.quote_value(table.name)}"]


def _check_sqlite_integrity(generator: DdlGenerator, check: bool, schema: str, constraints) -> List[str]:
    return [f"PRAGMA foreign_keys = {'ON' if check else 'OFF'}"]


PROFILE = DdlProfile(
    name="sqlite",
    translate=translate_sqlite,
    validate=validate_sqlite,
    auto_increment_clause=" AUTOINCREMENT",
    drop_index_template="DROP INDEX {name}",
    reset_sequence=_reset_sqlite_sequence,
    check_integrity=_check_sqlite_integrity,
    unsupported=frozenset({"alter_column", "add_foreign_key", "drop_foreign_key"}),
)

ROUTINES = RoutineSyntax(supported=False)
