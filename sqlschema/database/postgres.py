"""PostgreSQL dialect: type hooks, catalog queries and DDL profile."""

import re
from typing import Any, List, Optional

from .base import Catalog, CatalogColumn
from .ddl import (
    DdlGenerator, DdlProfile, Definition, get_bool, money_default, set_length, set_precision,
    timestamp_default,
)
from .models import AbstractType, RawExpression, TableDescriptor
from .relationship import ForeignKeyRow
from .routines import RoutineSyntax
from .type_mappers import DefaultContext, Limits, TypeClassifier, extract_type, typecast

_NUMERIC_DEFAULT_RE = re.compile(r"^(-?\d+(\.\d*)?)(::.*)?$")
_QUOTED_DEFAULT_RE = re.compile(r"^'(.*)'::", re.DOTALL)
_NEXTVAL_RE = re.compile(r"nextval\('([^']+)'", re.IGNORECASE)


def extract_pgsql_type(db_type: str, limits: Limits) -> AbstractType:
    abstract_type = extract_type(db_type, limits)
    if "[" in db_type or "char" in db_type or "text" in db_type:
        return AbstractType.STRING
    if re.search(r"(real|float|double)", db_type):
        return AbstractType.DOUBLE
    if re.search(r"(integer|oid|serial|smallint)", db_type):
        return AbstractType.INTEGER
    return abstract_type


def extract_pgsql_limit(db_type: str) -> Limits:
    """Like the base parser, except ``time*(n)`` only carries fractional precision."""
    if "(" not in (db_type or ""):
        return Limits()
    match = re.match(r"^time.*\((.*)\)", db_type)
    if match:
        return Limits(precision=int(match.group(1)))
    match = re.search(r"\((.*)\)", db_type)
    values = match.group(1).split(",")
    try:
        size = int(values[0])
        scale = int(values[1]) if len(values) > 1 else None
    except ValueError:
        return Limits()
    return Limits(size=size, precision=size, scale=scale)


def extract_pgsql_default(raw: Any, context: DefaultContext) -> Any:
    if raw is None or not isinstance(raw, str):
        return typecast(raw, context.host_type, context.allow_null)
    if raw == "true":
        return True
    if raw == "false":
        return False
    if raw.startswith("nextval"):
        return None
    match = _QUOTED_DEFAULT_RE.match(raw)
    if match:
        return typecast(match.group(1).replace("''", "'"), context.host_type, context.allow_null)
    match = _NUMERIC_DEFAULT_RE.match(raw)
    if match:
        return typecast(match.group(1), context.host_type, context.allow_null)
    return RawExpression(raw)


CLASSIFIER = TypeClassifier(
    name="pgsql",
    type_hook=extract_pgsql_type,
    limit_hook=extract_pgsql_limit,
    default_hook=extract_pgsql_default,
)


class PostgresCatalog(Catalog):
    """Catalog queries against information_schema and pg_catalog."""

    EXCLUDED_SCHEMAS = {"information_schema", "pg_catalog", "pg_toast"}

    def find_default_schema(self, connection) -> str:
        return connection.query_scalar("SELECT current_schema()") or "public"

    def find_schema_names(self, connection) -> List[str]:
        names = connection.query_column(
            "SELECT schema_name FROM information_schema.schemata ORDER BY schema_name"
        )
        return [n for n in names if n not in self.EXCLUDED_SCHEMAS and not n.startswith("pg_temp")]

    def find_table_names(self, connection, schema: str, include_views: bool = True) -> List[str]:
        types = "('BASE TABLE', 'VIEW')" if include_views else "('BASE TABLE')"
        return connection.query_column(
            f"""
            SELECT table_name FROM information_schema.tables
            WHERE table_schema = %s AND table_type IN {types}
            ORDER BY table_name
            """,
            (schema,),
        )

    def find_columns(self, connection, schema: str, table: str) -> List[CatalogColumn]:
        rows = connection.query_all(
            """
            SELECT a.attname AS name,
                   format_type(a.atttypid, a.atttypmod) AS db_type,
                   NOT a.attnotnull AS allow_null,
                   pg_get_expr(d.adbin, d.adrelid) AS default_value,
                   col_description(a.attrelid, a.attnum) AS comment,
                   COALESCE((SELECT TRUE FROM pg_index i
                             WHERE i.indrelid = a.attrelid AND i.indisprimary
                               AND a.attnum = ANY(i.indkey) LIMIT 1), FALSE) AS is_primary_key,
                   COALESCE((SELECT TRUE FROM pg_index i
                             WHERE i.indrelid = a.attrelid AND i.indisunique AND NOT i.indisprimary
                               AND i.indnatts = 1 AND a.attnum = i.indkey[0] LIMIT 1), FALSE) AS is_unique
            FROM pg_attribute a
            JOIN pg_class c ON c.oid = a.attrelid
            JOIN pg_namespace n ON n.oid = c.relnamespace
            LEFT JOIN pg_attrdef d ON d.adrelid = a.attrelid AND d.adnum = a.attnum
            WHERE n.nspname = %s AND c.relname = %s AND a.attnum > 0 AND NOT a.attisdropped
            ORDER BY a.attnum
            """,
            (schema, table),
        )
        return [
            CatalogColumn(
                name=row["name"],
                db_type=row["db_type"],
                allow_null=bool(row["allow_null"]),
                default=row["default_value"],
                is_primary_key=bool(row["is_primary_key"]),
                is_unique=bool(row["is_unique"]),
                auto_increment=str(row["default_value"] or "").startswith("nextval"),
                comment=row["comment"],
            )
            for row in rows
        ]

    def find_sequence_name(self, connection, schema: str, table: str, columns: List[CatalogColumn]) -> Optional[str]:
        for column in columns:
            match = _NEXTVAL_RE.search(str(column.default or ""))
            if match and column.is_primary_key:
                return match.group(1)
        return None

    def find_foreign_keys(self, connection, default_schema: str) -> List[ForeignKeyRow]:
        rows = connection.query_all(
            """
            SELECT kcu.constraint_name,
                   kcu.table_schema, kcu.table_name, kcu.column_name,
                   rkcu.table_schema AS referenced_table_schema,
                   rkcu.table_name AS referenced_table_name,
                   rkcu.column_name AS referenced_column_name
            FROM information_schema.referential_constraints rc
            JOIN information_schema.key_column_usage kcu
              ON kcu.constraint_schema = rc.constraint_schema AND kcu.constraint_name = rc.constraint_name
            JOIN information_schema.key_column_usage rkcu
              ON rkcu.constraint_schema = rc.unique_constraint_schema
             AND rkcu.constraint_name = rc.unique_constraint_name
             AND rkcu.ordinal_position = kcu.position_in_unique_constraint
            ORDER BY kcu.constraint_name, kcu.ordinal_position
            """
        )
        return [ForeignKeyRow(**row) for row in rows]

    def find_routine_names(self, connection, routine_type: str, schema: str) -> List[str]:
        return connection.query_column(
            """
            SELECT routine_name FROM information_schema.routines
            WHERE routine_type = %s AND routine_schema = %s
            ORDER BY routine_name
            """,
            (routine_type, schema),
        )


def translate_pgsql(info: dict, max_size: int) -> None:
    abstract = info.get("type")
    if abstract in ("pk", "id"):
        info.update(type="serial", allow_null=False, auto_increment=True, is_primary_key=True)
    elif abstract == "bigpk":
        info.update(type="bigserial", allow_null=False, auto_increment=True, is_primary_key=True)
    elif abstract in ("fk", "reference"):
        info.update(type="integer", is_foreign_key=True)
    elif abstract in ("timestamp_on_create", "timestamp_on_update"):
        timestamp_default(info, on_update_supported=False)
        info["type"] = "timestamp"
    elif abstract == "datetime":
        info["type"] = "timestamp"
    elif abstract == "float":
        info["type"] = "real"
    elif abstract == "double":
        info["type"] = "double precision"
    elif abstract == "boolean":
        default = info.get("default")
        if default is not None and not isinstance(default, RawExpression):
            info["default"] = "TRUE" if get_bool(info, "default") else "FALSE"
    elif abstract == "money":
        money_default(info)
    elif abstract == "string":
        fixed = get_bool(info, "fixed_length")
        info["type"] = "char" if fixed else "varchar"
    elif abstract == "binary":
        info["type"] = "bytea"


def validate_pgsql(info: dict, max_size: int) -> None:
    db_type = str(info.get("type") or "").lower()
    if db_type in ("decimal", "numeric", "real", "double precision"):
        set_precision(info)
    elif db_type == "char":
        set_length(info)
    elif db_type in ("varchar", "character varying"):
        set_length(info, max_size)
    elif db_type in ("time", "timestamp"):
        set_length(info)


def _alter_pgsql_column(generator: DdlGenerator, table: str, column: str, definition: Definition) -> str:
    """PostgreSQL alters type, nullability and default in separate clauses."""
    if isinstance(definition, str):
        column_type = generator.get_column_type(definition)
        return (
            f"ALTER TABLE {generator.quote_table_name(table)} "
            f"ALTER COLUMN {generator.quote_column_name(column)} TYPE {column_type}"
        )
    info = generator.validate_column_settings(generator.translate_simple_column_types(definition))
    quoted = generator.quote_column_name(column)
    clauses = [f"ALTER COLUMN {quoted} TYPE {info.get('type')}{info.get('type_extras') or ''}"]
    if get_bool(info, "allow_null", True):
        clauses.append(f"ALTER COLUMN {quoted} DROP NOT NULL")
    else:
        clauses.append(f"ALTER COLUMN {quoted} SET NOT NULL")
    default = info.get("default")
    if default is None:
        clauses.append(f"ALTER COLUMN {quoted} DROP DEFAULT")
    else:
        if get_bool(info, "quote_default") and not isinstance(default, RawExpression):
            default = generator.quote_value(default)
        clauses.append(f"ALTER COLUMN {quoted} SET DEFAULT {default}")
    return f"ALTER TABLE {generator.quote_table_name(table)} " + ", ".join(clauses)


def _reset_pgsql_sequence(generator: DdlGenerator, table: TableDescriptor, value: int) -> List[str]:
    sequence = generator.quote_value(table.sequence_name)
    return [f"SELECT SETVAL({sequence}, {value}, false)"]


def _check_pgsql_integrity(generator: DdlGenerator, check: bool, schema: str, constraints) -> List[str]:
    mode = "ENABLE" if check else "DISABLE"
    statements = []
    for table in constraints:
        name = f"{schema}.{table}" if schema else table
        statements.append(f"ALTER TABLE {generator.quote_table_name(name)} {mode} TRIGGER ALL")
    return statements


PROFILE = DdlProfile(
    name="pgsql",
    translate=translate_pgsql,
    validate=validate_pgsql,
    max_identifier_length=63,
    drop_index_template="DROP INDEX {name}",
    alter_column=_alter_pgsql_column,
    reset_sequence=_reset_pgsql_sequence,
    check_integrity=_check_pgsql_integrity,
)

ROUTINES = RoutineSyntax(paramstyle="format")
