"""MySQL / MariaDB dialect."""

from typing import Any, List

from .base import Catalog, CatalogColumn
from .ddl import (
    DdlGenerator, DdlProfile, boolean_default_as_bit, get_bool, money_default, set_length, set_precision,
    timestamp_default,
)
from .models import TableDescriptor
from .relationship import ForeignKeyRow
from .routines import RoutineSyntax
from .type_mappers import DefaultContext, TypeClassifier, extract_default


def extract_mysql_default(raw: Any, context: DefaultContext) -> Any:
    """Bit columns report defaults as ``b'101'`` literals."""
    if raw is not None and context.db_type.lower().startswith("bit"):
        digits = str(raw).strip("b'")
        try:
            return int(digits, 2) if digits else 0
        except ValueError:
            return extract_default(raw, context)
    return extract_default(raw, context)


CLASSIFIER = TypeClassifier(name="mysql", default_hook=extract_mysql_default)


class MySqlCatalog(Catalog):
    """Catalog queries against information_schema."""

    EXCLUDED_SCHEMAS = {"information_schema", "mysql", "performance_schema", "sys"}

    def find_default_schema(self, connection) -> str:
        return connection.query_scalar("SELECT DATABASE()") or ""

    def find_schema_names(self, connection) -> List[str]:
        names = connection.query_column("SHOW DATABASES")
        return [n for n in names if n.lower() not in self.EXCLUDED_SCHEMAS]

    def find_table_names(self, connection, schema: str, include_views: bool = True) -> List[str]:
        types = "('BASE TABLE', 'VIEW')" if include_views else "('BASE TABLE')"
        return connection.query_column(
            f"""
            SELECT TABLE_NAME FROM information_schema.TABLES
            WHERE TABLE_SCHEMA = %s AND TABLE_TYPE IN {types}
            ORDER BY TABLE_NAME
            """,
            (schema,),
        )

    def find_columns(self, connection, schema: str, table: str) -> List[CatalogColumn]:
        rows = connection.query_all(
            """
            SELECT COLUMN_NAME, COLUMN_TYPE, IS_NULLABLE, COLUMN_DEFAULT, COLUMN_KEY, EXTRA, COLUMN_COMMENT
            FROM information_schema.COLUMNS
            WHERE TABLE_SCHEMA = %s AND TABLE_NAME = %s
            ORDER BY ORDINAL_POSITION
            """,
            (schema, table),
        )
        return [
            CatalogColumn(
                name=row["column_name"],
                db_type=row["column_type"],
                allow_null=row["is_nullable"] == "YES",
                default=row["column_default"],
                is_primary_key="PRI" in (row["column_key"] or ""),
                is_unique="UNI" in (row["column_key"] or ""),
                is_index="MUL" in (row["column_key"] or ""),
                auto_increment="auto_increment" in (row["extra"] or "").lower(),
                comment=row["column_comment"],
            )
            for row in rows
        ]

    def find_foreign_keys(self, connection, default_schema: str) -> List[ForeignKeyRow]:
        rows = connection.query_all(
            """
            SELECT CONSTRAINT_NAME, TABLE_SCHEMA, TABLE_NAME, COLUMN_NAME,
                   REFERENCED_TABLE_SCHEMA, REFERENCED_TABLE_NAME, REFERENCED_COLUMN_NAME
            FROM information_schema.KEY_COLUMN_USAGE
            WHERE REFERENCED_TABLE_NAME IS NOT NULL
            ORDER BY CONSTRAINT_NAME, ORDINAL_POSITION
            """
        )
        return [ForeignKeyRow(**row) for row in rows]

    def find_routine_names(self, connection, routine_type: str, schema: str) -> List[str]:
        return connection.query_column(
            """
            SELECT ROUTINE_NAME FROM information_schema.ROUTINES
            WHERE ROUTINE_TYPE = %s AND ROUTINE_SCHEMA = %s
            ORDER BY ROUTINE_NAME
            """,
            (routine_type, schema),
        )


def translate_mysql(info: dict, max_size: int) -> None:
    abstract = info.get("type")
    if abstract in ("pk", "id"):
        info.update(type="int", type_extras="(11)", allow_null=False, auto_increment=True, is_primary_key=True)
    elif abstract == "bigpk":
        info.update(type="bigint", type_extras="(20)", allow_null=False, auto_increment=True, is_primary_key=True)
    elif abstract in ("fk", "reference"):
        info.update(type="int", type_extras="(11)", is_foreign_key=True)
    elif abstract in ("timestamp_on_create", "timestamp_on_update"):
        timestamp_default(info, on_update_supported=True)
        info["type"] = "timestamp"
    elif abstract == "integer":
        info["type"] = "int"
    elif abstract == "boolean":
        info.update(type="tinyint", type_extras="(1)")
        boolean_default_as_bit(info)
    elif abstract == "money":
        info.update(type="decimal", type_extras="(19,4)")
        money_default(info)
    elif abstract == "string":
        fixed = get_bool(info, "fixed_length")
        national = get_bool(info, "supports_multibyte")
        if fixed:
            info["type"] = "nchar" if national else "char"
        else:
            info["type"] = "nvarchar" if national else "varchar"
    elif abstract == "binary":
        info["type"] = "binary" if get_bool(info, "fixed_length") else "varbinary"


def validate_mysql(info: dict, max_size: int) -> None:
    db_type = str(info.get("type") or "").lower()
    if db_type in ("tinyint", "smallint", "mediumint", "int", "bigint"):
        if info.get("type_extras") is None:
            set_length(info)
    elif db_type in ("decimal", "numeric", "float", "double"):
        set_precision(info)
    elif db_type in ("char", "nchar", "binary"):
        set_length(info)
    elif db_type in ("varchar", "nvarchar", "varbinary"):
        set_length(info, max_size)
    elif db_type in ("time", "timestamp", "datetime"):
        set_length(info)


def _reset_mysql_sequence(generator: DdlGenerator, table: TableDescriptor, value: int) -> List[str]:
    return [f"ALTER TABLE {table.raw_name} AUTO_INCREMENT = {value}"]


def _check_mysql_integrity(generator: DdlGenerator, check: bool, schema: str, constraints) -> List[str]:
    return [f"SET FOREIGN_KEY_CHECKS = {1 if check else 0}"]


PROFILE = DdlProfile(
    name="mysql",
    quote_open="`",
    quote_close="`",
    translate=translate_mysql,
    validate=validate_mysql,
    unique_clause=" UNIQUE KEY",
    auto_increment_clause=" AUTO_INCREMENT",
    max_identifier_length=64,
    alter_column_template="ALTER TABLE {table} CHANGE {column} {column} {definition}",
    drop_foreign_key_template="ALTER TABLE {table} DROP FOREIGN KEY {name}",
    reset_sequence=_reset_mysql_sequence,
    check_integrity=_check_mysql_integrity,
)

ROUTINES = RoutineSyntax(paramstyle="format")
