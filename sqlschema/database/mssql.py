"""Microsoft SQL Server dialect."""

import re
from typing import Any, List

from .base import Catalog, CatalogColumn
from .ddl import (
    DdlGenerator, DdlProfile, boolean_default_as_bit, get_bool, money_default, set_length, set_precision,
    timestamp_default,
)
from .models import RawExpression, TableDescriptor
from .relationship import ForeignKeyRow
from .routines import RoutineSyntax
from .type_mappers import DefaultContext, TypeClassifier, typecast

_NUMBER_RE = re.compile(r"^-?\d+(\.\d*)?$")


def extract_mssql_default(raw: Any, context: DefaultContext) -> Any:
    """Unwrap ``((0))`` / ``(N'abc')`` style defaults reported by sys.default_constraints."""
    if not isinstance(raw, str):
        return typecast(raw, context.host_type, context.allow_null)
    value = raw.strip()
    while value.startswith("(") and value.endswith(")"):
        value = value[1:-1].strip()
    if value.upper() == "NULL":
        return None
    match = re.match(r"^N?'(.*)'$", value, re.DOTALL)
    if match:
        return typecast(match.group(1).replace("''", "'"), context.host_type, context.allow_null)
    if _NUMBER_RE.match(value):
        return typecast(value, context.host_type, context.allow_null)
    return RawExpression(value)


CLASSIFIER = TypeClassifier(name="sqlsrv", default_hook=extract_mssql_default)


class MssqlCatalog(Catalog):
    """Catalog queries against sys.* and INFORMATION_SCHEMA views."""

    EXCLUDED_SCHEMAS = {
        "INFORMATION_SCHEMA", "sys", "guest", "db_owner", "db_accessadmin", "db_securityadmin",
        "db_ddladmin", "db_backupoperator", "db_datareader", "db_datawriter", "db_denydatareader",
        "db_denydatawriter",
    }

    def find_default_schema(self, connection) -> str:
        return connection.query_scalar("SELECT SCHEMA_NAME()") or "dbo"

    def find_schema_names(self, connection) -> List[str]:
        names = connection.query_column("SELECT name FROM sys.schemas ORDER BY name")
        return [n for n in names if n not in self.EXCLUDED_SCHEMAS]

    def find_table_names(self, connection, schema: str, include_views: bool = True) -> List[str]:
        types = "('BASE TABLE', 'VIEW')" if include_views else "('BASE TABLE')"
        return connection.query_column(
            f"""
            SELECT TABLE_NAME FROM INFORMATION_SCHEMA.TABLES
            WHERE TABLE_SCHEMA = ? AND TABLE_TYPE IN {types}
            ORDER BY TABLE_NAME
            """,
            (schema,),
        )

    def find_columns(self, connection, schema: str, table: str) -> List[CatalogColumn]:
        rows = connection.query_all(
            """
            SELECT c.name AS name,
                   t.name + CASE
                       WHEN t.name IN ('varchar', 'char', 'varbinary', 'binary')
                           THEN '(' + CASE WHEN c.max_length = -1 THEN 'max' ELSE CAST(c.max_length AS varchar) END + ')'
                       WHEN t.name IN ('nvarchar', 'nchar')
                           THEN '(' + CASE WHEN c.max_length = -1 THEN 'max' ELSE CAST(c.max_length / 2 AS varchar) END + ')'
                       WHEN t.name IN ('decimal', 'numeric')
                           THEN '(' + CAST(c.precision AS varchar) + ',' + CAST(c.scale AS varchar) + ')'
                       ELSE '' END AS db_type,
                   c.is_nullable AS allow_null,
                   dc.definition AS default_value,
                   c.is_identity AS is_identity,
                   CAST(CASE WHEN EXISTS (
                       SELECT 1 FROM sys.index_columns ic
                       JOIN sys.indexes i ON i.object_id = ic.object_id AND i.index_id = ic.index_id
                       WHERE i.is_primary_key = 1 AND ic.object_id = c.object_id AND ic.column_id = c.column_id
                   ) THEN 1 ELSE 0 END AS bit) AS is_primary_key,
                   CAST(ep.value AS nvarchar(4000)) AS comment
            FROM sys.columns c
            JOIN sys.types t ON t.user_type_id = c.user_type_id
            JOIN sys.objects o ON o.object_id = c.object_id
            JOIN sys.schemas s ON s.schema_id = o.schema_id
            LEFT JOIN sys.default_constraints dc ON dc.object_id = c.default_object_id
            LEFT JOIN sys.extended_properties ep
              ON ep.major_id = c.object_id AND ep.minor_id = c.column_id AND ep.name = 'MS_Description'
            WHERE s.name = ? AND o.name = ? AND o.type IN ('U', 'V')
            ORDER BY c.column_id
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
                auto_increment=bool(row["is_identity"]),
                comment=row["comment"],
            )
            for row in rows
        ]

    def find_foreign_keys(self, connection, default_schema: str) -> List[ForeignKeyRow]:
        rows = connection.query_all(
            """
            SELECT fk.name AS constraint_name,
                   SCHEMA_NAME(tp.schema_id) AS table_schema,
                   tp.name AS table_name,
                   cp.name AS column_name,
                   SCHEMA_NAME(tr.schema_id) AS referenced_table_schema,
                   tr.name AS referenced_table_name,
                   cr.name AS referenced_column_name
            FROM sys.foreign_keys fk
            JOIN sys.foreign_key_columns fkc ON fkc.constraint_object_id = fk.object_id
            JOIN sys.tables tp ON tp.object_id = fkc.parent_object_id
            JOIN sys.columns cp ON cp.object_id = fkc.parent_object_id AND cp.column_id = fkc.parent_column_id
            JOIN sys.tables tr ON tr.object_id = fkc.referenced_object_id
            JOIN sys.columns cr ON cr.object_id = fkc.referenced_object_id AND cr.column_id = fkc.referenced_column_id
            ORDER BY fk.name, fkc.constraint_column_id
            """
        )
        return [ForeignKeyRow(**row) for row in rows]

    def find_routine_names(self, connection, routine_type: str, schema: str) -> List[str]:
        return connection.query_column(
            """
            SELECT ROUTINE_NAME FROM INFORMATION_SCHEMA.ROUTINES
            WHERE ROUTINE_TYPE = ? AND ROUTINE_SCHEMA = ?
            ORDER BY ROUTINE_NAME
            """,
            (routine_type, schema),
        )


def translate_mssql(info: dict, max_size: int) -> None:
    abstract = info.get("type")
    if abstract in ("pk", "id"):
        info.update(type="int", allow_null=False, auto_increment=True, is_primary_key=True)
    elif abstract == "bigpk":
        info.update(type="bigint", allow_null=False, auto_increment=True, is_primary_key=True)
    elif abstract in ("fk", "reference"):
        info.update(type="int", is_foreign_key=True)
    elif abstract in ("timestamp_on_create", "timestamp_on_update"):
        timestamp_default(info, on_update_supported=False)
        info["type"] = "datetime2"
    elif abstract in ("datetime", "timestamp"):
        info["type"] = "datetime2"
    elif abstract == "integer":
        info["type"] = "int"
    elif abstract == "double":
        info["type"] = "float"
        info.setdefault("type_extras", "(53)")
    elif abstract == "boolean":
        info["type"] = "bit"
        boolean_default_as_bit(info)
    elif abstract == "money":
        money_default(info)
    elif abstract == "string":
        fixed = get_bool(info, "fixed_length")
        national = get_bool(info, "supports_multibyte")
        if fixed:
            info["type"] = "nchar" if national else "char"
        else:
            info["type"] = "nvarchar" if national else "varchar"
    elif abstract == "text":
        info["type"] = "nvarchar" if get_bool(info, "supports_multibyte") else "varchar"
        info["type_extras"] = "(max)"
    elif abstract == "binary":
        info["type"] = "binary" if get_bool(info, "fixed_length") else "varbinary"


def validate_mssql(info: dict, max_size: int) -> None:
    db_type = str(info.get("type") or "").lower()
    if db_type in ("decimal", "numeric", "float", "real"):
        set_precision(info)
    elif db_type in ("char", "nchar", "binary"):
        set_length(info)
    elif db_type in ("varchar", "nvarchar", "varbinary"):
        if info.get("type_extras") != "(max)":
            set_length(info, max_size)
    elif db_type in ("time", "datetime2", "datetimeoffset"):
        set_length(info)


def _reset_mssql_sequence(generator: DdlGenerator, table: TableDescriptor, value: int) -> List[str]:
    # RESEED sets the last used identity value
    return [f"DBCC CHECKIDENT ({generator.quote_value(table.display_name)}, RESEED, {value - 1})"]


def _check_mssql_integrity(generator: DdlGenerator, check: bool, schema: str, constraints) -> List[str]:
    mode = "WITH CHECK CHECK" if check else "NOCHECK"
    statements = []
    for table in constraints:
        name = f"{schema}.{table}" if schema else table
        statements.append(f"ALTER TABLE {generator.quote_table_name(name)} {mode} CONSTRAINT ALL")
    return statements


PROFILE = DdlProfile(
    name="sqlsrv",
    quote_open="[",
    quote_close="]",
    translate=translate_mssql,
    validate=validate_mssql,
    auto_increment_clause=" IDENTITY",
    max_identifier_length=128,
    rename_table_template="EXEC sp_rename {table_literal}, {new_name_literal}",
    rename_column_template="EXEC sp_rename {column_literal}, {new_name_literal}, 'COLUMN'",
    reset_sequence=_reset_mssql_sequence,
    check_integrity=_check_mssql_integrity,
)

ROUTINES = RoutineSyntax(
    procedure_template="EXEC {name} {params}",
    qualify_functions=True,
)
