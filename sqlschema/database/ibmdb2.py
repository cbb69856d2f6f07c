"""IBM DB2 (LUW) dialect."""

from typing import List

from .base import Catalog, CatalogColumn
from .ddl import (
    DdlGenerator, DdlProfile, Definition, get_bool, money_default, set_length, set_precision,
    timestamp_default,
)
from .models import TableDescriptor
from .relationship import ForeignKeyRow
from .routines import RoutineSyntax
from .type_mappers import TypeClassifier

CLASSIFIER = TypeClassifier(name="ibmdb2")


class Db2Catalog(Catalog):
    """Catalog queries against the SYSCAT views."""

    EXCLUDED_SCHEMAS = {"NULLID", "SQLJ", "SYSCAT", "SYSFUN", "SYSIBM", "SYSIBMADM", "SYSIBMINTERNAL",
                        "SYSIBMTS", "SYSPROC", "SYSPUBLIC", "SYSSTAT", "SYSTOOLS"}

    def find_default_schema(self, connection) -> str:
        value = connection.query_scalar("SELECT CURRENT SCHEMA FROM SYSIBM.SYSDUMMY1")
        return (value or "").strip()

    def find_schema_names(self, connection) -> List[str]:
        names = connection.query_column("SELECT SCHEMANAME FROM SYSCAT.SCHEMATA ORDER BY SCHEMANAME")
        return [n.strip() for n in names if n.strip() not in self.EXCLUDED_SCHEMAS]

    def find_table_names(self, connection, schema: str, include_views: bool = True) -> List[str]:
        types = "('T', 'V')" if include_views else "('T')"
        names = connection.query_column(
            f"SELECT TABNAME FROM SYSCAT.TABLES WHERE TABSCHEMA = ? AND TYPE IN {types} ORDER BY TABNAME",
            (schema,),
        )
        return [n.strip() for n in names]

    def find_columns(self, connection, schema: str, table: str) -> List[CatalogColumn]:
        rows = connection.query_all(
            """
            SELECT COLNAME, TYPENAME, LENGTH, SCALE, NULLS, "DEFAULT", KEYSEQ, IDENTITY, REMARKS
            FROM SYSCAT.COLUMNS
            WHERE TABSCHEMA = ? AND TABNAME = ?
            ORDER BY COLNO
            """,
            (schema, table),
        )
        columns = []
        for row in rows:
            type_name = (row["typename"] or "").strip()
            if type_name.upper() in ("DECIMAL", "NUMERIC"):
                db_type = f"{type_name}({row['length']},{row['scale']})"
            elif type_name.upper() in ("CHARACTER", "CHAR", "VARCHAR", "GRAPHIC", "VARGRAPHIC", "BINARY", "VARBINARY"):
                db_type = f"{type_name}({row['length']})"
            else:
                db_type = type_name
            columns.append(CatalogColumn(
                name=row["colname"],
                db_type=db_type,
                allow_null=row["nulls"] == "Y",
                default=row["default"],
                is_primary_key=bool(row["keyseq"]),
                auto_increment=row["identity"] == "Y",
                comment=row["remarks"],
            ))
        return columns

    def find_foreign_keys(self, connection, default_schema: str) -> List[ForeignKeyRow]:
        rows = connection.query_all(
            """
            SELECT R.CONSTNAME AS CONSTRAINT_NAME,
                   R.TABSCHEMA AS TABLE_SCHEMA, R.TABNAME AS TABLE_NAME, K.COLNAME AS COLUMN_NAME,
                   R.REFTABSCHEMA AS REFERENCED_TABLE_SCHEMA, R.REFTABNAME AS REFERENCED_TABLE_NAME,
                   PK.COLNAME AS REFERENCED_COLUMN_NAME
            FROM SYSCAT.REFERENCES R
            JOIN SYSCAT.KEYCOLUSE K ON K.CONSTNAME = R.CONSTNAME AND K.TABSCHEMA = R.TABSCHEMA
                 AND K.TABNAME = R.TABNAME
            JOIN SYSCAT.KEYCOLUSE PK ON PK.CONSTNAME = R.REFKEYNAME AND PK.TABSCHEMA = R.REFTABSCHEMA
                 AND PK.TABNAME = R.REFTABNAME AND PK.COLSEQ = K.COLSEQ
            ORDER BY R.CONSTNAME, K.COLSEQ
            """
        )
        return [
            ForeignKeyRow(**{key: (value.strip() if isinstance(value, str) else value) for key, value in row.items()})
            for row in rows
        ]

    def find_routine_names(self, connection, routine_type: str, schema: str) -> List[str]:
        kind = "P" if routine_type == "PROCEDURE" else "F"
        names = connection.query_column(
            "SELECT ROUTINENAME FROM SYSCAT.ROUTINES WHERE ROUTINETYPE = ? AND ROUTINESCHEMA = ? ORDER BY ROUTINENAME",
            (kind, schema),
        )
        return [n.strip() for n in names]


def translate_db2(info: dict, max_size: int) -> None:
    abstract = info.get("type")
    if abstract in ("pk", "id"):
        info.update(type="INTEGER", allow_null=False, auto_increment=True, is_primary_key=True)
    elif abstract == "bigpk":
        info.update(type="BIGINT", allow_null=False, auto_increment=True, is_primary_key=True)
    elif abstract in ("fk", "reference"):
        info.update(type="INTEGER", is_foreign_key=True)
    elif abstract in ("timestamp_on_create", "timestamp_on_update"):
        timestamp_default(info, on_update_supported=False)
        info["type"] = "TIMESTAMP"
    elif abstract == "datetime":
        info["type"] = "TIMESTAMP"
    elif abstract == "float":
        info["type"] = "REAL"
    elif abstract == "boolean":
        info["type"] = "BOOLEAN"
        default = info.get("default")
        if default is not None:
            info["default"] = "TRUE" if get_bool(info, "default") else "FALSE"
    elif abstract == "money":
        info.update(type="DECIMAL", type_extras="(19,4)")
        money_default(info)
    elif abstract == "string":
        fixed = get_bool(info, "fixed_length")
        national = get_bool(info, "supports_multibyte")
        if fixed:
            info["type"] = "GRAPHIC" if national else "CHAR"
        else:
            info["type"] = "VARGRAPHIC" if national else "VARCHAR"
    elif abstract == "text":
        info["type"] = "DBCLOB" if get_bool(info, "supports_multibyte") else "CLOB"
    elif abstract == "binary":
        info["type"] = "BINARY" if get_bool(info, "fixed_length") else "BLOB"


def validate_db2(info: dict, max_size: int) -> None:
    db_type = str(info.get("type") or "").lower()
    if db_type in ("decimal", "numeric", "real", "double"):
        set_precision(info)
    elif db_type in ("char", "graphic", "binary", "clob", "dbclob", "blob"):
        set_length(info)
    elif db_type in ("varchar", "vargraphic"):
        set_length(info, max_size)
    elif db_type == "timestamp":
        set_length(info)


def _alter_db2_column(generator: DdlGenerator, table: str, column: str, definition: Definition) -> str:
    """DB2 changes the data type and nullability in separate clauses."""
    sql = f"ALTER TABLE {generator.quote_table_name(table)} ALTER COLUMN {generator.quote_column_name(column)}"
    if isinstance(definition, str):
        return f"{sql} SET DATA TYPE {generator.get_column_type(definition)}"
    info = generator.validate_column_settings(generator.translate_simple_column_types(definition))
    sql += f" SET DATA TYPE {info.get('type')}{info.get('type_extras') or ''}"
    if not get_bool(info, "allow_null", True):
        sql += f" ALTER COLUMN {generator.quote_column_name(column)} SET NOT NULL"
    return sql


def _reset_db2_sequence(generator: DdlGenerator, table: TableDescriptor, value: int) -> List[str]:
    column = table.primary_key if isinstance(table.primary_key, str) else None
    if column is None:
        return []
    return [
        f"ALTER TABLE {table.raw_name} ALTER COLUMN {generator.quote_column_name(column)} RESTART WITH {value}"
    ]


def _check_db2_integrity(generator: DdlGenerator, check: bool, schema: str, constraints) -> List[str]:
    statements = []
    for table in constraints:
        name = generator.quote_table_name(f"{schema}.{table}" if schema else table)
        if check:
            statements.append(f"SET INTEGRITY FOR {name} IMMEDIATE CHECKED")
        else:
            statements.append(f"SET INTEGRITY FOR {name} OFF")
    return statements


PROFILE = DdlProfile(
    name="ibmdb2",
    translate=translate_db2,
    validate=validate_db2,
    auto_increment_clause=" GENERATED BY DEFAULT AS IDENTITY",
    supports_on_update=False,
    max_identifier_length=128,
    rename_table_template="RENAME TABLE {table} TO {new_name}",
    alter_column=_alter_db2_column,
    drop_index_template="DROP INDEX {name}",
    reset_sequence=_reset_db2_sequence,
    check_integrity=_check_db2_integrity,
)

ROUTINES = RoutineSyntax(function_template="SELECT {name}({params}) FROM SYSIBM.SYSDUMMY1")
