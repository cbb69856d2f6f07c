"""Oracle dialect.

Pre-12c Oracle has no auto-increment columns: a primary key is fed by a
sequence and a BEFORE INSERT trigger. Discovery reads the sequence name back
out of the trigger body, and ``get_primary_key_commands`` creates the pair.
"""

import re
from typing import Any, List, Optional

from .base import Catalog, CatalogColumn
from .ddl import (
    DdlGenerator, DdlProfile, boolean_default_as_bit, get_bool, money_default, set_length, set_precision,
    timestamp_default,
)
from .models import TableDescriptor
from .relationship import ForeignKeyRow
from .routines import RoutineSyntax
from .type_mappers import DefaultContext, TypeClassifier, extract_default

_NEXTVAL_RE = re.compile(r'([\w$#."]+)\.nextval', re.IGNORECASE)


def extract_oracle_default(raw: Any, context: DefaultContext) -> Any:
    # DATA_DEFAULT comes back with trailing whitespace and newlines
    if isinstance(raw, str):
        raw = raw.strip()
    return extract_default(raw, context)


CLASSIFIER = TypeClassifier(name="oci", default_hook=extract_oracle_default)


class OracleCatalog(Catalog):
    """Catalog queries against the ALL_* dictionary views."""

    EXCLUDED_SCHEMAS = {"SYSTEM", "SYS", "SYSAUX"}

    def find_default_schema(self, connection) -> str:
        if connection.username:
            return connection.username.upper()
        return connection.query_scalar("SELECT USER FROM DUAL") or ""

    def find_schema_names(self, connection) -> List[str]:
        names = connection.query_column("SELECT username FROM all_users ORDER BY username")
        if self.find_default_schema(connection) == "SYSTEM":
            return names
        return [n for n in names if n not in self.EXCLUDED_SCHEMAS]

    def find_table_names(self, connection, schema: str, include_views: bool = True) -> List[str]:
        condition = "object_type IN ('TABLE', 'VIEW')" if include_views else "object_type = 'TABLE'"
        return connection.query_column(
            f"SELECT object_name FROM all_objects WHERE {condition} AND owner = :owner ORDER BY object_name",
            {"owner": schema},
        )

    def find_columns(self, connection, schema: str, table: str) -> List[CatalogColumn]:
        rows = connection.query_all(
            """
            SELECT a.column_name, a.data_type ||
                CASE
                    WHEN a.data_precision IS NOT NULL
                        THEN '(' || a.data_precision ||
                             CASE WHEN a.data_scale > 0 THEN ',' || a.data_scale ELSE '' END || ')'
                    WHEN a.data_type = 'DATE' THEN ''
                    WHEN a.data_type = 'NUMBER' THEN ''
                    WHEN a.data_type LIKE 'TIMESTAMP%' THEN ''
                    ELSE '(' || TO_CHAR(a.data_length) || ')'
                END AS data_type,
                a.nullable, a.data_default,
                (SELECT d.constraint_type
                   FROM all_cons_columns c
                   JOIN all_constraints d ON d.owner = c.owner AND d.constraint_name = c.constraint_name
                  WHERE c.owner = a.owner AND c.table_name = a.table_name
                    AND c.column_name = a.column_name AND d.constraint_type = 'P'
                    AND ROWNUM = 1) AS key,
                com.comments AS column_comment
            FROM all_tab_columns a
            LEFT JOIN all_col_comments com
              ON com.owner = a.owner AND com.table_name = a.table_name AND com.column_name = a.column_name
            WHERE a.owner = :owner AND a.table_name = :table_name
            ORDER BY a.column_id
            """,
            {"owner": schema, "table_name": table},
        )
        return [
            CatalogColumn(
                name=row["column_name"],
                db_type=row["data_type"],
                allow_null=row["nullable"] == "Y",
                default=row["data_default"],
                is_primary_key="P" in (row["key"] or ""),
                comment=row["column_comment"],
            )
            for row in rows
        ]

    def find_sequence_name(self, connection, schema: str, table: str, columns: List[CatalogColumn]) -> Optional[str]:
        """Read the sequence out of an enabled BEFORE EACH ROW insert trigger."""
        if not any(c.is_primary_key for c in columns):
            return None
        body = connection.query_scalar(
            """
            SELECT trigger_body FROM all_triggers
            WHERE table_owner = :owner AND table_name = :table_name
              AND triggering_event = 'INSERT' AND status = 'ENABLED' AND trigger_type = 'BEFORE EACH ROW'
            """,
            {"owner": schema, "table_name": table},
        )
        if not body:
            return None
        match = _NEXTVAL_RE.search(str(body))
        if not match:
            return None
        return match.group(1).replace('"', "").split(".")[-1]

    def find_foreign_keys(self, connection, default_schema: str) -> List[ForeignKeyRow]:
        rows = connection.query_all(
            """
            SELECT d.constraint_name,
                   c.owner AS table_schema,
                   c.table_name,
                   c.column_name,
                   e.owner AS referenced_table_schema,
                   e.table_name AS referenced_table_name,
                   f.column_name AS referenced_column_name
            FROM all_cons_columns c
            JOIN all_constraints d ON d.owner = c.owner AND d.constraint_name = c.constraint_name
            LEFT JOIN all_constraints e ON e.owner = d.r_owner AND e.constraint_name = d.r_constraint_name
            LEFT JOIN all_cons_columns f
              ON f.owner = e.owner AND f.constraint_name = e.constraint_name AND f.position = c.position
            WHERE d.constraint_type = 'R'
            ORDER BY d.constraint_name, c.position
            """
        )
        return [ForeignKeyRow(**row) for row in rows]

    def find_routine_names(self, connection, routine_type: str, schema: str) -> List[str]:
        return connection.query_column(
            "SELECT object_name FROM all_objects WHERE object_type = :routine_type AND owner = :owner "
            "ORDER BY object_name",
            {"routine_type": routine_type, "owner": schema},
        )

    def find_constraint_names(self, connection, schema: str, table: str) -> List[str]:
        return connection.query_column(
            "SELECT constraint_name FROM all_constraints WHERE table_name = :table_name AND owner = :owner",
            {"table_name": table, "owner": schema},
        )


def translate_oracle(info: dict, max_size: int) -> None:
    abstract = info.get("type")
    if abstract in ("pk", "id", "bigpk"):
        # Auto-increment comes from the sequence and trigger pair
        info.update(type="number", type_extras="(10)", allow_null=False, auto_increment=False, is_primary_key=True)
    elif abstract in ("fk", "reference"):
        info.update(type="number", type_extras="(10)", is_foreign_key=True)
    elif abstract in ("timestamp_on_create", "timestamp_on_update"):
        timestamp_default(info, on_update_supported=False)
        info["type"] = "timestamp"
    elif abstract in ("integer", "smallint", "bigint"):
        info.update(type="number", type_extras="(10)" if abstract != "bigint" else "(19)")
    elif abstract == "float":
        info["type"] = "BINARY_FLOAT"
    elif abstract == "double":
        info["type"] = "BINARY_DOUBLE"
    elif abstract == "decimal":
        info["type"] = "NUMBER"
    elif abstract in ("datetime", "time"):
        info["type"] = "TIMESTAMP"
    elif abstract == "boolean":
        info.update(type="number", type_extras="(1)")
        boolean_default_as_bit(info)
    elif abstract == "money":
        info.update(type="number", type_extras="(19,4)")
        money_default(info)
    elif abstract == "string":
        fixed = get_bool(info, "fixed_length")
        national = get_bool(info, "supports_multibyte")
        if fixed:
            info["type"] = "nchar" if national else "char"
        else:
            info["type"] = "nvarchar2" if national else "varchar2"
    elif abstract == "text":
        info["type"] = "nclob" if get_bool(info, "supports_multibyte") else "clob"
    elif abstract == "binary":
        info["type"] = "blob"


def validate_oracle(info: dict, max_size: int) -> None:
    db_type = str(info.get("type") or "").lower()
    if db_type in ("number", "numeric", "binary_float", "binary_double"):
        set_precision(info)
    elif db_type in ("char", "nchar"):
        set_length(info)
    elif db_type in ("varchar", "varchar2", "nvarchar", "nvarchar2"):
        set_length(info, max_size)
    elif db_type == "timestamp":
        set_length(info)


def _reset_oracle_sequence(generator: DdlGenerator, table: TableDescriptor, value: int) -> List[str]:
    sequence = generator.quote_simple_name(table.sequence_name or f"{table.name.upper()}_SEQ")
    return [
        f"DROP SEQUENCE {sequence}",
        f"CREATE SEQUENCE {sequence} START WITH {value} INCREMENT BY 1 NOMAXVALUE NOCACHE",
    ]


def _check_oracle_integrity(generator: DdlGenerator, check: bool, schema: str, constraints) -> List[str]:
    mode = "ENABLE" if check else "DISABLE"
    statements = []
    for table, names in constraints.items():
        quoted = generator.quote_table_name(f"{schema}.{table}" if schema else table)
        for name in names:
            statements.append(f"ALTER TABLE {quoted} {mode} CONSTRAINT {generator.quote_simple_name(name)}")
    return statements


def _oracle_primary_key_commands(generator: DdlGenerator, table: str, column: str) -> List[str]:
    sequence = f"{table.upper()}_{column.upper()}".replace(".", "_")
    trigger_table = generator.quote_table_name(table)
    trigger_field = generator.quote_column_name(column)
    return [
        f"CREATE SEQUENCE {sequence}",
        f"""CREATE OR REPLACE TRIGGER {sequence}
BEFORE INSERT ON {trigger_table}
FOR EACH ROW
BEGIN
  IF :new.{trigger_field} IS NOT NULL THEN
    RAISE_APPLICATION_ERROR(-20000, 'ID cannot be specified');
  ELSE
    SELECT {sequence}.NEXTVAL
    INTO   :new.{trigger_field}
    FROM   dual;
  END IF;
END;""",
    ]


PROFILE = DdlProfile(
    name="oci",
    translate=translate_oracle,
    validate=validate_oracle,
    supports_on_update=False,
    max_identifier_length=30,
    alter_column_template="ALTER TABLE {table} MODIFY {column} {definition}",
    drop_index_template="DROP INDEX {name}",
    reset_sequence=_reset_oracle_sequence,
    check_integrity=_check_oracle_integrity,
    primary_key_commands=_oracle_primary_key_commands,
)

ROUTINES = RoutineSyntax(
    procedure_template="BEGIN {name}({params}); END;",
    function_template="SELECT {name}({params}) FROM DUAL",
    paramstyle="named",
    out_params_only=True,
)
