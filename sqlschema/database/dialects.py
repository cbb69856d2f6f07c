"""Dialect registry.

A ``Dialect`` bundles everything vendor-specific: the type classifier, the
catalog queries, the DDL generator and the routine-call syntax. Bundles are
frozen and shared; pick one with ``get_dialect``.
"""

from dataclasses import dataclass, replace
from typing import Dict, Tuple

from ..errors import UnsupportedDialectError
from . import ibmdb2, mssql, mysql, oracle, postgres, sqlite
from .base import Catalog
from .ddl import DdlGenerator
from .routines import RoutineSyntax
from .type_mappers import TypeClassifier


@dataclass(frozen=True)
class Dialect:
    """Composition of the per-vendor behaviour."""
    name: str
    classifier: TypeClassifier
    catalog: Catalog
    ddl: DdlGenerator
    routines: RoutineSyntax
    aliases: Tuple[str, ...] = ()

    @property
    def paramstyle(self) -> str:
        return self.routines.paramstyle

    def with_string_max_size(self, size: int) -> "Dialect":
        """Copy of this dialect whose DDL uses a different default string length."""
        return replace(self, ddl=self.ddl.with_string_max_size(size))


DIALECTS: Dict[str, Dialect] = {
    dialect.name: dialect
    for dialect in (
        Dialect("mysql", mysql.CLASSIFIER, mysql.MySqlCatalog(), DdlGenerator(mysql.PROFILE),
                mysql.ROUTINES, aliases=("mariadb",)),
        Dialect("pgsql", postgres.CLASSIFIER, postgres.PostgresCatalog(), DdlGenerator(postgres.PROFILE),
                postgres.ROUTINES, aliases=("postgres", "postgresql")),
        Dialect("sqlite", sqlite.CLASSIFIER, sqlite.SqliteCatalog(), DdlGenerator(sqlite.PROFILE),
                sqlite.ROUTINES, aliases=("sqlite3",)),
        Dialect("oci", oracle.CLASSIFIER, oracle.OracleCatalog(), DdlGenerator(oracle.PROFILE),
                oracle.ROUTINES, aliases=("oracle",)),
        Dialect("sqlsrv", mssql.CLASSIFIER, mssql.MssqlCatalog(), DdlGenerator(mssql.PROFILE),
                mssql.ROUTINES, aliases=("mssql", "sqlserver", "dblib")),
        Dialect("ibmdb2", ibmdb2.CLASSIFIER, ibmdb2.Db2Catalog(), DdlGenerator(ibmdb2.PROFILE),
                ibmdb2.ROUTINES, aliases=("db2",)),
    )
}

_ALIASES = {alias: dialect.name for dialect in DIALECTS.values() for alias in dialect.aliases}


def get_dialect(name: str) -> Dialect:
    """Look up a dialect by canonical name or alias (``postgresql+psycopg2`` works too).

    Raises:
        UnsupportedDialectError: if no dialect matches
    """
    key = (name or "").strip().lower().split("+", 1)[0]
    key = _ALIASES.get(key, key)
    if key not in DIALECTS:
        raise UnsupportedDialectError(
            name, details={"dialect": name, "supported": sorted(DIALECTS)}
        )
    return DIALECTS[key]
