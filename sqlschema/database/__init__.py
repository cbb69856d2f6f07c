"""Schema discovery, type classification and DDL generation for sqlschema.

This module provides a dialect-independent schema engine with dialect
bundles for MySQL, PostgreSQL, SQLite, Oracle, SQL Server and DB2.
"""

from .models import (
    AbstractType,
    HostType,
    DriverBindType,
    RelationType,
    RawExpression,
    ColumnDescriptor,
    JunctionDescriptor,
    RelationDescriptor,
    TableDescriptor,
)
from .type_mappers import Limits, TypeClassifier, typecast
from .relationship import ForeignKeyRow, RelationshipDetector
from .base import Catalog, CatalogColumn, SchemaDiscoverer
from .ddl import DEFAULT_STRING_MAX_SIZE, DdlGenerator, DdlProfile
from .routines import RoutineInvoker, RoutineParameter, RoutineResult
from .connection import Connection, DbApiConnection, connect
from .transaction import Transaction
from .extras import InMemorySchemaExtras, JsonFileSchemaExtras, SchemaExtrasStore, apply_extras
from .editor import SchemaEditor
from .dialects import DIALECTS, Dialect, get_dialect

__all__ = [
    # Data models
    "AbstractType",
    "HostType",
    "DriverBindType",
    "RelationType",
    "RawExpression",
    "ColumnDescriptor",
    "JunctionDescriptor",
    "RelationDescriptor",
    "TableDescriptor",
    # Classification
    "Limits",
    "TypeClassifier",
    "typecast",
    # Discovery
    "Catalog",
    "CatalogColumn",
    "ForeignKeyRow",
    "RelationshipDetector",
    "SchemaDiscoverer",
    # DDL
    "DEFAULT_STRING_MAX_SIZE",
    "DdlGenerator",
    "DdlProfile",
    "SchemaEditor",
    # Routines
    "RoutineInvoker",
    "RoutineParameter",
    "RoutineResult",
    # Collaborators
    "Connection",
    "DbApiConnection",
    "connect",
    "Transaction",
    "SchemaExtrasStore",
    "InMemorySchemaExtras",
    "JsonFileSchemaExtras",
    "apply_extras",
    # Dialects
    "DIALECTS",
    "Dialect",
    "get_dialect",
]
