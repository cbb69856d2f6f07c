"""Schema descriptor models produced by discovery and consumed by DDL generation."""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

from .naming import camelize, pluralize


class AbstractType(str, Enum):
    """Dialect-independent logical column type."""

    PK = "pk"
    ID = "id"
    FK = "fk"
    REFERENCE = "reference"
    BIGPK = "bigpk"
    STRING = "string"
    TEXT = "text"
    SMALLINT = "smallint"
    INTEGER = "integer"
    BIGINT = "bigint"
    FLOAT = "float"
    DOUBLE = "double"
    DECIMAL = "decimal"
    DATETIME = "datetime"
    TIMESTAMP = "timestamp"
    TIME = "time"
    DATE = "date"
    BINARY = "binary"
    BOOLEAN = "boolean"
    MONEY = "money"


class HostType(str, Enum):
    """Python-side value type for a column."""

    STRING = "string"
    INTEGER = "integer"
    DOUBLE = "double"
    BOOLEAN = "boolean"


class DriverBindType(str, Enum):
    """Coarse parameter category used when binding values into statements."""

    STRING = "string"
    INTEGER = "integer"
    BOOLEAN = "boolean"
    NONE = "none"


class RelationType(str, Enum):
    """Kind of relation inferred from foreign keys."""

    BELONGS_TO = "belongs_to"
    HAS_MANY = "has_many"
    MANY_MANY = "many_many"


_INTEGER_TYPES = {
    AbstractType.INTEGER, AbstractType.ID, AbstractType.REFERENCE,
    AbstractType.PK, AbstractType.FK, AbstractType.BIGPK,
    AbstractType.SMALLINT, AbstractType.BIGINT,
}
_DOUBLE_TYPES = {AbstractType.DECIMAL, AbstractType.DOUBLE, AbstractType.FLOAT, AbstractType.MONEY}


def host_type_for(abstract_type: AbstractType) -> HostType:
    """Map an abstract type to its host (Python value) type."""
    if abstract_type == AbstractType.BOOLEAN:
        return HostType.BOOLEAN
    if abstract_type in _INTEGER_TYPES:
        return HostType.INTEGER
    if abstract_type in _DOUBLE_TYPES:
        return HostType.DOUBLE
    return HostType.STRING


def bind_type_for(abstract_type: AbstractType) -> DriverBindType:
    """Map an abstract type to its driver parameter-binding type."""
    if abstract_type == AbstractType.BOOLEAN:
        return DriverBindType.BOOLEAN
    if abstract_type in _INTEGER_TYPES:
        return DriverBindType.INTEGER
    if abstract_type == AbstractType.STRING:
        return DriverBindType.STRING
    return DriverBindType.NONE


class RawExpression(str):
    """A SQL expression passed through verbatim (e.g. ``CURRENT_TIMESTAMP``).

    Values of this type are never typecast or quoted.
    """

    def __repr__(self) -> str:
        return f"RawExpression({str.__repr__(self)})"


@dataclass(frozen=True)
class ColumnDescriptor:
    """Immutable metadata for one table column."""
    name: str
    raw_name: str
    db_type: str
    type: AbstractType = AbstractType.STRING
    allow_null: bool = True
    default: Any = None
    size: Optional[int] = None
    precision: Optional[int] = None
    scale: Optional[int] = None
    is_primary_key: bool = False
    is_unique: bool = False
    is_index: bool = False
    is_foreign_key: bool = False
    ref_table: Optional[str] = None
    ref_fields: Optional[str] = None
    auto_increment: bool = False
    fixed_length: bool = False
    supports_multibyte: bool = False
    comment: Optional[str] = ""
    label: Optional[str] = None

    @property
    def host_type(self) -> HostType:
        return host_type_for(self.type)

    @property
    def bind_type(self) -> DriverBindType:
        return bind_type_for(self.type)

    @property
    def required(self) -> bool:
        """A value must be supplied on insert."""
        return not (self.allow_null or self.default is not None or self.auto_increment)

    def get_label(self) -> str:
        return self.label or camelize(self.name, "_", True)

    def as_foreign_key(self, ref_table: str, ref_field: str) -> "ColumnDescriptor":
        """Return a copy marked as a foreign key to ``ref_table.ref_field``.

        Plain integer columns are promoted to ``reference``.
        """
        new_type = AbstractType.REFERENCE if self.type == AbstractType.INTEGER else self.type
        return replace(
            self,
            is_foreign_key=True,
            ref_table=ref_table,
            ref_fields=ref_field,
            type=new_type,
        )

    def to_dict(self) -> Dict[str, Any]:
        default = str(self.default) if isinstance(self.default, RawExpression) else self.default
        return {
            "name": self.name,
            "label": self.get_label(),
            "type": self.type.value,
            "db_type": self.db_type,
            "host_type": self.host_type.value,
            "bind_type": self.bind_type.value,
            "length": self.size,
            "precision": self.precision,
            "scale": self.scale,
            "default": default,
            "required": self.required,
            "allow_null": self.allow_null,
            "fixed_length": self.fixed_length,
            "supports_multibyte": self.supports_multibyte,
            "auto_increment": self.auto_increment,
            "is_primary_key": self.is_primary_key,
            "is_foreign_key": self.is_foreign_key,
            "is_unique": self.is_unique,
            "is_index": self.is_index,
            "ref_table": self.ref_table,
            "ref_fields": self.ref_fields,
        }


@dataclass(frozen=True)
class JunctionDescriptor:
    """Join table of a many-to-many relation."""
    table: str
    local_column: str
    foreign_column: str

    def __str__(self) -> str:
        return f"{self.table}({self.local_column},{self.foreign_column})"


@dataclass(frozen=True)
class RelationDescriptor:
    """A relation from one table to another, referenced by table name."""
    type: RelationType
    ref_table: str
    ref_field: str
    field: str
    junction: Optional[JunctionDescriptor] = None

    @property
    def name(self) -> str:
        if self.type == RelationType.BELONGS_TO:
            return f"{self.ref_table}_by_{self.field}"
        if self.type == RelationType.HAS_MANY:
            return f"{self.ref_table}_by_{self.ref_field}"
        return f"{self.ref_table}_by_{self.junction.table}"

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "name": self.name,
            "type": self.type.value,
            "ref_table": self.ref_table,
            "ref_field": self.ref_field,
            "field": self.field,
            "join": str(self.junction) if self.junction else None,
        }
        if self.junction:
            result["junction"] = {
                "table": self.junction.table,
                "local_column": self.junction.local_column,
                "foreign_column": self.junction.foreign_column,
            }
        return result


PrimaryKey = Union[None, str, List[str]]


@dataclass
class TableDescriptor:
    """Metadata for one table, owned by the discovery session that loaded it."""
    name: str
    schema_name: str
    raw_name: str
    display_name: str
    primary_key: PrimaryKey = None
    sequence_name: Optional[str] = None
    name_field: Optional[str] = None
    label: Optional[str] = None
    plural: Optional[str] = None
    columns: Dict[str, ColumnDescriptor] = field(default_factory=dict)
    foreign_keys: Dict[str, Tuple[str, str]] = field(default_factory=dict)
    relations: Dict[str, RelationDescriptor] = field(default_factory=dict)

    def get_column(self, name: str) -> Optional[ColumnDescriptor]:
        return self.columns.get(name)

    @property
    def column_names(self) -> List[str]:
        return list(self.columns)

    def get_relation(self, name: str) -> Optional[RelationDescriptor]:
        return self.relations.get(name)

    @property
    def relation_names(self) -> List[str]:
        return list(self.relations)

    def get_label(self) -> str:
        return self.label or camelize(self.display_name, "_", True)

    def get_plural(self) -> str:
        return self.plural or pluralize(self.get_label())

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for collaborators (labels, fields and relations)."""
        return {
            "name": self.display_name,
            "label": self.get_label(),
            "plural": self.get_plural(),
            "primary_key": self.primary_key,
            "name_field": self.name_field,
            "field": [column.to_dict() for column in self.columns.values()],
            "related": [relation.to_dict() for relation in self.relations.values()],
        }
