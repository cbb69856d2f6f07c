"""Vendor type classification.

Turns a raw vendor type string (``varchar(255)``, ``NUMBER(10,2)``,
``enum('a','b')``) into an abstract type plus size/precision/scale and
fixed-length/multibyte flags, and coerces catalog default values into host
values. Every function here has a deterministic fallback; none raises for
unrecognized input.

Dialects customize behaviour by composing the base functions into a
``TypeClassifier`` with their own hooks.
"""

import re
from dataclasses import dataclass
from typing import Any, Callable, NamedTuple, Optional

from .models import AbstractType, ColumnDescriptor, HostType, RawExpression, host_type_for


class Limits(NamedTuple):
    """Size, precision and scale parsed from a vendor type string."""
    size: Optional[int] = None
    precision: Optional[int] = None
    scale: Optional[int] = None


@dataclass(frozen=True)
class DefaultContext:
    """What a default-value hook may know about the column being classified."""
    db_type: str
    type: AbstractType
    allow_null: bool

    @property
    def host_type(self) -> HostType:
        return host_type_for(self.type)


_NUMERIC_SHAPES = ("int", "number", "numeric", "decimal", "float", "double", "real", "money", "bit", "percent")
_INTEGER_FAMILY = {"tinyint", "smallint", "mediumint", "bigint", "int", "integer"}
_NUMBER_RE = re.compile(r"^\s*-?\d+(\.\d*)?\s*$")
_TRUE_STRINGS = {"1", "true", "t", "yes", "y", "on"}
_FALSE_STRINGS = {"0", "false", "f", "no", "n", "off"}


def simple_type(db_type: str) -> str:
    """Strip any parenthesized suffix and lower-case the remainder."""
    return (db_type or "").split("(", 1)[0].strip().lower()


def _parse_int(value: str) -> Optional[int]:
    value = value.strip()
    if value.lower() == "max":
        return -1
    try:
        return int(value)
    except ValueError:
        return None


def extract_limit(db_type: str) -> Limits:
    """Parse ``(a)`` or ``(a,b)`` suffixes and enumeration literal lists."""
    db_type = db_type or ""
    base = simple_type(db_type)

    if base in ("enum", "set"):
        match = re.search(r"\((['\"])(.*)\1\)", db_type, re.DOTALL)
        if match:
            # Values may contain commas, so split on quote+comma+quote pairs
            quote = match.group(1)
            values = match.group(2).split(f"{quote},{quote}")
            size = max(len(v) for v in values)
            return Limits(size=size, precision=size)

    match = re.search(r"\((.*)\)", db_type)
    if not match:
        return Limits()

    values = match.group(1).split(",")
    size = _parse_int(values[0])
    if len(values) > 1:
        return Limits(size=size, precision=size, scale=_parse_int(values[1]))
    if any(shape in base for shape in _NUMERIC_SHAPES):
        return Limits(size=size, precision=size)
    return Limits(size=size)


def extract_type(db_type: str, limits: Limits) -> AbstractType:
    """Classify a vendor type string into an abstract type.

    Rules are checked in priority order; boolean detection always runs
    before generic numeric detection.
    """
    name = simple_type(db_type)
    size = limits.size

    if name == "bit" or "bool" in name:
        return AbstractType.BOOLEAN
    if name == "number":
        if size == 1:
            return AbstractType.BOOLEAN
        if not limits.scale:
            return AbstractType.INTEGER
        return AbstractType.DECIMAL
    if name in ("decimal", "numeric", "percent"):
        return AbstractType.DECIMAL
    if "double" in name:
        return AbstractType.DOUBLE
    if name == "real" or "float" in name:
        return AbstractType.DOUBLE if size == 53 else AbstractType.FLOAT
    if "money" in name:
        return AbstractType.MONEY
    if name in _INTEGER_FAMILY:
        return AbstractType.BOOLEAN if size == 1 else AbstractType.INTEGER
    if "timestamp" in name or name == "datetimeoffset":
        return AbstractType.TIMESTAMP
    if "datetime" in name:
        return AbstractType.DATETIME
    if name == "date":
        return AbstractType.DATE
    if "time" in name:
        return AbstractType.TIME
    if "binary" in name or "blob" in name:
        return AbstractType.BINARY
    if "clob" in name or "text" in name:
        return AbstractType.TEXT
    if name == "varchar" and size == -1:
        # varchar(max)
        return AbstractType.TEXT
    return AbstractType.STRING


def extract_multibyte(db_type: str) -> bool:
    name = (db_type or "").lower()
    return any(token in name for token in ("national", "nchar", "nvarchar", "nclob", "ntext", "graphic"))


def extract_fixed_length(db_type: str) -> bool:
    name = simple_type(db_type)
    return ("char" in name and "var" not in name) or name == "binary"


def _to_bool(value: Any) -> bool:
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
    return bool(value)


def typecast(value: Any, host_type: HostType, allow_null: bool = True) -> Any:
    """Convert a value to the given host type.

    ``None``, raw expressions and values already of the host type pass
    through untouched. Doubles are never narrowed.
    """
    if value is None or isinstance(value, RawExpression):
        return value
    if host_type == HostType.STRING and type(value) is str:
        return value
    if host_type == HostType.INTEGER and type(value) is int:
        return value
    if host_type == HostType.BOOLEAN and type(value) is bool:
        return value
    if host_type == HostType.DOUBLE and type(value) is float:
        return value

    if value == "" and allow_null:
        return "" if host_type == HostType.STRING else None

    if host_type == HostType.STRING:
        return str(value)
    if host_type == HostType.INTEGER:
        if isinstance(value, (int, float)):
            return int(value)
        if value == "":
            return 0
        if isinstance(value, str) and _NUMBER_RE.match(value):
            return int(float(value))
        return RawExpression(str(value))
    if host_type == HostType.BOOLEAN:
        return _to_bool(value)
    return value


def extract_default(raw: Any, context: DefaultContext) -> Any:
    """Base default-value coercion: a typecast to the column's host type."""
    return typecast(raw, context.host_type, context.allow_null)


TypeHook = Callable[[str, Limits], AbstractType]
LimitHook = Callable[[str], Limits]
DefaultHook = Callable[[Any, DefaultContext], Any]


@dataclass(frozen=True)
class TypeClassifier:
    """Per-dialect composition of the classification functions."""
    name: str = "generic"
    type_hook: TypeHook = extract_type
    limit_hook: LimitHook = extract_limit
    default_hook: DefaultHook = extract_default

    def extract_limit(self, db_type: str) -> Limits:
        return self.limit_hook(db_type)

    def extract_type(self, db_type: str, limits: Optional[Limits] = None) -> AbstractType:
        if limits is None:
            limits = self.limit_hook(db_type)
        return self.type_hook(db_type, limits)

    def extract_default(self, raw: Any, db_type: str, abstract_type: AbstractType, allow_null: bool = True) -> Any:
        return self.default_hook(raw, DefaultContext(db_type=db_type, type=abstract_type, allow_null=allow_null))

    def classify(
        self,
        name: str,
        db_type: str,
        raw_name: Optional[str] = None,
        allow_null: bool = True,
        default: Any = None,
        is_primary_key: bool = False,
        is_unique: bool = False,
        is_index: bool = False,
        auto_increment: bool = False,
        comment: Optional[str] = "",
    ) -> ColumnDescriptor:
        """Build a complete column descriptor from one catalog row's values."""
        db_type = db_type or ""
        limits = self.limit_hook(db_type)
        abstract_type = self.type_hook(db_type, limits)
        coerced = self.default_hook(
            default, DefaultContext(db_type=db_type, type=abstract_type, allow_null=allow_null)
        )
        return ColumnDescriptor(
            name=name,
            raw_name=raw_name or name,
            db_type=db_type,
            type=abstract_type,
            allow_null=allow_null,
            default=coerced,
            size=limits.size,
            precision=limits.precision,
            scale=limits.scale,
            is_primary_key=is_primary_key,
            is_unique=is_unique,
            is_index=is_index,
            auto_increment=auto_increment,
            fixed_length=extract_fixed_length(db_type),
            supports_multibyte=extract_multibyte(db_type),
            comment="" if comment is None else comment,
        )
