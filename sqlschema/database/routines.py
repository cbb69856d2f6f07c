"""Stored procedure and function enumeration and invocation."""

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Sequence, Union

from ..errors import InvalidSpecificationError, UnsupportedOperationError
from .connection import rows_as_dicts
from .models import AbstractType, DriverBindType, bind_type_for

if TYPE_CHECKING:
    from .connection import Connection
    from .dialects import Dialect

logger = logging.getLogger(__name__)

DEFAULT_PARAM_LENGTH = 256
ROUTINE_TYPES = ("PROCEDURE", "FUNCTION")

ResultSet = List[Dict[str, Any]]


@dataclass(frozen=True)
class RoutineSyntax:
    """How a dialect spells routine calls.

    ``paramstyle`` is the DB-API paramstyle of the dialect's driver:
    ``qmark`` (``?``), ``format`` (``%s``) or ``named`` (``:name``).
    """
    procedure_template: str = "CALL {name}({params})"
    function_template: str = "SELECT {name}({params})"
    paramstyle: str = "qmark"
    # Procedures hand values back only through bound out variables
    out_params_only: bool = False
    # Scalar functions must be called schema-qualified
    qualify_functions: bool = False
    supported: bool = True

    def placeholder(self, name: str) -> str:
        if self.paramstyle == "named":
            return f":{name}"
        if self.paramstyle == "format":
            return "%s"
        return "?"


@dataclass
class RoutineParameter:
    """One routine argument.

    ``type`` is an abstract type name; ``length`` is the byte length of the
    out buffer for drivers that bind out variables.
    """
    name: Optional[str] = None
    value: Any = None
    type: str = "string"
    length: int = DEFAULT_PARAM_LENGTH
    param_type: str = "INOUT"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RoutineParameter":
        return cls(
            name=data.get("name"),
            value=data.get("value"),
            type=data.get("type") or "string",
            length=data.get("length") or DEFAULT_PARAM_LENGTH,
            param_type=(data.get("param_type") or "INOUT").upper(),
        )

    @property
    def bind_type(self) -> DriverBindType:
        try:
            return bind_type_for(AbstractType(str(self.type).lower()))
        except ValueError:
            return DriverBindType.STRING


@dataclass
class RoutineResult:
    """Outcome of a procedure call."""
    result: Union[None, ResultSet, List[ResultSet]] = None
    out_params: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"result": self.result, "out_params": self.out_params}


def next_result_set(cursor) -> bool:
    """Advance to the next result set; False when the driver has no more."""
    nextset = getattr(cursor, "nextset", None)
    if nextset is None:
        return False
    try:
        return bool(nextset())
    except Exception as e:
        # psycopg2 and friends raise NotSupportedError rather than returning None
        if type(e).__name__ == "NotSupportedError":
            return False
        raise


def drain_result_sets(cursor) -> Union[ResultSet, List[ResultSet]]:
    """Read every result set: one set as a list of rows, several as a list of lists."""
    result = rows_as_dicts(cursor)
    sets = None
    while next_result_set(cursor):
        if sets is None:
            sets = [result]
        sets.append(rows_as_dicts(cursor))
    return sets if sets is not None else result


class RoutineInvoker:
    """Lists and calls stored routines on one connection."""

    def __init__(self, connection: "Connection", dialect: "Dialect", default_schema: str = "",
                 default_length: int = DEFAULT_PARAM_LENGTH):
        self.connection = connection
        self.dialect = dialect
        self.default_schema = default_schema
        self.default_length = default_length

    @property
    def syntax(self) -> RoutineSyntax:
        return self.dialect.routines

    def find_routines(self, routine_type: str, schema: str = "") -> List[str]:
        """Routine names of one type; names outside the default schema are prefixed.

        Raises:
            InvalidSpecificationError: if the type is not PROCEDURE or FUNCTION
        """
        routine_type = (routine_type or "").strip().upper()
        if routine_type not in ROUTINE_TYPES:
            raise InvalidSpecificationError(
                f'The type "{routine_type}" is invalid.',
                details={"type": routine_type, "allowed": list(ROUTINE_TYPES)},
            )
        lookup = schema or self.default_schema
        names = self.dialect.catalog.find_routine_names(self.connection, routine_type, lookup)
        if not schema or schema.lower() == (self.default_schema or "").lower():
            return names
        return [f"{schema}.{name}" for name in names]

    def get_procedure_names(self, schema: str = "") -> List[str]:
        return self.find_routines("PROCEDURE", schema)

    def get_function_names(self, schema: str = "") -> List[str]:
        return self.find_routines("FUNCTION", schema)

    def _ensure_supported(self, operation: str) -> None:
        if not self.syntax.supported:
            raise UnsupportedOperationError(self.dialect.name, operation)

    def _normalize(self, params: Optional[Sequence[Any]]) -> List[RoutineParameter]:
        normalized = []
        for param in params or []:
            if isinstance(param, RoutineParameter):
                normalized.append(param)
            elif isinstance(param, dict):
                normalized.append(RoutineParameter.from_dict(param))
            else:
                normalized.append(RoutineParameter(value=param))
        return normalized

    @staticmethod
    def _param_name(param: RoutineParameter, index: int) -> str:
        return param.name or f"p{index}"

    def _coerce(self, param: RoutineParameter) -> Any:
        if param.value is None:
            return None
        return self.connection.bind_type(param.bind_type)(param.value)

    def _bind(self, params: List[RoutineParameter]):
        """Placeholder string and bind values in the driver's paramstyle."""
        names = [self._param_name(p, i) for i, p in enumerate(params)]
        placeholders = ", ".join(self.syntax.placeholder(n) for n in names)
        if self.syntax.paramstyle == "named":
            values = {n: self._coerce(p) for n, p in zip(names, params)}
        else:
            values = [self._coerce(p) for p in params]
        return names, placeholders, values

    def call_procedure(self, name: str, params: Optional[Sequence[Any]] = None) -> RoutineResult:
        """Call a stored procedure.

        Every parameter is bound in/out. Drivers that expose ``cursor.var``
        (oracledb) get a typed out buffer of the parameter's length, and the
        value read back after the call is reported in ``out_params``.
        """
        self._ensure_supported("call_procedure")
        params = self._normalize(params)
        names, placeholders, values = self._bind(params)
        sql = self.syntax.procedure_template.format(
            name=self.dialect.ddl.quote_table_name(name), params=placeholders
        )

        cursor = self.connection.cursor()
        try:
            out_vars = {}
            if hasattr(cursor, "var"):
                for index, (param_name, param) in enumerate(zip(names, params)):
                    var = cursor.var(
                        self.connection.bind_type(param.bind_type),
                        param.length or self.default_length,
                    )
                    var.setvalue(0, self._coerce(param))
                    out_vars[param_name] = var
                    if isinstance(values, dict):
                        values[param_name] = var
                    else:
                        values[index] = var

            logger.debug("Calling procedure: %s", sql)
            cursor.execute(sql, values)

            result = None
            if not self.syntax.out_params_only and cursor.description is not None:
                result = drain_result_sets(cursor)

            out_params = {}
            for param_name, param in zip(names, params):
                if param.param_type not in ("OUT", "INOUT"):
                    continue
                var = out_vars.get(param_name)
                out_params[param_name] = var.getvalue() if var is not None else param.value
            return RoutineResult(result=result, out_params=out_params)
        finally:
            cursor.close()

    def call_function(self, name: str, params: Optional[Sequence[Any]] = None) -> Union[ResultSet, List[ResultSet]]:
        """Call a function wrapped in a select and return its result set(s)."""
        self._ensure_supported("call_function")
        params = self._normalize(params)
        _, placeholders, values = self._bind(params)
        if self.syntax.qualify_functions and "." not in name and self.default_schema:
            name = f"{self.default_schema}.{name}"
        sql = self.syntax.function_template.format(
            name=self.dialect.ddl.quote_table_name(name), params=placeholders
        )

        cursor = self.connection.cursor()
        try:
            logger.debug("Calling function: %s", sql)
            cursor.execute(sql, values)
            return drain_result_sets(cursor)
        finally:
            cursor.close()
