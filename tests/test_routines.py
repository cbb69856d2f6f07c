"""Tests for stored routine listing and invocation over a fake driver."""

import pytest

from sqlschema.database import DbApiConnection, RoutineInvoker, RoutineParameter, get_dialect
from sqlschema.errors import InvalidSpecificationError, UnsupportedOperationError
from tests.fixtures import FakeCursor, FakeRawConnection, FakeVarCursor, NotSupportedError


def _invoker(dialect_name, cursors, default_schema=''):
    raw = FakeRawConnection(cursors)
    connection = DbApiConnection(raw, dialect_name)
    return raw, RoutineInvoker(connection, get_dialect(dialect_name), default_schema=default_schema)


class TestFindRoutines:
    """Test routine enumeration."""

    def test_invalid_type(self):
        _, invoker = _invoker("mysql", [])
        with pytest.raises(InvalidSpecificationError) as exc_info:
            invoker.find_routines("trigger")
        assert 'The type "TRIGGER" is invalid.' in str(exc_info.value)

    def test_default_schema_names_are_bare(self):
        cursor = FakeCursor([(["ROUTINE_NAME"], [("get_total",), ("rebuild",)])])
        raw, invoker = _invoker("sqlsrv", [cursor], default_schema="dbo")

        assert invoker.get_procedure_names() == ["get_total", "rebuild"]
        assert raw.executed[0][1] == ("PROCEDURE", "dbo")

    def test_other_schema_names_are_prefixed(self):
        cursor = FakeCursor([(["ROUTINE_NAME"], [("audit",)])])
        _, invoker = _invoker("sqlsrv", [cursor], default_schema="dbo")
        assert invoker.find_routines("function", "sales") == ["sales.audit"]

    def test_sqlite_has_no_routines(self):
        _, invoker = _invoker("sqlite", [])
        assert invoker.get_function_names() == []


class TestCallProcedure:
    """Test procedure calls in each paramstyle."""

    def test_format_paramstyle(self):
        cursor = FakeCursor([(["id", "name"], [(1, "a"), (2, "b")])])
        raw, invoker = _invoker("mysql", [cursor])

        result = invoker.call_procedure("list_users", [1, "x"])

        sql, values = raw.executed[0]
        assert sql == "CALL `list_users`(%s, %s)"
        assert values == ["1", "x"]
        assert result.result == [{"id": 1, "name": "a"}, {"id": 2, "name": "b"}]
        assert result.out_params == {"p0": 1, "p1": "x"}
        assert cursor.closed is True

    def test_typed_parameters(self):
        raw, invoker = _invoker("pgsql", [FakeCursor()])
        invoker.call_procedure("touch", [
            RoutineParameter(name="n", value="5", type="integer", param_type="IN"),
            {"name": "flag", "value": 1, "type": "boolean"},
        ])
        assert raw.executed[0][1] == [5, True]

    def test_null_value_is_not_coerced(self):
        raw, invoker = _invoker("mysql", [FakeCursor()])
        invoker.call_procedure("noop", [None])
        assert raw.executed[0][1] == [None]

    def test_named_paramstyle_with_out_vars(self):
        cursor = FakeVarCursor(out_values={"a": "done"})
        raw, invoker = _invoker("oci", [cursor])

        result = invoker.call_procedure("pkg.proc", [
            {"name": "a", "value": "x"},
            {"name": "b", "value": 5, "type": "integer", "param_type": "IN", "length": 8},
        ])

        sql, values = raw.executed[0]
        assert sql == 'BEGIN "pkg"."proc"(:a, :b); END;'
        assert set(values) == {"a", "b"}
        assert values["a"] is cursor.vars[0]
        assert cursor.vars[1].bind_type is int
        assert cursor.vars[1].size == 8
        assert cursor.vars[1].getvalue() == 5
        assert result.result is None
        assert result.out_params == {"a": "done"}

    def test_multiple_result_sets(self):
        cursor = FakeCursor([(["a"], [(1,)]), (["b"], [(2,), (3,)])])
        _, invoker = _invoker("mysql", [cursor])

        result = invoker.call_procedure("report")

        assert result.result == [[{"a": 1}], [{"b": 2}, {"b": 3}]]

    def test_nextset_not_supported(self):
        cursor = FakeCursor([(["a"], [(1,)])], nextset_error=NotSupportedError("no more sets"))
        _, invoker = _invoker("pgsql", [cursor])
        assert invoker.call_procedure("report").result == [{"a": 1}]

    def test_other_nextset_errors_propagate(self):
        cursor = FakeCursor([(["a"], [(1,)])], nextset_error=RuntimeError("boom"))
        _, invoker = _invoker("pgsql", [cursor])
        with pytest.raises(RuntimeError):
            invoker.call_procedure("report")
        assert cursor.closed is True

    def test_unsupported_on_sqlite(self):
        _, invoker = _invoker("sqlite", [])
        with pytest.raises(UnsupportedOperationError):
            invoker.call_procedure("anything")

    def test_result_to_dict(self):
        _, invoker = _invoker("mysql", [FakeCursor()])
        assert invoker.call_procedure("noop").to_dict() == {"result": None, "out_params": {}}


class TestCallFunction:
    """Test function calls wrapped in a select."""

    def test_qualified_with_default_schema(self):
        cursor = FakeCursor([(["value"], [(42,)])])
        raw, invoker = _invoker("sqlsrv", [cursor], default_schema="dbo")

        result = invoker.call_function("fn", [7])

        assert raw.executed[0] == ("SELECT [dbo].[fn](?)", ["7"])
        assert result == [{"value": 42}]

    def test_oracle_selects_from_dual(self):
        raw, invoker = _invoker("oci", [FakeCursor([(["v"], [(1,)])])])
        invoker.call_function("calc", [{"name": "x", "value": 1}])
        assert raw.executed[0][0] == 'SELECT "calc"(:x) FROM DUAL'

    def test_db2_selects_from_dummy(self):
        raw, invoker = _invoker("ibmdb2", [FakeCursor([(["v"], [(1,)])])])
        invoker.call_function("calc")
        assert raw.executed[0][0] == 'SELECT "calc"() FROM SYSIBM.SYSDUMMY1'

    def test_unsupported_on_sqlite(self):
        _, invoker = _invoker("sqlite", [])
        with pytest.raises(UnsupportedOperationError):
            invoker.call_function("anything")
