"""Tests for CLI run logging."""

import pytest

from sqlschema.errors import UnsupportedDialectError
from sqlschema.logging import CLIRunDatabase, CLIRunLogger, redact_url


@pytest.fixture
def run_db(tmp_path):
    with CLIRunDatabase(str(tmp_path / "runs.db")) as db:
        yield db


@pytest.fixture
def run_logger(tmp_path):
    cli_logger = CLIRunLogger(db_path=str(tmp_path / "runs.db"))
    yield cli_logger
    cli_logger.db.close()


class TestRedactUrl:
    """Test password removal from database URLs."""

    def test_password_is_replaced(self):
        assert redact_url("postgresql://app:s3cret@db:5432/shop") == "postgresql://app:***@db:5432/shop"

    def test_url_without_password(self):
        assert redact_url("postgresql://app@db/shop") == "postgresql://app@db/shop"
        assert redact_url("sqlite:///tmp/shop.db") == "sqlite:///tmp/shop.db"

    def test_empty(self):
        assert redact_url(None) is None
        assert redact_url("") == ""


class TestCLIRunDatabase:
    """Test the run log storage."""

    def test_insert_and_fetch(self, run_db):
        run_db.insert_run("r1", "schema", "tables", dialect="sqlite", arguments={"views": True})

        run = run_db.get_run_by_id("r1")
        assert run["status"] == "started"
        assert run["dialect"] == "sqlite"
        assert run["arguments"] == '{"views": true}'

    def test_missing_run(self, run_db):
        assert run_db.get_run_by_id("nope") is None

    def test_success_with_results(self, run_db):
        run_db.insert_run("r1", "schema", "relations", dialect="pgsql")
        run_db.update_discovery_results("r1", 1, 4, 20, 6)
        run_db.update_success("r1", 15)

        run = run_db.get_run_by_id("r1")
        assert run["status"] == "success"
        assert run["tables_count"] == 4
        assert run["relations_count"] == 6
        assert run["duration_ms"] == 15

    def test_error(self, run_db):
        run_db.insert_run("r1", "ddl", "column", dialect="sqlite")
        run_db.update_error("r1", "bad spec", "InvalidSpecificationError", "INVALID_SPECIFICATION", None, 3)

        run = run_db.get_run_by_id("r1")
        assert run["status"] == "error"
        assert run["error_code"] == "INVALID_SPECIFICATION"

    def test_query_filters(self, run_db):
        run_db.insert_run("r1", "schema", "tables", dialect="sqlite")
        run_db.insert_run("r2", "ddl", "column", dialect="mysql")
        run_db.insert_run("r3", "ddl", "index", dialect="mysql")

        assert {r["run_id"] for r in run_db.query_runs(command="ddl")} == {"r2", "r3"}
        assert [r["run_id"] for r in run_db.query_runs(dialect="sqlite")] == ["r1"]
        assert len(run_db.query_runs(limit=1)) == 1
        assert run_db.query_runs(status="error") == []

    def test_stats(self, run_db):
        run_db.insert_run("r1", "schema", "describe", dialect="sqlite")
        run_db.update_discovery_results("r1", 0, 1, 5, 2)
        run_db.update_success("r1", 10)
        run_db.insert_run("r2", "ddl", "column", dialect="mysql")
        run_db.update_error("r2", "boom", "RuntimeError", None, None, 30)

        stats = run_db.get_stats()

        assert stats["total_runs"] == 2
        assert stats["success_count"] == 1
        assert stats["error_count"] == 1
        assert stats["avg_duration_ms"] == 20
        assert stats["total_tables_loaded"] == 1
        assert stats["total_relations_found"] == 2
        assert {row["dialect"] for row in stats["by_dialect"]} == {"sqlite", "mysql"}
        assert [row["run_id"] for row in stats["recent_errors"]] == ["r2"]

    def test_cleanup_keeps_recent_runs(self, run_db):
        run_db.insert_run("r1", "schema", "tables")
        assert run_db.cleanup_old_runs(30) == 0
        assert run_db.get_run_by_id("r1") is not None


class TestCLIRunLogger:
    """Test the log_run context manager."""

    def test_success(self, run_logger):
        with run_logger.log_run("schema", "describe", "pgsql", "postgresql://app:pw@db/shop") as ctx:
            ctx.tables_count = 1
            ctx.columns_count = 7
            ctx.relations_count = 3

        run = run_logger.get_run(ctx.run_id)
        assert run["status"] == "success"
        assert run["database_url"] == "postgresql://app:***@db/shop"
        assert run["columns_count"] == 7
        assert run["duration_ms"] is not None
        assert run["python_version"]

    def test_statements_counted(self, run_logger):
        with run_logger.log_run("ddl", "create-table", "mysql") as ctx:
            ctx.statements_generated = 2
        assert run_logger.get_run(ctx.run_id)["statements_generated"] == 2

    def test_error_is_recorded_and_reraised(self, run_logger):
        with pytest.raises(UnsupportedDialectError):
            with run_logger.log_run("schema", "tables", None, "firebird://db") as ctx:
                raise UnsupportedDialectError("firebird")

        run = run_logger.get_run(ctx.run_id)
        assert run["status"] == "error"
        assert run["error_type"] == "UnsupportedDialectError"
        assert run["error_code"] == "UNSUPPORTED_DIALECT"
        assert "Unsupported dialect: firebird" in run["error_traceback"]

    def test_disabled(self, tmp_path):
        cli_logger = CLIRunLogger(db_path=str(tmp_path / "runs.db"), enabled=False)

        with cli_logger.log_run("schema", "tables", database_url="mysql://a:b@h/d") as ctx:
            pass

        assert ctx.database_url == "mysql://a:***@h/d"
        assert cli_logger.db is None
        assert cli_logger.query_runs() == []
        assert cli_logger.get_run(ctx.run_id) is None
        assert cli_logger.get_stats() == {"error": "Logging not enabled"}
        assert not (tmp_path / "runs.db").exists()

    def test_query_and_stats(self, run_logger):
        with run_logger.log_run("ddl", "column", "oci"):
            pass
        assert [r["dialect"] for r in run_logger.query_runs(dialect="oci")] == ["oci"]
        assert run_logger.get_stats()["total_runs"] == 1
