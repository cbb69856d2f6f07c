"""Tests for the sqlschema command line."""

import json

import pytest
from typer.testing import CliRunner

from sqlschema.main import app


@pytest.fixture
def runner():
    return CliRunner()


class TestSchemaCommands:
    """Test discovery commands against a SQLite file."""

    def test_tables(self, runner, shop_url):
        result = runner.invoke(app, ["schema", "tables", "--url", shop_url])
        assert result.exit_code == 0
        assert "orders" in result.stdout
        assert "big_orders" in result.stdout
        assert "Total: 5 table(s)" in result.stdout

    def test_tables_without_views(self, runner, shop_url):
        result = runner.invoke(app, ["schema", "tables", "--url", shop_url, "--no-views"])
        assert result.exit_code == 0
        assert "big_orders" not in result.stdout
        assert "Total: 4 table(s)" in result.stdout

    def test_schemas(self, runner, shop_url):
        result = runner.invoke(app, ["schema", "schemas", "--url", shop_url])
        assert result.exit_code == 0
        assert "main" in result.stdout

    def test_describe_json(self, runner, shop_url):
        result = runner.invoke(app, ["schema", "describe", "orders", "--url", shop_url, "--json"])
        assert result.exit_code == 0

        data = json.loads(result.stdout)
        assert data["name"] == "orders"
        assert data["primary_key"] == "id"
        assert {r["name"] for r in data["related"]} == {
            "users_by_user_id", "order_tags_by_order_id", "tags_by_order_tags",
        }

    def test_describe_with_extras(self, runner, shop_url, tmp_path):
        extras = tmp_path / "extras.json"
        extras.write_text(json.dumps([{"table": "orders", "field": "", "label": "Purchase Order"}]))

        result = runner.invoke(app, ["schema", "describe", "orders", "--url", shop_url, "--json",
                                     "--extras", str(extras)])

        assert result.exit_code == 0
        assert json.loads(result.stdout)["label"] == "Purchase Order"

    def test_describe_missing_table(self, runner, shop_url):
        result = runner.invoke(app, ["schema", "describe", "nope", "--url", shop_url])
        assert result.exit_code == 1
        assert "Table 'nope' not found." in result.stdout

    def test_relations(self, runner, shop_url):
        result = runner.invoke(app, ["schema", "relations", "--url", shop_url])
        assert result.exit_code == 0
        assert "tags_by_order_tags" in result.stdout

    def test_routines_unsupported_on_sqlite(self, runner, shop_url):
        result = runner.invoke(app, ["schema", "routines", "--url", shop_url])
        assert result.exit_code == 0
        assert "No procedures found." in result.stdout

    def test_routines_invalid_type(self, runner, shop_url):
        result = runner.invoke(app, ["schema", "routines", "--url", shop_url, "--type", "trigger"])
        assert result.exit_code == 1
        assert "INVALID_SPECIFICATION" in result.stdout

    def test_unsupported_scheme(self, runner):
        result = runner.invoke(app, ["schema", "tables", "--url", "firebird://localhost/db"])
        assert result.exit_code == 1
        assert "UNSUPPORTED_DIALECT" in result.stdout

    def test_missing_url(self, runner, monkeypatch):
        from sqlschema.config import settings

        monkeypatch.setattr(settings, "database_url", None)
        result = runner.invoke(app, ["schema", "tables"])
        assert result.exit_code == 1
        assert "No database URL given" in result.stdout


class TestDdlCommands:
    """Test DDL generation commands."""

    def test_column(self, runner):
        result = runner.invoke(app, ["ddl", "column", "pgsql", "string", "--length", "64", "--not-null"])
        assert result.exit_code == 0
        assert result.stdout.strip() == "varchar(64) NOT NULL"

    def test_column_alias(self, runner):
        result = runner.invoke(app, ["ddl", "column", "postgresql", "pk"])
        assert result.exit_code == 0
        assert result.stdout.strip() == "serial PRIMARY KEY NOT NULL"

    def test_column_quoted_default(self, runner):
        result = runner.invoke(app, ["ddl", "column", "pgsql", "string", "--length", "10",
                                     "--default", "new", "--quote-default"])
        assert result.stdout.strip() == "varchar(10) DEFAULT 'new' NULL"

    def test_column_conflicting_flags(self, runner):
        result = runner.invoke(app, ["ddl", "column", "pgsql", "string", "--unique", "--primary-key"])
        assert result.exit_code == 1
        assert "INVALID_SPECIFICATION" in result.stdout

    def test_column_unknown_dialect(self, runner):
        result = runner.invoke(app, ["ddl", "column", "firebird", "string"])
        assert result.exit_code == 1
        assert "Unsupported dialect: firebird" in result.stdout

    def test_create_table(self, runner):
        result = runner.invoke(app, ["ddl", "create-table", "pgsql", "users",
                                     "-c", "id:pk", "-c", "name:string(64) NOT NULL"])
        assert result.exit_code == 0
        assert 'CREATE TABLE "users" (' in result.stdout
        assert '"id" serial PRIMARY KEY NOT NULL,' in result.stdout
        assert '"name" varchar(64) NOT NULL' in result.stdout

    def test_create_table_oracle_bootstraps_key(self, runner):
        result = runner.invoke(app, ["ddl", "create-table", "oci", "users", "-c", "id:pk"])
        assert result.exit_code == 0
        assert "CREATE SEQUENCE USERS_ID;" in result.stdout

    def test_create_table_bad_column(self, runner):
        result = runner.invoke(app, ["ddl", "create-table", "pgsql", "users", "-c", "id"])
        assert result.exit_code != 0

    def test_foreign_key(self, runner):
        result = runner.invoke(app, ["ddl", "foreign-key", "mysql", "orders", "user_id", "users",
                                     "--on-delete", "CASCADE"])
        assert result.exit_code == 0
        assert "ADD CONSTRAINT `fk_orders_user_id` FOREIGN KEY (`user_id`)" in result.stdout
        assert "REFERENCES `users` (`id`) ON DELETE CASCADE;" in result.stdout

    def test_foreign_key_unsupported_on_sqlite(self, runner):
        result = runner.invoke(app, ["ddl", "foreign-key", "sqlite", "orders", "user_id", "users"])
        assert result.exit_code == 1
        assert "UNSUPPORTED_OPERATION" in result.stdout

    def test_index(self, runner):
        result = runner.invoke(app, ["ddl", "index", "sqlsrv", "orders", "status", "total", "--unique"])
        assert result.exit_code == 0
        assert "CREATE UNIQUE INDEX [idx_orders_status_total] ON [orders] ([status], [total]);" in result.stdout

    def test_pk_commands_not_needed(self, runner):
        result = runner.invoke(app, ["ddl", "pk-commands", "mysql", "users"])
        assert result.exit_code == 0
        assert "mysql needs no extra statements for a primary key." in result.stdout

    def test_pk_commands_oracle(self, runner):
        result = runner.invoke(app, ["ddl", "pk-commands", "oracle", "users"])
        assert result.exit_code == 0
        assert "CREATE SEQUENCE USERS_ID;" in result.stdout
        assert "BEFORE INSERT ON" in result.stdout


class TestRunsCommands:
    """Test browsing the run log."""

    def test_empty_list(self, runner):
        result = runner.invoke(app, ["runs", "list"])
        assert result.exit_code == 0
        assert "No runs found." in result.stdout

    def test_runs_are_recorded(self, runner, shop_url, isolated_run_log):
        runner.invoke(app, ["schema", "describe", "orders", "--url", shop_url, "--json"])
        runner.invoke(app, ["ddl", "column", "sqlite", "string", "--unique", "--primary-key"])

        runs = isolated_run_log.query_runs()
        assert {(r["command"], r["subcommand"], r["status"]) for r in runs} == {
            ("schema", "describe", "success"),
            ("ddl", "column", "error"),
        }

        result = runner.invoke(app, ["runs", "list", "--status", "error"])
        assert result.exit_code == 0
        assert "CLI Runs" in result.stdout

    def test_show(self, runner, shop_url, isolated_run_log):
        runner.invoke(app, ["schema", "describe", "orders", "--url", shop_url])
        run_id = isolated_run_log.query_runs()[0]["run_id"]

        result = runner.invoke(app, ["runs", "show", run_id])

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["tables_count"] == 1
        assert data["dialect"] == "sqlite"

    def test_show_missing(self, runner):
        result = runner.invoke(app, ["runs", "show", "deadbeef"])
        assert result.exit_code == 1
        assert "Run 'deadbeef' not found." in result.stdout

    def test_stats(self, runner):
        runner.invoke(app, ["ddl", "column", "mysql", "string"])
        result = runner.invoke(app, ["runs", "stats"])
        assert result.exit_code == 0
        assert "Total: 1" in result.stdout
        assert "mysql: 1 (0 error(s))" in result.stdout


class TestTopLevel:
    """Test top-level commands."""

    def test_dialects(self, runner):
        result = runner.invoke(app, ["dialects"])
        assert result.exit_code == 0
        for name in ("mysql", "pgsql", "sqlite", "oci", "sqlsrv", "ibmdb2"):
            assert name in result.stdout

    def test_config(self, runner):
        result = runner.invoke(app, ["config"])
        assert result.exit_code == 0
        assert "Default string length" in result.stdout
