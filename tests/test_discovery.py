"""Tests for schema discovery against a real SQLite database."""

import pytest

from sqlschema.database import SchemaEditor, connect
from sqlschema.database.models import AbstractType, RelationType
from sqlschema.errors import DiscoveryError


class TestCatalogListing:
    """Test schema and table enumeration."""

    def test_default_schema(self, sqlite_discoverer):
        assert sqlite_discoverer.default_schema == "main"

    def test_schema_names(self, sqlite_discoverer):
        assert "main" in sqlite_discoverer.get_schema_names()

    def test_table_names_include_views(self, sqlite_discoverer):
        assert sqlite_discoverer.get_table_names() == ["big_orders", "order_tags", "orders", "tags", "users"]

    def test_table_names_without_views(self, sqlite_discoverer):
        assert "big_orders" not in sqlite_discoverer.get_table_names(include_views=False)

    def test_internal_tables_hidden(self, sqlite_discoverer):
        assert not any(name.startswith("sqlite_") for name in sqlite_discoverer.get_table_names())


class TestTableLoading:
    """Test column classification and key detection."""

    def test_unknown_table(self, sqlite_discoverer):
        assert sqlite_discoverer.get_table("missing") is None

    def test_users_columns(self, sqlite_discoverer):
        table = sqlite_discoverer.get_table("users")

        assert table.display_name == "users"
        assert table.raw_name == '"users"'
        assert table.column_names == ["id", "name", "email", "active", "created_at"]
        assert table.primary_key == "id"
        assert table.sequence_name == "users"

        assert table.columns["id"].auto_increment is True
        assert table.columns["id"].allow_null is False
        assert table.columns["name"].size == 64
        assert table.columns["name"].required is True
        assert table.columns["email"].is_unique is True
        assert table.columns["active"].type == AbstractType.BOOLEAN
        assert table.columns["active"].default is True
        assert table.columns["created_at"].type == AbstractType.TIMESTAMP
        assert table.columns["created_at"].default is None

    def test_string_default_unquoted(self, sqlite_discoverer):
        table = sqlite_discoverer.get_table("orders")
        assert table.columns["status"].default == "new"
        assert table.columns["notes"].type == AbstractType.TEXT

    def test_national_fixed_string(self, sqlite_discoverer):
        label = sqlite_discoverer.get_table("tags").columns["label"]
        assert label.type == AbstractType.STRING
        assert label.fixed_length is True
        assert label.supports_multibyte is True

    def test_composite_primary_key(self, sqlite_discoverer):
        table = sqlite_discoverer.get_table("order_tags")
        assert table.primary_key == ["order_id", "tag_id"]
        assert table.sequence_name is None
        assert table.columns["order_id"].auto_increment is False

    def test_foreign_key_column(self, sqlite_discoverer):
        table = sqlite_discoverer.get_table("orders")
        user_id = table.columns["user_id"]
        assert user_id.is_foreign_key is True
        assert user_id.type == AbstractType.REFERENCE
        assert user_id.ref_table == "users"
        assert user_id.ref_fields == "id"
        assert table.foreign_keys == {"user_id": ("users", "id")}

    def test_schema_qualified_and_quoted_names(self, sqlite_discoverer):
        assert sqlite_discoverer.get_table("main.users").display_name == "users"
        assert sqlite_discoverer.get_table('"users"').display_name == "users"


class TestRelations:
    """Test relations inferred from SQLite foreign keys."""

    def test_users_has_many_orders(self, sqlite_discoverer):
        relation = sqlite_discoverer.get_table("users").relations["orders_by_user_id"]
        assert relation.type == RelationType.HAS_MANY
        assert relation.ref_field == "user_id"

    def test_orders_relations(self, sqlite_discoverer):
        table = sqlite_discoverer.get_table("orders")
        assert set(table.relation_names) == {"users_by_user_id", "order_tags_by_order_id", "tags_by_order_tags"}
        assert str(table.relations["tags_by_order_tags"].junction) == "order_tags(order_id,tag_id)"

    def test_junction_table_belongs_to_both(self, sqlite_discoverer):
        table = sqlite_discoverer.get_table("order_tags")
        assert set(table.relation_names) == {"orders_by_order_id", "tags_by_tag_id"}
        assert all(r.type == RelationType.BELONGS_TO for r in table.relations.values())


class TestRegistry:
    """Test the per-session table registry."""

    def test_tables_are_cached(self, sqlite_discoverer):
        assert sqlite_discoverer.get_table("users") is sqlite_discoverer.get_table("USERS")

    def test_refresh_reloads(self, sqlite_discoverer):
        first = sqlite_discoverer.get_table("users")
        sqlite_discoverer.refresh()
        assert sqlite_discoverer.get_table("users") is not first

    def test_get_table_refresh_flag(self, sqlite_discoverer):
        first = sqlite_discoverer.get_table("users")
        assert sqlite_discoverer.get_table("users", refresh=True) is not first

    def test_get_tables_loads_schema(self, sqlite_discoverer):
        tables = sqlite_discoverer.get_tables()
        assert [t.display_name for t in tables] == ["big_orders", "order_tags", "orders", "tags", "users"]

    def test_get_tables_by_name(self, sqlite_discoverer):
        tables = sqlite_discoverer.get_tables(["users", "missing", "orders"])
        assert [t.display_name for t in tables] == ["users", "orders"]

    def test_to_dict(self, sqlite_discoverer):
        data = sqlite_discoverer.get_table("orders").to_dict()
        assert data["label"] == "Orders"
        assert {f["name"] for f in data["field"]} == {"id", "user_id", "total", "status", "notes"}
        assert {r["name"] for r in data["related"]} == {
            "users_by_user_id", "order_tags_by_order_id", "tags_by_order_tags",
        }


class TestErrors:
    """Test wrapping of driver failures."""

    def test_driver_error_is_wrapped(self, sqlite_connection, sqlite_discoverer):
        sqlite_connection.raw.close()
        with pytest.raises(DiscoveryError) as exc_info:
            sqlite_discoverer.get_table_names()
        assert exc_info.value.details["dialect"] == "sqlite"
        assert exc_info.value.__cause__ is not None


class TestConnectUrl:
    """Test opening SQLite databases from URLs."""

    def test_file_url(self, shop_url):
        with connect(shop_url) as connection:
            assert connection.dialect_name == "sqlite"
            assert connection.query_scalar("SELECT COUNT(*) FROM users") == 0

    def test_memory_url(self):
        with connect("sqlite://") as connection:
            assert connection.query_scalar("SELECT 1") == 1
        assert connection.is_active is False


class TestSchemaEditor:
    """Test executing catalog-dependent DDL."""

    def test_reset_sequence_to_next_key(self, sqlite_connection, sqlite_discoverer):
        sqlite_connection.execute("INSERT INTO users (name) VALUES ('a')")
        sqlite_connection.execute("INSERT INTO users (name) VALUES ('b')")
        sqlite_connection.execute("DELETE FROM users WHERE name = 'b'")

        statements = SchemaEditor(sqlite_discoverer).reset_sequence("users")

        assert statements == ["UPDATE sqlite_sequence SET seq = 1 WHERE name = 'users'"]
        assert sqlite_connection.query_scalar("SELECT seq FROM sqlite_sequence WHERE name = 'users'") == 1

    def test_reset_sequence_explicit_value(self, sqlite_connection, sqlite_discoverer):
        sqlite_connection.execute("INSERT INTO users (name) VALUES ('a')")
        SchemaEditor(sqlite_discoverer).reset_sequence("users", 50)
        assert sqlite_connection.query_scalar("SELECT seq FROM sqlite_sequence WHERE name = 'users'") == 49

    def test_reset_sequence_without_sequence(self, sqlite_discoverer):
        assert SchemaEditor(sqlite_discoverer).reset_sequence("order_tags") == []

    def test_check_integrity(self, sqlite_discoverer):
        assert SchemaEditor(sqlite_discoverer).check_integrity(False) == ["PRAGMA foreign_keys = OFF"]

    def test_primary_key_sequence_is_noop_on_sqlite(self, sqlite_discoverer):
        assert SchemaEditor(sqlite_discoverer).create_primary_key_sequence("users", "id") == []
