"""Tests for descriptor models and label helpers."""

import pytest
from dataclasses import FrozenInstanceError

from sqlschema.database.models import (
    AbstractType,
    ColumnDescriptor,
    DriverBindType,
    HostType,
    JunctionDescriptor,
    RawExpression,
    RelationDescriptor,
    RelationType,
    TableDescriptor,
    bind_type_for,
    host_type_for,
)
from sqlschema.database.naming import camelize, pluralize


class TestNaming:
    """Test camelize and pluralize."""

    def test_camelize_with_spaces(self):
        assert camelize("order_items", "_", True) == "Order Items"

    def test_camelize_compact(self):
        assert camelize("order_items") == "OrderItems"

    def test_camelize_key(self):
        assert camelize("order_items", is_key=True) == "orderItems"

    def test_camelize_empty(self):
        assert camelize("") == ""

    @pytest.mark.parametrize("singular,plural", [
        ("User", "Users"),
        ("Category", "Categories"),
        ("Address", "Addresses"),
        ("Status", "Statuses"),
        ("Person", "People"),
        ("Child", "Children"),
        ("Box", "Boxes"),
        ("Equipment", "Equipment"),
        ("Order Items", "Order Items"),
    ])
    def test_pluralize(self, singular, plural):
        assert pluralize(singular) == plural


class TestTypeMapping:
    """Test abstract to host and bind type mapping."""

    def test_host_types(self):
        assert host_type_for(AbstractType.BOOLEAN) == HostType.BOOLEAN
        assert host_type_for(AbstractType.REFERENCE) == HostType.INTEGER
        assert host_type_for(AbstractType.MONEY) == HostType.DOUBLE
        assert host_type_for(AbstractType.DATE) == HostType.STRING

    def test_bind_types(self):
        assert bind_type_for(AbstractType.BOOLEAN) == DriverBindType.BOOLEAN
        assert bind_type_for(AbstractType.PK) == DriverBindType.INTEGER
        assert bind_type_for(AbstractType.STRING) == DriverBindType.STRING
        assert bind_type_for(AbstractType.DECIMAL) == DriverBindType.NONE


class TestColumnDescriptor:
    """Test column descriptor behaviour."""

    def test_is_immutable(self):
        column = ColumnDescriptor(name="id", raw_name='"id"', db_type="integer")
        with pytest.raises(FrozenInstanceError):
            column.name = "other"

    def test_required(self):
        assert ColumnDescriptor(name="a", raw_name="a", db_type="int", allow_null=False).required is True
        assert ColumnDescriptor(name="a", raw_name="a", db_type="int", allow_null=False, default=0).required is False
        assert ColumnDescriptor(name="a", raw_name="a", db_type="int", allow_null=False,
                                auto_increment=True).required is False

    def test_as_foreign_key_promotes_integer(self):
        column = ColumnDescriptor(name="user_id", raw_name="user_id", db_type="int", type=AbstractType.INTEGER)
        fk = column.as_foreign_key("users", "id")
        assert fk.type == AbstractType.REFERENCE
        assert fk.is_foreign_key is True
        assert fk.ref_table == "users"
        assert fk.ref_fields == "id"
        assert column.is_foreign_key is False

    def test_as_foreign_key_keeps_string(self):
        column = ColumnDescriptor(name="code", raw_name="code", db_type="char(2)", type=AbstractType.STRING)
        assert column.as_foreign_key("countries", "code").type == AbstractType.STRING

    def test_label(self):
        column = ColumnDescriptor(name="first_name", raw_name="first_name", db_type="varchar")
        assert column.get_label() == "First Name"

    def test_to_dict(self):
        column = ColumnDescriptor(
            name="created", raw_name="created", db_type="timestamp", type=AbstractType.TIMESTAMP,
            default=RawExpression("CURRENT_TIMESTAMP"),
        )
        data = column.to_dict()
        assert data["name"] == "created"
        assert data["type"] == "timestamp"
        assert data["default"] == "CURRENT_TIMESTAMP"
        assert type(data["default"]) is str
        assert data["required"] is False


class TestRelations:
    """Test relation naming and serialization."""

    def test_belongs_to_name(self):
        relation = RelationDescriptor(RelationType.BELONGS_TO, "users", "id", "user_id")
        assert relation.name == "users_by_user_id"

    def test_has_many_name(self):
        relation = RelationDescriptor(RelationType.HAS_MANY, "orders", "user_id", "id")
        assert relation.name == "orders_by_user_id"

    def test_many_many_name_and_join(self):
        junction = JunctionDescriptor("order_tags", "order_id", "tag_id")
        relation = RelationDescriptor(RelationType.MANY_MANY, "tags", "id", "id", junction)
        assert relation.name == "tags_by_order_tags"
        data = relation.to_dict()
        assert data["join"] == "order_tags(order_id,tag_id)"
        assert data["junction"]["foreign_column"] == "tag_id"


class TestTableDescriptor:
    """Test table descriptor labels and serialization."""

    def test_default_label_and_plural(self):
        table = TableDescriptor(name="order_item", schema_name="main", raw_name='"order_item"',
                                display_name="order_item")
        assert table.get_label() == "Order Item"
        assert table.get_plural() == "Order Items"

    def test_overrides(self):
        table = TableDescriptor(name="po", schema_name="main", raw_name='"po"', display_name="po",
                                label="Purchase Order", plural="Purchase Orders")
        assert table.get_label() == "Purchase Order"
        assert table.get_plural() == "Purchase Orders"

    def test_to_dict_keys(self):
        table = TableDescriptor(name="users", schema_name="main", raw_name='"users"', display_name="users",
                                primary_key="id")
        data = table.to_dict()
        assert set(data) == {"name", "label", "plural", "primary_key", "name_field", "field", "related"}
        assert data["primary_key"] == "id"
