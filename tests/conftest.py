"""Shared pytest fixtures for sqlschema tests."""

import os
import sqlite3

import pytest

# Rich sizes module-level consoles from COLUMNS at import time; pin a wide
# terminal so CLI table output is not truncated under CliRunner.
os.environ["COLUMNS"] = "200"

from sqlschema.database import DbApiConnection, ForeignKeyRow, SchemaDiscoverer, get_dialect
from sqlschema.logging import cli_service
from sqlschema.logging.cli_service import CLIRunLogger


SHOP_SCHEMA = """
CREATE TABLE users (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name VARCHAR(64) NOT NULL,
    email VARCHAR(255) UNIQUE,
    active BOOLEAN DEFAULT 1,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE orders (
    id INTEGER PRIMARY KEY,
    user_id INTEGER NOT NULL REFERENCES users(id),
    total DECIMAL(10,2),
    status VARCHAR(20) DEFAULT 'new',
    notes TEXT
);

CREATE TABLE tags (
    id INTEGER PRIMARY KEY,
    label NCHAR(12)
);

CREATE TABLE order_tags (
    order_id INTEGER REFERENCES orders(id),
    tag_id INTEGER REFERENCES tags(id),
    PRIMARY KEY (order_id, tag_id)
);

CREATE VIEW big_orders AS SELECT * FROM orders WHERE total > 100;
"""


@pytest.fixture
def shop_db_path(tmp_path):
    """A SQLite file holding a small shop schema."""
    path = tmp_path / "shop.db"
    raw = sqlite3.connect(str(path))
    raw.executescript(SHOP_SCHEMA)
    raw.close()
    return path


@pytest.fixture
def shop_url(shop_db_path):
    """Database URL for the shop schema (four slashes: absolute path)."""
    return f"sqlite:///{shop_db_path}"


@pytest.fixture
def sqlite_connection():
    """An in-memory SQLite connection with the shop schema."""
    raw = sqlite3.connect(":memory:")
    raw.executescript(SHOP_SCHEMA)
    connection = DbApiConnection(raw, "sqlite")
    yield connection
    connection.close()


@pytest.fixture
def sqlite_discoverer(sqlite_connection):
    """Discovery session over the in-memory shop schema."""
    return SchemaDiscoverer(sqlite_connection, get_dialect("sqlite"))


@pytest.fixture
def shop_foreign_keys():
    """Foreign key rows of the shop schema as a catalog would report them."""
    return [
        ForeignKeyRow("public", "orders", "user_id", "public", "users", "id", "fk_orders_user"),
        ForeignKeyRow("public", "order_tags", "order_id", "public", "orders", "id", "fk_ot_order"),
        ForeignKeyRow("public", "order_tags", "tag_id", "public", "tags", "id", "fk_ot_tag"),
    ]


@pytest.fixture(autouse=True)
def isolated_run_log(tmp_path, monkeypatch):
    """Point CLI run logging at a per-test database."""
    run_logger = CLIRunLogger(db_path=str(tmp_path / "cli_runs.db"))
    monkeypatch.setattr(cli_service, "_cli_logger", run_logger)
    yield run_logger
    if run_logger.db is not None:
        run_logger.db.close()
