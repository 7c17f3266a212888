"""Unit tests for SQLite connectors."""

from __future__ import annotations

import sqlite3

import pytest

from connectors.sqlite import SqliteDestination, SqliteSource
from core.errors import VaultConnectorError


def _create_database(path) -> None:
    connection = sqlite3.connect(path)
    connection.execute("CREATE TABLE users (id INTEGER, email TEXT, avatar BLOB)")
    connection.executemany(
        "INSERT INTO users VALUES (?, ?, ?)",
        [(1, "ada@corp.io", b"\x01"), (2, None, None)],
    )
    connection.execute("CREATE TABLE orders (id INTEGER, total REAL)")
    connection.commit()
    connection.close()


def test_source_lists_tables_and_columns(tmp_path) -> None:
    """Source should expose user tables and their column order."""
    path = tmp_path / "prod.db"
    _create_database(path)
    source = SqliteSource(path)

    tables = source.list_tables()
    columns = source.columns("users")
    source.close()

    assert tables == ["orders", "users"] and columns == ["id", "email", "avatar"]


def test_source_reads_rows_in_order(tmp_path) -> None:
    """Rows should stream as ordered column mappings."""
    path = tmp_path / "prod.db"
    _create_database(path)
    source = SqliteSource(path)

    rows = list(source.read_rows("users"))
    source.close()

    assert rows == [
        {"id": 1, "email": "ada@corp.io", "avatar": b"\x01"},
        {"id": 2, "email": None, "avatar": None},
    ]


def test_source_missing_file_raises(tmp_path) -> None:
    """Missing databases should be connector errors."""
    with pytest.raises(VaultConnectorError):
        SqliteSource(tmp_path / "missing.db")


def test_destination_creates_table_and_inserts(tmp_path) -> None:
    """Destination should create missing tables from row columns."""
    path = tmp_path / "restored.db"
    destination = SqliteDestination(path)

    written = destination.write_rows("users", iter([{"id": 1, "email": "x@y.z"}, {"id": 2, "email": None}]))
    destination.close()

    connection = sqlite3.connect(path)
    rows = connection.execute("SELECT id, email FROM users ORDER BY id").fetchall()
    connection.close()
    assert written == 2 and rows == [(1, "x@y.z"), (2, None)]


def test_destination_skips_empty_tables(tmp_path) -> None:
    """No rows means nothing to create."""
    destination = SqliteDestination(tmp_path / "restored.db")

    assert destination.write_rows("users", iter([])) == 0
