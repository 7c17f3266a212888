"""SQLite source and destination connectors.

This module streams table rows out of a SQLite database file and replays
restored rows into another one, creating missing tables on demand.
"""

from __future__ import annotations

from itertools import islice
from pathlib import Path
import sqlite3
from typing import Iterable, Iterator

from core.errors import VaultConnectorError
from core.types import Row

_INSERT_BATCH_SIZE = 500


class SqliteSource:
    """Read-only row source over a SQLite database file."""

    def __init__(self, path: Path, database: str | None = "main") -> None:
        self._path = path.expanduser().resolve()
        self._database = database
        if not self._path.is_file():
            raise VaultConnectorError(
                f"SQLite source not found at {self._path}. Check source.connection.path."
            )
        try:
            self._connection = sqlite3.connect(f"file:{self._path}?mode=ro", uri=True)
        except sqlite3.Error as error:
            raise VaultConnectorError(
                f"Failed to open SQLite source {self._path}: {error}."
            ) from error

    @property
    def database(self) -> str | None:
        return self._database

    def list_tables(self) -> list[str]:
        query = "SELECT name FROM sqlite_master WHERE type = 'table' ORDER BY name"
        rows = self._execute(query).fetchall()
        return [str(name) for (name,) in rows if not str(name).startswith("sqlite_")]

    def columns(self, table: str) -> list[str]:
        rows = self._execute(f"PRAGMA table_info({_quote(table)})").fetchall()
        if not rows:
            raise VaultConnectorError(f"Table '{table}' does not exist in {self._path}.")
        return [str(row[1]) for row in rows]

    def read_rows(self, table: str) -> Iterator[Row]:
        columns = self.columns(table)
        cursor = self._execute(f"SELECT * FROM {_quote(table)} ORDER BY rowid")
        try:
            for values in cursor:
                yield dict(zip(columns, values))
        except sqlite3.Error as error:
            raise VaultConnectorError(
                f"Failed to read table '{table}' from {self._path}: {error}."
            ) from error

    def estimate_size(self) -> int | None:
        return self._path.stat().st_size

    def close(self) -> None:
        self._connection.close()

    def _execute(self, query: str) -> sqlite3.Cursor:
        try:
            return self._connection.execute(query)
        except sqlite3.Error as error:
            raise VaultConnectorError(
                f"SQLite query failed on {self._path}: {error}. Query: {query}"
            ) from error


class SqliteDestination:
    """Row destination writing into a SQLite database file."""

    def __init__(self, path: Path) -> None:
        self._path = path.expanduser().resolve()
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._connection = sqlite3.connect(str(self._path))
        except (OSError, sqlite3.Error) as error:
            raise VaultConnectorError(
                f"Failed to open SQLite destination {self._path}: {error}."
            ) from error

    def write_rows(self, table: str, rows: Iterable[Row]) -> int:
        """Insert rows, creating the table from the first row's columns."""
        iterator = iter(rows)
        written = 0
        try:
            first_batch = list(islice(iterator, _INSERT_BATCH_SIZE))
            if not first_batch:
                return 0
            columns = list(first_batch[0])
            column_sql = ", ".join(_quote(column) for column in columns)
            self._connection.execute(f"CREATE TABLE IF NOT EXISTS {_quote(table)} ({column_sql})")
            placeholders = ", ".join("?" for _ in columns)
            insert_sql = f"INSERT INTO {_quote(table)} ({column_sql}) VALUES ({placeholders})"
            batch = first_batch
            while batch:
                self._connection.executemany(
                    insert_sql, [tuple(row.get(column) for column in columns) for row in batch]
                )
                written += len(batch)
                batch = list(islice(iterator, _INSERT_BATCH_SIZE))
            self._connection.commit()
        except sqlite3.Error as error:
            raise VaultConnectorError(
                f"Failed to write table '{table}' into {self._path}: {error}."
            ) from error
        return written

    def close(self) -> None:
        self._connection.close()


def _quote(identifier: str) -> str:
    return '"' + identifier.replace('"', '""') + '"'
