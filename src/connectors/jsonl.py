"""JSONL file connectors.

A directory of ``<table>.jsonl`` files acts as a database: each line is one
row object. A stream destination writes ``{"table", "row"}`` lines instead.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Iterable, Iterator, TextIO

from core.errors import VaultConnectorError
from core.types import Row
from pipeline.row_codec import decode_row, row_to_payload

_TABLE_SUFFIX = ".jsonl"


class JsonlSource:
    """Row source over a directory of JSONL table files."""

    def __init__(self, directory: Path, database: str | None = None) -> None:
        self._directory = directory.expanduser().resolve()
        self._database = database
        if not self._directory.is_dir():
            raise VaultConnectorError(
                f"JSONL source directory not found at {self._directory}. "
                "Check source.connection.path."
            )

    @property
    def database(self) -> str | None:
        return self._database

    def list_tables(self) -> list[str]:
        return sorted(path.stem for path in self._directory.glob(f"*{_TABLE_SUFFIX}"))

    def columns(self, table: str) -> list[str]:
        for row in self.read_rows(table):
            return list(row)
        return []

    def read_rows(self, table: str) -> Iterator[Row]:
        table_path = self._table_path(table)
        try:
            with table_path.open("rb") as handle:
                for line_number, line in enumerate(handle, 1):
                    if not line.strip():
                        continue
                    yield _parse_line(table_path, line, line_number)
        except OSError as error:
            raise VaultConnectorError(f"Failed to read table file {table_path}: {error}.") from error

    def estimate_size(self) -> int | None:
        return sum(path.stat().st_size for path in self._directory.glob(f"*{_TABLE_SUFFIX}"))

    def close(self) -> None:
        return None

    def _table_path(self, table: str) -> Path:
        table_path = self._directory / f"{table}{_TABLE_SUFFIX}"
        if not table_path.is_file():
            raise VaultConnectorError(f"Table file not found at {table_path}.")
        return table_path


class JsonlDestination:
    """Row destination writing one JSONL file per table."""

    def __init__(self, directory: Path) -> None:
        self._directory = directory.expanduser().resolve()

    def write_rows(self, table: str, rows: Iterable[Row]) -> int:
        table_path = self._directory / f"{table}{_TABLE_SUFFIX}"
        written = 0
        try:
            self._directory.mkdir(parents=True, exist_ok=True)
            with table_path.open("w", encoding="utf-8") as handle:
                for row in rows:
                    handle.write(json.dumps(row_to_payload(row), ensure_ascii=False) + "\n")
                    written += 1
        except OSError as error:
            raise VaultConnectorError(f"Failed to write table file {table_path}: {error}.") from error
        return written

    def close(self) -> None:
        return None


class StreamDestination:
    """Row destination printing rows to a text stream."""

    def __init__(self, stream: TextIO) -> None:
        self._stream = stream

    def write_rows(self, table: str, rows: Iterable[Row]) -> int:
        written = 0
        for row in rows:
            payload = {"table": table, "row": row_to_payload(row)}
            self._stream.write(json.dumps(payload, ensure_ascii=False) + "\n")
            written += 1
        self._stream.flush()
        return written

    def close(self) -> None:
        return None


def _parse_line(table_path: Path, line: bytes, line_number: int) -> Row:
    try:
        return decode_row(line)
    except ValueError as error:
        raise VaultConnectorError(
            f"Failed to parse {table_path}:{line_number}: {error}. Fix the row and retry."
        ) from error
