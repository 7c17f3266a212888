"""Unit tests for JSONL connectors."""

from __future__ import annotations

import io
import json

import pytest

from connectors.jsonl import JsonlDestination, JsonlSource, StreamDestination
from core.errors import VaultConnectorError


def test_destination_then_source_roundtrip(tmp_path) -> None:
    """Rows written as JSONL files should read back unchanged."""
    rows = [{"id": 1, "blob": b"\x00"}, {"id": 2, "blob": None}]
    JsonlDestination(tmp_path).write_rows("users", rows)
    source = JsonlSource(tmp_path)

    assert source.list_tables() == ["users"]
    assert source.columns("users") == ["id", "blob"]
    assert list(source.read_rows("users")) == rows


def test_source_reports_bad_lines(tmp_path) -> None:
    """Unparseable lines should name the file and line."""
    (tmp_path / "users.jsonl").write_text('{"id": 1}\nnot json\n', encoding="utf-8")

    with pytest.raises(VaultConnectorError, match="users.jsonl:2"):
        list(JsonlSource(tmp_path).read_rows("users"))


def test_source_requires_directory(tmp_path) -> None:
    """A missing directory is a connector error."""
    with pytest.raises(VaultConnectorError):
        JsonlSource(tmp_path / "missing")


def test_stream_destination_writes_table_tagged_lines() -> None:
    """Streamed rows carry their table name."""
    stream = io.StringIO()

    written = StreamDestination(stream).write_rows("users", [{"id": 1}])

    assert written == 1
    assert json.loads(stream.getvalue()) == {"table": "users", "row": {"id": 1}}
