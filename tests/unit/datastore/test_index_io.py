"""Unit tests for index object persistence."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from core.errors import VaultConfigError, VaultDatastoreError
from core.types import ChunkRef, DumpIndex, TableEntry
from datastore.index_io import index_from_payload, list_indexes, read_index, write_index
from datastore.keys import (
    dump_name_from_index_key,
    validate_dump_name,
    validate_table_name,
)
from datastore.local_disk import LocalDiskDatastore


def _index(name: str) -> DumpIndex:
    chunk = ChunkRef(key=f"{name}/users/0", size=12, raw_size=40, row_count=2)
    return DumpIndex(
        name=name,
        created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
        size=12,
        compressed=True,
        encrypted=False,
        tables=(TableEntry(table="users", chunks=(chunk,), row_count=2, rules={"email": "email"}),),
    )


def test_write_then_read_index(tmp_path) -> None:
    """Indexes should persist every field."""
    datastore = LocalDiskDatastore(tmp_path)

    write_index(datastore, _index("prod-2024"))

    assert read_index(datastore, "prod-2024") == _index("prod-2024")


def test_read_index_returns_none_for_missing_dump(tmp_path) -> None:
    """Reading an unknown dump should return None."""
    assert read_index(LocalDiskDatastore(tmp_path), "missing") is None


def test_list_indexes_skips_version_marker(tmp_path) -> None:
    """The version marker must never be listed as a dump."""
    datastore = LocalDiskDatastore(tmp_path)
    datastore.put("metadata/__version", b'{"version": 2}')
    write_index(datastore, _index("a"))
    write_index(datastore, _index("b"))

    names = [index.name for index in list_indexes(datastore)]

    assert names == ["a", "b"]


def test_index_from_payload_rejects_bad_layout() -> None:
    """Malformed payloads should raise a datastore error."""
    with pytest.raises(VaultDatastoreError):
        index_from_payload({"name": "x", "tables": "nope"})


def test_dump_name_from_index_key() -> None:
    """Only direct index keys should map to dump names."""
    assert dump_name_from_index_key("metadata/prod") == "prod"
    assert dump_name_from_index_key("metadata/__version") is None
    assert dump_name_from_index_key("prod/users/0") is None


@pytest.mark.parametrize("name", ["", "a/b", "metadata", "__version", ".."])
def test_validate_dump_name_rejects_invalid_names(name: str) -> None:
    """Empty, nested, and reserved names should be rejected."""
    with pytest.raises(VaultConfigError):
        validate_dump_name(name)


def test_validate_table_name_rejects_slash() -> None:
    """Table names are single key segments."""
    with pytest.raises(VaultConfigError):
        validate_table_name("public/users")
