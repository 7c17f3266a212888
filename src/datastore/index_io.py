"""Index object persistence helpers.

This module isolates JSON serialization of dump index objects.
It keeps orchestration focused on the dump and restore flow.
"""

from __future__ import annotations

from datetime import datetime
import json
from typing import Any, Mapping, cast

from core.errors import VaultDatastoreError, VaultObjectNotFoundError
from core.types import ChunkRef, DumpIndex, TableEntry
from datastore.base import Datastore, read_object
from datastore.keys import INDEX_PREFIX, dump_name_from_index_key, index_key


def index_to_payload(index: DumpIndex) -> dict[str, object]:
    """Serialize a dump index into a JSON-safe payload.

    Args:
        index: Dump index.

    Returns:
        Dictionary payload for JSON encoding.
    """
    return {
        "name": index.name,
        "created_at": index.created_at.isoformat(),
        "size": index.size,
        "compressed": index.compressed,
        "encrypted": index.encrypted,
        "legacy": index.legacy,
        "tables": [
            {
                "table": entry.table,
                "row_count": entry.row_count,
                "rules": dict(entry.rules),
                "chunks": [
                    {
                        "key": chunk.key,
                        "size": chunk.size,
                        "raw_size": chunk.raw_size,
                        "row_count": chunk.row_count,
                    }
                    for chunk in entry.chunks
                ],
            }
            for entry in index.tables
        ],
    }


def index_from_payload(payload: Mapping[str, Any]) -> DumpIndex:
    """Deserialize a JSON payload into a dump index.

    Args:
        payload: Parsed index payload.

    Returns:
        Typed dump index.

    Raises:
        VaultDatastoreError: If the payload does not match the index layout.
    """
    try:
        tables = tuple(
            TableEntry(
                table=str(table["table"]),
                row_count=int(table["row_count"]),
                rules={str(column): str(name) for column, name in dict(table["rules"]).items()},
                chunks=tuple(
                    ChunkRef(
                        key=str(chunk["key"]),
                        size=int(chunk["size"]),
                        raw_size=int(chunk["raw_size"]),
                        row_count=int(chunk["row_count"]),
                    )
                    for chunk in table["chunks"]
                ),
            )
            for table in payload["tables"]
        )
        return DumpIndex(
            name=str(payload["name"]),
            created_at=datetime.fromisoformat(str(payload["created_at"])),
            size=int(payload["size"]),
            compressed=bool(payload["compressed"]),
            encrypted=bool(payload["encrypted"]),
            tables=tables,
            legacy=bool(payload.get("legacy", False)),
        )
    except (KeyError, TypeError, ValueError) as error:
        raise VaultDatastoreError(
            f"Invalid dump index payload for '{payload.get('name', '?')}': {error}. "
            "The index may have been written by an incompatible tool version."
        ) from error


def encode_payload(payload: Mapping[str, object]) -> bytes:
    return (json.dumps(payload, indent=2, sort_keys=True) + "\n").encode("utf-8")


def decode_payload(key: str, data: bytes) -> dict[str, Any]:
    """Parse a JSON object stored under key.

    Raises:
        VaultDatastoreError: If the object is not a JSON object.
    """
    try:
        payload = json.loads(data.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as error:
        raise VaultDatastoreError(f"Failed to parse JSON object '{key}': {error}.") from error
    if not isinstance(payload, dict):
        raise VaultDatastoreError(
            f"Failed to parse JSON object '{key}': expected JSON object at top level."
        )
    return cast(dict[str, Any], payload)


def write_index(datastore: Datastore, index: DumpIndex) -> None:
    """Write the index object, which makes a dump visible."""
    datastore.put(index_key(index.name), encode_payload(index_to_payload(index)))


def read_index(datastore: Datastore, dump_name: str) -> DumpIndex | None:
    """Read one dump index, or None when the dump does not exist."""
    key = index_key(dump_name)
    try:
        data = read_object(datastore, key)
    except VaultObjectNotFoundError:
        return None
    return index_from_payload(decode_payload(key, data))


def list_indexes(datastore: Datastore) -> list[DumpIndex]:
    """Read every index object in the datastore."""
    indexes: list[DumpIndex] = []
    for key in datastore.list(INDEX_PREFIX):
        dump_name = dump_name_from_index_key(key)
        if dump_name is None:
            continue
        index = read_index(datastore, dump_name)
        if index is not None:
            indexes.append(index)
    return indexes
