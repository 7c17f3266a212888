"""Shared JSON line serialization for table rows.

This module centralizes row serialization logic.
It is reused by chunk persistence and the JSONL connectors.
"""

from __future__ import annotations

import base64
import json
from typing import Any, Mapping

from core.constants import BYTES_MARKER_FIELD
from core.errors import VaultConnectorError
from core.types import Row


def row_to_payload(row: Mapping[str, object]) -> dict[str, object]:
    """Convert a row into a JSON-safe payload keeping column order.

    Args:
        row: Ordered column to value mapping.

    Returns:
        Dictionary payload for JSON encoding.

    Raises:
        VaultConnectorError: If a value type cannot be serialized.
    """
    return {str(column): _value_to_payload(value) for column, value in row.items()}


def row_from_payload(payload: Mapping[str, Any]) -> Row:
    """Convert a JSON payload back into a row."""
    return {str(column): _value_from_payload(value) for column, value in payload.items()}


def encode_row(row: Mapping[str, object]) -> bytes:
    """Serialize one row as a newline-terminated UTF-8 JSON line."""
    line = json.dumps(row_to_payload(row), ensure_ascii=False, separators=(",", ":"))
    return (line + "\n").encode("utf-8")


def decode_row(line: bytes) -> Row:
    """Deserialize one JSON line into a row.

    Raises:
        ValueError: If the line is not a JSON object.
    """
    try:
        payload = json.loads(line.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as error:
        raise ValueError(f"Invalid row line: {error}") from error
    if not isinstance(payload, dict):
        raise ValueError("Invalid row line: expected JSON object")
    return row_from_payload(payload)


def _value_to_payload(value: object) -> object:
    if value is None or isinstance(value, (str, bool, int, float)):
        return value
    if isinstance(value, (bytes, bytearray, memoryview)):
        return {BYTES_MARKER_FIELD: base64.b64encode(bytes(value)).decode("ascii")}
    if isinstance(value, Mapping):
        return {str(key): _value_to_payload(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_value_to_payload(item) for item in value]
    raise VaultConnectorError(
        f"Unsupported column value type {type(value).__name__}. "
        "Connectors must emit text, numbers, booleans, bytes, or NULL."
    )


def _value_from_payload(value: Any) -> object:
    if isinstance(value, dict):
        if set(value) == {BYTES_MARKER_FIELD}:
            return base64.b64decode(value[BYTES_MARKER_FIELD])
        return {str(key): _value_from_payload(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_value_from_payload(item) for item in value]
    return value
