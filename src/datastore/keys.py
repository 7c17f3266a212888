"""Backend-agnostic object key layout.

Chunks live under ``<dump>/<table>/<seq>``, index objects under
``metadata/<dump>``, and the format version marker at ``metadata/__version``.
"""

from __future__ import annotations

from core.constants import METADATA_PREFIX, VERSION_MARKER_NAME
from core.errors import VaultConfigError

VERSION_MARKER_KEY = f"{METADATA_PREFIX}/{VERSION_MARKER_NAME}"
INDEX_PREFIX = f"{METADATA_PREFIX}/"
_RESERVED_DUMP_NAMES = (METADATA_PREFIX, VERSION_MARKER_NAME)


def chunk_key(dump_name: str, table: str, sequence: int) -> str:
    """Build the key of one table chunk."""
    return f"{dump_name}/{table}/{sequence}"


def dump_prefix(dump_name: str) -> str:
    """Build the key prefix holding every chunk of a dump."""
    return f"{dump_name}/"


def index_key(dump_name: str) -> str:
    """Build the key of a dump index object."""
    return f"{INDEX_PREFIX}{dump_name}"


def dump_name_from_index_key(key: str) -> str | None:
    """Return the dump name for an index key, or None for other metadata keys."""
    if not key.startswith(INDEX_PREFIX):
        return None
    name = key[len(INDEX_PREFIX) :]
    if not name or "/" in name or name == VERSION_MARKER_NAME:
        return None
    return name


def validate_dump_name(dump_name: str) -> None:
    """Validate a dump name against the key layout.

    Raises:
        VaultConfigError: If the name is empty, nested, or reserved.
    """
    if not dump_name or not dump_name.strip():
        raise VaultConfigError("Dump name must be a non-empty string.")
    if "/" in dump_name or dump_name in (".", ".."):
        raise VaultConfigError(
            f"Invalid dump name '{dump_name}': '/' and dot segments are not allowed."
        )
    if dump_name in _RESERVED_DUMP_NAMES:
        raise VaultConfigError(
            f"Dump name '{dump_name}' is reserved for datastore metadata. Choose another name."
        )


def validate_table_name(table: str) -> None:
    """Validate a table name against the key layout.

    Raises:
        VaultConfigError: If the name cannot be used as a key segment.
    """
    if not table or "/" in table or table in (".", ".."):
        raise VaultConfigError(
            f"Invalid table name '{table}': table names must be non-empty without '/'."
        )
