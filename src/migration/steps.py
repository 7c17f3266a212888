"""Registered datastore format migration steps.

Each step is idempotent: rerunning it after a partial failure rewrites the
same objects and converges on the same layout.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Mapping

from core.constants import LEGACY_INDEX_KEY
from core.errors import VaultDatastoreError
from core.logging_config import get_logger
from datastore.base import Datastore, read_object
from datastore.index_io import decode_payload, encode_payload
from datastore.keys import INDEX_PREFIX, dump_name_from_index_key, index_key
from migration.migrator import MigrationStep

_LOGGER = get_logger(__name__)


def split_legacy_payload(payload: Mapping[str, Any]) -> list[tuple[str, dict[str, Any]]]:
    """Split a legacy single-object index into per-dump index payloads.

    Args:
        payload: Legacy ``metadata.json`` content with a ``dumps`` or
            ``backups`` list.

    Returns:
        Pairs of dump name and index payload.

    Raises:
        VaultDatastoreError: If an entry has no usable name.
    """
    entries = payload.get("dumps")
    if entries is None:
        entries = payload.get("backups", [])
    if not isinstance(entries, list):
        raise VaultDatastoreError("Legacy index has a non-list 'dumps' section.")
    split: list[tuple[str, dict[str, Any]]] = []
    for entry in entries:
        if not isinstance(entry, dict):
            raise VaultDatastoreError("Legacy index entry is not a JSON object.")
        name = entry.get("name") or entry.get("directory_name")
        if not isinstance(name, str) or not name:
            raise VaultDatastoreError(f"Legacy index entry without a dump name: {entry!r}.")
        converted = {key: value for key, value in entry.items() if key != "directory_name"}
        converted["name"] = name
        converted["legacy"] = True
        converted.setdefault("tables", [])
        split.append((name, converted))
    return split


def upgrade_index_payload(payload: Mapping[str, Any]) -> dict[str, Any]:
    """Rewrite a version-1 index payload into the version-2 layout.

    Epoch millisecond timestamps become ISO-8601 UTC strings and tables
    without a rule set get an empty one. Already upgraded payloads are
    returned unchanged.
    """
    upgraded = dict(payload)
    created_at = upgraded.get("created_at")
    if isinstance(created_at, (int, float)) and not isinstance(created_at, bool):
        upgraded["created_at"] = datetime.fromtimestamp(
            created_at / 1000, tz=timezone.utc
        ).isoformat()
    tables = []
    for table in upgraded.get("tables", []):
        table_payload = dict(table)
        table_payload.setdefault("rules", {})
        tables.append(table_payload)
    upgraded["tables"] = tables
    return upgraded


def split_legacy_index(datastore: Datastore) -> None:
    """Version 0 to 1: move ``metadata.json`` entries into ``metadata/<dump>``."""
    if not datastore.exists(LEGACY_INDEX_KEY):
        return
    payload = decode_payload(LEGACY_INDEX_KEY, read_object(datastore, LEGACY_INDEX_KEY))
    dumps = split_legacy_payload(payload)
    for name, entry in dumps:
        datastore.put(index_key(name), encode_payload(entry))
    datastore.delete(LEGACY_INDEX_KEY)
    _LOGGER.info("legacy_index_split", dump_count=len(dumps))


def iso_timestamps(datastore: Datastore) -> None:
    """Version 1 to 2: normalize index timestamps and rule sets."""
    for key in datastore.list(INDEX_PREFIX):
        if dump_name_from_index_key(key) is None:
            continue
        payload = decode_payload(key, read_object(datastore, key))
        upgraded = upgrade_index_payload(payload)
        if upgraded != payload:
            datastore.put(key, encode_payload(upgraded))


def registered_steps() -> tuple[MigrationStep, ...]:
    """Return migration steps in version order."""
    return (
        MigrationStep(from_version=0, name="split_legacy_index", apply=split_legacy_index),
        MigrationStep(from_version=1, name="iso_timestamps", apply=iso_timestamps),
    )
