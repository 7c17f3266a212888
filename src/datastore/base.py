"""Datastore capability contract.

Backends implement this protocol with identical key-listing and ordering
semantics so the migrator, index format, and orchestrator stay agnostic.
"""

from __future__ import annotations

from typing import Iterator, Protocol


class Datastore(Protocol):
    """Key/value object store used for chunks, indexes, and the version marker."""

    def init(self) -> None:
        """Prepare the backend once per process run."""
        ...

    def put(self, key: str, data: bytes) -> None:
        """Store an object, replacing any previous value atomically."""
        ...

    def get(self, key: str) -> Iterator[bytes]:
        """Return a lazy byte block iterator for an object.

        Raises:
            VaultObjectNotFoundError: If the key does not exist.
        """
        ...

    def list(self, prefix: str) -> list[str]:
        """Return keys starting with prefix in lexicographic order."""
        ...

    def delete(self, key: str) -> None:
        """Delete an object; deleting a missing key is a no-op."""
        ...

    def exists(self, key: str) -> bool:
        """Return whether an object exists."""
        ...


def read_object(datastore: Datastore, key: str) -> bytes:
    """Read a full object into memory.

    Args:
        datastore: Backend to read from.
        key: Object key.

    Returns:
        Object bytes.
    """
    return b"".join(datastore.get(key))
