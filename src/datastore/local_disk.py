"""Local filesystem datastore backend.

Objects are files under a root directory. Writes go to a temporary file in
the target directory and are renamed into place, so readers never observe a
half-written object. IO errors are fatal for the call and never retried.
"""

from __future__ import annotations

import os
from pathlib import Path
import tempfile
from typing import Iterator

from core.constants import READ_BLOCK_SIZE, TEMP_FILE_PREFIX
from core.errors import VaultDatastoreError, VaultObjectNotFoundError
from core.logging_config import get_logger

_LOGGER = get_logger(__name__)


class LocalDiskDatastore:
    """Datastore storing each key as a file below ``root``."""

    def __init__(self, root: Path) -> None:
        self._root = root.expanduser().resolve()

    @property
    def root(self) -> Path:
        return self._root

    def init(self) -> None:
        """Create the root directory when missing."""
        try:
            self._root.mkdir(parents=True, exist_ok=True)
        except OSError as error:
            raise VaultDatastoreError(
                f"Failed to create datastore directory {self._root}: {error}. "
                "Check the local_disk dir setting and permissions."
            ) from error
        _LOGGER.debug("local_datastore_ready", root=str(self._root))

    def put(self, key: str, data: bytes) -> None:
        """Write an object atomically via temp file and rename."""
        target = self._path_for(key)
        temp_name: str | None = None
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                dir=target.parent, prefix=TEMP_FILE_PREFIX, delete=False
            ) as handle:
                temp_name = handle.name
                handle.write(data)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(temp_name, target)
            temp_name = None
        except OSError as error:
            raise VaultDatastoreError(
                f"Failed to write object '{key}' at {target}: {error}. "
                "Check disk space and permissions."
            ) from error
        finally:
            if temp_name is not None and os.path.exists(temp_name):
                os.unlink(temp_name)

    def get(self, key: str) -> Iterator[bytes]:
        """Return a lazy block iterator over an object file."""
        path = self._path_for(key)
        if not path.is_file():
            raise VaultObjectNotFoundError(f"Object '{key}' not found at {path}.")
        return _iter_file_blocks(key, path)

    def list(self, prefix: str) -> list[str]:
        """List keys under prefix, sorted lexicographically."""
        if not self._root.exists():
            return []
        keys: list[str] = []
        try:
            for path in self._root.rglob("*"):
                if not path.is_file() or path.name.startswith(TEMP_FILE_PREFIX):
                    continue
                key = path.relative_to(self._root).as_posix()
                if key.startswith(prefix):
                    keys.append(key)
        except OSError as error:
            raise VaultDatastoreError(
                f"Failed to list objects under '{prefix}' in {self._root}: {error}."
            ) from error
        return sorted(keys)

    def delete(self, key: str) -> None:
        """Delete an object file; missing files are ignored."""
        path = self._path_for(key)
        try:
            path.unlink(missing_ok=True)
        except OSError as error:
            raise VaultDatastoreError(
                f"Failed to delete object '{key}' at {path}: {error}."
            ) from error
        _prune_empty_parents(path.parent, self._root)

    def exists(self, key: str) -> bool:
        return self._path_for(key).is_file()

    def _path_for(self, key: str) -> Path:
        """Map a key to a path below root, rejecting escaping keys."""
        segments = key.split("/")
        if not key or any(segment in ("", ".", "..") for segment in segments):
            raise VaultDatastoreError(f"Invalid object key '{key}': empty or dot segments.")
        return self._root.joinpath(*segments)


def _iter_file_blocks(key: str, path: Path) -> Iterator[bytes]:
    try:
        with path.open("rb") as handle:
            while True:
                block = handle.read(READ_BLOCK_SIZE)
                if not block:
                    return
                yield block
    except FileNotFoundError as error:
        raise VaultObjectNotFoundError(f"Object '{key}' not found at {path}.") from error
    except OSError as error:
        raise VaultDatastoreError(f"Failed to read object '{key}' at {path}: {error}.") from error


def _prune_empty_parents(directory: Path, root: Path) -> None:
    """Remove empty directories left behind by deletes, stopping at root."""
    current = directory
    while current != root and root in current.parents:
        try:
            current.rmdir()
        except OSError:
            return
        current = current.parent
