"""Version-marker driven migration state machine.

The migrator reads the version marker once, then either stops (versions
match), aborts (store is newer than the tool), or folds the registered steps
over the stored version, persisting the marker after each completed step.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Sequence

from core.errors import VaultError, VaultMigrationError, VaultObjectNotFoundError
from core.logging_config import get_logger
from datastore.base import Datastore, read_object
from datastore.index_io import decode_payload, encode_payload
from datastore.keys import VERSION_MARKER_KEY

_LOGGER = get_logger(__name__)


@dataclass(frozen=True)
class MigrationStep:
    """One self-contained, idempotent upgrade from ``from_version``."""

    from_version: int
    name: str
    apply: Callable[[Datastore], None]


class Migrator:
    """Upgrade a datastore to the tool's current format version."""

    def __init__(
        self,
        current_version: int,
        datastore: Datastore,
        steps: Sequence[MigrationStep],
    ) -> None:
        self._current_version = current_version
        self._datastore = datastore
        self._steps = tuple(sorted(steps, key=lambda step: step.from_version))

    def read_version(self) -> int:
        """Read the stored version; a missing marker means a fresh store.

        Raises:
            VaultMigrationError: If the marker cannot be parsed.
        """
        try:
            data = read_object(self._datastore, VERSION_MARKER_KEY)
        except VaultObjectNotFoundError:
            return 0
        try:
            payload = decode_payload(VERSION_MARKER_KEY, data)
        except VaultError as error:
            raise VaultMigrationError(
                f"Unreadable version marker at '{VERSION_MARKER_KEY}': {error}. "
                "Restore the marker from a backup before running this tool."
            ) from error
        version = payload.get("version")
        if not isinstance(version, int) or isinstance(version, bool) or version < 0:
            raise VaultMigrationError(
                f"Invalid version marker at '{VERSION_MARKER_KEY}': expected a non-negative "
                f"integer, got {version!r}."
            )
        return version

    def migrate(self) -> int:
        """Bring the datastore to the current version.

        Returns:
            The version the datastore is at after migration.

        Raises:
            VaultMigrationError: If the store is newer than the tool or a step fails.
        """
        stored_version = self.read_version()
        if stored_version == self._current_version:
            _LOGGER.debug("migration_not_needed", version=stored_version)
            return stored_version
        if stored_version > self._current_version:
            raise VaultMigrationError(
                f"Datastore format version {stored_version} is newer than this tool supports "
                f"({self._current_version}). Upgrade dumpvault before accessing this datastore."
            )
        pending = self._pending_steps(stored_version)
        version = stored_version
        for step in pending:
            self._apply_step(step)
            version = step.from_version + 1
            self._write_version(version)
            _LOGGER.info(
                "migration_step_applied",
                step=step.name,
                from_version=step.from_version,
                to_version=version,
            )
        return version

    def _pending_steps(self, stored_version: int) -> list[MigrationStep]:
        pending = [
            step
            for step in self._steps
            if stored_version <= step.from_version < self._current_version
        ]
        expected = list(range(stored_version, self._current_version))
        if [step.from_version for step in pending] != expected:
            raise VaultMigrationError(
                f"No contiguous migration path from version {stored_version} to "
                f"{self._current_version}. Registered steps: "
                f"{[step.from_version for step in self._steps]}."
            )
        return pending

    def _apply_step(self, step: MigrationStep) -> None:
        try:
            step.apply(self._datastore)
        except VaultError as error:
            raise VaultMigrationError(
                f"Migration step '{step.name}' from version {step.from_version} failed: {error}. "
                f"The datastore remains at version {step.from_version}; fix the cause and rerun."
            ) from error

    def _write_version(self, version: int) -> None:
        try:
            self._datastore.put(VERSION_MARKER_KEY, encode_payload({"version": version}))
        except VaultError as error:
            raise VaultMigrationError(
                f"Failed to persist version marker {version}: {error}. "
                "Rerun the tool to resume migration."
            ) from error
