"""dumpvault exception hierarchy.

This module defines traceable domain errors with clear boundaries.
Each subsystem raises a specific error type for debuggability.
"""

from __future__ import annotations


class VaultError(Exception):
    """Base exception for all dumpvault failures."""


class VaultConfigError(VaultError):
    """Raised for invalid configuration, rules, or backend parameters."""


class VaultDatastoreError(VaultError):
    """Raised for datastore backend and chunk persistence failures.

    Attributes:
        retryable: Whether the failure is transient and may be retried.
    """

    def __init__(self, message: str, retryable: bool = False) -> None:
        super().__init__(message)
        self.retryable = retryable


class VaultObjectNotFoundError(VaultDatastoreError):
    """Raised when a datastore key does not exist."""


class VaultMissingChunkError(VaultDatastoreError):
    """Raised when a dump references a chunk that is no longer stored."""


class VaultDeleteError(VaultDatastoreError):
    """Raised when best-effort dump deletion could not remove every object.

    Attributes:
        failed_keys: Keys that could not be deleted.
    """

    def __init__(self, message: str, failed_keys: tuple[str, ...]) -> None:
        super().__init__(message, retryable=False)
        self.failed_keys = failed_keys


class VaultMigrationError(VaultError):
    """Raised for datastore format version mismatches and failed migrations."""


class VaultTransformError(VaultError):
    """Raised when a transformer cannot process a column value."""


class VaultConnectorError(VaultError):
    """Raised for source and destination connector failures."""


class VaultDependencyError(VaultError):
    """Raised when an optional runtime dependency is missing."""
