"""Public SDK surface for dumpvault.

This module provides a stable import path for library users.
It re-exports the dump service, configuration, and typed option models.
"""

from __future__ import annotations

from connectors.factory import open_destination, open_source
from connectors.jsonl import JsonlDestination, JsonlSource, StreamDestination
from connectors.sqlite import SqliteDestination, SqliteSource
from core.config import VaultConfig
from core.context import RuntimeContext, build_runtime_context
from core.errors import VaultError
from core.types import (
    DumpIndex,
    DumpOptions,
    DumpSummary,
    ProgressEvent,
    RestoreOptions,
    RestoreResult,
    TransformerRule,
)
from pipeline.orchestrator import DumpService, open_service
from pipeline.progress import ProgressChannel, ProgressReporter
from transforms.anonymizers import list_transformers

__all__ = [
    "DumpIndex",
    "DumpOptions",
    "DumpService",
    "DumpSummary",
    "JsonlDestination",
    "JsonlSource",
    "ProgressChannel",
    "ProgressEvent",
    "ProgressReporter",
    "RestoreOptions",
    "RestoreResult",
    "RuntimeContext",
    "SqliteDestination",
    "SqliteSource",
    "StreamDestination",
    "TransformerRule",
    "VaultConfig",
    "VaultError",
    "build_runtime_context",
    "list_transformers",
    "open_destination",
    "open_service",
    "open_source",
]
