"""Shared typed models.

This module defines immutable data models used by the transformer engine,
chunk pipeline, datastore index, and orchestrator to keep interfaces explicit.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Mapping

from core.constants import DEFAULT_CHUNK_SIZE, LATEST_DUMP_ALIAS

Row = dict[str, object]


@dataclass(frozen=True)
class TransformerRule:
    """Anonymization rule bound to one table column.

    Attributes:
        table: Table name the rule applies to.
        column: Column name the rule applies to.
        transformer: Transformer identifier, e.g. ``email``.
        database: Optional database/schema name the table belongs to.
        options: Transformer-specific options.
    """

    table: str
    column: str
    transformer: str
    database: str | None = None
    options: Mapping[str, object] = field(default_factory=dict)


@dataclass(frozen=True)
class ChunkRef:
    """Reference to one stored chunk of a table.

    Attributes:
        key: Datastore key of the chunk.
        size: Stored (compressed/encrypted) byte size.
        raw_size: Serialized row bytes before compression.
        row_count: Rows whose final byte lies in this chunk.
    """

    key: str
    size: int
    raw_size: int
    row_count: int


@dataclass(frozen=True)
class TableEntry:
    """Per-table dump metadata.

    Attributes:
        table: Table name.
        chunks: Ordered chunk references in sequence order.
        row_count: Total rows dumped for the table.
        rules: Applied rule set as column to transformer name.
    """

    table: str
    chunks: tuple[ChunkRef, ...]
    row_count: int
    rules: Mapping[str, str] = field(default_factory=dict)

    @property
    def size(self) -> int:
        """Total stored bytes of the table chunks."""
        return sum(chunk.size for chunk in self.chunks)


@dataclass(frozen=True)
class DumpIndex:
    """Index object describing one completed dump.

    Attributes:
        name: Unique dump name.
        created_at: UTC creation timestamp.
        size: Total stored bytes across all chunks.
        compressed: Whether chunks are compressed.
        encrypted: Whether chunks are encrypted.
        tables: Ordered table entries.
        legacy: Whether the index was migrated from the legacy single-object
            layout, whose chunks this tool cannot read.
    """

    name: str
    created_at: datetime
    size: int
    compressed: bool
    encrypted: bool
    tables: tuple[TableEntry, ...]
    legacy: bool = False


@dataclass(frozen=True)
class DumpSummary:
    """Listing row for one dump."""

    name: str
    created_at: datetime
    size: int
    compressed: bool
    encrypted: bool


@dataclass(frozen=True)
class DumpOptions:
    """Dump command options.

    Attributes:
        name: Dump name to create.
        tables: Optional subset of tables; all source tables when empty.
        rules: Transformer rules applied while streaming.
        chunk_size: Raw bytes per chunk before compression.
        compression: Compress chunks with zlib.
        encryption_key: Optional key used to encrypt chunks.
    """

    name: str
    tables: tuple[str, ...] = ()
    rules: tuple[TransformerRule, ...] = ()
    chunk_size: int = DEFAULT_CHUNK_SIZE
    compression: bool = True
    encryption_key: str | None = None


@dataclass(frozen=True)
class RestoreOptions:
    """Restore command options.

    Attributes:
        name: Dump name or ``latest``.
        encryption_key: Key used to decrypt encrypted dumps.
    """

    name: str = LATEST_DUMP_ALIAS
    encryption_key: str | None = None


@dataclass(frozen=True)
class RestoreResult:
    """Summary of a completed restore."""

    dump_name: str
    table_count: int
    row_count: int


@dataclass(frozen=True)
class ProgressEvent:
    """Transfer progress observation.

    Attributes:
        transferred_bytes: Bytes transferred so far.
        total_bytes: Known or estimated total bytes.
    """

    transferred_bytes: int
    total_bytes: int
