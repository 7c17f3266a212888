"""Chunked table writer.

Serialized rows are buffered and sealed into fixed-size chunks; a row may
straddle two chunks. Each flushed chunk is written under the next sequence key.
"""

from __future__ import annotations

from collections import deque
from typing import Callable, Mapping

from core.logging_config import get_logger
from core.types import ChunkRef, ProgressEvent, TableEntry
from datastore.base import Datastore
from datastore.keys import chunk_key
from pipeline.chunk_codec import ChunkCodec
from pipeline.row_codec import encode_row

_LOGGER = get_logger(__name__)

ProgressCallback = Callable[[ProgressEvent], None]


class TransferCounter:
    """Cumulative stored bytes across every table of one dump."""

    def __init__(self, estimated_total: int | None = None) -> None:
        self.transferred_bytes = 0
        self.estimated_total = estimated_total

    def add(self, size: int) -> ProgressEvent:
        self.transferred_bytes += size
        total = max(self.estimated_total or 0, self.transferred_bytes)
        return ProgressEvent(transferred_bytes=self.transferred_bytes, total_bytes=total)


class ChunkWriter:
    """Write one table's rows as sequenced chunks.

    Args:
        datastore: Destination backend.
        dump_name: Dump the chunks belong to.
        table: Table being written.
        chunk_size: Raw bytes per sealed chunk.
        codec: Compression and encryption settings.
        counter: Shared transfer counter for progress events.
        on_progress: Optional callback receiving a progress event per flush.
    """

    def __init__(
        self,
        datastore: Datastore,
        dump_name: str,
        table: str,
        chunk_size: int,
        codec: ChunkCodec,
        counter: TransferCounter | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> None:
        if chunk_size < 1:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")
        self._datastore = datastore
        self._dump_name = dump_name
        self._table = table
        self._chunk_size = chunk_size
        self._codec = codec
        self._counter = counter or TransferCounter()
        self._on_progress = on_progress
        self._buffer = bytearray()
        # absolute end offsets of rows not yet attributed to a sealed chunk
        self._pending_row_ends: deque[int] = deque()
        self._flushed_raw_bytes = 0
        self._chunks: list[ChunkRef] = []
        self._row_count = 0
        self._closed = False

    def write_row(self, row: Mapping[str, object]) -> None:
        """Append one row and flush every full chunk."""
        if self._closed:
            raise ValueError(f"ChunkWriter for table '{self._table}' is already closed")
        self._buffer.extend(encode_row(row))
        self._row_count += 1
        self._pending_row_ends.append(self._flushed_raw_bytes + len(self._buffer))
        while len(self._buffer) >= self._chunk_size:
            self._flush(self._chunk_size)

    def close(self, rules: Mapping[str, str] | None = None) -> TableEntry:
        """Flush the remainder and return the table entry.

        Args:
            rules: Applied rule set recorded on the entry.

        Returns:
            Table entry listing every chunk in sequence order.
        """
        if not self._closed:
            if self._buffer:
                self._flush(len(self._buffer))
            self._closed = True
        return TableEntry(
            table=self._table,
            chunks=tuple(self._chunks),
            row_count=self._row_count,
            rules=dict(rules or {}),
        )

    def _flush(self, size: int) -> None:
        raw = bytes(self._buffer[:size])
        del self._buffer[:size]
        self._flushed_raw_bytes += size
        rows_in_chunk = 0
        while self._pending_row_ends and self._pending_row_ends[0] <= self._flushed_raw_bytes:
            self._pending_row_ends.popleft()
            rows_in_chunk += 1
        sealed = self._codec.encode(raw)
        key = chunk_key(self._dump_name, self._table, len(self._chunks))
        self._datastore.put(key, sealed)
        self._chunks.append(
            ChunkRef(key=key, size=len(sealed), raw_size=size, row_count=rows_in_chunk)
        )
        _LOGGER.debug(
            "chunk_flushed",
            key=key,
            raw_size=size,
            stored_size=len(sealed),
            row_count=rows_in_chunk,
        )
        event = self._counter.add(len(sealed))
        if self._on_progress is not None:
            self._on_progress(event)
