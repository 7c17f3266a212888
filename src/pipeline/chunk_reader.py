"""Chunked table reader.

Chunks are fetched in sequence order, opened, and split back into rows,
carrying partial rows across chunk boundaries.
"""

from __future__ import annotations

from typing import Iterator

from core.errors import VaultDatastoreError, VaultMissingChunkError, VaultObjectNotFoundError
from core.types import Row, TableEntry
from datastore.base import Datastore, read_object
from pipeline.chunk_codec import ChunkCodec
from pipeline.chunk_writer import ProgressCallback, TransferCounter
from pipeline.row_codec import decode_row


def read_table_rows(
    datastore: Datastore,
    entry: TableEntry,
    codec: ChunkCodec,
    counter: TransferCounter | None = None,
    on_progress: ProgressCallback | None = None,
) -> Iterator[Row]:
    """Yield the rows of one table entry lazily.

    Args:
        datastore: Backend holding the chunks.
        entry: Table entry from the dump index.
        codec: Compression and encryption settings of the dump.
        counter: Optional shared counter of stored bytes read.
        on_progress: Optional callback receiving a progress event per chunk.

    Yields:
        Rows in their original order.

    Raises:
        VaultMissingChunkError: If a referenced chunk is not stored.
        VaultDatastoreError: If a chunk is undecodable or row counts disagree.
    """
    carry = b""
    row_count = 0
    for chunk in entry.chunks:
        try:
            sealed = read_object(datastore, chunk.key)
        except VaultObjectNotFoundError as error:
            raise VaultMissingChunkError(
                f"Chunk '{chunk.key}' of table '{entry.table}' is missing. "
                "The dump is incomplete; delete it and create a new one."
            ) from error
        if counter is not None:
            event = counter.add(len(sealed))
            if on_progress is not None:
                on_progress(event)
        lines = (carry + codec.decode(chunk.key, sealed)).split(b"\n")
        carry = lines.pop()
        for line in lines:
            row_count += 1
            yield _decode(entry.table, line, row_count)
    if carry:
        raise VaultDatastoreError(
            f"Table '{entry.table}' ends with an incomplete row. The dump is corrupted."
        )
    if row_count != entry.row_count:
        raise VaultDatastoreError(
            f"Table '{entry.table}' yielded {row_count} rows, but its index records "
            f"{entry.row_count}. The dump is corrupted."
        )


def _decode(table: str, line: bytes, ordinal: int) -> Row:
    try:
        return decode_row(line)
    except ValueError as error:
        raise VaultDatastoreError(
            f"Row {ordinal} of table '{table}' cannot be decoded: {error}."
        ) from error
