"""Dump, restore, list, and delete orchestration.

This module wires the transformer engine, chunk writer and reader, and the
datastore index into the public dump lifecycle. A dump only becomes visible
once its index object is written, after every chunk it references.
"""

from __future__ import annotations

from datetime import datetime, timezone

from core.constants import CURRENT_FORMAT_VERSION, DEFAULT_RANDOM_SEED, LATEST_DUMP_ALIAS
from core.context import RuntimeContext
from core.errors import (
    VaultConfigError,
    VaultDatastoreError,
    VaultDeleteError,
    VaultObjectNotFoundError,
)
from core.logging_config import get_logger
from core.types import (
    DumpIndex,
    DumpOptions,
    DumpSummary,
    ProgressEvent,
    RestoreOptions,
    RestoreResult,
    TableEntry,
)
from connectors.base import Destination, Source
from datastore.base import Datastore
from datastore.factory import build_datastore
from datastore.index_io import list_indexes, read_index, write_index
from datastore.keys import dump_prefix, index_key, validate_dump_name, validate_table_name
from migration.migrator import Migrator
from migration.steps import registered_steps
from pipeline.chunk_codec import ChunkCodec
from pipeline.chunk_reader import read_table_rows
from pipeline.chunk_writer import ChunkWriter, ProgressCallback, TransferCounter
from transforms.engine import TransformerEngine

_LOGGER = get_logger(__name__)


class DumpService:
    """Dump lifecycle operations over one migrated datastore."""

    def __init__(
        self,
        datastore: Datastore,
        seed: int = DEFAULT_RANDOM_SEED,
        on_progress: ProgressCallback | None = None,
    ) -> None:
        self._datastore = datastore
        self._seed = seed
        self._on_progress = on_progress

    @property
    def datastore(self) -> Datastore:
        return self._datastore

    def dump(self, source: Source, options: DumpOptions) -> DumpIndex:
        """Stream source tables into a new dump.

        Args:
            source: Row source to read from.
            options: Dump name, table subset, rules, and chunk settings.

        Returns:
            Index of the created dump.

        Raises:
            VaultConfigError: If the name, tables, or rules are invalid.
            VaultTransformError: If a value cannot be transformed.
            VaultDatastoreError: If the dump exists or chunk writes fail.
        """
        validate_dump_name(options.name)
        if options.encryption_key == "":
            raise VaultConfigError(
                "Encryption key is empty. Set a non-empty key or omit it "
                "to store the dump unencrypted."
            )
        if options.chunk_size < 1:
            raise VaultConfigError(
                f"Chunk size must be a positive integer, got {options.chunk_size}."
            )
        if self._datastore.exists(index_key(options.name)):
            raise VaultDatastoreError(
                f"Dump '{options.name}' already exists. Delete it or choose another name."
            )
        self._purge_orphans(options.name)
        source_tables = source.list_tables()
        tables = list(options.tables) or source_tables
        for table in tables:
            validate_table_name(table)
            if table not in source_tables:
                raise VaultConfigError(
                    f"Table '{table}' does not exist in the source. "
                    f"Known tables: {', '.join(source_tables) or 'none'}."
                )
        schemas = {table: source.columns(table) for table in source_tables}
        engine = TransformerEngine.compile(options.rules, schemas, source.database, self._seed)
        codec = ChunkCodec(compression=options.compression, encryption_key=options.encryption_key)
        counter = TransferCounter(source.estimate_size())
        _LOGGER.info("dump_started", dump=options.name, tables=len(tables))

        entries: list[TableEntry] = []
        for table in tables:
            writer = ChunkWriter(
                self._datastore,
                options.name,
                table,
                options.chunk_size,
                codec,
                counter=counter,
                on_progress=self._on_progress,
            )
            for ordinal, row in enumerate(source.read_rows(table)):
                writer.write_row(engine.transform_row(table, row, ordinal))
            entry = writer.close(engine.applied_rules(table))
            entries.append(entry)
            _LOGGER.info(
                "table_dumped",
                dump=options.name,
                table=table,
                rows=entry.row_count,
                chunks=len(entry.chunks),
            )

        size = sum(entry.size for entry in entries)
        index = DumpIndex(
            name=options.name,
            created_at=datetime.now(timezone.utc),
            size=size,
            compressed=options.compression,
            encrypted=codec.encrypted,
            tables=tuple(entries),
        )
        write_index(self._datastore, index)
        self._emit(ProgressEvent(transferred_bytes=size, total_bytes=size))
        _LOGGER.info("dump_created", dump=index.name, size=size, tables=len(entries))
        return index

    def restore(self, destination: Destination, options: RestoreOptions) -> RestoreResult:
        """Replay a dump into a destination.

        Args:
            destination: Row destination.
            options: Dump name or ``latest`` and the decryption key.

        Returns:
            Restored table and row counts.

        Raises:
            VaultObjectNotFoundError: If the dump does not exist.
            VaultDatastoreError: If the dump was migrated from the legacy layout.
            VaultConfigError: If an encrypted dump has no key.
            VaultMissingChunkError: If a referenced chunk is gone.
        """
        index = self.resolve(options.name)
        if index.legacy:
            raise VaultDatastoreError(
                f"Dump '{index.name}' was migrated from the legacy layout and its chunks "
                "cannot be restored by this tool. Restore it with the tool that created it."
            )
        if index.encrypted and not options.encryption_key:
            raise VaultConfigError(
                f"Dump '{index.name}' is encrypted. Provide the encryption key to restore it."
            )
        codec = ChunkCodec(
            compression=index.compressed,
            encryption_key=options.encryption_key if index.encrypted else None,
        )
        counter = TransferCounter(index.size)
        _LOGGER.info("restore_started", dump=index.name, tables=len(index.tables))
        row_count = 0
        for entry in index.tables:
            rows = read_table_rows(
                self._datastore, entry, codec, counter=counter, on_progress=self._on_progress
            )
            written = destination.write_rows(entry.table, rows)
            row_count += written
            _LOGGER.info("table_restored", dump=index.name, table=entry.table, rows=written)
        self._emit(ProgressEvent(transferred_bytes=index.size, total_bytes=index.size))
        _LOGGER.info("restore_finished", dump=index.name, rows=row_count)
        return RestoreResult(
            dump_name=index.name, table_count=len(index.tables), row_count=row_count
        )

    def resolve(self, name: str) -> DumpIndex:
        """Return the index of a dump name or of the ``latest`` alias.

        Raises:
            VaultObjectNotFoundError: If no matching dump exists.
        """
        if name == LATEST_DUMP_ALIAS:
            indexes = list_indexes(self._datastore)
            if not indexes:
                raise VaultObjectNotFoundError(
                    "No dumps found in the datastore. Create one with 'dumpvault dump create'."
                )
            return max(indexes, key=lambda index: (index.created_at, index.name))
        validate_dump_name(name)
        index = read_index(self._datastore, name)
        if index is None:
            raise VaultObjectNotFoundError(
                f"Dump '{name}' does not exist. Run 'dumpvault dump list' to see dumps."
            )
        return index

    def list_dumps(self) -> list[DumpSummary]:
        """List dumps, newest first."""
        summaries = [
            DumpSummary(
                name=index.name,
                created_at=index.created_at,
                size=index.size,
                compressed=index.compressed,
                encrypted=index.encrypted,
            )
            for index in list_indexes(self._datastore)
        ]
        return sorted(summaries, key=lambda item: (item.created_at, item.name), reverse=True)

    def delete(self, name: str) -> None:
        """Delete a dump: chunks first, then orphans, then the index.

        Args:
            name: Dump name.

        Raises:
            VaultObjectNotFoundError: If the dump does not exist.
            VaultDeleteError: If some objects could not be removed. The index
                is kept in that case so the dump stays listable.
        """
        validate_dump_name(name)
        index = read_index(self._datastore, name)
        if index is None:
            raise VaultObjectNotFoundError(
                f"Dump '{name}' does not exist. Run 'dumpvault dump list' to see dumps."
            )
        failed: list[str] = []
        for entry in index.tables:
            for chunk in entry.chunks:
                self._delete_quietly(chunk.key, failed)
        try:
            leftovers = self._datastore.list(dump_prefix(name))
        except VaultDatastoreError as error:
            _LOGGER.warning("orphan_sweep_failed", dump=name, error=str(error))
            leftovers = []
            failed.append(dump_prefix(name))
        for key in leftovers:
            if key not in failed:
                self._delete_quietly(key, failed)
        if failed:
            raise VaultDeleteError(
                f"Failed to delete {len(failed)} object(s) of dump '{name}'. "
                "The index was kept; rerun delete to retry.",
                failed_keys=tuple(failed),
            )
        self._datastore.delete(index_key(name))
        _LOGGER.info("dump_deleted", dump=name)

    def _delete_quietly(self, key: str, failed: list[str]) -> None:
        try:
            self._datastore.delete(key)
        except VaultDatastoreError as error:
            _LOGGER.warning("chunk_delete_failed", key=key, error=str(error))
            failed.append(key)

    def _purge_orphans(self, name: str) -> None:
        orphans = self._datastore.list(dump_prefix(name))
        if not orphans:
            return
        _LOGGER.warning("orphan_chunks_purged", dump=name, count=len(orphans))
        for key in orphans:
            self._datastore.delete(key)

    def _emit(self, event: ProgressEvent) -> None:
        if self._on_progress is not None:
            self._on_progress(event)


def open_service(
    context: RuntimeContext,
    on_progress: ProgressCallback | None = None,
) -> DumpService:
    """Build the datastore, migrate it, and return a ready service.

    Args:
        context: Runtime context of this process run.
        on_progress: Optional progress callback or channel.

    Returns:
        Service over a datastore at the current format version.

    Raises:
        VaultMigrationError: If the datastore is newer than this tool or a
            migration step fails.
    """
    datastore = build_datastore(context)
    Migrator(CURRENT_FORMAT_VERSION, datastore, registered_steps()).migrate()
    datastore.init()
    return DumpService(datastore, seed=context.seed, on_progress=on_progress)
