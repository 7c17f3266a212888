"""Dump command wiring for dumpvault CLI."""

from __future__ import annotations

import argparse
from pathlib import Path
import sys
import time
from typing import Any

from connectors.base import Destination
from connectors.factory import open_destination, open_source
from connectors.jsonl import JsonlDestination, StreamDestination
from connectors.sqlite import SqliteDestination
from core.config import VaultConfig
from core.constants import DUMP_NAME_PREFIX, LATEST_DUMP_ALIAS
from core.context import RuntimeContext
from core.errors import VaultConfigError
from core.types import DumpOptions, RestoreOptions
from pipeline.orchestrator import open_service
from pipeline.progress import ProgressChannel, ProgressReporter

_SQLITE_SUFFIXES = (".sqlite", ".sqlite3", ".db")


def add_dump_command(subparsers: Any) -> None:
    """Register dump subcommand tree."""
    parser = subparsers.add_parser("dump", help="Create, list, restore, and delete dumps")
    dump_subparsers = parser.add_subparsers(dest="dump_command", required=True)
    dump_subparsers.add_parser("list", help="List dumps, newest first")
    create_parser = dump_subparsers.add_parser("create", help="Dump the configured source")
    create_parser.add_argument("--name", help="Dump name, defaults to dump-<epoch millis>")
    delete_parser = dump_subparsers.add_parser("delete", help="Delete one dump")
    delete_parser.add_argument("name", help="Dump name")
    restore_parser = dump_subparsers.add_parser("restore", help="Restore a dump")
    restore_subparsers = restore_parser.add_subparsers(dest="restore_target", required=True)
    local_parser = restore_subparsers.add_parser(
        "local", help="Restore into a local SQLite file or JSONL directory"
    )
    local_parser.add_argument(
        "--path", required=True, help="SQLite file (.sqlite/.db) or JSONL directory"
    )
    remote_parser = restore_subparsers.add_parser(
        "remote", help="Restore into the configured destination"
    )
    for target_parser in (local_parser, remote_parser):
        target_parser.add_argument(
            "-v",
            "--value",
            default=LATEST_DUMP_ALIAS,
            help="Dump name or 'latest'",
        )
        target_parser.add_argument(
            "-o",
            "--output",
            action="store_true",
            help="Write restored rows to stdout as JSONL instead",
        )


def run_dump_command(context: RuntimeContext, args: argparse.Namespace) -> int:
    """Dispatch one dump subcommand."""
    if args.dump_command == "list":
        return _run_list(context)
    if args.dump_command == "create":
        return _run_create(context, args)
    if args.dump_command == "delete":
        return _run_delete(context, args)
    return _run_restore(context, args)


def default_dump_name() -> str:
    """Build a dump name from the current epoch milliseconds."""
    return f"{DUMP_NAME_PREFIX}-{int(time.time() * 1000)}"


def _run_list(context: RuntimeContext) -> int:
    service = open_service(context)
    for summary in service.list_dumps():
        print(
            f"{summary.name}\t"
            f"{summary.created_at.isoformat()}\t"
            f"{summary.size}\t"
            f"{str(summary.compressed).lower()}\t"
            f"{str(summary.encrypted).lower()}"
        )
    return 0


def _run_create(context: RuntimeContext, args: argparse.Namespace) -> int:
    source_config = context.config.source
    if source_config is None:
        raise VaultConfigError(
            "Config is missing the 'source' section. Configure a source connection to dump."
        )
    channel = ProgressChannel()
    service = open_service(context, on_progress=channel.publish)
    options = DumpOptions(
        name=args.name or default_dump_name(),
        tables=source_config.tables,
        rules=source_config.rules,
        chunk_size=source_config.chunk_size,
        compression=source_config.compression,
        encryption_key=source_config.encryption_key,
    )
    source = open_source(source_config)
    try:
        with ProgressReporter(channel, operation="dump"):
            index = service.dump(source, options)
    finally:
        source.close()
    print(index.name)
    return 0


def _run_delete(context: RuntimeContext, args: argparse.Namespace) -> int:
    open_service(context).delete(args.name)
    print(args.name)
    return 0


def _run_restore(context: RuntimeContext, args: argparse.Namespace) -> int:
    options = RestoreOptions(name=args.value, encryption_key=_restore_key(context.config))
    if args.output:
        destination: Destination = StreamDestination(sys.stdout)
    elif args.restore_target == "local":
        destination = _local_destination(Path(args.path))
    else:
        if context.config.destination is None:
            raise VaultConfigError(
                "Config is missing the 'destination' section. "
                "Configure it or use 'dump restore local --path'."
            )
        destination = open_destination(context.config.destination)
    try:
        if args.output:
            open_service(context).restore(destination, options)
            return 0
        channel = ProgressChannel()
        service = open_service(context, on_progress=channel.publish)
        with ProgressReporter(channel, operation="restore"):
            result = service.restore(destination, options)
    finally:
        destination.close()
    print(f"{result.dump_name}\t{result.table_count}\t{result.row_count}")
    return 0


def _local_destination(path: Path) -> Destination:
    if path.suffix.lower() in _SQLITE_SUFFIXES:
        return SqliteDestination(path)
    return JsonlDestination(path)


def _restore_key(config: VaultConfig) -> str | None:
    if config.destination is not None and config.destination.encryption_key:
        return config.destination.encryption_key
    if config.source is not None:
        return config.source.encryption_key
    return None
