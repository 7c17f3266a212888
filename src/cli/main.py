"""dumpvault CLI entry points.

This module exposes dump lifecycle and transformer commands.
It maps argparse commands onto service calls.
"""

from __future__ import annotations

import argparse
import sys
from typing import Sequence

from cli.dump_command import add_dump_command, run_dump_command
from cli.transformer_command import add_transformer_command, run_transformer_command
from core.config import VaultConfig
from core.constants import DEFAULT_CONFIG_FILE_NAME
from core.context import build_runtime_context
from core.errors import VaultError


def build_parser() -> argparse.ArgumentParser:
    """Build the top-level CLI parser.

    Returns:
        Configured argument parser.
    """
    parser = argparse.ArgumentParser(
        prog="dumpvault",
        description="Anonymized database dumps stored in chunked object storage",
    )
    parser.add_argument(
        "-c",
        "--config",
        default=DEFAULT_CONFIG_FILE_NAME,
        help="Path to the YAML configuration file",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)
    add_dump_command(subparsers)
    add_transformer_command(subparsers)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run the dumpvault CLI.

    Args:
        argv: Optional argument vector.

    Returns:
        Process exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        if args.command == "transformer":
            return run_transformer_command(args)
        if args.command == "dump":
            context = build_runtime_context(VaultConfig.load(args.config))
            return run_dump_command(context, args)
    except VaultError as error:
        print(f"error: {error}", file=sys.stderr)
        return 1
    parser.error(f"Unsupported command: {args.command}")
    return 2
