"""Transformer command wiring for dumpvault CLI."""

from __future__ import annotations

import argparse
from typing import Any

from transforms.anonymizers import list_transformers


def add_transformer_command(subparsers: Any) -> None:
    """Register transformer subcommand tree."""
    parser = subparsers.add_parser("transformer", help="Inspect available transformers")
    transformer_subparsers = parser.add_subparsers(dest="transformer_command", required=True)
    transformer_subparsers.add_parser("list", help="List transformer names and descriptions")


def run_transformer_command(args: argparse.Namespace) -> int:
    """Print transformer names and descriptions, one per line."""
    for name, description in list_transformers():
        print(f"{name}\t{description}")
    return 0
