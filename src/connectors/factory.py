"""Connector selection from configuration."""

from __future__ import annotations

from core.config import ConnectionConfig, DestinationConfig, SourceConfig
from connectors.base import Destination, Source
from connectors.jsonl import JsonlDestination, JsonlSource
from connectors.sqlite import SqliteDestination, SqliteSource


def open_source(config: SourceConfig) -> Source:
    """Open the configured dump source."""
    connection = config.connection
    if connection.kind == "sqlite":
        return SqliteSource(connection.path, database=config.database or "main")
    return JsonlSource(connection.path, database=config.database)


def open_destination(config: DestinationConfig) -> Destination:
    """Open the configured restore destination."""
    return open_connection_destination(config.connection)


def open_connection_destination(connection: ConnectionConfig) -> Destination:
    if connection.kind == "sqlite":
        return SqliteDestination(connection.path)
    return JsonlDestination(connection.path)
