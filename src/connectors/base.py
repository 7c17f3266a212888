"""Connector contracts used by the orchestrator."""

from __future__ import annotations

from typing import Iterable, Iterator, Protocol

from core.types import Row


class Source(Protocol):
    """Row source for dumps."""

    @property
    def database(self) -> str | None: ...

    def list_tables(self) -> list[str]: ...

    def columns(self, table: str) -> list[str]: ...

    def read_rows(self, table: str) -> Iterator[Row]: ...

    def estimate_size(self) -> int | None: ...

    def close(self) -> None: ...


class Destination(Protocol):
    """Row sink for restores."""

    def write_rows(self, table: str, rows: Iterable[Row]) -> int: ...

    def close(self) -> None: ...
