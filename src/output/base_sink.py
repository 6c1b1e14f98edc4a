# src/output/base_sink.py — v1
"""Abstract tabular output sink.

Sheets are addressed by name; rows and columns are 1-based and row 1 holds
the header. Values read back are display values ("" for empty cells).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any


class SheetNotFoundError(Exception):
    """The named sheet does not exist."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Sheet not found: {name!r}")


@dataclass(frozen=True)
class CellLink:
    """A clickable reference attached to one cell."""

    row: int
    column: int
    text: str
    url: str


class BaseTabularSink(ABC):
    """Unified interface for tabular output backends."""

    @asynccontextmanager
    async def batch(self) -> AsyncIterator[None]:
        """Group mutating calls; backends that persist per call may persist once on exit."""
        yield

    @abstractmethod
    async def sheet_exists(self, name: str) -> bool:
        """Check if a sheet exists."""

    @abstractmethod
    async def get_or_create_sheet(self, name: str, header: Sequence[str]) -> bool:
        """Ensure a sheet exists; write header only when creating.

        Returns:
            True if the sheet was created.
        """

    @abstractmethod
    async def rename_sheet(self, old_name: str, new_name: str) -> None:
        """Rename a sheet."""

    @abstractmethod
    async def delete_sheet(self, name: str) -> None:
        """Delete a sheet. Missing sheets are ignored."""

    @abstractmethod
    async def get_header(self, name: str) -> list[str]:
        """Return the header row (trailing empty cells dropped)."""

    @abstractmethod
    async def read_rows(
        self, name: str, start_row: int, count: int | None = None,
    ) -> list[list[Any]]:
        """Read up to count rows starting at start_row (all if None)."""

    @abstractmethod
    async def write_rows(
        self, name: str, start_row: int, rows: Sequence[Sequence[Any]], start_column: int = 1,
    ) -> None:
        """Write a rectangular block of values in one operation."""

    @abstractmethod
    async def append_columns(self, name: str, headers: Sequence[str]) -> None:
        """Append new columns (header cells) after the last used column."""

    @abstractmethod
    async def get_cell(self, name: str, row: int, column: int) -> Any:
        """Display value of one cell."""

    @abstractmethod
    async def set_cell(self, name: str, row: int, column: int, value: Any) -> None:
        """Set the value of one cell."""

    @abstractmethod
    async def get_link(self, name: str, row: int, column: int) -> str | None:
        """Link target of one cell, or None."""

    @abstractmethod
    async def set_links(self, name: str, links: Sequence[CellLink]) -> None:
        """Attach links (and display text) to cells."""

    @abstractmethod
    async def row_count(self, name: str) -> int:
        """Number of used rows, header included."""

    @abstractmethod
    async def column_count(self, name: str) -> int:
        """Number of used columns."""


BACKUP_SUFFIX = "~prev"


def backup_name_for(output_name: str) -> str:
    """Name under which the previous run's output is kept during a new run."""
    return f"{output_name}{BACKUP_SUFFIX}"
