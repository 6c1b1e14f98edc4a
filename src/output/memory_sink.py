# src/output/memory_sink.py — v1
"""In-memory tabular sink, used for tests and dry runs."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from treescan.output.base_sink import BaseTabularSink, CellLink, SheetNotFoundError


@dataclass
class _Sheet:
    rows: list[list[Any]] = field(default_factory=list)
    links: dict[tuple[int, int], str] = field(default_factory=dict)


def _ensure_cell(sheet: _Sheet, row: int, column: int) -> None:
    while len(sheet.rows) < row:
        sheet.rows.append([])
    cells = sheet.rows[row - 1]
    while len(cells) < column:
        cells.append("")


class MemorySink(BaseTabularSink):
    """Sheets held as lists of rows."""

    def __init__(self) -> None:
        self.sheets: dict[str, _Sheet] = {}

    def _sheet(self, name: str) -> _Sheet:
        try:
            return self.sheets[name]
        except KeyError:
            raise SheetNotFoundError(name) from None

    async def sheet_exists(self, name: str) -> bool:
        return name in self.sheets

    async def get_or_create_sheet(self, name: str, header: Sequence[str]) -> bool:
        if name in self.sheets:
            return False
        self.sheets[name] = _Sheet(rows=[list(header)])
        return True

    async def rename_sheet(self, old_name: str, new_name: str) -> None:
        sheet = self._sheet(old_name)
        if new_name in self.sheets:
            raise ValueError(f"Sheet already exists: {new_name!r}")
        self.sheets[new_name] = sheet
        del self.sheets[old_name]

    async def delete_sheet(self, name: str) -> None:
        self.sheets.pop(name, None)

    async def get_header(self, name: str) -> list[str]:
        sheet = self._sheet(name)
        if not sheet.rows:
            return []
        header = [str(v) if v is not None else "" for v in sheet.rows[0]]
        while header and not header[-1]:
            header.pop()
        return header

    async def read_rows(
        self, name: str, start_row: int, count: int | None = None,
    ) -> list[list[Any]]:
        sheet = self._sheet(name)
        width = await self.column_count(name)
        end = len(sheet.rows) if count is None else min(len(sheet.rows), start_row - 1 + count)
        rows: list[list[Any]] = []
        for cells in sheet.rows[start_row - 1:end]:
            padded = ["" if v is None else v for v in cells]
            rows.append(padded + [""] * (width - len(padded)))
        return rows

    async def write_rows(
        self, name: str, start_row: int, rows: Sequence[Sequence[Any]], start_column: int = 1,
    ) -> None:
        sheet = self._sheet(name)
        for offset, values in enumerate(rows):
            row = start_row + offset
            if values:
                _ensure_cell(sheet, row, start_column + len(values) - 1)
            for col_offset, value in enumerate(values):
                sheet.rows[row - 1][start_column - 1 + col_offset] = value

    async def append_columns(self, name: str, headers: Sequence[str]) -> None:
        if not headers:
            return
        first = await self.column_count(name) + 1
        await self.write_rows(name, 1, [list(headers)], start_column=first)

    async def get_cell(self, name: str, row: int, column: int) -> Any:
        sheet = self._sheet(name)
        if row > len(sheet.rows) or column > len(sheet.rows[row - 1]):
            return ""
        value = sheet.rows[row - 1][column - 1]
        return "" if value is None else value

    async def set_cell(self, name: str, row: int, column: int, value: Any) -> None:
        await self.write_rows(name, row, [[value]], start_column=column)

    async def get_link(self, name: str, row: int, column: int) -> str | None:
        return self._sheet(name).links.get((row, column))

    async def set_links(self, name: str, links: Sequence[CellLink]) -> None:
        sheet = self._sheet(name)
        for link in links:
            _ensure_cell(sheet, link.row, link.column)
            sheet.rows[link.row - 1][link.column - 1] = link.text
            sheet.links[(link.row, link.column)] = link.url

    async def row_count(self, name: str) -> int:
        sheet = self._sheet(name)
        count = len(sheet.rows)
        while count and not any(v not in ("", None) for v in sheet.rows[count - 1]):
            count -= 1
        return count

    async def column_count(self, name: str) -> int:
        sheet = self._sheet(name)
        width = 0
        for cells in sheet.rows:
            for idx in range(len(cells), 0, -1):
                if cells[idx - 1] not in ("", None):
                    width = max(width, idx)
                    break
        return width
