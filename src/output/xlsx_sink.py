# src/output/xlsx_sink.py — v1
"""Excel workbook sink (openpyxl).

One workbook file holds every job's output as a sheet. The workbook is
loaded once and saved after every mutating call, through a temporary file
moved into place. Inside a batch() scope the save is deferred to scope exit.

Control characters that cannot be stored in the file format are stripped
from string values before any cell is touched.
"""

from __future__ import annotations

import logging
import os
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

from openpyxl import Workbook, load_workbook
from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE
from openpyxl.worksheet.worksheet import Worksheet

from treescan.output.base_sink import BaseTabularSink, CellLink, SheetNotFoundError

logger = logging.getLogger(__name__)

# Excel limits
MAX_SHEET_TITLE = 31
INVALID_TITLE_CHARS = set("[]:*?/\\")


def _display(value: Any) -> Any:
    return "" if value is None else value


def _clean(value: Any) -> Any:
    if isinstance(value, str):
        return ILLEGAL_CHARACTERS_RE.sub("", value)
    return value


class XlsxSink(BaseTabularSink):
    """Sheets stored in a single .xlsx workbook."""

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path).expanduser()
        self._wb: Workbook | None = None
        self._batch_depth = 0
        self._dirty = False

    # --- Workbook handling ---

    def _workbook(self) -> Workbook:
        if self._wb is None:
            if self._path.exists():
                self._wb = load_workbook(self._path)
            else:
                self._wb = Workbook()
                # Fresh workbooks come with an empty default sheet
                self._wb.remove(self._wb.active)
        return self._wb

    def _sheet(self, name: str) -> Worksheet:
        wb = self._workbook()
        if name not in wb.sheetnames:
            raise SheetNotFoundError(name)
        return wb[name]

    def _save(self) -> None:
        if self._batch_depth:
            self._dirty = True
            return
        self._write()

    def _write(self) -> None:
        wb = self._workbook()
        if not wb.sheetnames:
            # openpyxl refuses to save a workbook without sheets
            if self._path.exists():
                self._path.unlink()
            return
        self._path.parent.mkdir(parents=True, exist_ok=True)
        # keep the .xlsx suffix, openpyxl checks it when reloading
        tmp = self._path.with_name(f".{self._path.stem}.tmp{self._path.suffix}")
        wb.save(tmp)
        os.replace(tmp, self._path)

    @staticmethod
    def _used_width(ws: Worksheet) -> int:
        if ws.max_row == 1 and ws.max_column == 1 and ws.cell(row=1, column=1).value is None:
            return 0
        return ws.max_column

    # --- BaseTabularSink ---

    @asynccontextmanager
    async def batch(self) -> AsyncIterator[None]:
        self._batch_depth += 1
        try:
            yield
        finally:
            self._batch_depth -= 1
            if not self._batch_depth and self._dirty:
                self._dirty = False
                self._write()

    async def sheet_exists(self, name: str) -> bool:
        return name in self._workbook().sheetnames

    async def get_or_create_sheet(self, name: str, header: Sequence[str]) -> bool:
        wb = self._workbook()
        if name in wb.sheetnames:
            return False
        ws = wb.create_sheet(title=name)
        ws.append([_clean(h) for h in header])
        self._save()
        logger.debug("Created sheet %r with %d columns", name, len(header))
        return True

    async def rename_sheet(self, old_name: str, new_name: str) -> None:
        ws = self._sheet(old_name)
        if new_name in self._workbook().sheetnames:
            raise ValueError(f"Sheet already exists: {new_name!r}")
        ws.title = new_name
        self._save()

    async def delete_sheet(self, name: str) -> None:
        wb = self._workbook()
        if name not in wb.sheetnames:
            return
        wb.remove(wb[name])
        self._save()

    async def get_header(self, name: str) -> list[str]:
        ws = self._sheet(name)
        width = self._used_width(ws)
        header = [
            "" if ws.cell(row=1, column=c).value is None else str(ws.cell(row=1, column=c).value)
            for c in range(1, width + 1)
        ]
        while header and not header[-1]:
            header.pop()
        return header

    async def read_rows(
        self, name: str, start_row: int, count: int | None = None,
    ) -> list[list[Any]]:
        ws = self._sheet(name)
        last = await self.row_count(name)
        end = last if count is None else min(last, start_row + count - 1)
        if end < start_row:
            return []
        width = self._used_width(ws)
        return [
            [_display(v) for v in values]
            for values in ws.iter_rows(
                min_row=start_row, max_row=end, max_col=width, values_only=True,
            )
        ]

    async def write_rows(
        self, name: str, start_row: int, rows: Sequence[Sequence[Any]], start_column: int = 1,
    ) -> None:
        ws = self._sheet(name)
        cleaned = [[_clean(v) for v in values] for values in rows]
        for offset, values in enumerate(cleaned):
            for col_offset, value in enumerate(values):
                ws.cell(row=start_row + offset, column=start_column + col_offset, value=value)
        self._save()

    async def append_columns(self, name: str, headers: Sequence[str]) -> None:
        if not headers:
            return
        ws = self._sheet(name)
        first = self._used_width(ws) + 1
        for offset, header in enumerate(headers):
            ws.cell(row=1, column=first + offset, value=_clean(header))
        self._save()

    async def get_cell(self, name: str, row: int, column: int) -> Any:
        return _display(self._sheet(name).cell(row=row, column=column).value)

    async def set_cell(self, name: str, row: int, column: int, value: Any) -> None:
        self._sheet(name).cell(row=row, column=column, value=_clean(value))
        self._save()

    async def get_link(self, name: str, row: int, column: int) -> str | None:
        cell = self._sheet(name).cell(row=row, column=column)
        return cell.hyperlink.target if cell.hyperlink is not None else None

    async def set_links(self, name: str, links: Sequence[CellLink]) -> None:
        ws = self._sheet(name)
        cleaned = [(link, _clean(link.text), _clean(link.url)) for link in links]
        for link, text, url in cleaned:
            cell = ws.cell(row=link.row, column=link.column, value=text)
            cell.hyperlink = url
            cell.style = "Hyperlink"
        self._save()

    async def row_count(self, name: str) -> int:
        ws = self._sheet(name)
        if self._used_width(ws) == 0:
            return 0
        last = ws.max_row
        # max_row counts rows that were touched but hold no values
        while last > 0 and all(
            c.value in (None, "") for c in ws[last]
        ):
            last -= 1
        return last

    async def column_count(self, name: str) -> int:
        return self._used_width(self._sheet(name))


def validate_sheet_title(name: str, reserve: int = 0) -> list[str]:
    """Problems that would prevent using name (plus reserve chars) as a sheet title."""
    problems: list[str] = []
    if len(name) + reserve > MAX_SHEET_TITLE:
        problems.append(
            f"sheet name {name!r} is longer than {MAX_SHEET_TITLE - reserve} characters"
        )
    bad = sorted(INVALID_TITLE_CHARS & set(name))
    if bad:
        problems.append(f"sheet name {name!r} contains invalid characters {''.join(bad)}")
    return problems
