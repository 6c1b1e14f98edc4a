# tests/unit/output/test_unit_sinks.py — v1
"""Tests for output sinks — MemorySink and XlsxSink share one contract."""

from __future__ import annotations

from unittest.mock import patch

import pytest
from openpyxl import load_workbook

from treescan.config.settings import Settings
from treescan.output.base_sink import CellLink, SheetNotFoundError, backup_name_for
from treescan.output.memory_sink import MemorySink
from treescan.output.sink_factory import create_sink
from treescan.output.xlsx_sink import XlsxSink, validate_sheet_title


@pytest.fixture(params=["memory", "xlsx"])
def sink(request, tmp_path):
    if request.param == "memory":
        return MemorySink()
    return XlsxSink(tmp_path / "out.xlsx")


class TestSinkContract:
    @pytest.mark.asyncio
    async def test_create_sheet_once(self, sink):
        assert await sink.get_or_create_sheet("Files", ["SlNo", "Path"]) is True
        assert await sink.get_or_create_sheet("Files", ["other"]) is False
        assert await sink.get_header("Files") == ["SlNo", "Path"]
        assert await sink.row_count("Files") == 1

    @pytest.mark.asyncio
    async def test_write_and_read_rows(self, sink):
        await sink.get_or_create_sheet("Files", ["SlNo", "Path", "Notes"])
        await sink.write_rows("Files", 2, [[1, "X/a", ""], [2, "X/b", "n"]])
        assert await sink.row_count("Files") == 3
        assert await sink.read_rows("Files", 2) == [[1, "X/a", ""], [2, "X/b", "n"]]
        assert await sink.read_rows("Files", 3, 5) == [[2, "X/b", "n"]]
        assert await sink.read_rows("Files", 10) == []

    @pytest.mark.asyncio
    async def test_rewrite_same_rows_is_idempotent(self, sink):
        await sink.get_or_create_sheet("Files", ["SlNo", "Path"])
        await sink.write_rows("Files", 2, [[1, "X/a"]])
        await sink.write_rows("Files", 2, [[1, "X/a"]])
        assert await sink.row_count("Files") == 2

    @pytest.mark.asyncio
    async def test_write_with_column_offset(self, sink):
        await sink.get_or_create_sheet("Files", ["SlNo", "Path"])
        await sink.write_rows("Files", 2, [[1, "X/a"]])
        await sink.append_columns("Files", ["Notes", "Owner"])
        await sink.write_rows("Files", 2, [["n", "me"]], start_column=3)
        assert await sink.get_header("Files") == ["SlNo", "Path", "Notes", "Owner"]
        assert await sink.column_count("Files") == 4
        assert await sink.read_rows("Files", 2) == [[1, "X/a", "n", "me"]]

    @pytest.mark.asyncio
    async def test_cells(self, sink):
        await sink.get_or_create_sheet("S", ["A"])
        await sink.set_cell("S", 2, 1, "v")
        assert await sink.get_cell("S", 2, 1) == "v"
        assert await sink.get_cell("S", 5, 5) == ""

    @pytest.mark.asyncio
    async def test_links(self, sink):
        await sink.get_or_create_sheet("S", ["SlNo", "File Name"])
        await sink.write_rows("S", 2, [[1, "a.txt"]])
        await sink.set_links("S", [CellLink(row=2, column=2, text="a.txt", url="memory://a")])
        assert await sink.get_link("S", 2, 2) == "memory://a"
        assert await sink.get_cell("S", 2, 2) == "a.txt"
        assert await sink.get_link("S", 2, 1) is None

    @pytest.mark.asyncio
    async def test_rename_and_delete(self, sink):
        await sink.get_or_create_sheet("Files", ["A"])
        await sink.rename_sheet("Files", backup_name_for("Files"))
        assert not await sink.sheet_exists("Files")
        assert await sink.sheet_exists("Files~prev")
        await sink.delete_sheet("Files~prev")
        await sink.delete_sheet("Files~prev")
        assert not await sink.sheet_exists("Files~prev")

    @pytest.mark.asyncio
    async def test_rename_onto_existing_fails(self, sink):
        await sink.get_or_create_sheet("A", ["x"])
        await sink.get_or_create_sheet("B", ["x"])
        with pytest.raises(ValueError):
            await sink.rename_sheet("A", "B")

    @pytest.mark.asyncio
    async def test_missing_sheet(self, sink):
        with pytest.raises(SheetNotFoundError):
            await sink.write_rows("missing", 2, [[1]])


class TestXlsxSink:
    @pytest.mark.asyncio
    async def test_persisted_and_reloadable(self, tmp_path):
        path = tmp_path / "out.xlsx"
        sink = XlsxSink(path)
        await sink.get_or_create_sheet("Files", ["SlNo", "File Name"])
        await sink.write_rows("Files", 2, [[1, "a.txt"]])
        await sink.set_links("Files", [CellLink(2, 2, "a.txt", "file:///tmp/a.txt")])

        reopened = XlsxSink(path)
        assert await reopened.read_rows("Files", 2) == [[1, "a.txt"]]
        assert await reopened.get_link("Files", 2, 2) == "file:///tmp/a.txt"
        assert load_workbook(path).sheetnames == ["Files"]

    @pytest.mark.asyncio
    async def test_deleting_last_sheet_removes_file(self, tmp_path):
        path = tmp_path / "out.xlsx"
        sink = XlsxSink(path)
        await sink.get_or_create_sheet("Files", ["A"])
        await sink.delete_sheet("Files")
        assert not path.exists()

    @pytest.mark.asyncio
    async def test_control_characters_stripped(self, tmp_path):
        path = tmp_path / "out.xlsx"
        sink = XlsxSink(path)
        await sink.get_or_create_sheet("Files", ["SlNo", "File\x07 Name"])
        await sink.write_rows("Files", 2, [[1, "bad\x1bname.txt"], [2, "ok.txt"]])
        await sink.set_links(
            "Files", [CellLink(2, 2, "bad\x1bname.txt", "file:///tmp/bad\x1bname.txt")],
        )
        await sink.set_cell("Files", 3, 3, "note\x00")
        await sink.append_columns("Files", ["Tags\x0b"])

        reopened = XlsxSink(path)
        assert await reopened.get_header("Files") == ["SlNo", "File Name", "", "Tags"]
        assert await reopened.read_rows("Files", 2) == [
            [1, "badname.txt", "", ""], [2, "ok.txt", "note", ""],
        ]
        assert await reopened.get_link("Files", 2, 2) == "file:///tmp/badname.txt"

    @pytest.mark.asyncio
    async def test_batch_saves_once(self, tmp_path):
        sink = XlsxSink(tmp_path / "out.xlsx")
        await sink.get_or_create_sheet("Files", ["SlNo", "File Name"])
        with patch.object(sink, "_write", wraps=sink._write) as write:
            async with sink.batch():
                await sink.write_rows("Files", 2, [[1, "a.txt"]])
                async with sink.batch():
                    await sink.set_links("Files", [CellLink(2, 2, "a.txt", "file:///a")])
                assert write.call_count == 0
            assert write.call_count == 1

            await sink.write_rows("Files", 3, [[2, "b.txt"]])
            assert write.call_count == 2

        reopened = XlsxSink(tmp_path / "out.xlsx")
        assert await reopened.row_count("Files") == 3
        assert await reopened.get_link("Files", 2, 2) == "file:///a"

    @pytest.mark.asyncio
    async def test_batch_without_changes_does_not_save(self, tmp_path):
        sink = XlsxSink(tmp_path / "out.xlsx")
        async with sink.batch():
            assert not await sink.sheet_exists("Files")
        assert not (tmp_path / "out.xlsx").exists()


class TestSheetTitle:
    def test_valid(self):
        assert validate_sheet_title("Inventory", reserve=5) == []

    def test_too_long_with_reserve(self):
        assert validate_sheet_title("x" * 27, reserve=5)
        assert validate_sheet_title("x" * 26, reserve=5) == []

    def test_invalid_characters(self):
        problems = validate_sheet_title("a/b:c")
        assert len(problems) == 1
        assert "invalid characters" in problems[0]


class TestSinkFactory:
    def test_memory(self):
        assert isinstance(create_sink(Settings(_env_file=None, output_sink="memory")), MemorySink)

    def test_xlsx(self, tmp_path):
        settings = Settings(_env_file=None, output_path=tmp_path / "w.xlsx")
        assert isinstance(create_sink(settings), XlsxSink)
