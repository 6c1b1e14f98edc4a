# src/core/schema.py — v1
"""Output column layout per scan mode and ResultRow → cell values mapping."""

from __future__ import annotations

from typing import Any

from treescan.core.models import ResultRow, ScanMode

# Column names shared across modes
COL_SEQ = "SlNo"
COL_PATH = "Path"
COL_NAME = "Name"
COL_FILE_NAME = "File Name"
COL_FOLDER_NAME = "Folder Name"
COL_TYPE = "Type"
COL_EXTENSION = "Extension"
COL_MIME = "MIME Type"
COL_ID = "ID"
COL_FILE_ID = "File ID"
COL_FOLDER_ID = "Folder ID"
COL_DEPTH = "Depth"
COL_FILES = "Files"
COL_SUBFOLDERS = "Subfolders"
COL_CREATED = "Created"
COL_MODIFIED = "Modified"
COL_URL = "URL"
COL_LOCATION = "Location"

TYPE_FILE = "File"
TYPE_FOLDER = "Folder"

BASE_COLUMNS: dict[ScanMode, list[str]] = {
    ScanMode.FILES: [
        COL_SEQ, COL_PATH, COL_FILE_NAME, COL_EXTENSION, COL_MIME,
        COL_FILE_ID, COL_CREATED, COL_MODIFIED, COL_URL,
    ],
    ScanMode.FOLDERS: [
        COL_SEQ, COL_PATH, COL_FOLDER_NAME, COL_FOLDER_ID, COL_DEPTH,
        COL_FILES, COL_SUBFOLDERS, COL_CREATED, COL_MODIFIED, COL_URL,
    ],
    ScanMode.BOTH: [
        COL_SEQ, COL_PATH, COL_NAME, COL_TYPE, COL_EXTENSION, COL_ID,
        COL_DEPTH, COL_MIME, COL_CREATED, COL_MODIFIED, COL_URL,
    ],
}

# Column that receives the clickable reference on flush
LINK_COLUMN: dict[ScanMode, str] = {
    ScanMode.FILES: COL_FILE_NAME,
    ScanMode.FOLDERS: COL_PATH,
    ScanMode.BOTH: COL_NAME,
}

ID_COLUMN: dict[ScanMode, str] = {
    ScanMode.FILES: COL_FILE_ID,
    ScanMode.FOLDERS: COL_FOLDER_ID,
    ScanMode.BOTH: COL_ID,
}


def output_columns(mode: ScanMode, include_location: bool = False) -> list[str]:
    """Full header for a fresh output of the given mode."""
    columns = list(BASE_COLUMNS[mode])
    if include_location:
        columns.append(COL_LOCATION)
    return columns


def reserved_columns(mode: ScanMode) -> set[str]:
    """Columns owned by the engine; everything else in an output is auxiliary."""
    return set(BASE_COLUMNS[mode]) | {COL_LOCATION, COL_URL}


def split_extension(name: str) -> str:
    """Lower-cased text after the last dot, or "" (a leading dot alone does not count)."""
    stem = name.lstrip(".")
    if "." not in stem:
        return ""
    return stem.rsplit(".", 1)[1].lower()


def join_path(parent: str, name: str) -> str:
    return f"{parent}/{name}" if parent else name


def row_values(
    row: ResultRow,
    mode: ScanMode,
    sequence_no: int,
    include_location: bool = False,
) -> list[Any]:
    """Map a ResultRow onto the column order of output_columns()."""
    fields: dict[str, Any] = {
        COL_SEQ: sequence_no,
        COL_PATH: row.path,
        COL_CREATED: row.created,
        COL_MODIFIED: row.modified,
        COL_URL: row.url,
        COL_LOCATION: row.parent_path,
        COL_EXTENSION: row.extension,
        COL_MIME: row.mime_type,
        COL_DEPTH: row.depth,
    }
    if mode is ScanMode.FILES:
        fields[COL_FILE_NAME] = row.name
        fields[COL_FILE_ID] = row.ref_id
    elif mode is ScanMode.FOLDERS:
        fields[COL_FOLDER_NAME] = row.name
        fields[COL_FOLDER_ID] = row.ref_id
        fields[COL_FILES] = row.file_count if row.file_count is not None else 0
        fields[COL_SUBFOLDERS] = row.folder_count if row.folder_count is not None else 0
    else:
        fields[COL_NAME] = row.name
        fields[COL_ID] = row.ref_id
        fields[COL_TYPE] = TYPE_FOLDER if row.kind == "folder" else TYPE_FILE

    return [fields.get(col, "") for col in output_columns(mode, include_location)]


def link_text(row: ResultRow, mode: ScanMode) -> str:
    """Display text of the link column for this row."""
    return row.path if LINK_COLUMN[mode] == COL_PATH else row.name
