# src/core/identity.py — v1
"""Identity keys used to match prior-output rows to freshly scanned rows.

A reference id column, when both sides carry it, is the whole key. Otherwise
a composite of path-like columns joined by KEY_SEPARATOR is used; composites
can drift when entities are renamed or moved between runs.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from treescan.core.models import ScanMode
from treescan.core.schema import (
    COL_EXTENSION,
    COL_FILE_NAME,
    COL_NAME,
    COL_PATH,
    COL_TYPE,
    ID_COLUMN,
)

KEY_SEPARATOR = "||"

# Candidate composite fields per mode, in key order. A tuple entry means
# "first of these columns present".
_COMPOSITE_FIELDS: dict[ScanMode, list[str | tuple[str, ...]]] = {
    ScanMode.FILES: [COL_PATH, (COL_FILE_NAME, COL_NAME), COL_EXTENSION],
    ScanMode.FOLDERS: [COL_PATH],
    ScanMode.BOTH: [COL_PATH, COL_NAME, COL_TYPE, COL_EXTENSION],
}


def _cell_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


@dataclass(frozen=True)
class KeyRule:
    """Which columns make up the identity key for a given pair of headers."""

    mode: ScanMode
    id_column: str | None
    composite_columns: tuple[str, ...]

    @classmethod
    def for_header(cls, mode: ScanMode, header: Sequence[str]) -> KeyRule:
        """Rule for a single row set."""
        return cls.for_headers(mode, header, header)

    @classmethod
    def for_headers(
        cls,
        mode: ScanMode,
        prior_header: Sequence[str],
        new_header: Sequence[str],
    ) -> KeyRule:
        """Rule usable on both sides of a merge.

        Only columns present in both headers participate, so keys built on
        either side are comparable.
        """
        shared = set(prior_header) & set(new_header)
        id_col = ID_COLUMN[mode]
        composite: list[str] = []
        for entry in _COMPOSITE_FIELDS[mode]:
            options = entry if isinstance(entry, tuple) else (entry,)
            for col in options:
                if col in shared:
                    composite.append(col)
                    break
        return cls(
            mode=mode,
            id_column=id_col if id_col in shared else None,
            composite_columns=tuple(composite),
        )

    def key(self, row: Mapping[str, Any]) -> str:
        """Identity key for one row (given as column → value)."""
        if self.id_column is not None:
            ref_id = _cell_text(row.get(self.id_column))
            if ref_id:
                return ref_id
        return composite_key([row.get(col) for col in self.composite_columns])


def composite_key(parts: Sequence[Any]) -> str:
    return KEY_SEPARATOR.join(_cell_text(p) for p in parts)


def identity_key(row: Mapping[str, Any], mode: ScanMode) -> str:
    """Identity key of a row using only the columns the row itself carries."""
    return KeyRule.for_header(mode, list(row.keys())).key(row)
