# src/checkpoint/json_store.py — v1
"""JSON file-based key-value store (default CHECKPOINT_BACKEND=json).

Stores each key as an individual file under CHECKPOINT_ROOT. Writes go to a
temporary file first and are moved into place, so a document is either the
old or the new version, never a torn mix.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from urllib.parse import quote, unquote

from treescan.checkpoint.base_store import BaseKeyValueStore

logger = logging.getLogger(__name__)

_SUFFIX = ".json"


class JsonKeyValueStore(BaseKeyValueStore):
    """File-per-key store using JSON documents."""

    def __init__(self, root: Path | str) -> None:
        self._root = Path(root).expanduser()
        self._root.mkdir(parents=True, exist_ok=True)

    async def get(self, key: str) -> str | None:
        """Retrieve the document stored under key."""
        path = self._entry_path(key)
        if not path.exists():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except OSError as e:
            logger.warning("Failed to read key %s: %s", key, e)
            return None

    async def set(self, key: str, value: str) -> None:
        """Store a document (atomic replace)."""
        path = self._entry_path(key)
        tmp = path.with_name(path.name + ".tmp")
        tmp.write_text(value, encoding="utf-8")
        os.replace(tmp, path)

    async def delete(self, key: str) -> None:
        """Remove a document."""
        path = self._entry_path(key)
        if path.exists():
            path.unlink()

    async def list_keys(self, prefix: str = "") -> list[str]:
        """List all stored keys with the given prefix."""
        if not self._root.is_dir():
            return []
        keys = [
            unquote(path.name[: -len(_SUFFIX)])
            for path in self._root.glob(f"*{_SUFFIX}")
        ]
        return sorted(k for k in keys if k.startswith(prefix))

    def _entry_path(self, key: str) -> Path:
        """Return file path for a key."""
        return self._root / f"{quote(key, safe='')}{_SUFFIX}"
