# src/scheduler/registry.py — v1
"""Job registry — ordered list of active job names.

Persisted as one JSON array under "<prefix>:registry" so that every slice,
possibly in a new process, sees the same FIFO order. The head is the job
the scheduler works on.
"""

from __future__ import annotations

import json
import logging

from treescan.checkpoint.base_store import BaseKeyValueStore

logger = logging.getLogger(__name__)


class JobRegistry:
    """FIFO list of job names stored in a key-value store."""

    def __init__(self, store: BaseKeyValueStore, prefix: str = "treescan") -> None:
        self._store = store
        self._key = f"{prefix}:registry"

    async def list(self) -> list[str]:
        raw = await self._store.get(self._key)
        if raw is None:
            return []
        try:
            names = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Job registry is not valid JSON, treating as empty")
            return []
        if not isinstance(names, list):
            logger.warning("Job registry has unexpected type %s, treating as empty", type(names).__name__)
            return []
        return [str(n) for n in names]

    async def add(self, job_name: str) -> None:
        """Append a job; a job already registered keeps its position."""
        names = await self.list()
        if job_name in names:
            return
        names.append(job_name)
        await self._write(names)

    async def remove(self, job_name: str) -> None:
        names = await self.list()
        if job_name not in names:
            return
        await self._write([n for n in names if n != job_name])

    async def current(self) -> str | None:
        """Head of the registry, or None when no job is active."""
        names = await self.list()
        return names[0] if names else None

    async def clear(self) -> None:
        await self._store.delete(self._key)

    async def _write(self, names: list[str]) -> None:
        if names:
            await self._store.set(self._key, json.dumps(names))
        else:
            await self._store.delete(self._key)
