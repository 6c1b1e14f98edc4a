# src/checkpoint/base_store.py — v1
"""Abstract durable key-value store interface.

Values are opaque strings (JSON documents in practice). Implementations must
survive process restarts, except MemoryKeyValueStore.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class BaseKeyValueStore(ABC):
    """Unified interface for key-value storage backends."""

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """Return the stored value, or None if absent."""

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        """Store a value, replacing any previous one."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove a key. Missing keys are ignored."""

    @abstractmethod
    async def list_keys(self, prefix: str = "") -> list[str]:
        """List all keys starting with prefix, sorted."""

    def close(self) -> None:
        """Release backend resources (no-op by default)."""
