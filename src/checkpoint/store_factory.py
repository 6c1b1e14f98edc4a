# src/checkpoint/store_factory.py — v1
"""Factory for key-value store instantiation."""

from __future__ import annotations

from treescan.checkpoint.base_store import BaseKeyValueStore
from treescan.config.settings import Settings


def create_store(settings: Settings | None = None) -> BaseKeyValueStore:
    """Instantiate the configured checkpoint backend.

    Args:
        settings: Application settings. Defaults to JSON backend.

    Returns:
        Configured BaseKeyValueStore implementation.
    """
    backend = "json" if settings is None else settings.checkpoint_backend
    root = "output/.treescan" if settings is None else str(settings.checkpoint_root)

    if backend == "json":
        from treescan.checkpoint.json_store import JsonKeyValueStore
        return JsonKeyValueStore(root=root)

    if backend == "sqlite":
        from treescan.checkpoint.sqlite_store import SqliteKeyValueStore
        return SqliteKeyValueStore(db_path=f"{root}/treescan_state.db")

    if backend == "redis":
        from treescan.checkpoint.redis_store import RedisKeyValueStore
        if settings is None or not settings.checkpoint_redis_url:
            raise ValueError(
                "CHECKPOINT_REDIS_URL must be set when CHECKPOINT_BACKEND=redis"
            )
        return RedisKeyValueStore(redis_url=settings.checkpoint_redis_url)

    if backend == "memory":
        from treescan.checkpoint.memory_store import MemoryKeyValueStore
        return MemoryKeyValueStore()

    raise ValueError(f"Unsupported checkpoint backend: {backend!r}")
