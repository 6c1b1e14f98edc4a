# src/checkpoint/repository.py — v1
"""Typed access to job checkpoints stored in a key-value store.

A checkpoint is one JSON document per job under "<prefix>:checkpoint:<job>".
Documents written by another schema version, or that no longer validate,
are deleted on load: the job then has to be started again.
"""

from __future__ import annotations

import logging

from pydantic import ValidationError

from treescan.checkpoint.base_store import BaseKeyValueStore
from treescan.core.models import CHECKPOINT_SCHEMA_VERSION, JobCheckpoint

logger = logging.getLogger(__name__)


class CheckpointCorruptError(Exception):
    """Stored checkpoint cannot be used by this version."""


class CheckpointRepository:
    """Load, save and delete JobCheckpoint documents."""

    def __init__(self, store: BaseKeyValueStore, prefix: str = "treescan") -> None:
        self._store = store
        self._key_prefix = f"{prefix}:checkpoint:"

    def key_for(self, job_name: str) -> str:
        return f"{self._key_prefix}{job_name}"

    async def load(self, job_name: str) -> JobCheckpoint | None:
        """Return the job's checkpoint, or None if absent or reset."""
        raw = await self._store.get(self.key_for(job_name))
        if raw is None:
            return None
        try:
            return self._decode(raw)
        except CheckpointCorruptError as e:
            logger.warning("Resetting checkpoint for job '%s': %s", job_name, e)
            await self.delete(job_name)
            return None

    async def save(self, checkpoint: JobCheckpoint) -> None:
        await self._store.set(
            self.key_for(checkpoint.job_name), checkpoint.model_dump_json()
        )

    async def delete(self, job_name: str) -> None:
        await self._store.delete(self.key_for(job_name))

    async def job_names(self) -> list[str]:
        """Names of all jobs that currently have a checkpoint (i.e. not DONE)."""
        keys = await self._store.list_keys(self._key_prefix)
        return [k[len(self._key_prefix):] for k in keys]

    @staticmethod
    def _decode(raw: str) -> JobCheckpoint:
        try:
            checkpoint = JobCheckpoint.model_validate_json(raw)
        except ValidationError as e:
            raise CheckpointCorruptError(f"invalid document: {e.error_count()} errors") from e
        if checkpoint.schema_version != CHECKPOINT_SCHEMA_VERSION:
            raise CheckpointCorruptError(
                f"schema_version {checkpoint.schema_version} != {CHECKPOINT_SCHEMA_VERSION}"
            )
        return checkpoint
