# src/tracking/status.py — v1
"""Per-job running and terminal status.

Running status is refreshed at most every interval_s seconds per job; the
timestamp of the last refresh lives on the checkpoint so the bound holds
across slices. Status snapshots are stored under "<prefix>:status:<job>" and
outlive the checkpoint, so finished jobs stay visible to `treescan status`.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime

from pydantic import ValidationError

from treescan.checkpoint.base_store import BaseKeyValueStore
from treescan.core.models import JobCheckpoint, utc_now
from treescan.tracking.models import JobStatus

logger = logging.getLogger(__name__)

DEFAULT_STATUS_INTERVAL_S = 30.0


def format_duration(seconds: float) -> str:
    """Format seconds as H:MM:SS."""
    total = max(0, int(seconds))
    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)
    return f"{hours}:{minutes:02d}:{secs:02d}"


def format_running_status(processed: int, queue_depth: int, elapsed_s: float) -> str:
    return (
        f"Running: {processed:,} items processed, "
        f"{queue_depth:,} folders queued, {format_duration(elapsed_s)} elapsed"
    )


def format_terminal_status(processed: int, duration_s: float) -> str:
    return f"Done: {processed:,} items in {format_duration(duration_s)}"


def format_status_table(statuses: list[JobStatus]) -> str:
    """Human-readable table of job statuses, one line per job."""
    if not statuses:
        return "No jobs."
    lines: list[str] = [
        f"{'JOB':20s} | {'STATE':7s} | {'PHASE':10s} | {'ITEMS':>9s} | {'QUEUE':>7s} | ELAPSED",
    ]
    for status in sorted(statuses, key=lambda s: s.job_name):
        lines.append(
            f"{status.job_name:20s} | {status.state:7s} | {status.phase or '-':10s} | "
            f"{status.processed_count:9,} | {status.queue_depth:7,} | "
            f"{format_duration(status.elapsed_seconds)}"
        )
    return "\n".join(lines)


class StatusReporter:
    """Persist JobStatus snapshots in a key-value store.

    Args:
        store: Backing key-value store.
        prefix: Key namespace.
        interval_s: Minimum seconds between running-status refreshes.
        now: Wall-clock source (injectable for tests).
    """

    def __init__(
        self,
        store: BaseKeyValueStore,
        prefix: str = "treescan",
        interval_s: float = DEFAULT_STATUS_INTERVAL_S,
        now: Callable[[], datetime] = utc_now,
    ) -> None:
        self._store = store
        self._key_prefix = f"{prefix}:status:"
        self._interval_s = interval_s
        self._now = now

    def key_for(self, job_name: str) -> str:
        return f"{self._key_prefix}{job_name}"

    async def maybe_update(self, checkpoint: JobCheckpoint, force: bool = False) -> bool:
        """Refresh the running status if the interval has passed.

        Returns True if a new snapshot was written. The checkpoint's
        status_text and status_updated_at are updated in place; the caller
        persists the checkpoint.
        """
        now = self._now()
        last = checkpoint.status_updated_at
        if not force and last is not None and (now - last).total_seconds() < self._interval_s:
            return False

        elapsed = (now - checkpoint.started_at).total_seconds()
        text = format_running_status(checkpoint.processed_count, len(checkpoint.queue), elapsed)
        checkpoint.status_text = text
        checkpoint.status_updated_at = now
        await self._write(
            JobStatus(
                job_name=checkpoint.job_name,
                output_name=checkpoint.output_name,
                state="RUNNING",
                phase=checkpoint.phase.value,
                processed_count=checkpoint.processed_count,
                queue_depth=len(checkpoint.queue),
                elapsed_seconds=elapsed,
                text=text,
                updated_at=now,
            )
        )
        return True

    async def complete(self, checkpoint: JobCheckpoint) -> JobStatus:
        """Record the terminal status of a job."""
        now = self._now()
        duration = (now - checkpoint.started_at).total_seconds()
        text = format_terminal_status(checkpoint.processed_count, duration)
        status = JobStatus(
            job_name=checkpoint.job_name,
            output_name=checkpoint.output_name,
            state="DONE",
            phase="DONE",
            processed_count=checkpoint.processed_count,
            queue_depth=0,
            elapsed_seconds=duration,
            text=text,
            updated_at=now,
            finished_at=now,
        )
        checkpoint.status_text = text
        checkpoint.status_updated_at = now
        await self._write(status)
        logger.info("Job '%s' %s", checkpoint.job_name, text)
        return status

    async def get(self, job_name: str) -> JobStatus | None:
        raw = await self._store.get(self.key_for(job_name))
        if raw is None:
            return None
        try:
            return JobStatus.model_validate_json(raw)
        except ValidationError:
            logger.warning("Ignoring unreadable status for job '%s'", job_name)
            return None

    async def list_statuses(self) -> list[JobStatus]:
        statuses: list[JobStatus] = []
        for key in await self._store.list_keys(self._key_prefix):
            status = await self.get(key[len(self._key_prefix):])
            if status is not None:
                statuses.append(status)
        return statuses

    async def delete(self, job_name: str) -> None:
        await self._store.delete(self.key_for(job_name))

    async def clear(self) -> None:
        for key in await self._store.list_keys(self._key_prefix):
            await self._store.delete(key)

    async def _write(self, status: JobStatus) -> None:
        await self._store.set(self.key_for(status.job_name), status.model_dump_json())
