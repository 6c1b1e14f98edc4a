# src/logging/context.py — v1
"""Contextual logging support — attach job, phase and slice_id to log records."""

from __future__ import annotations

import contextvars
from dataclasses import dataclass
from typing import Any

# Context variables for structured logging — set per slice and per job.
_slice_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "slice_id", default=None
)
_job: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "job", default=None
)
_phase: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "phase", default=None
)


@dataclass
class LogContext:
    """Snapshot of current logging context."""

    slice_id: str | None = None
    job: str | None = None
    phase: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(
        slice_id=_slice_id.get(),
        job=_job.get(),
        phase=_phase.get(),
    )


def set_slice_context(slice_id: str) -> None:
    """Set slice-level context (called once per scheduling slice)."""
    _slice_id.set(slice_id)


def set_job_context(job: str | None, phase: str | None = None) -> None:
    """Set job-level context (called whenever the worked job or phase changes)."""
    _job.set(job)
    _phase.set(phase)


def clear_context() -> None:
    """Reset all context variables."""
    _slice_id.set(None)
    _job.set(None)
    _phase.set(None)
