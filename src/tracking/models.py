# src/tracking/models.py — v1
"""Tracking domain models: per-job status snapshots."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel

JobState = Literal["RUNNING", "DONE"]


class JobStatus(BaseModel):
    """Last known progress of one job, as shown to an operator."""

    job_name: str
    output_name: str = ""
    state: JobState = "RUNNING"
    phase: str = ""
    processed_count: int = 0
    queue_depth: int = 0
    elapsed_seconds: float = 0.0
    text: str = ""
    updated_at: datetime
    finished_at: datetime | None = None
