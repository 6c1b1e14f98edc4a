# src/core/models.py — v1
"""Shared Pydantic domain models used across modules.

No module redefines these types — all imports come from core.models.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field

CHECKPOINT_SCHEMA_VERSION = 1


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# === ENUMS ===


class ScanMode(str, Enum):
    """What a job emits rows for."""

    FILES = "FILES"
    FOLDERS = "FOLDERS"
    BOTH = "BOTH"


class JobPhase(str, Enum):
    """Lifecycle phase of a job. DONE is never persisted (checkpoint absent)."""

    SCANNING = "SCANNING"
    MERGE_BACK = "MERGE_BACK"
    DONE = "DONE"


# === TRAVERSAL ===


class QueueNode(BaseModel):
    """A container waiting to be expanded."""

    node_ref: str
    path: str
    depth: int = Field(ge=1)
    deferrals: int = 0


class ResultRow(BaseModel):
    """One emitted record, before it is mapped onto the output schema."""

    kind: Literal["file", "folder"]
    ref_id: str
    name: str
    path: str
    parent_path: str = ""
    depth: int = 1
    mime_type: str = ""
    extension: str = ""
    created: str = ""
    modified: str = ""
    url: str = ""
    file_count: int | None = None
    folder_count: int | None = None


# === JOBS ===


class JobConfig(BaseModel):
    """User-supplied description of one traversal job."""

    job_name: str
    root_id: str
    mode: ScanMode = ScanMode.FILES
    depth_limit: int = 0
    output_name: str
    include_location_column: bool = False

    def same_traversal(self, checkpoint: JobCheckpoint) -> bool:
        """True if an existing checkpoint was started for this exact traversal."""
        return (
            checkpoint.root_id == self.root_id
            and checkpoint.mode == self.mode
            and checkpoint.depth_limit == self.depth_limit
            and checkpoint.output_name == self.output_name
            and checkpoint.include_location_column == self.include_location_column
        )


class JobCheckpoint(BaseModel):
    """Durable, resumable progress record for one job.

    Written as a single document after every step, so the queue, the pending
    buffer and the cursors always move together.
    """

    schema_version: int = CHECKPOINT_SCHEMA_VERSION

    # === IDENTITY ===
    job_name: str
    root_id: str
    mode: ScanMode
    depth_limit: int = 0
    output_name: str
    prior_output_name: str | None = None
    include_location_column: bool = False

    # === TRAVERSAL STATE ===
    phase: JobPhase = JobPhase.SCANNING
    queue: list[QueueNode] = Field(default_factory=list)
    pending_rows: list[ResultRow] = Field(default_factory=list)
    write_cursor: int = 2
    next_sequence_no: int = 1

    # === STATS ===
    processed_count: int = 0
    started_at: datetime = Field(default_factory=utc_now)
    last_activity_at: datetime = Field(default_factory=utc_now)
    status_text: str = ""
    status_updated_at: datetime | None = None

    @classmethod
    def start(cls, config: JobConfig, root_path: str, prior_output_name: str | None) -> JobCheckpoint:
        """Fresh checkpoint with the root node queued at depth 1."""
        return cls(
            job_name=config.job_name,
            root_id=config.root_id,
            mode=config.mode,
            depth_limit=config.depth_limit,
            output_name=config.output_name,
            prior_output_name=prior_output_name,
            include_location_column=config.include_location_column,
            queue=[QueueNode(node_ref=config.root_id, path=root_path, depth=1)],
        )

    def can_descend(self, depth: int) -> bool:
        return self.depth_limit == 0 or depth < self.depth_limit

    def scan_exhausted(self) -> bool:
        return not self.queue and not self.pending_rows

    def touch(self) -> None:
        self.last_activity_at = utc_now()

    def elapsed_seconds(self) -> float:
        return (utc_now() - self.started_at).total_seconds()
