# src/logging/status_sink.py — v1
"""Append-only status records (timestamp, level, job, phase, message, detail).

Status records are fire-and-forget: emit_status() never lets a sink failure
reach the caller.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field

from treescan.core.models import utc_now

logger = logging.getLogger(__name__)

StatusLevel = Literal["INFO", "WARNING", "ERROR"]


class StatusRecord(BaseModel):
    """One structured status entry."""

    timestamp: datetime = Field(default_factory=utc_now)
    level: StatusLevel = "INFO"
    job: str = ""
    phase: str = ""
    message: str
    detail: dict[str, Any] = Field(default_factory=dict)


class BaseStatusSink(ABC):
    """Destination for status records."""

    @abstractmethod
    async def append(self, record: StatusRecord) -> None:
        """Append one record."""


class LoggingStatusSink(BaseStatusSink):
    """Forward records to the treescan logger (picked up by JsonFormatter)."""

    _LEVELS = {"INFO": logging.INFO, "WARNING": logging.WARNING, "ERROR": logging.ERROR}

    def __init__(self, name: str = "treescan.status") -> None:
        self._logger = logging.getLogger(name)

    async def append(self, record: StatusRecord) -> None:
        self._logger.log(
            self._LEVELS[record.level],
            "%s: %s",
            record.job or "-",
            record.message,
            extra={"data": record.model_dump(mode="json")},
        )


class JsonlStatusSink(BaseStatusSink):
    """Append records as JSON lines to a file."""

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path).expanduser()
        self._path.parent.mkdir(parents=True, exist_ok=True)

    async def append(self, record: StatusRecord) -> None:
        with self._path.open("a", encoding="utf-8") as f:
            f.write(record.model_dump_json() + "\n")

    def read_all(self) -> list[StatusRecord]:
        if not self._path.exists():
            return []
        return [
            StatusRecord(**json.loads(line))
            for line in self._path.read_text(encoding="utf-8").splitlines()
            if line.strip()
        ]


class MemoryStatusSink(BaseStatusSink):
    """Keep records in a list (tests)."""

    def __init__(self) -> None:
        self.records: list[StatusRecord] = []

    async def append(self, record: StatusRecord) -> None:
        self.records.append(record)


async def emit_status(
    sink: BaseStatusSink | None,
    message: str,
    *,
    level: StatusLevel = "INFO",
    job: str = "",
    phase: str = "",
    detail: dict[str, Any] | None = None,
) -> None:
    """Build and append a StatusRecord, ignoring sink failures."""
    if sink is None:
        return
    record = StatusRecord(
        level=level, job=job, phase=phase, message=message, detail=detail or {},
    )
    try:
        await sink.append(record)
    except Exception as e:  # noqa: BLE001
        logger.debug("Status sink append failed (ignored): %s", e)
