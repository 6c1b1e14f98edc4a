# src/scheduler/trigger.py — v1
"""Delayed re-invocation triggers.

A trigger is a request to run the next slice at or after fire_at. The
scheduler keeps at most one pending trigger: ensure_single() removes every
existing trigger before scheduling a new one.
"""

from __future__ import annotations

import logging
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timedelta

from pydantic import BaseModel, ValidationError

from treescan.checkpoint.base_store import BaseKeyValueStore
from treescan.core.models import utc_now

logger = logging.getLogger(__name__)


class PendingTrigger(BaseModel):
    """A scheduled slice invocation."""

    trigger_id: str
    fire_at: datetime
    created_at: datetime

    def is_due(self, now: datetime | None = None) -> bool:
        return (now or utc_now()) >= self.fire_at


class BaseTrigger(ABC):
    """Abstract time-based trigger facility."""

    @abstractmethod
    async def schedule(self, delay_s: float) -> PendingTrigger:
        """Request a slice run delay_s seconds from now."""

    @abstractmethod
    async def list_pending(self) -> list[PendingTrigger]:
        """Pending triggers sorted by fire time."""

    @abstractmethod
    async def delete(self, trigger_id: str) -> None:
        """Remove one trigger. Unknown ids are ignored."""

    async def clear(self) -> None:
        """Remove every pending trigger."""
        for trigger in await self.list_pending():
            await self.delete(trigger.trigger_id)

    async def ensure_single(self, delay_s: float) -> PendingTrigger:
        """Replace all pending triggers by exactly one."""
        await self.clear()
        return await self.schedule(delay_s)


class StoreTrigger(BaseTrigger):
    """Triggers persisted as "<prefix>:trigger:<id>" documents.

    A host process (cron, systemd timer or `treescan run`) polls
    list_pending() and runs a slice when the head trigger is due.
    """

    def __init__(self, store: BaseKeyValueStore, prefix: str = "treescan") -> None:
        self._store = store
        self._key_prefix = f"{prefix}:trigger:"

    async def schedule(self, delay_s: float) -> PendingTrigger:
        now = utc_now()
        trigger = PendingTrigger(
            trigger_id=uuid.uuid4().hex[:12],
            fire_at=now + timedelta(seconds=max(0.0, delay_s)),
            created_at=now,
        )
        await self._store.set(self._key_prefix + trigger.trigger_id, trigger.model_dump_json())
        logger.debug("Scheduled trigger %s at %s", trigger.trigger_id, trigger.fire_at.isoformat())
        return trigger

    async def list_pending(self) -> list[PendingTrigger]:
        pending: list[PendingTrigger] = []
        for key in await self._store.list_keys(self._key_prefix):
            raw = await self._store.get(key)
            if raw is None:
                continue
            try:
                pending.append(PendingTrigger.model_validate_json(raw))
            except ValidationError:
                logger.warning("Dropping unreadable trigger %s", key)
                await self._store.delete(key)
        return sorted(pending, key=lambda t: t.fire_at)

    async def delete(self, trigger_id: str) -> None:
        await self._store.delete(self._key_prefix + trigger_id)
