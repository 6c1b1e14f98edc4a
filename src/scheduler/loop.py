# src/scheduler/loop.py — v1
"""Trigger-driven slice loop for hosts without an external timer.

Consumes pending triggers in fire-time order: waits until the head trigger
is due, deletes it, then runs one slice (which schedules the follow-up
trigger while jobs remain). Stops when no trigger is pending.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

from treescan.core.models import utc_now

if TYPE_CHECKING:
    from treescan.scheduler.slice_scheduler import SliceReport, SliceScheduler
    from treescan.scheduler.trigger import BaseTrigger

logger = logging.getLogger(__name__)


async def run_until_idle(
    scheduler: SliceScheduler,
    trigger: BaseTrigger,
    *,
    max_slices: int | None = None,
    wait: bool = True,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> list[SliceReport]:
    """Run slices until no trigger is pending.

    Args:
        scheduler: Slice scheduler sharing trigger.
        trigger: Trigger facility to poll.
        max_slices: Optional cap on the number of slices.
        wait: Honour trigger fire times; False runs due or not.
        sleep: Awaitable sleep (injectable for tests).

    Returns:
        Reports of every slice run, in order.
    """
    reports: list[SliceReport] = []
    while max_slices is None or len(reports) < max_slices:
        pending = await trigger.list_pending()
        if not pending:
            break
        head = pending[0]
        if wait and not head.is_due():
            delay = (head.fire_at - utc_now()).total_seconds()
            logger.info("Next slice in %.0fs", delay)
            await sleep(max(0.0, delay))
            continue
        await trigger.delete(head.trigger_id)
        reports.append(await scheduler.run_slice())

    logger.info("Slice loop finished after %d slices", len(reports))
    return reports
