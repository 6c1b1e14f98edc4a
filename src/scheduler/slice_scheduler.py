# src/scheduler/slice_scheduler.py — v1
"""Slice scheduler — advance the head job of the registry within a time budget.

One slice repeatedly performs a single phase step for the job at the head
of the registry:

  - SCANNING: expand one queue node (walker), or flush the remaining
    buffer once the queue is empty; switch to MERGE_BACK when both are empty.
  - MERGE_BACK: reconcile auxiliary columns, then finalize the job.

The checkpoint is saved after every step, so a slice may be cut off at
any step boundary and the next slice resumes exactly there. When a job
finishes, the next registered job is worked within the same slice.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from treescan.core.models import JobCheckpoint, JobPhase
from treescan.logging.context import (
    clear_context,
    get_context,
    set_job_context,
    set_slice_context,
)
from treescan.logging.status_sink import emit_status
from treescan.scheduler.deadline import Deadline

if TYPE_CHECKING:
    from treescan.checkpoint.repository import CheckpointRepository
    from treescan.logging.status_sink import BaseStatusSink
    from treescan.output.base_sink import BaseTabularSink
    from treescan.scan.flusher import RowFlusher
    from treescan.scan.reconciler import MergeBackReconciler
    from treescan.scan.walker import TreeWalker
    from treescan.scheduler.registry import JobRegistry
    from treescan.scheduler.trigger import BaseTrigger, PendingTrigger
    from treescan.tracking.status import StatusReporter

logger = logging.getLogger(__name__)

DEFAULT_BUDGET_S = 330.0
DEFAULT_MARGIN_S = 30.0
DEFAULT_TRIGGER_DELAY_S = 60.0

# Why a slice stopped
STOP_IDLE = "idle"
STOP_DEADLINE = "deadline"
STOP_MAX_STEPS = "max_steps"
STOP_STALLED = "stalled"


@dataclass
class SliceReport:
    """Summary of one scheduling slice."""

    slice_id: str
    steps: int = 0
    stop_reason: str = ""
    jobs_worked: list[str] = field(default_factory=list)
    jobs_completed: list[str] = field(default_factory=list)
    remaining_jobs: int = 0
    trigger: PendingTrigger | None = None
    duration_s: float = 0.0


class SliceScheduler:
    """Run bounded slices of work over the registered jobs.

    Args:
        registry: FIFO of active job names.
        repository: Checkpoint persistence.
        walker: Queue-node expander (SCANNING).
        flusher: Pending-row writer (SCANNING, final flush).
        reconciler: Auxiliary-column merge (MERGE_BACK).
        sink: Output sink, used by finalize to drop the rollover backup.
        trigger: Re-invocation facility; None disables rescheduling.
        status_reporter: Running/terminal status writer.
        status_sink: Destination of structured status records.
        budget_s: Slice budget when run_slice() is called without a deadline.
        margin_s: Safety margin subtracted from budget_s.
        trigger_delay_s: Delay of the follow-up trigger.
    """

    def __init__(
        self,
        registry: JobRegistry,
        repository: CheckpointRepository,
        walker: TreeWalker,
        flusher: RowFlusher,
        reconciler: MergeBackReconciler,
        sink: BaseTabularSink,
        trigger: BaseTrigger | None = None,
        status_reporter: StatusReporter | None = None,
        status_sink: BaseStatusSink | None = None,
        budget_s: float = DEFAULT_BUDGET_S,
        margin_s: float = DEFAULT_MARGIN_S,
        trigger_delay_s: float = DEFAULT_TRIGGER_DELAY_S,
    ) -> None:
        self._registry = registry
        self._repository = repository
        self._walker = walker
        self._flusher = flusher
        self._reconciler = reconciler
        self._sink = sink
        self._trigger = trigger
        self._status = status_reporter
        self._status_sink = status_sink
        self._budget_s = budget_s
        self._margin_s = margin_s
        self._trigger_delay_s = trigger_delay_s

    async def run_slice(
        self,
        deadline: Deadline | None = None,
        max_steps: int | None = None,
    ) -> SliceReport:
        """Work until every job is done, the deadline expires or max_steps is reached."""
        if deadline is None:
            deadline = Deadline(self._budget_s, self._margin_s)
        report = SliceReport(slice_id=uuid.uuid4().hex[:8])
        set_slice_context(report.slice_id)
        logger.info("Slice %s started (%.0fs available)", report.slice_id, deadline.remaining())

        try:
            report.stop_reason = await self._run_jobs(deadline, max_steps, report)
        except Exception as e:
            logger.error("Slice %s failed: %s", report.slice_id, e, exc_info=True)
            await emit_status(
                self._status_sink,
                f"Slice failed: {e}",
                level="ERROR",
                job=get_context().job or "",
                detail={"slice_id": report.slice_id, "error_type": type(e).__name__},
            )
            raise
        finally:
            report.duration_s = deadline.elapsed()
            await self._reschedule(report)
            logger.info(
                "Slice %s ended (%s): %d steps, %d jobs completed, %d jobs remaining, %.1fs",
                report.slice_id, report.stop_reason or "error", report.steps,
                len(report.jobs_completed), report.remaining_jobs, report.duration_s,
            )
            clear_context()
        return report

    async def _run_jobs(
        self, deadline: Deadline, max_steps: int | None, report: SliceReport,
    ) -> str:
        while True:
            job_name = await self._registry.current()
            if job_name is None:
                return STOP_IDLE
            checkpoint = await self._repository.load(job_name)
            if checkpoint is None:
                logger.warning("Job '%s' has no usable checkpoint, removing it from the registry", job_name)
                await self._registry.remove(job_name)
                continue
            if job_name not in report.jobs_worked:
                report.jobs_worked.append(job_name)

            while checkpoint.phase is not JobPhase.DONE:
                if max_steps is not None and report.steps >= max_steps:
                    return STOP_MAX_STEPS
                if deadline.expired():
                    return STOP_DEADLINE
                set_job_context(checkpoint.job_name, checkpoint.phase.value)
                progressed = await self._step(checkpoint, deadline)
                report.steps += 1
                if checkpoint.phase is JobPhase.DONE:
                    break
                await self._repository.save(checkpoint)
                if not progressed:
                    return STOP_STALLED

            await self._finish(checkpoint)
            report.jobs_completed.append(checkpoint.job_name)

    async def _step(self, checkpoint: JobCheckpoint, deadline: Deadline) -> bool:
        """Perform one phase step. Returns False if no progress was possible."""
        if checkpoint.phase is JobPhase.SCANNING:
            progressed = await self._scan_step(checkpoint, deadline)
            if self._status is not None and checkpoint.phase is JobPhase.SCANNING:
                await self._status.maybe_update(checkpoint)
            return progressed

        result = await self._reconciler.reconcile(
            checkpoint.mode, checkpoint.output_name, checkpoint.prior_output_name, deadline,
        )
        if result.skipped:
            logger.info("Merge-back skipped for '%s': %s", checkpoint.job_name, result.reason)
        else:
            logger.info(
                "Merge-back for '%s': %d/%d rows matched%s",
                checkpoint.job_name, result.rows_matched, result.rows_scanned,
                "" if result.complete else " (partial)",
            )
        await self._finalize(checkpoint, merge_complete=result.complete)
        checkpoint.phase = JobPhase.DONE
        return True

    async def _scan_step(self, checkpoint: JobCheckpoint, deadline: Deadline) -> bool:
        if checkpoint.queue:
            # A deferred node only happens at the deadline, which ends the slice
            await self._walker.step(checkpoint, deadline)
            return True

        if checkpoint.pending_rows:
            result = await self._flusher.flush(checkpoint)
            if result.failed:
                return False

        if checkpoint.scan_exhausted():
            checkpoint.phase = JobPhase.MERGE_BACK
            logger.info(
                "Scan of '%s' complete: %d items, %d rows written",
                checkpoint.job_name, checkpoint.processed_count, checkpoint.next_sequence_no - 1,
            )
            await emit_status(
                self._status_sink,
                "Scan complete, merging previous output",
                job=checkpoint.job_name,
                phase=JobPhase.MERGE_BACK.value,
                detail={"processed": checkpoint.processed_count},
            )
        return True

    async def _finalize(self, checkpoint: JobCheckpoint, merge_complete: bool = True) -> None:
        """Drop the rollover backup and record the terminal status.

        Failures are logged and never keep the job from completing.
        """
        prior = checkpoint.prior_output_name
        if prior:
            try:
                if await self._sink.sheet_exists(prior):
                    await self._sink.delete_sheet(prior)
                    logger.info("Removed previous output %r", prior)
            except Exception as e:
                logger.error("Could not remove previous output %r: %s", prior, e)

        text = checkpoint.status_text
        if self._status is not None:
            try:
                text = (await self._status.complete(checkpoint)).text
            except Exception as e:
                logger.error("Could not record final status of '%s': %s", checkpoint.job_name, e)

        await emit_status(
            self._status_sink,
            text or "Job complete",
            level="INFO" if merge_complete else "WARNING",
            job=checkpoint.job_name,
            phase=JobPhase.DONE.value,
            detail={
                "processed": checkpoint.processed_count,
                "rows_written": checkpoint.next_sequence_no - 1,
                "duration_s": round(checkpoint.elapsed_seconds(), 1),
                "merge_complete": merge_complete,
            },
        )

    async def _finish(self, checkpoint: JobCheckpoint) -> None:
        await self._repository.delete(checkpoint.job_name)
        await self._registry.remove(checkpoint.job_name)
        set_job_context(None)

    async def _reschedule(self, report: SliceReport) -> None:
        remaining = await self._registry.list()
        report.remaining_jobs = len(remaining)
        if self._trigger is None:
            return
        if remaining:
            report.trigger = await self._trigger.ensure_single(self._trigger_delay_s)
        else:
            await self._trigger.clear()
