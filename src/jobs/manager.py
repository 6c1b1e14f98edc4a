# src/jobs/manager.py — v1
"""Job lifecycle — start, cancel and inspect traversal jobs.

Starting a job rolls its existing output aside as the backup
("<output>~prev") so that user-added columns can be merged back once the
new scan is complete, creates the fresh output with its header and queues
the job in the registry. Re-starting a job whose checkpoint describes the
same traversal resumes it instead.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from treescan.core.models import JobCheckpoint, JobConfig, utc_now
from treescan.core.schema import output_columns
from treescan.jobs.validation import validate_jobs
from treescan.logging.status_sink import emit_status
from treescan.output.base_sink import backup_name_for
from treescan.tracking.models import JobStatus
from treescan.tracking.status import format_running_status

if TYPE_CHECKING:
    from treescan.checkpoint.repository import CheckpointRepository
    from treescan.logging.status_sink import BaseStatusSink
    from treescan.output.base_sink import BaseTabularSink
    from treescan.scheduler.registry import JobRegistry
    from treescan.scheduler.trigger import BaseTrigger
    from treescan.source.base_tree_source import BaseTreeSource
    from treescan.source.models import ContainerInfo
    from treescan.tracking.status import StatusReporter

logger = logging.getLogger(__name__)


class JobManager:
    """Entry points for operators: start_jobs, cancel_all, job_statuses.

    Args:
        source: Tree source used to validate roots.
        sink: Output sink holding job outputs and their backups.
        repository: Checkpoint persistence.
        registry: FIFO of active jobs.
        trigger: Re-invocation facility (optional).
        status_reporter: Status snapshot store (optional).
        status_sink: Structured status records (optional).
        start_delay_s: Delay of the trigger scheduled by start_jobs.
    """

    def __init__(
        self,
        source: BaseTreeSource,
        sink: BaseTabularSink,
        repository: CheckpointRepository,
        registry: JobRegistry,
        trigger: BaseTrigger | None = None,
        status_reporter: StatusReporter | None = None,
        status_sink: BaseStatusSink | None = None,
        start_delay_s: float = 0.0,
    ) -> None:
        self._source = source
        self._sink = sink
        self._repository = repository
        self._registry = registry
        self._trigger = trigger
        self._status = status_reporter
        self._status_sink = status_sink
        self._start_delay_s = start_delay_s

    async def start_jobs(self, configs: list[JobConfig]) -> list[JobCheckpoint]:
        """Validate and queue jobs.

        Raises:
            JobValidationError: Before anything is changed, if any job is invalid.
        """
        roots = await validate_jobs(configs, self._source)

        started: list[JobCheckpoint] = []
        for config in configs:
            started.append(await self._start_one(config, roots[config.job_name]))

        if self._trigger is not None:
            await self._trigger.ensure_single(self._start_delay_s)

        await emit_status(
            self._status_sink,
            f"Started {len(started)} jobs",
            detail={"jobs": [c.job_name for c in started]},
        )
        return started

    async def cancel_all(self) -> list[str]:
        """Abandon every job: checkpoints, registry and triggers are removed.

        Outputs are left as they are.
        """
        names = set(await self._repository.job_names()) | set(await self._registry.list())
        for name in sorted(names):
            await self._repository.delete(name)
        await self._registry.clear()
        if self._trigger is not None:
            await self._trigger.clear()

        if names:
            logger.warning("Cancelled %d jobs: %s", len(names), ", ".join(sorted(names)))
            await emit_status(
                self._status_sink,
                f"Cancelled {len(names)} jobs",
                level="WARNING",
                detail={"jobs": sorted(names)},
            )
        return sorted(names)

    async def job_statuses(self) -> list[JobStatus]:
        """Status of active jobs plus the last recorded status of finished ones."""
        statuses: dict[str, JobStatus] = {}
        if self._status is not None:
            statuses = {s.job_name: s for s in await self._status.list_statuses()}

        for name in await self._repository.job_names():
            checkpoint = await self._repository.load(name)
            if checkpoint is None:
                continue
            known = statuses.get(name)
            if known is not None and known.state == "RUNNING":
                continue
            elapsed = checkpoint.elapsed_seconds()
            statuses[name] = JobStatus(
                job_name=name,
                output_name=checkpoint.output_name,
                state="RUNNING",
                phase=checkpoint.phase.value,
                processed_count=checkpoint.processed_count,
                queue_depth=len(checkpoint.queue),
                elapsed_seconds=elapsed,
                text=checkpoint.status_text
                or format_running_status(checkpoint.processed_count, len(checkpoint.queue), elapsed),
                updated_at=checkpoint.status_updated_at or utc_now(),
            )
        return sorted(statuses.values(), key=lambda s: s.job_name)

    async def _start_one(self, config: JobConfig, root: ContainerInfo) -> JobCheckpoint:
        existing = await self._repository.load(config.job_name)
        if existing is not None:
            if config.same_traversal(existing) and await self._sink.sheet_exists(config.output_name):
                logger.info(
                    "Resuming job '%s' (%s, %d queued, %d processed)",
                    config.job_name, existing.phase.value,
                    len(existing.queue), existing.processed_count,
                )
                await self._registry.add(config.job_name)
                return existing
            logger.info("Job '%s' configuration changed, restarting from scratch", config.job_name)
            await self._repository.delete(config.job_name)

        prior = await self._rollover(config.output_name, interrupted=existing is not None)
        header = output_columns(config.mode, config.include_location_column)
        await self._sink.get_or_create_sheet(config.output_name, header)

        checkpoint = JobCheckpoint.start(config, root_path=root.name, prior_output_name=prior)
        if self._status is not None:
            await self._status.delete(config.job_name)
            await self._status.maybe_update(checkpoint, force=True)
        await self._repository.save(checkpoint)
        await self._registry.add(config.job_name)
        logger.info(
            "Started job '%s': %s from %r (%s, depth %s) into %r",
            config.job_name, config.mode.value, root.name, config.root_id,
            config.depth_limit or "unlimited", config.output_name,
        )
        return checkpoint

    async def _rollover(self, output_name: str, interrupted: bool) -> str | None:
        """Move the current output aside; return the backup name if one exists.

        A backup left by an interrupted run still holds the last complete
        output, so it is kept and the partial output is dropped. A backup
        left by a finished run whose cleanup failed is stale and replaced.
        """
        backup = backup_name_for(output_name)
        has_output = await self._sink.sheet_exists(output_name)
        has_backup = await self._sink.sheet_exists(backup)

        if has_backup and (interrupted or not has_output):
            if has_output:
                logger.warning("Dropping partial output %r, keeping backup %r", output_name, backup)
                await self._sink.delete_sheet(output_name)
            return backup

        if has_output:
            if has_backup:
                logger.warning("Replacing stale backup %r", backup)
                await self._sink.delete_sheet(backup)
            await self._sink.rename_sheet(output_name, backup)
            logger.info("Previous output %r kept as %r for merge-back", output_name, backup)
            return backup
        return None
