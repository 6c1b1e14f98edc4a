# tests/unit/scheduler/test_unit_slice_scheduler.py — v1
"""Tests for scheduler/slice_scheduler.py — phase steps, persistence, rescheduling."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from treescan.checkpoint.repository import CheckpointRepository
from treescan.core.models import JobCheckpoint, JobConfig, JobPhase, ResultRow, ScanMode
from treescan.core.schema import output_columns
from treescan.scan.flusher import RowFlusher
from treescan.scan.reconciler import MergeBackReconciler
from treescan.scan.walker import TreeWalker
from treescan.scheduler.deadline import Deadline, NeverDeadline
from treescan.scheduler.registry import JobRegistry
from treescan.scheduler.slice_scheduler import (
    STOP_DEADLINE,
    STOP_IDLE,
    STOP_MAX_STEPS,
    STOP_STALLED,
    SliceScheduler,
)
from treescan.scheduler.trigger import StoreTrigger
from treescan.tracking.status import StatusReporter


class Wiring:
    """Scheduler plus the collaborators tests inspect."""

    def __init__(self, source, sink, store, status_sink, flush_batch_size=1000):
        self.sink = sink
        self.repository = CheckpointRepository(store)
        self.registry = JobRegistry(store)
        self.trigger = StoreTrigger(store)
        self.status = StatusReporter(store, interval_s=0)
        flusher = RowFlusher(sink)
        self.scheduler = SliceScheduler(
            registry=self.registry,
            repository=self.repository,
            walker=TreeWalker(source, flusher, flush_batch_size=flush_batch_size),
            flusher=flusher,
            reconciler=MergeBackReconciler(sink),
            sink=sink,
            trigger=self.trigger,
            status_reporter=self.status,
            status_sink=status_sink,
            trigger_delay_s=60,
        )

    async def add_job(self, config: JobConfig, prior: str | None = None) -> JobCheckpoint:
        await self.sink.get_or_create_sheet(config.output_name, output_columns(config.mode))
        checkpoint = JobCheckpoint.start(config, root_path="X", prior_output_name=prior)
        await self.repository.save(checkpoint)
        await self.registry.add(config.job_name)
        return checkpoint


@pytest.fixture
def wiring(memory_source, memory_sink, memory_store, status_sink):
    return Wiring(memory_source, memory_sink, memory_store, status_sink)


class TestRunSlice:
    @pytest.mark.asyncio
    async def test_idle_clears_triggers(self, wiring):
        await wiring.trigger.schedule(0)
        report = await wiring.scheduler.run_slice(NeverDeadline())
        assert report.stop_reason == STOP_IDLE
        assert report.steps == 0
        assert await wiring.trigger.list_pending() == []

    @pytest.mark.asyncio
    async def test_runs_job_to_completion(self, wiring, files_config, status_sink):
        await wiring.add_job(files_config)

        report = await wiring.scheduler.run_slice(NeverDeadline())

        assert report.stop_reason == STOP_IDLE
        assert report.jobs_completed == ["inventory"]
        assert await wiring.repository.load("inventory") is None
        assert await wiring.registry.list() == []
        assert await wiring.sink.row_count("Files") == 5
        assert (await wiring.status.get("inventory")).state == "DONE"
        assert status_sink.records[-1].phase == "DONE"

    @pytest.mark.asyncio
    async def test_max_steps_saves_and_reschedules(self, wiring, files_config):
        await wiring.add_job(files_config)

        report = await wiring.scheduler.run_slice(NeverDeadline(), max_steps=1)

        assert report.stop_reason == STOP_MAX_STEPS
        assert report.steps == 1
        checkpoint = await wiring.repository.load("inventory")
        assert [n.path for n in checkpoint.queue] == ["X/Y", "X/W"]
        assert len(checkpoint.pending_rows) == 2
        pending = await wiring.trigger.list_pending()
        assert len(pending) == 1
        assert report.trigger.trigger_id == pending[0].trigger_id

    @pytest.mark.asyncio
    async def test_expired_deadline_does_nothing(self, wiring, files_config, clock):
        await wiring.add_job(files_config)
        deadline = Deadline(budget_s=10, margin_s=1, clock=clock)
        clock.advance(9)

        report = await wiring.scheduler.run_slice(deadline)

        assert report.stop_reason == STOP_DEADLINE
        assert report.steps == 0
        assert report.remaining_jobs == 1

    @pytest.mark.asyncio
    async def test_scanning_switches_to_merge_back(self, wiring, files_config):
        await wiring.add_job(files_config)
        # root, Y, W, Z expansions + final flush / transition
        await wiring.scheduler.run_slice(NeverDeadline(), max_steps=5)
        checkpoint = await wiring.repository.load("inventory")
        assert checkpoint.phase is JobPhase.MERGE_BACK
        assert checkpoint.pending_rows == []
        assert checkpoint.next_sequence_no == 5

    @pytest.mark.asyncio
    async def test_finalize_removes_backup(self, wiring, files_config):
        await wiring.sink.get_or_create_sheet("Files~prev", output_columns(ScanMode.FILES) + ["Notes"])
        await wiring.add_job(files_config, prior="Files~prev")

        await wiring.scheduler.run_slice(NeverDeadline())

        assert not await wiring.sink.sheet_exists("Files~prev")
        assert "Notes" in await wiring.sink.get_header("Files")

    @pytest.mark.asyncio
    async def test_finalize_failure_does_not_block_completion(self, wiring, files_config):
        await wiring.add_job(files_config, prior="Files~prev")
        wiring.status.complete = AsyncMock(side_effect=RuntimeError("store down"))

        report = await wiring.scheduler.run_slice(NeverDeadline())

        assert report.jobs_completed == ["inventory"]
        assert await wiring.repository.load("inventory") is None

    @pytest.mark.asyncio
    async def test_next_job_worked_in_same_slice(self, wiring, files_config):
        await wiring.add_job(files_config)
        await wiring.add_job(
            JobConfig(job_name="folders", root_id="X", mode=ScanMode.FOLDERS, output_name="Folders")
        )

        report = await wiring.scheduler.run_slice(NeverDeadline())

        assert report.jobs_completed == ["inventory", "folders"]
        assert await wiring.sink.row_count("Folders") == 5

    @pytest.mark.asyncio
    async def test_registered_job_without_checkpoint_is_dropped(self, wiring):
        await wiring.registry.add("ghost")
        report = await wiring.scheduler.run_slice(NeverDeadline())
        assert report.stop_reason == STOP_IDLE
        assert await wiring.registry.list() == []

    @pytest.mark.asyncio
    async def test_flush_failure_with_empty_queue_stalls(self, wiring, files_config):
        checkpoint = await wiring.add_job(files_config)
        await wiring.sink.delete_sheet("Files")
        checkpoint.queue = []
        checkpoint.pending_rows = [ResultRow(kind="file", ref_id="r", name="a", path="X/a")]
        await wiring.repository.save(checkpoint)

        report = await wiring.scheduler.run_slice(NeverDeadline())

        assert report.stop_reason == STOP_STALLED
        saved = await wiring.repository.load("inventory")
        assert len(saved.pending_rows) == 1
        assert len(await wiring.trigger.list_pending()) == 1

    @pytest.mark.asyncio
    async def test_unexpected_error_is_reported_and_raised(self, wiring, files_config, status_sink):
        await wiring.add_job(files_config)
        wiring.scheduler._walker.step = AsyncMock(side_effect=KeyError("boom"))

        with pytest.raises(KeyError):
            await wiring.scheduler.run_slice(NeverDeadline())

        assert status_sink.records[-1].level == "ERROR"
        assert status_sink.records[-1].job == "inventory"
        # Work remains, so a retry is scheduled
        assert len(await wiring.trigger.list_pending()) == 1
