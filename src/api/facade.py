# src/api/facade.py — v1
"""Public API facade — wire every component from Settings.

Usage:
    from treescan.api.facade import build_engine
    engine = build_engine()
    await engine.manager.start_jobs([JobConfig(...)])
    await engine.scheduler.run_slice()

Collaborators can be injected (tests, embedding applications); anything not
given is built from settings.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from treescan.checkpoint.base_store import BaseKeyValueStore
from treescan.checkpoint.repository import CheckpointRepository
from treescan.checkpoint.store_factory import create_store
from treescan.config.settings import Settings
from treescan.jobs.manager import JobManager
from treescan.logging.status_sink import BaseStatusSink, JsonlStatusSink, LoggingStatusSink
from treescan.output.base_sink import BaseTabularSink
from treescan.output.sink_factory import create_sink
from treescan.scan.flusher import RowFlusher
from treescan.scan.reconciler import MergeBackReconciler
from treescan.scan.walker import TreeWalker
from treescan.scheduler.registry import JobRegistry
from treescan.scheduler.slice_scheduler import SliceScheduler
from treescan.scheduler.trigger import BaseTrigger, StoreTrigger
from treescan.source.base_tree_source import BaseTreeSource
from treescan.source.local_source import LocalTreeSource
from treescan.tracking.status import StatusReporter

logger = logging.getLogger(__name__)


@dataclass
class Engine:
    """Fully wired component graph."""

    settings: Settings
    store: BaseKeyValueStore
    source: BaseTreeSource
    sink: BaseTabularSink
    repository: CheckpointRepository
    registry: JobRegistry
    trigger: BaseTrigger
    status_reporter: StatusReporter
    status_sink: BaseStatusSink
    scheduler: SliceScheduler
    manager: JobManager

    def close(self) -> None:
        self.store.close()


def build_engine(
    settings: Settings | None = None,
    *,
    source: BaseTreeSource | None = None,
    sink: BaseTabularSink | None = None,
    store: BaseKeyValueStore | None = None,
    status_sink: BaseStatusSink | None = None,
    trigger: BaseTrigger | None = None,
) -> Engine:
    """Build the engine from settings (loaded from .env if None)."""
    settings = settings or Settings()
    prefix = settings.key_prefix

    store = store or create_store(settings)
    source = source or LocalTreeSource()
    sink = sink or create_sink(settings)
    if status_sink is None:
        status_sink = (
            JsonlStatusSink(settings.status_log_file)
            if settings.status_log_file
            else LoggingStatusSink()
        )

    repository = CheckpointRepository(store, prefix=prefix)
    registry = JobRegistry(store, prefix=prefix)
    trigger = trigger or StoreTrigger(store, prefix=prefix)
    status_reporter = StatusReporter(store, prefix=prefix, interval_s=settings.status_interval_s)

    flusher = RowFlusher(sink)
    walker = TreeWalker(
        source,
        flusher,
        flush_batch_size=settings.flush_batch_size,
        max_node_deferrals=settings.max_node_deferrals,
    )
    reconciler = MergeBackReconciler(sink, chunk_size=settings.merge_chunk_size)

    scheduler = SliceScheduler(
        registry=registry,
        repository=repository,
        walker=walker,
        flusher=flusher,
        reconciler=reconciler,
        sink=sink,
        trigger=trigger,
        status_reporter=status_reporter,
        status_sink=status_sink,
        budget_s=settings.slice_budget_s,
        margin_s=settings.safety_margin_s,
        trigger_delay_s=settings.trigger_delay_s,
    )
    manager = JobManager(
        source=source,
        sink=sink,
        repository=repository,
        registry=registry,
        trigger=trigger,
        status_reporter=status_reporter,
        status_sink=status_sink,
    )

    logger.debug(
        "Engine built: checkpoint=%s, sink=%s, source=%s",
        type(store).__name__, type(sink).__name__, type(source).__name__,
    )
    return Engine(
        settings=settings,
        store=store,
        source=source,
        sink=sink,
        repository=repository,
        registry=registry,
        trigger=trigger,
        status_reporter=status_reporter,
        status_sink=status_sink,
        scheduler=scheduler,
        manager=manager,
    )
