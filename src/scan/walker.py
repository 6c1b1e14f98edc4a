# src/scan/walker.py — v1
"""Tree walker — one breadth-first expansion step per call.

Each step dequeues the head node, enumerates its children, emits rows for
the job's mode and enqueues child containers while the depth ceiling
allows. Resolution and enumeration failures never abort the job.

If the deadline expires while a node is being enumerated, the partial
listing is dropped and the node goes back to the head of the queue so the
next slice redoes it in full. After max_node_deferrals such retries the
node is expanded with whatever was listed before the deadline.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from treescan.core.models import JobCheckpoint, QueueNode, ResultRow, ScanMode
from treescan.core.schema import join_path
from treescan.scan.row_builder import file_row, folder_row
from treescan.source.base_tree_source import SourceAccessError
from treescan.source.models import ChildContainer, ContainerInfo, EntityInfo

if TYPE_CHECKING:
    from treescan.scan.flusher import RowFlusher
    from treescan.scheduler.deadline import Deadline
    from treescan.source.base_tree_source import BaseTreeSource

logger = logging.getLogger(__name__)

DEFAULT_FLUSH_BATCH_SIZE = 1000
DEFAULT_MAX_NODE_DEFERRALS = 3


@dataclass
class WalkOutcome:
    """Result of one walker step."""

    idle: bool = False
    node: QueueNode | None = None
    rows_emitted: int = 0
    containers_queued: int = 0
    resolve_failed: bool = False
    partial: bool = False
    deferred: bool = False
    flushes: int = 0


@dataclass
class _Listing:
    entities: list[EntityInfo] = field(default_factory=list)
    containers: list[ChildContainer] = field(default_factory=list)
    failed: bool = False
    interrupted: bool = False


class TreeWalker:
    """Expand queue nodes of a JobCheckpoint.

    Args:
        source: Hierarchical store accessor.
        flusher: Flusher invoked whenever the pending buffer fills up.
        flush_batch_size: Pending rows that trigger an immediate flush.
        max_node_deferrals: Deadline retries per node before accepting
            a partial listing.
    """

    def __init__(
        self,
        source: BaseTreeSource,
        flusher: RowFlusher,
        flush_batch_size: int = DEFAULT_FLUSH_BATCH_SIZE,
        max_node_deferrals: int = DEFAULT_MAX_NODE_DEFERRALS,
    ) -> None:
        self._source = source
        self._flusher = flusher
        self._batch_size = flush_batch_size
        self._max_deferrals = max_node_deferrals

    async def step(self, checkpoint: JobCheckpoint, deadline: Deadline) -> WalkOutcome:
        """Expand the head node of the queue, or report idle."""
        if not checkpoint.queue:
            return WalkOutcome(idle=True)

        node = checkpoint.queue.pop(0)
        outcome = WalkOutcome(node=node)
        checkpoint.touch()

        try:
            info = await self._source.resolve(node.node_ref)
        except SourceAccessError as e:
            logger.error("Cannot resolve %r (%s), skipping node: %s", node.path, node.node_ref, e)
            outcome.resolve_failed = True
            return outcome

        listing = await self._enumerate(node, deadline)

        if listing.interrupted:
            if node.deferrals < self._max_deferrals:
                checkpoint.queue.insert(
                    0, node.model_copy(update={"deferrals": node.deferrals + 1})
                )
                logger.info(
                    "Deadline reached while listing %r, node re-queued (retry %d/%d)",
                    node.path, node.deferrals + 1, self._max_deferrals,
                )
                outcome.deferred = True
                return outcome
            logger.warning(
                "Deadline reached while listing %r after %d retries, keeping %d "
                "entities and %d folders listed so far",
                node.path, node.deferrals, len(listing.entities), len(listing.containers),
            )
        outcome.partial = listing.interrupted or listing.failed

        rows = self._build_rows(checkpoint.mode, info, node, listing)

        if checkpoint.can_descend(node.depth):
            for child in listing.containers:
                checkpoint.queue.append(
                    QueueNode(
                        node_ref=child.ref_id,
                        path=join_path(node.path, child.name),
                        depth=node.depth + 1,
                    )
                )
            outcome.containers_queued = len(listing.containers)

        flush_failed = False
        for row in rows:
            checkpoint.pending_rows.append(row)
            if not flush_failed and len(checkpoint.pending_rows) >= self._batch_size:
                result = await self._flusher.flush(checkpoint)
                outcome.flushes += 1
                # Retry on the next flush opportunity, not once per row
                flush_failed = result.failed

        outcome.rows_emitted = len(rows)
        checkpoint.processed_count += len(rows)
        logger.debug(
            "Expanded %r (depth %d): %d rows, %d folders queued, queue now %d",
            node.path, node.depth, outcome.rows_emitted,
            outcome.containers_queued, len(checkpoint.queue),
        )
        return outcome

    async def _enumerate(self, node: QueueNode, deadline: Deadline) -> _Listing:
        """List entities then containers, checking the deadline between children."""
        listing = _Listing()
        try:
            async for entity in self._source.iter_entities(node.node_ref):
                if deadline.expired():
                    listing.interrupted = True
                    return listing
                listing.entities.append(entity)
            async for child in self._source.iter_containers(node.node_ref):
                if deadline.expired():
                    listing.interrupted = True
                    return listing
                listing.containers.append(child)
        except SourceAccessError as e:
            logger.warning(
                "Listing %r failed after %d entities and %d folders: %s",
                node.path, len(listing.entities), len(listing.containers), e,
            )
            listing.failed = True
        return listing

    @staticmethod
    def _build_rows(
        mode: ScanMode, info: ContainerInfo, node: QueueNode, listing: _Listing,
    ) -> list[ResultRow]:
        if mode is ScanMode.FOLDERS:
            return [
                folder_row(
                    info, node,
                    file_count=len(listing.entities),
                    folder_count=len(listing.containers),
                )
            ]

        rows = [file_row(entity, node) for entity in listing.entities]
        if mode is ScanMode.BOTH:
            rows.insert(0, folder_row(info, node))
        return rows
