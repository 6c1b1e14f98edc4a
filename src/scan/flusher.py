# src/scan/flusher.py — v1
"""Row buffer flusher — bulk-write pending rows at the job's write cursor.

Values and links of one flush are written inside a single sink batch, so
file-backed sinks persist once per flush.

Sequence numbers are derived from the checkpoint's committed counter and
only advanced after the bulk write succeeds. A failed flush leaves the
buffer and counters untouched, so the retry rewrites the same rows at the
same positions with the same numbers.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from treescan.core.models import JobCheckpoint
from treescan.core.schema import LINK_COLUMN, link_text, output_columns, row_values
from treescan.output.base_sink import BaseTabularSink, CellLink

logger = logging.getLogger(__name__)


@dataclass
class FlushResult:
    """Outcome of one flush call."""

    written: int = 0
    failed: bool = False
    links_failed: bool = False


class RowFlusher:
    """Write a checkpoint's pending rows to its output sheet."""

    def __init__(self, sink: BaseTabularSink) -> None:
        self._sink = sink

    async def flush(self, checkpoint: JobCheckpoint) -> FlushResult:
        """Write all pending rows; empty buffer is a no-op."""
        pending = checkpoint.pending_rows
        if not pending:
            return FlushResult()

        mode = checkpoint.mode
        first_seq = checkpoint.next_sequence_no
        start_row = checkpoint.write_cursor
        values = [
            row_values(row, mode, first_seq + i, checkpoint.include_location_column)
            for i, row in enumerate(pending)
        ]

        link_col = output_columns(mode, checkpoint.include_location_column).index(
            LINK_COLUMN[mode]
        ) + 1
        links = [
            CellLink(row=start_row + i, column=link_col, text=link_text(row, mode), url=row.url)
            for i, row in enumerate(pending)
            if row.url
        ]

        result = FlushResult(written=len(pending))
        try:
            async with self._sink.batch():
                await self._sink.write_rows(checkpoint.output_name, start_row, values)
                if links:
                    try:
                        await self._sink.set_links(checkpoint.output_name, links)
                    except Exception as e:  # noqa: BLE001
                        # Values are committed; links are cosmetic
                        logger.warning("Attaching %d links failed: %s", len(links), e)
                        result.links_failed = True
        except Exception as e:  # noqa: BLE001
            logger.warning(
                "Flush of %d rows to %r at row %d failed, keeping buffer: %s",
                len(pending), checkpoint.output_name, start_row, e,
            )
            return FlushResult(failed=True)

        checkpoint.write_cursor += len(pending)
        checkpoint.next_sequence_no += len(pending)
        checkpoint.pending_rows = []
        checkpoint.touch()
        logger.debug(
            "Flushed %d rows (SlNo %d-%d) to %r",
            result.written, first_seq, first_seq + result.written - 1,
            checkpoint.output_name,
        )
        return result
