# src/scan/reconciler.py — v1
"""Merge-back reconciler — carry user-owned columns into the fresh output.

Auxiliary columns are the columns of the previous run's output (the
rollover backup) that the engine does not own. Their values are copied
onto the new output's rows with the same identity key. The new output is
patched in fixed-size chunks with a deadline check between chunks (the first
chunk always runs); an early stop leaves the
remaining rows without auxiliary values for this run. The whole merge runs
in one sink batch.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from treescan.core.identity import KeyRule
from treescan.core.models import ScanMode
from treescan.core.schema import reserved_columns

if TYPE_CHECKING:
    from treescan.output.base_sink import BaseTabularSink
    from treescan.scheduler.deadline import Deadline

logger = logging.getLogger(__name__)

DEFAULT_MERGE_CHUNK_SIZE = 1000


@dataclass
class MergeResult:
    """Outcome of a merge-back pass."""

    skipped: bool = False
    reason: str = ""
    aux_columns: tuple[str, ...] = ()
    columns_added: int = 0
    prior_keys: int = 0
    rows_scanned: int = 0
    rows_matched: int = 0
    complete: bool = True


def auxiliary_columns(mode: ScanMode, prior_header: list[str]) -> list[str]:
    """Prior-output columns not owned by the engine, in prior order."""
    reserved = reserved_columns(mode)
    seen: set[str] = set()
    aux: list[str] = []
    for col in prior_header:
        if col and col not in reserved and col not in seen:
            seen.add(col)
            aux.append(col)
    return aux


def _as_mapping(header: list[str], values: list[Any]) -> dict[str, Any]:
    # First occurrence wins for duplicated header names
    mapping: dict[str, Any] = {}
    for col, value in zip(header, values):
        if col and col not in mapping:
            mapping[col] = value
    return mapping


class MergeBackReconciler:
    """Copy auxiliary column values from a prior output into a new one."""

    def __init__(
        self,
        sink: BaseTabularSink,
        chunk_size: int = DEFAULT_MERGE_CHUNK_SIZE,
    ) -> None:
        self._sink = sink
        self._chunk_size = chunk_size

    async def reconcile(
        self,
        mode: ScanMode,
        new_output: str,
        prior_output: str | None,
        deadline: Deadline,
    ) -> MergeResult:
        """Run the merge for one job.

        Missing outputs are not an error: the merge is reported as skipped.
        """
        if not prior_output or not await self._sink.sheet_exists(prior_output):
            return MergeResult(skipped=True, reason="no prior output")
        if not await self._sink.sheet_exists(new_output):
            return MergeResult(skipped=True, reason="new output missing")

        prior_header = await self._sink.get_header(prior_output)
        aux = auxiliary_columns(mode, prior_header)
        if not aux:
            return MergeResult(skipped=True, reason="no auxiliary columns")

        async with self._sink.batch():
            return await self._merge(
                new_output, prior_output, mode, prior_header, aux, deadline,
            )

    async def _merge(
        self,
        new_output: str,
        prior_output: str,
        mode: ScanMode,
        prior_header: list[str],
        aux: list[str],
        deadline: Deadline,
    ) -> MergeResult:
        new_header = await self._sink.get_header(new_output)
        missing = [col for col in aux if col not in new_header]
        if missing:
            await self._sink.append_columns(new_output, missing)
            new_header = new_header + missing

        result = MergeResult(aux_columns=tuple(aux), columns_added=len(missing))
        rule = KeyRule.for_headers(mode, prior_header, new_header)
        carried = await self._index_prior(prior_output, prior_header, aux, rule)
        result.prior_keys = len(carried)
        logger.info(
            "Merging %d auxiliary columns from %r into %r (%d prior keys, key=%s)",
            len(aux), prior_output, new_output, len(carried),
            rule.id_column or "+".join(rule.composite_columns),
        )

        aux_positions = [new_header.index(col) for col in aux]
        last_row = await self._sink.row_count(new_output)
        start = 2
        while start <= last_row:
            if start > 2 and deadline.expired():
                result.complete = False
                logger.warning(
                    "Deadline reached during merge of %r: %d of %d rows reconciled, "
                    "remaining rows keep blank auxiliary columns",
                    new_output, result.rows_scanned, last_row - 1,
                )
                break
            count = min(self._chunk_size, last_row - start + 1)
            await self._merge_chunk(
                new_output, new_header, aux_positions, rule, carried, start, count, result,
            )
            start += count

        return result

    async def _index_prior(
        self,
        prior_output: str,
        prior_header: list[str],
        aux: list[str],
        rule: KeyRule,
    ) -> dict[str, list[Any]]:
        """Map identity key → auxiliary values; later duplicates overwrite earlier ones."""
        carried: dict[str, list[Any]] = {}
        last_row = await self._sink.row_count(prior_output)
        start = 2
        while start <= last_row:
            rows = await self._sink.read_rows(prior_output, start, self._chunk_size)
            if not rows:
                break
            for values in rows:
                mapping = _as_mapping(prior_header, values)
                carried[rule.key(mapping)] = [mapping.get(col, "") for col in aux]
            start += len(rows)
        return carried

    async def _merge_chunk(
        self,
        new_output: str,
        new_header: list[str],
        aux_positions: list[int],
        rule: KeyRule,
        carried: dict[str, list[Any]],
        start: int,
        count: int,
        result: MergeResult,
    ) -> None:
        rows = await self._sink.read_rows(new_output, start, count)
        if not rows:
            return
        first_col = min(aux_positions)
        last_col = max(aux_positions)
        block: list[list[Any]] = []
        for values in rows:
            padded = list(values) + [""] * (len(new_header) - len(values))
            hit = carried.get(rule.key(_as_mapping(new_header, padded)))
            if hit is not None:
                result.rows_matched += 1
                for pos, value in zip(aux_positions, hit):
                    padded[pos] = value
            block.append(padded[first_col:last_col + 1])
        await self._sink.write_rows(new_output, start, block, start_column=first_col + 1)
        result.rows_scanned += len(rows)
