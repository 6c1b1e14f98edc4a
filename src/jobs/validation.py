# src/jobs/validation.py — v1
"""Job configuration validation.

All problems are collected and reported together; nothing is queued when
any job is invalid.
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Iterable
from typing import Any

from pydantic import ValidationError

from treescan.core.models import JobConfig
from treescan.output.base_sink import BACKUP_SUFFIX
from treescan.output.xlsx_sink import validate_sheet_title
from treescan.source.base_tree_source import BaseTreeSource, SourceAccessError
from treescan.source.models import ContainerInfo

logger = logging.getLogger(__name__)


class JobValidationError(Exception):
    """One or more job configurations are unusable."""

    def __init__(self, problems: list[str]) -> None:
        self.problems = problems
        super().__init__("Invalid job configuration: " + "; ".join(problems))


def parse_job_configs(raw_jobs: Iterable[dict[str, Any]]) -> list[JobConfig]:
    """Build JobConfig objects from plain dicts (CLI flags, JSON jobs file).

    Raises:
        JobValidationError: If any entry does not fit the JobConfig model.
    """
    configs: list[JobConfig] = []
    problems: list[str] = []
    for idx, raw in enumerate(raw_jobs, start=1):
        try:
            configs.append(JobConfig.model_validate(raw))
        except ValidationError as e:
            for err in e.errors():
                field = ".".join(str(p) for p in err["loc"]) or "job"
                problems.append(f"job #{idx}: {field}: {err['msg']}")
    if problems:
        raise JobValidationError(problems)
    return configs


async def validate_jobs(
    configs: list[JobConfig],
    source: BaseTreeSource,
) -> dict[str, ContainerInfo]:
    """Check a batch of jobs and resolve their roots.

    Returns:
        Resolved root container per job name.

    Raises:
        JobValidationError: With every problem found.
    """
    problems: list[str] = []
    if not configs:
        raise JobValidationError(["no jobs given"])

    for config in configs:
        label = config.job_name.strip() or "<unnamed>"
        if not config.job_name.strip():
            problems.append("job name is required")
        if not config.root_id.strip():
            problems.append(f"{label}: root id is required")
        if not config.output_name.strip():
            problems.append(f"{label}: output name is required")
        else:
            if config.output_name.endswith(BACKUP_SUFFIX):
                problems.append(f"{label}: output name must not end with {BACKUP_SUFFIX!r}")
            problems.extend(
                f"{label}: {p}"
                for p in validate_sheet_title(config.output_name, reserve=len(BACKUP_SUFFIX))
            )
        if config.depth_limit < 0:
            problems.append(f"{label}: depth limit must be >= 0 (0 = unlimited)")

    for name, count in Counter(c.job_name for c in configs).items():
        if name and count > 1:
            problems.append(f"duplicate job name {name!r}")
    for name, count in Counter(c.output_name for c in configs).items():
        if name and count > 1:
            problems.append(f"output {name!r} is used by {count} jobs")

    roots: dict[str, ContainerInfo] = {}
    for config in configs:
        if not config.root_id.strip():
            continue
        try:
            roots[config.job_name] = await source.resolve(config.root_id)
        except SourceAccessError as e:
            problems.append(f"{config.job_name}: root {config.root_id!r} is not reachable ({e})")

    if problems:
        logger.error("Rejected %d jobs: %s", len(configs), "; ".join(problems))
        raise JobValidationError(problems)
    return roots
