# tests/conftest.py — v1
"""Shared test fixtures for all unit and integration tests.

Provides an in-memory tree, sink, key-value store and status sink, plus a
manual clock for deadline tests. No external dependencies — all I/O stays
in memory or under tmp_path.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from treescan.checkpoint.memory_store import MemoryKeyValueStore
from treescan.core.models import JobCheckpoint, JobConfig, ScanMode
from treescan.logging.status_sink import MemoryStatusSink
from treescan.output.memory_sink import MemorySink
from treescan.source.memory_source import MemoryTreeSource


class ManualClock:
    """Monotonic clock advanced by hand."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# === FIXTURES: Sample data ===


SAMPLE_TREE = {
    "name": "X",
    "files": ["a.txt", "b.pdf"],
    "folders": [
        {
            "name": "Y",
            "files": ["c.txt"],
            "folders": [{"name": "Z", "files": ["d.md"]}],
        },
        {"name": "W", "files": []},
    ],
}


@pytest.fixture
def sample_tree() -> dict:
    """Root X with files a.txt, b.pdf; X/Y with c.txt; X/Y/Z with d.md; empty X/W."""
    return SAMPLE_TREE


@pytest.fixture
def memory_source(sample_tree: dict) -> MemoryTreeSource:
    return MemoryTreeSource.from_dict(sample_tree)


@pytest.fixture
def memory_sink() -> MemorySink:
    return MemorySink()


@pytest.fixture
def memory_store() -> MemoryKeyValueStore:
    return MemoryKeyValueStore()


@pytest.fixture
def status_sink() -> MemoryStatusSink:
    return MemoryStatusSink()


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def files_config() -> JobConfig:
    return JobConfig(job_name="inventory", root_id="X", mode=ScanMode.FILES, output_name="Files")


@pytest.fixture
def files_checkpoint(files_config: JobConfig) -> JobCheckpoint:
    """Fresh FILES checkpoint rooted at X."""
    return JobCheckpoint.start(files_config, root_path="X", prior_output_name=None)


# === FIXTURES: Temp dirs ===


@pytest.fixture
def tmp_state_dir(tmp_path: Path) -> Path:
    """Temporary checkpoint directory."""
    state = tmp_path / "state"
    state.mkdir()
    return state
