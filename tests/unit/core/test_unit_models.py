# tests/unit/core/test_unit_models.py — v1
"""Tests for core/models.py — job configuration and checkpoint models."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from treescan.core.models import (
    CHECKPOINT_SCHEMA_VERSION,
    JobCheckpoint,
    JobConfig,
    JobPhase,
    QueueNode,
    ScanMode,
)


class TestJobConfig:
    def test_defaults(self):
        cfg = JobConfig(job_name="j", root_id="r", output_name="out")
        assert cfg.mode is ScanMode.FILES
        assert cfg.depth_limit == 0
        assert cfg.include_location_column is False

    def test_mode_from_string(self):
        cfg = JobConfig(job_name="j", root_id="r", output_name="out", mode="BOTH")
        assert cfg.mode is ScanMode.BOTH

    def test_invalid_mode(self):
        with pytest.raises(ValidationError):
            JobConfig(job_name="j", root_id="r", output_name="out", mode="ALL")

    def test_same_traversal(self, files_config, files_checkpoint):
        assert files_config.same_traversal(files_checkpoint)

    def test_different_depth_is_new_traversal(self, files_config, files_checkpoint):
        other = files_config.model_copy(update={"depth_limit": 2})
        assert not other.same_traversal(files_checkpoint)

    def test_different_mode_is_new_traversal(self, files_config, files_checkpoint):
        other = files_config.model_copy(update={"mode": ScanMode.FOLDERS})
        assert not other.same_traversal(files_checkpoint)


class TestJobCheckpoint:
    def test_start_queues_root(self, files_checkpoint):
        assert files_checkpoint.phase is JobPhase.SCANNING
        assert files_checkpoint.queue == [QueueNode(node_ref="X", path="X", depth=1)]
        assert files_checkpoint.write_cursor == 2
        assert files_checkpoint.next_sequence_no == 1
        assert files_checkpoint.schema_version == CHECKPOINT_SCHEMA_VERSION

    def test_start_records_prior_output(self, files_config):
        cp = JobCheckpoint.start(files_config, "X", prior_output_name="Files~prev")
        assert cp.prior_output_name == "Files~prev"

    @pytest.mark.parametrize(
        "limit,depth,expected",
        [(0, 1, True), (0, 50, True), (1, 1, False), (2, 1, True), (2, 2, False)],
    )
    def test_can_descend(self, files_checkpoint, limit, depth, expected):
        files_checkpoint.depth_limit = limit
        assert files_checkpoint.can_descend(depth) is expected

    def test_scan_exhausted(self, files_checkpoint):
        assert not files_checkpoint.scan_exhausted()
        files_checkpoint.queue = []
        assert files_checkpoint.scan_exhausted()

    def test_json_round_trip_keeps_enums(self, files_checkpoint):
        restored = JobCheckpoint.model_validate_json(files_checkpoint.model_dump_json())
        assert restored.mode is ScanMode.FILES
        assert restored.phase is JobPhase.SCANNING
        assert restored.queue == files_checkpoint.queue

    def test_queue_node_depth_must_be_positive(self):
        with pytest.raises(ValidationError):
            QueueNode(node_ref="r", path="p", depth=0)
