# tests/unit/scheduler/test_unit_deadline.py — v1
"""Tests for scheduler/deadline.py — budget minus margin on a monotonic clock."""

from __future__ import annotations

from treescan.scheduler.deadline import Deadline, NeverDeadline


class TestDeadline:
    def test_not_expired_before_limit(self, clock):
        deadline = Deadline(budget_s=330, margin_s=30, clock=clock)
        clock.advance(299.9)
        assert not deadline.expired()
        assert round(deadline.remaining(), 1) == 0.1

    def test_expired_at_limit(self, clock):
        deadline = Deadline(budget_s=330, margin_s=30, clock=clock)
        clock.advance(300)
        assert deadline.expired()
        assert deadline.remaining() == 0.0

    def test_elapsed_relative_to_creation(self, clock):
        clock.advance(1000)
        deadline = Deadline(budget_s=10, clock=clock)
        clock.advance(4)
        assert deadline.elapsed() == 4


class TestNeverDeadline:
    def test_never_expires(self):
        deadline = NeverDeadline()
        assert not deadline.expired()
        assert deadline.remaining() == float("inf")
