"""Tests for the asymmetric edge debouncer."""

import pytest

from handgrab.debounce import EdgeDebouncer


class TestEdgeDebouncer:
    def test_documented_timeline(self):
        d = EdgeDebouncer(hold_ms=80)
        assert d.update(True, 0) is False
        assert d.update(True, 50) is False
        assert d.update(True, 80) is True
        assert d.update(False, 90) is False
        assert d.update(True, 90) is False  # new streak starts at 90

    def test_confirms_exactly_at_hold(self):
        d = EdgeDebouncer(hold_ms=80)
        for t in range(0, 80, 10):
            assert d.update(True, t) is False
        assert d.update(True, 80) is True
        assert d.update(True, 500) is True

    def test_release_is_immediate(self):
        d = EdgeDebouncer(hold_ms=80)
        d.update(True, 0)
        assert d.update(True, 100) is True
        assert d.update(False, 101) is False
        assert not d.is_armed

    def test_false_sample_restarts_hold(self):
        d = EdgeDebouncer(hold_ms=80)
        d.update(True, 0)
        d.update(True, 70)
        d.update(False, 75)
        assert d.update(True, 76) is False
        assert d.update(True, 155) is False
        assert d.update(True, 156) is True

    def test_armed_at_records_streak_start(self):
        d = EdgeDebouncer(hold_ms=80)
        assert d.armed_at is None
        d.update(True, 12.5)
        d.update(True, 40)
        assert d.armed_at == 12.5

    def test_zero_hold_passes_through(self):
        d = EdgeDebouncer(hold_ms=0)
        assert d.update(True, 0) is True
        assert d.update(False, 1) is False

    def test_default_hold(self):
        assert EdgeDebouncer().hold_ms == 80

    def test_reset(self):
        d = EdgeDebouncer(hold_ms=80)
        d.update(True, 0)
        d.reset()
        assert not d.is_armed
        assert d.update(True, 100) is False

    def test_negative_hold_rejected(self):
        with pytest.raises(ValueError):
            EdgeDebouncer(hold_ms=-1)

    def test_instances_are_independent(self):
        left, right = EdgeDebouncer(), EdgeDebouncer()
        left.update(True, 0)
        assert right.update(True, 100) is False
        assert left.update(True, 100) is True
