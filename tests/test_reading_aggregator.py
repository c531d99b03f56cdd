"""
Unit tests for the reading aggregator / low-pass filter.

Tests cover:
- low_pass utility
- Latest-reading table (last write wins, one entry per anchor)
- Position smoothing initialization and alpha=0.15 steps
- Error smoothing seeded at 0 (alpha=0.1)
- Bounded FIFO histories (100 fixes, 50 distance snapshots)
"""

import pytest

from uwb_field.metrics import get_metrics
from uwb_field.proto import Coordinate
from uwb_field.localization import (
    ERROR_ALPHA,
    POSITION_ALPHA,
    low_pass,
)
from tests.conftest import make_reading, readings_for_point


def ingest_all(aggregator, readings):
    """Ingest readings in anchor order, returning the last raw result."""
    result = None
    for aid in sorted(readings):
        result = aggregator.ingest(readings[aid])
    return result


class TestLowPass:
    """Tests for the exponential smoothing helper."""

    def test_step(self):
        assert low_pass(10.0, 20.0, 0.15) == pytest.approx(11.5)

    def test_alpha_zero_holds(self):
        assert low_pass(3.0, 100.0, 0.0) == 3.0

    def test_alpha_one_tracks(self):
        assert low_pass(3.0, 100.0, 1.0) == 100.0

    def test_equal_input_no_drift(self):
        assert low_pass(7.5, 7.5, POSITION_ALPHA) == 7.5

    def test_invalid_alpha(self):
        with pytest.raises(ValueError, match="Alpha"):
            low_pass(0.0, 1.0, 1.5)

    def test_fixed_coefficients(self):
        assert POSITION_ALPHA == 0.15
        assert ERROR_ALPHA == 0.1


class TestReadingTable:
    """Latest reading per anchor."""

    def test_last_write_wins(self, aggregator):
        aggregator.ingest(make_reading("2", 10.0, timestamp_ms=1))
        aggregator.ingest(make_reading("2", 12.5, timestamp_ms=2))

        table = aggregator.readings
        assert len(table) == 1
        assert table["2"].distance_cm == 12.5

    def test_view_is_a_copy(self, aggregator):
        aggregator.ingest(make_reading("1", 10.0))
        table = aggregator.readings
        table.clear()
        assert "1" in aggregator.readings

    def test_unknown_anchor_dropped(self, aggregator):
        assert aggregator.ingest(make_reading("9", 10.0)) is None

        assert aggregator.readings == {}
        assert aggregator.distance_history == ()
        assert get_metrics().get_drop_count('unknown_anchor') == 1

    def test_no_fix_until_three_anchors(self, aggregator, layout):
        readings = readings_for_point(layout, (20.0, 10.0))

        assert aggregator.ingest(readings["1"]) is None
        assert aggregator.ingest(readings["2"]) is None
        assert aggregator.smoothed_position is None
        assert aggregator.current_estimate() is None
        assert aggregator.ingest(readings["3"]) is not None
        assert get_metrics().get_drop_count('insufficient_anchors') == 2

    def test_online_anchor_count(self, aggregator, clock):
        aggregator.ingest(make_reading("1", 10.0, timestamp_ms=clock.now_ms))
        clock.advance(20000)
        aggregator.ingest(make_reading("2", 10.0, timestamp_ms=clock.now_ms))
        clock.advance(15000)

        assert aggregator.online_anchor_count() == 1
        assert aggregator.online_anchor_count(max_age_ms=60000) == 2
        assert aggregator.last_sync_ms == clock.now_ms - 15000


class TestPositionSmoothing:
    """Smoothed position behavior."""

    def test_first_fix_initializes_directly(self, aggregator, layout):
        raw = ingest_all(aggregator, readings_for_point(layout, (20.0, 10.0), ("1", "2", "3")))

        assert aggregator.smoothed_position == raw.position

    def test_second_fix_moves_by_alpha(self, aggregator, layout):
        ingest_all(aggregator, readings_for_point(layout, (20.0, 10.0), ("1", "2", "3")))
        before = aggregator.smoothed_position

        raw = aggregator.ingest(make_reading("3", 30.0))
        after = aggregator.smoothed_position

        assert raw is not None
        assert after.x - before.x == pytest.approx(0.15 * (raw.x - before.x))
        assert after.y - before.y == pytest.approx(0.15 * (raw.y - before.y))
        assert after.y != before.y

    def test_repeated_identical_reading_no_drift(self, aggregator, layout):
        readings = readings_for_point(layout, (20.0, 10.0), ("1", "2", "3"))
        ingest_all(aggregator, readings)
        before = aggregator.smoothed_position

        aggregator.ingest(readings["3"])

        assert aggregator.smoothed_position == before

    def test_no_fix_keeps_previous_smoothed_values(self, aggregator, layout):
        ingest_all(aggregator, readings_for_point(layout, (20.0, 10.0), ("1", "2", "3")))
        position = aggregator.smoothed_position
        error = aggregator.smoothed_error
        history_len = len(aggregator.position_history)

        # Anchor 2 drops out: only {1,3} positive
        assert aggregator.ingest(make_reading("2", 0.0)) is None

        assert aggregator.smoothed_position == position
        assert aggregator.smoothed_error == error
        assert len(aggregator.position_history) == history_len

    def test_converges_toward_steady_input(self, aggregator, layout):
        ingest_all(aggregator, readings_for_point(layout, (20.0, 10.0), ("1", "2", "3")))
        moved = readings_for_point(layout, (20.0, 30.0), ("1", "2", "3"))

        for _ in range(60):
            ingest_all(aggregator, moved)

        assert aggregator.smoothed_position.x == pytest.approx(20.0, abs=1e-6)
        assert aggregator.smoothed_position.y == pytest.approx(30.0, abs=0.01)


class TestErrorSmoothing:
    """Smoothed error starts at 0 rather than at the first residual."""

    def test_seeded_at_zero(self, aggregator):
        assert aggregator.smoothed_error == 0.0

    def test_first_error_is_low_passed_from_zero(self, aggregator):
        readings = {
            "1": make_reading("1", 10.0),
            "2": make_reading("2", 45.0),
            "3": make_reading("3", 40.0),
        }
        raw = ingest_all(aggregator, readings)

        assert raw.error_cm > 0
        assert aggregator.smoothed_error == pytest.approx(0.1 * raw.error_cm)

    def test_current_estimate_combines_smoothed_values(self, aggregator):
        readings = {
            "1": make_reading("1", 10.0),
            "2": make_reading("2", 45.0),
            "3": make_reading("3", 40.0),
        }
        ingest_all(aggregator, readings)

        estimate = aggregator.current_estimate()

        assert estimate.position == aggregator.smoothed_position
        assert estimate.error_cm == aggregator.smoothed_error


class TestHistories:
    """Bounded FIFO histories."""

    def test_position_history_records_raw_fix(self, aggregator, layout, clock):
        ingest_all(aggregator, readings_for_point(layout, (20.0, 10.0), ("1", "2", "3")))
        raw = aggregator.ingest(make_reading("3", 30.0))

        last = aggregator.position_history[-1]
        assert (last.x, last.y) == (raw.x, raw.y)
        assert last.timestamp_ms == clock.now_ms
        assert Coordinate(last.x, last.y) != aggregator.smoothed_position

    def test_position_history_capped_at_100(self, aggregator, layout, clock):
        ingest_all(aggregator, readings_for_point(layout, (20.0, 10.0), ("1", "2")))
        reading_3 = readings_for_point(layout, (20.0, 10.0), ("3",))["3"]

        for _ in range(130):
            clock.advance(10)
            aggregator.ingest(reading_3)

        history = aggregator.position_history
        assert len(history) == 100
        assert history[0].timestamp_ms == clock.now_ms - 99 * 10
        assert history[-1].timestamp_ms == clock.now_ms

    def test_distance_history_capped_at_50(self, aggregator, clock):
        for i in range(80):
            clock.advance(5)
            aggregator.ingest(make_reading("1", float(i + 1)))

        history = aggregator.distance_history
        assert len(history) == 50
        assert history[0].d1 == 31.0
        assert history[-1].d1 == 80.0
        assert history[0].timestamp_ms == clock.now_ms - 49 * 5

    def test_distance_snapshot_recorded_without_fix(self, aggregator):
        aggregator.ingest(make_reading("4", 12.0))

        snapshot = aggregator.distance_history[-1]
        assert snapshot.d4 == 12.0
        assert snapshot.d1 is None
        assert snapshot.d2 is None
        assert snapshot.d3 is None
        assert aggregator.position_history == ()

    def test_reset_clears_everything(self, aggregator, layout):
        ingest_all(aggregator, readings_for_point(layout, (20.0, 10.0)))

        aggregator.reset()

        assert aggregator.readings == {}
        assert aggregator.smoothed_position is None
        assert aggregator.smoothed_error == 0.0
        assert aggregator.position_history == ()
        assert aggregator.distance_history == ()
