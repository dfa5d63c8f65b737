"""
Tests for tack and gybe detection, delayed angle measurement and wind inference.
"""

import pytest
from datetime import datetime

from core.calculations import angle_abs_difference
from core.models.maneuver import PendingManeuver, maneuvers_to_dataframe
from core.wind.angles import AngleCalculator
from core.wind.maneuvers import ManeuverDetector

FIXED_TIME = datetime(2024, 6, 1, 12, 0, 0)
FAST = 12.0  # knots
SLOW = 4.0


def make_detector(**kwargs):
    calc = AngleCalculator(smoothing_factor=1.0)
    return ManeuverDetector(calc, clock=lambda: FIXED_TIME, **kwargs)


def sail(detector, legs, wind=0.0, speed=FAST, start_s=0):
    """
    Feed 1 Hz samples for each (heading, seconds) leg.

    Returns the resolved maneuver records in order.
    """
    resolved = []
    t = start_s
    for heading, seconds in legs:
        for _ in range(seconds):
            ts = t * 1000
            detector.angles.process_heading(heading, ts, wind)
            detector.detect_maneuver(speed, ts)
            record = detector.check_pending_maneuvers(ts, wind)
            if record is not None:
                resolved.append(record)
            t += 1
    return resolved


class TestCrossingDetection:
    """Tests for detect_maneuver."""

    def test_upwind_crossing_is_tack(self):
        detector = make_detector()
        sail(detector, [(45, 30), (315, 1)])

        assert detector.pending is not None
        assert detector.pending.is_tack is True
        assert detector.pending.detected_at_ms == 30000
        assert detector.pending.old_tack_side == 'Port'
        assert detector.pending.new_tack_side == 'Starboard'
        assert detector.angles.is_starboard is True

    def test_small_crossing_through_the_wind_is_tack(self):
        """Wind angle +15 to -15 from upwind resolves to exactly one tack."""
        detector = make_detector()
        resolved = sail(detector, [(345, 30), (15, 13)])

        assert len(resolved) == 1
        assert resolved[0].is_tack is True
        assert resolved[0].angle == pytest.approx(30)
        assert detector.tack_count == 1
        assert detector.gybe_count == 0
        assert detector.angles.tack_side == 'Port'

    def test_downwind_crossing_is_gybe(self):
        detector = make_detector()
        sail(detector, [(135, 30), (225, 1)])

        assert detector.pending is not None
        assert detector.pending.is_tack is False
        assert detector.angles.tack_side == 'Starboard'

    def test_starboard_to_port_tack(self):
        detector = make_detector()
        sail(detector, [(315, 30), (45, 1)])

        assert detector.pending.is_tack is True
        assert detector.angles.tack_side == 'Port'

    def test_below_speed_threshold_is_ignored(self):
        detector = make_detector()
        sail(detector, [(45, 30), (315, 30)], speed=SLOW)

        assert detector.pending is None
        assert detector.tack_count == 0
        assert detector.angles.tack_side == 'Port'

    def test_small_heading_change_is_not_a_crossing(self):
        """Wind angle must pass the threshold strictly."""
        detector = make_detector()
        sail(detector, [(45, 30), (350, 30)])

        assert detector.pending is None
        assert detector.tack_count == 0

    def test_classification_uses_prior_point_of_sail(self):
        """A crossing reached from downwind is a gybe even if it lands upwind."""
        detector = make_detector()
        sail(detector, [(120, 20), (100, 1), (300, 1)])

        assert detector.pending is not None
        assert detector.pending.is_tack is False


class TestDelayedMeasurement:
    """Tests for check_pending_maneuvers."""

    def test_tack_resolves_after_guard_window(self):
        detector = make_detector()
        resolved = sail(detector, [(45, 30), (315, 13)])

        # Crossing at 30 s resolves at 42 s
        assert len(resolved) == 1
        record = resolved[0]
        assert record.is_tack is True
        assert record.angle == pytest.approx(90)
        assert record.resulting_heading == pytest.approx(315)
        assert record.timestamp_ms == 30000
        assert record.wall_clock_time == FIXED_TIME
        assert detector.tack_count == 1
        assert detector.last_tack_angle == pytest.approx(90)
        assert detector.pending is None

    def test_not_resolved_before_guard_window(self):
        detector = make_detector()
        resolved = sail(detector, [(45, 30), (315, 11)])

        assert resolved == []
        assert detector.pending is not None
        assert detector.tack_count == 0

    def test_angle_measured_from_heading_windows(self):
        """300 before and 30 after the crossing is a 90 degree turn."""
        detector = make_detector()
        history = detector.angles.history
        for t in range(0, 11):
            history.append(300, t * 1000)
        for t in range(14, 25):
            history.append(30, t * 1000)

        detector.pending = PendingManeuver(
            is_tack=True, detected_at_ms=12000, wind_angle_before=-30.0,
            old_tack_side='Starboard', new_tack_side='Port'
        )
        record = detector.check_pending_maneuvers(24000, wind_direction=345)

        assert record is not None
        assert record.angle == pytest.approx(90)
        assert record.resulting_heading == pytest.approx(30)

    def test_insufficient_history_drops_maneuver(self):
        """A crossing with no samples in the before-window is discarded."""
        detector = make_detector()
        resolved = sail(detector, [(45, 1), (315, 20)])

        assert resolved == []
        assert detector.pending is None
        assert detector.tack_count == 0
        # The tack side still flipped at the crossing
        assert detector.angles.tack_side == 'Starboard'

    def test_new_crossing_replaces_pending(self):
        detector = make_detector()
        resolved = sail(detector, [(45, 30), (315, 5), (45, 13)])

        assert len(resolved) == 1
        assert resolved[0].timestamp_ms == 35000
        assert detector.tack_count == 1

    def test_gybe_resolution(self):
        detector = make_detector()
        resolved = sail(detector, [(135, 30), (225, 13)])

        assert len(resolved) == 1
        assert resolved[0].is_tack is False
        assert resolved[0].angle == pytest.approx(90)
        assert detector.gybe_count == 1
        assert detector.tack_count == 0


class TestWindInference:
    """Tests for wind direction recommendations."""

    def test_single_maneuver_gives_no_recommendation(self):
        detector = make_detector()
        sail(detector, [(45, 30), (315, 15)], wind=10)
        assert detector.take_wind_recommendation() is None

    def test_two_tacks_recommend_bisector(self):
        detector = make_detector()
        sail(detector, [(45, 30), (315, 30), (45, 15)], wind=10)

        assert detector.tack_count == 2
        assert detector.tack_headings == [pytest.approx(315), pytest.approx(45)]
        candidate = detector.take_wind_recommendation()
        assert angle_abs_difference(candidate, 0) < 1e-6
        # Consumed
        assert detector.take_wind_recommendation() is None

    def test_two_gybes_recommend_opposite_of_bisector(self):
        detector = make_detector()
        sail(detector, [(135, 30), (225, 30), (135, 15)], wind=10)

        assert detector.gybe_count == 2
        candidate = detector.take_wind_recommendation()
        assert angle_abs_difference(candidate, 0) < 1e-6

    def test_bisector_of_headings_across_north(self):
        """Headings 10 and 350 give north, not the arithmetic mean 180."""
        detector = make_detector()
        candidate = detector._infer_wind_direction(10, 350, is_tack=True, wind_direction=0)
        assert angle_abs_difference(candidate, 0) < 1e-6

    def test_candidate_flipped_toward_current_wind(self):
        detector = make_detector()
        candidate = detector._infer_wind_direction(315, 45, is_tack=True, wind_direction=170)
        assert candidate == pytest.approx(180)


class TestHistoryAndStats:
    """Tests for maneuver history, statistics and reset."""

    def test_history_sorted_and_stats(self):
        detector = make_detector()
        sail(detector, [(45, 30), (315, 30), (225, 30), (135, 30), (225, 15)])

        history = detector.get_maneuver_history()
        assert [r.timestamp_ms for r in history] == sorted(r.timestamp_ms for r in history)
        assert detector.stats.tack_count == detector.tack_count
        assert detector.stats.gybe_count == detector.gybe_count
        assert detector.stats.max_tack_angle >= detector.stats.avg_tack_angle

    def test_history_capacity(self):
        detector = make_detector(history_capacity=1)
        sail(detector, [(45, 30), (315, 30), (45, 15)])

        assert detector.tack_count == 2
        assert len(detector.tack_history) == 1
        assert detector.tack_history[0].timestamp_ms == 30000

    def test_last_tack_time_tracked_beyond_capacity(self):
        detector = make_detector(history_capacity=1)
        sail(detector, [(45, 30), (315, 30), (45, 15)])

        assert detector.last_tack_ms == 60000
        assert detector.stats.last_tack_ms == 60000

    def test_reset_clears_everything(self):
        detector = make_detector()
        sail(detector, [(45, 30), (315, 30), (45, 5)])
        detector.reset()

        assert detector.tack_count == 0
        assert detector.pending is None
        assert detector.tack_headings == [None, None]
        assert detector.last_tack_ms is None
        assert detector.get_maneuver_history() == []
        assert detector.stats.tack_count == 0

    def test_maneuvers_to_dataframe(self):
        detector = make_detector()
        sail(detector, [(45, 30), (315, 30), (45, 15)])

        df = maneuvers_to_dataframe(detector.get_maneuver_history())
        assert list(df['kind']) == ['tack', 'tack']
        assert list(df['timestamp_ms']) == [30000, 60000]

    def test_empty_dataframe_has_columns(self):
        df = maneuvers_to_dataframe([])
        assert df.empty
        assert 'angle' in df.columns
