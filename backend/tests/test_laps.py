"""
Tests for per-lap statistics and the lap snapshot.
"""

import pytest
from datetime import datetime

from core.calculations import calculate_distance, meters_to_nautical_miles
from core.laps import LapTracker, LapFallback, LapSnapshot
from core.models.maneuver import ManeuverRecord

START = (50.0, -1.0)
ONE_HOUR_MS = 3600 * 1000


def make_maneuver(is_tack=True, angle=90.0, timestamp_ms=10000, lap_number=1):
    return ManeuverRecord(
        is_tack=is_tack,
        resulting_heading=45.0,
        angle=angle,
        wall_clock_time=datetime(2024, 6, 1, 12, 0, 0),
        timestamp_ms=timestamp_ms,
        lap_number=lap_number
    )


class TestLapMarking:
    """Tests for lap boundaries."""

    def test_no_lap_until_marked(self):
        laps = LapTracker()
        assert laps.current_lap == 0
        assert laps.current_record is None

        # Per-lap processing is a no-op without a lap
        laps.process_data(START, 10.0, True, 5.0, 0.0, 1000)
        laps.record_maneuver_in_lap(make_maneuver())
        assert laps.get_all_laps() == []

    def test_lap_numbers_increase(self):
        laps = LapTracker()
        assert laps.on_lap_marked(0, START) == 1
        assert laps.on_lap_marked(60000, START) == 2
        assert [record.lap_number for record in laps.get_all_laps()] == [1, 2]
        assert laps.get_lap_record(1).start_timestamp_ms == 0

    def test_lap_statistics_are_isolated(self):
        laps = LapTracker()
        laps.on_lap_marked(0, START)
        laps.record_maneuver_in_lap(make_maneuver(angle=80.0))
        laps.record_maneuver_in_lap(make_maneuver(is_tack=False, angle=120.0))
        laps.process_data(START, 10.0, True, 5.0, 0.0, 1000)

        laps.on_lap_marked(60000, START)

        lap1 = laps.get_lap_stats(1)
        lap2 = laps.get_lap_stats(2)
        assert lap1.tack_count == 1
        assert lap1.gybe_count == 1
        assert lap1.avg_gybe_angle == pytest.approx(120.0)
        assert lap2.tack_count == 0
        assert lap2.pct_on_foil == 0.0
        assert laps.get_lap_stats(3) is None


class TestLapAccumulation:
    """Tests for process_data and maneuver statistics."""

    def test_percent_on_foil(self):
        laps = LapTracker(foiling_speed_threshold=7.0)
        laps.on_lap_marked(0)
        for i, speed in enumerate([10.0, 5.0, 8.0, 3.0]):
            laps.process_data(None, speed, True, 1.0, 0.0, i * 1000)
        assert laps.get_lap_stats(1).pct_on_foil == pytest.approx(50.0)

    @pytest.mark.parametrize("speeds,expected", [
        ([10.0, 12.0], 100.0),
        ([3.0, 6.9], 0.0),
        ([7.0], 100.0),
    ])
    def test_percent_on_foil_bounds(self, speeds, expected):
        laps = LapTracker(foiling_speed_threshold=7.0)
        laps.on_lap_marked(0)
        for i, speed in enumerate(speeds):
            laps.process_data(None, speed, True, 1.0, 0.0, i * 1000)
        assert laps.get_lap_stats(1).pct_on_foil == pytest.approx(expected)

    def test_vmg_averages_by_point_of_sail(self):
        laps = LapTracker()
        laps.on_lap_marked(0)
        laps.process_data(None, 10.0, True, 4.0, 0.0, 1000)
        laps.process_data(None, 10.0, True, 6.0, 0.0, 2000)
        laps.process_data(None, 10.0, False, 8.0, 0.0, 3000)

        stats = laps.get_lap_stats(1)
        assert stats.avg_vmg_up == pytest.approx(5.0)
        assert stats.avg_vmg_down == pytest.approx(8.0)

    def test_maneuver_stats(self):
        laps = LapTracker()
        laps.on_lap_marked(0)
        laps.record_maneuver_in_lap(make_maneuver(angle=80.0))
        laps.record_maneuver_in_lap(make_maneuver(angle=100.0))

        stats = laps.get_lap_stats(1)
        assert stats.tack_count == 2
        assert stats.avg_tack_angle == pytest.approx(90.0)
        assert stats.max_tack_angle == pytest.approx(100.0)


class TestLapVMG:
    """Tests for VMG over ground along the wind axis."""

    def test_upwind_progress(self):
        laps = LapTracker()
        laps.on_lap_marked(0, START)
        end = (START[0] + 0.0166, START[1])
        laps.process_data(end, 10.0, True, 5.0, 0.0, ONE_HOUR_MS)

        expected = meters_to_nautical_miles(calculate_distance(*START, *end))
        assert laps.get_lap_stats(1).lap_vmg == pytest.approx(expected, rel=1e-6)
        assert laps.get_lap_record(1).distance_meters == pytest.approx(calculate_distance(*START, *end))

    def test_downwind_progress_is_positive(self):
        laps = LapTracker()
        laps.on_lap_marked(0, START)
        end = (START[0] - 0.0166, START[1])
        laps.process_data(end, 10.0, False, 5.0, 0.0, ONE_HOUR_MS)
        assert laps.get_lap_stats(1).lap_vmg > 0.9

    def test_crosswind_progress_is_near_zero(self):
        laps = LapTracker()
        laps.on_lap_marked(0, START)
        laps.process_data((START[0], START[1] + 0.02), 10.0, True, 5.0, 0.0, ONE_HOUR_MS)
        assert laps.get_lap_stats(1).lap_vmg == pytest.approx(0.0, abs=0.01)

    def test_first_fix_becomes_reference(self):
        laps = LapTracker()
        laps.on_lap_marked(0)
        laps.process_data(START, 10.0, True, 5.0, 0.0, 1000)

        record = laps.get_lap_record(1)
        assert record.start_position == START
        assert record.stats.lap_vmg == 0.0

    def test_lap_marked_before_first_sample_times_from_first_sample(self):
        laps = LapTracker()
        laps.on_lap_marked(None, START)
        assert laps.get_lap_record(1).start_timestamp_ms is None

        # Ten minutes straight upwind at 5 m/s, epoch-millisecond timestamps
        epoch_ms = 1_717_243_200_000
        for i in range(600):
            position = (START[0] + i * 5.0 / 111320.0, START[1])
            laps.process_data(position, 9.7, True, 9.0, 0.0, epoch_ms + i * 1000)

        assert laps.get_lap_record(1).start_timestamp_ms == epoch_ms
        assert laps.get_lap_stats(1).lap_vmg > 9.0
        assert laps.get_lap_data(epoch_ms + 599000).cumulative_lap_vmg > 9.0

    def test_no_update_without_elapsed_time(self):
        laps = LapTracker()
        laps.on_lap_marked(5000, START)
        laps.process_data((START[0] + 0.01, START[1]), 10.0, True, 5.0, 0.0, 5000)
        assert laps.get_lap_stats(1).lap_vmg == 0.0


class TestLapSnapshot:
    """Tests for get_lap_data."""

    def test_fallback_without_lap(self):
        laps = LapTracker(foiling_speed_threshold=7.0)
        snapshot = laps.get_lap_data(0, LapFallback(current_vmg=5.0, is_upwind=True, speed_knots=10.0))

        assert snapshot.vmg_up == pytest.approx(5.0)
        assert snapshot.vmg_down == 0.0
        assert snapshot.cumulative_lap_vmg == pytest.approx(5.0)
        assert snapshot.lap_distance_meters == 0.0
        assert snapshot.percent_on_foil == 100

    def test_fallback_downwind_and_slow(self):
        laps = LapTracker(foiling_speed_threshold=7.0)
        snapshot = laps.get_lap_data(0, LapFallback(current_vmg=6.0, is_upwind=False, speed_knots=3.0))

        assert snapshot.vmg_up == 0.0
        assert snapshot.vmg_down == pytest.approx(6.0)
        assert snapshot.percent_on_foil == 0

    def test_values_are_clamped(self):
        laps = LapTracker()
        snapshot = laps.get_lap_data(10 ** 9, LapFallback(
            current_vmg=150.0, is_upwind=True, avg_tack_angle=250.0, last_tack_ms=0
        ))

        assert snapshot.vmg_up == pytest.approx(99.9)
        assert snapshot.seconds_since_last_tack == pytest.approx(86400.0)
        assert snapshot.avg_tack_angle == 180

    def test_negative_lap_vmg_clamped_to_zero(self):
        laps = LapTracker()
        laps.on_lap_marked(0, START)
        # Sailing away from the wind while upwind
        laps.process_data((START[0] - 0.01, START[1]), 10.0, True, 5.0, 0.0, ONE_HOUR_MS)

        assert laps.get_lap_stats(1).lap_vmg < 0
        assert laps.get_lap_data(ONE_HOUR_MS).cumulative_lap_vmg == 0.0

    def test_rounding(self):
        laps = LapTracker()
        snapshot = laps.get_lap_data(0, LapFallback(current_vmg=5.26, is_upwind=True, avg_tack_angle=87.6))

        assert snapshot.vmg_up == pytest.approx(5.3)
        assert snapshot.avg_tack_angle == 88
        assert isinstance(snapshot.avg_tack_angle, int)
        assert isinstance(snapshot.percent_on_foil, int)

    def test_lap_values_preferred_over_fallback(self):
        laps = LapTracker()
        laps.on_lap_marked(0)
        laps.process_data(None, 10.0, True, 4.0, 0.0, 1000)
        laps.record_maneuver_in_lap(make_maneuver(angle=70.0, timestamp_ms=10000))

        snapshot = laps.get_lap_data(25000, LapFallback(
            current_vmg=9.0, is_upwind=True, avg_tack_angle=100.0, last_tack_ms=20000
        ))
        assert snapshot.vmg_up == pytest.approx(4.0)
        assert snapshot.avg_tack_angle == 70
        assert snapshot.seconds_since_last_tack == pytest.approx(15.0)

    def test_session_vmg_used_when_lap_has_no_positions(self):
        laps = LapTracker()
        laps.on_lap_marked(0)
        laps.process_data(None, 10.0, True, 4.0, 0.0, 1000)

        snapshot = laps.get_lap_data(1000, LapFallback(current_vmg=6.5, is_upwind=True))
        assert snapshot.cumulative_lap_vmg == pytest.approx(6.5)
        assert snapshot.lap_distance_meters == 0.0

    def test_session_last_tack_used_when_lap_has_none(self):
        laps = LapTracker()
        laps.on_lap_marked(0)
        snapshot = laps.get_lap_data(30000, LapFallback(last_tack_ms=20000))
        assert snapshot.seconds_since_last_tack == pytest.approx(10.0)

    def test_no_tack_ever_is_zero_seconds(self):
        laps = LapTracker()
        assert laps.get_lap_data(30000).seconds_since_last_tack == 0.0


class TestRecordFields:
    """Tests for the integer recording encoding."""

    def test_decimals_scaled_by_ten(self):
        snapshot = LapSnapshot(
            vmg_up=5.3, vmg_down=0.0, seconds_since_last_tack=12.6,
            lap_distance_meters=1234.4, avg_tack_angle=88,
            cumulative_lap_vmg=4.1, percent_on_foil=75
        )
        assert snapshot.to_record_fields() == {
            'vmg_up': 53,
            'vmg_down': 0,
            'seconds_since_last_tack': 13,
            'lap_distance_meters': 1234,
            'avg_tack_angle': 88,
            'cumulative_lap_vmg': 41,
            'percent_on_foil': 75,
        }
