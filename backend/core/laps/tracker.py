"""
Per-lap aggregation.

Laps are started by an external lap-mark event. Each lap accumulates its own
foiling percentage, upwind/downwind VMG averages, maneuver statistics and
VMG over ground along the wind axis. These statistics are kept separate from
the session-wide maneuver statistics.
"""

import math
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

import numpy as np

from core.calculations import distance_and_bearing, meters_to_nautical_miles
from core.constants import (
    DEFAULT_FOILING_SPEED_THRESHOLD_KNOTS, MILLISECONDS_PER_HOUR, MILLISECONDS_PER_SECOND,
    MIN_LAP_ELAPSED_HOURS, MAX_SNAPSHOT_VMG_KNOTS, MAX_SNAPSHOT_SECONDS,
    MAX_SNAPSHOT_DISTANCE_METERS, MAX_SNAPSHOT_ANGLE_DEGREES, MAX_SNAPSHOT_PERCENT
)
from core.models.lap import LapRecord, LapSnapshot, LapStats
from core.models.maneuver import ManeuverRecord

logger = logging.getLogger(__name__)


@dataclass
class LapFallback:
    """Session-wide values used when no lap is active or a lap has no data yet."""
    current_vmg: float = 0.0
    is_upwind: bool = True
    avg_tack_angle: float = 0.0
    last_tack_ms: Optional[int] = None
    speed_knots: float = 0.0


def _clamp(value: float, upper: float, digits: Optional[int] = 1) -> float:
    if value is None or math.isnan(value):
        value = 0.0
    value = min(max(value, 0.0), upper)
    if digits is None:
        return int(round(value))
    return round(value, digits)


class LapTracker:
    """
    Tracks lap boundaries and per-lap statistics.

    Lap 0 means no lap has been marked yet; all per-lap processing is a no-op
    until the first mark. Laps are never removed.
    """

    def __init__(self, foiling_speed_threshold: float = DEFAULT_FOILING_SPEED_THRESHOLD_KNOTS):
        self.foiling_speed_threshold = foiling_speed_threshold
        self.current_lap = 0
        self.laps: Dict[int, LapRecord] = {}

    @property
    def current_record(self) -> Optional[LapRecord]:
        return self.laps.get(self.current_lap)

    def on_lap_marked(self, timestamp_ms: Optional[int],
                      position: Optional[Tuple[float, float]] = None) -> int:
        """
        Start a new lap.

        Args:
            timestamp_ms: Lap start time in milliseconds, or None to start at the next sample
            position: Optional (latitude, longitude) used as the lap reference point

        Returns:
            int: The new 1-based lap number
        """
        self.current_lap += 1
        self.laps[self.current_lap] = LapRecord(
            lap_number=self.current_lap,
            start_timestamp_ms=int(timestamp_ms) if timestamp_ms is not None else None,
            start_position=tuple(position) if position is not None else None
        )
        logger.info(f"Lap {self.current_lap} started at {timestamp_ms} ms"
                    + (f" from {position[0]:.5f}, {position[1]:.5f}" if position is not None else ""))
        return self.current_lap

    # ------------------------------------------------------------------
    # Per-sample accumulation
    # ------------------------------------------------------------------

    def process_data(self,
                     position: Optional[Tuple[float, float]],
                     speed_knots: float,
                     is_upwind: bool,
                     vmg: float,
                     wind_direction: float,
                     timestamp_ms: int) -> None:
        """
        Accumulate one sample into the current lap.

        Args:
            position: Current (latitude, longitude), or None if unavailable
            speed_knots: Current speed in knots
            is_upwind: Current point of sail
            vmg: Current smoothed VMG in knots
            wind_direction: Current wind direction in degrees
            timestamp_ms: Sample time in milliseconds
        """
        record = self.current_record
        if record is None:
            return

        if record.start_timestamp_ms is None:
            # Lap marked before any sample: timing starts with the first one
            record.start_timestamp_ms = int(timestamp_ms)

        # Foiling percentage
        record.total_point_count += 1
        if speed_knots >= self.foiling_speed_threshold:
            record.foiling_point_count += 1
        record.stats.pct_on_foil = 100.0 * record.foiling_point_count / record.total_point_count

        # Upwind / downwind VMG averages
        if is_upwind:
            record.vmg_up_total += vmg
            record.vmg_up_points += 1
            record.stats.avg_vmg_up = record.vmg_up_total / record.vmg_up_points
        else:
            record.vmg_down_total += vmg
            record.vmg_down_points += 1
            record.stats.avg_vmg_down = record.vmg_down_total / record.vmg_down_points

        if position is not None:
            self._update_lap_vmg(record, position, is_upwind, wind_direction, timestamp_ms)

    def _update_lap_vmg(self, record: LapRecord, position: Tuple[float, float],
                        is_upwind: bool, wind_direction: float, timestamp_ms: int) -> None:
        if record.start_position is None:
            # Lap marked without a fix: the first fix becomes the reference point
            record.start_position = tuple(position)
            logger.debug(f"Lap {record.lap_number} reference set from first fix")
            return

        elapsed_hours = (timestamp_ms - record.start_timestamp_ms) / MILLISECONDS_PER_HOUR
        if elapsed_hours < MIN_LAP_ELAPSED_HOURS:
            return

        distance, bearing = distance_and_bearing(
            record.start_position[0], record.start_position[1], position[0], position[1]
        )
        record.distance_meters = distance

        # Positive toward the wind; flipped so downwind progress is positive when running
        projected = distance * math.cos(math.radians(bearing - wind_direction))
        if not is_upwind:
            projected = -projected

        record.stats.lap_vmg = meters_to_nautical_miles(projected) / elapsed_hours
        record.lap_vmg_points += 1

    # ------------------------------------------------------------------
    # Maneuvers
    # ------------------------------------------------------------------

    def record_maneuver_in_lap(self, maneuver: ManeuverRecord) -> None:
        """Append a resolved maneuver to the current lap and refresh its statistics."""
        record = self.current_record
        if record is None:
            return

        if maneuver.is_tack:
            record.tacks.append(maneuver)
        else:
            record.gybes.append(maneuver)

        stats = record.stats
        stats.tack_count = len(record.tacks)
        stats.gybe_count = len(record.gybes)
        if record.tacks:
            tack_angles = np.array([m.angle for m in record.tacks])
            stats.avg_tack_angle = float(np.mean(tack_angles))
            stats.max_tack_angle = float(np.max(tack_angles))
        if record.gybes:
            gybe_angles = np.array([m.angle for m in record.gybes])
            stats.avg_gybe_angle = float(np.mean(gybe_angles))
            stats.max_gybe_angle = float(np.max(gybe_angles))

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_lap_record(self, lap_number: int) -> Optional[LapRecord]:
        return self.laps.get(lap_number)

    def get_all_laps(self) -> List[LapRecord]:
        return [self.laps[number] for number in sorted(self.laps)]

    def get_lap_stats(self, lap_number: int) -> Optional[LapStats]:
        record = self.laps.get(lap_number)
        return record.stats if record is not None else None

    def get_lap_data(self, timestamp_ms: int, fallback: Optional[LapFallback] = None) -> LapSnapshot:
        """
        Build the fixed-shape lap snapshot.

        Per-lap values are preferred; session-wide values from `fallback` are
        used when no lap is active or the lap has no data for a field yet.
        Every value is clamped to a non-negative range and rounded to one
        decimal (angle and percentage to integers).
        """
        if fallback is None:
            fallback = LapFallback()
        record = self.current_record

        if record is not None and record.vmg_up_points > 0:
            vmg_up = record.stats.avg_vmg_up
        else:
            vmg_up = fallback.current_vmg if fallback.is_upwind else 0.0

        if record is not None and record.vmg_down_points > 0:
            vmg_down = record.stats.avg_vmg_down
        else:
            vmg_down = fallback.current_vmg if not fallback.is_upwind else 0.0

        last_tack_ms = record.last_tack_ms if record is not None else None
        if last_tack_ms is None:
            last_tack_ms = fallback.last_tack_ms
        if last_tack_ms is not None:
            seconds_since_last_tack = (timestamp_ms - last_tack_ms) / MILLISECONDS_PER_SECOND
        else:
            seconds_since_last_tack = 0.0

        if record is not None and record.tacks:
            avg_tack_angle = record.stats.avg_tack_angle
        else:
            avg_tack_angle = fallback.avg_tack_angle

        lap_distance = record.distance_meters if record is not None else 0.0
        if record is not None and record.lap_vmg_points > 0:
            cumulative_lap_vmg = record.stats.lap_vmg
        else:
            cumulative_lap_vmg = fallback.current_vmg

        if record is not None and record.total_point_count > 0:
            percent_on_foil = record.stats.pct_on_foil
        else:
            percent_on_foil = 100.0 if fallback.speed_knots >= self.foiling_speed_threshold else 0.0

        return LapSnapshot(
            vmg_up=_clamp(vmg_up, MAX_SNAPSHOT_VMG_KNOTS),
            vmg_down=_clamp(vmg_down, MAX_SNAPSHOT_VMG_KNOTS),
            seconds_since_last_tack=_clamp(seconds_since_last_tack, MAX_SNAPSHOT_SECONDS),
            lap_distance_meters=_clamp(lap_distance, MAX_SNAPSHOT_DISTANCE_METERS),
            avg_tack_angle=_clamp(avg_tack_angle, MAX_SNAPSHOT_ANGLE_DEGREES, digits=None),
            cumulative_lap_vmg=_clamp(cumulative_lap_vmg, MAX_SNAPSHOT_VMG_KNOTS),
            percent_on_foil=_clamp(percent_on_foil, MAX_SNAPSHOT_PERCENT, digits=None)
        )
