"""
Tack and gybe detection.

Maneuvers are detected as threshold crossings of the wind angle relative to
COG, but their turning angle is measured later: the heading keeps settling
after the helm action, so the detector waits for a guard window to pass and
then compares the circular-mean heading before and after the crossing.

Resolved maneuvers also drive wind direction inference. Two consecutive
maneuvers of the same type leave the boat on opposite tacks, so the bisector of
their resulting headings points at the wind (tacks) or away from it (gybes).
"""

import logging
from datetime import datetime
from typing import Callable, List, Optional

from core.calculations import angle_abs_difference, calculate_angle_bisector, normalize_angle
from core.constants import (
    DEFAULT_FOILING_SPEED_THRESHOLD_KNOTS, MANEUVER_MEASURE_WINDOW_SECONDS,
    MANEUVER_IGNORE_WINDOW_SECONDS, TACK_CROSSING_THRESHOLD_DEGREES,
    GYBE_CROSSING_THRESHOLD_DEGREES, WIND_FLIP_THRESHOLD_DEGREES,
    MANEUVER_HISTORY_CAPACITY, ANGLE_WRAP_BOUNDARY_DEGREES, MILLISECONDS_PER_SECOND
)
from core.models.maneuver import (
    PendingManeuver, ManeuverRecord, ManeuverStats, summarize_maneuvers
)
from core.wind.angles import AngleCalculator

logger = logging.getLogger(__name__)


class ManeuverDetector:
    """
    Turns the wind angle stream into discrete tack and gybe events.

    Args:
        angle_calculator: Source of the wind angle, tack and heading history
        speed_threshold: Minimum speed in knots for crossings to count
        measure_window: Length of the before/after averaging windows (seconds)
        ignore_window: Guard band around the crossing (seconds)
        clock: Wall clock used to stamp resolved maneuvers
    """

    def __init__(self,
                 angle_calculator: AngleCalculator,
                 speed_threshold: float = DEFAULT_FOILING_SPEED_THRESHOLD_KNOTS,
                 measure_window: float = MANEUVER_MEASURE_WINDOW_SECONDS,
                 ignore_window: float = MANEUVER_IGNORE_WINDOW_SECONDS,
                 tack_threshold: float = TACK_CROSSING_THRESHOLD_DEGREES,
                 gybe_threshold: float = GYBE_CROSSING_THRESHOLD_DEGREES,
                 wind_flip_threshold: float = WIND_FLIP_THRESHOLD_DEGREES,
                 history_capacity: int = MANEUVER_HISTORY_CAPACITY,
                 clock: Callable[[], datetime] = datetime.now):
        self.angles = angle_calculator
        self.speed_threshold = speed_threshold
        self.measure_window_ms = int(measure_window * MILLISECONDS_PER_SECOND)
        self.ignore_window_ms = int(ignore_window * MILLISECONDS_PER_SECOND)
        self.tack_threshold = tack_threshold
        self.gybe_threshold = gybe_threshold
        self.wind_flip_threshold = wind_flip_threshold
        self.history_capacity = history_capacity
        self._clock = clock

        self.pending: Optional[PendingManeuver] = None
        self.recommended_wind_direction: Optional[float] = None
        self.reset()

    def reset(self) -> None:
        """Clear counters, history and statistics (new wind direction epoch)."""
        self.pending = None
        self.recommended_wind_direction = None
        self.tack_count = 0
        self.gybe_count = 0
        self.last_tack_angle = 0.0
        self.last_gybe_angle = 0.0
        self.last_tack_ms: Optional[int] = None
        # [previous, current] resulting headings per maneuver type
        self.tack_headings: List[Optional[float]] = [None, None]
        self.gybe_headings: List[Optional[float]] = [None, None]
        self.tack_history: List[ManeuverRecord] = []
        self.gybe_history: List[ManeuverRecord] = []
        self.stats = ManeuverStats()

    @property
    def resolution_delay_ms(self) -> int:
        """Time after a crossing before its angle can be measured."""
        return self.measure_window_ms + self.ignore_window_ms

    # ------------------------------------------------------------------
    # Crossing detection
    # ------------------------------------------------------------------

    def detect_maneuver(self, speed_knots: float, timestamp_ms: int) -> Optional[PendingManeuver]:
        """
        Check the latest wind angle for a tack or gybe crossing.

        Crossings are ignored entirely below the speed threshold. A crossing
        flips the stored tack side and replaces any unresolved pending maneuver.

        Returns:
            The new PendingManeuver, or None if no crossing occurred
        """
        if speed_knots < self.speed_threshold:
            return None

        angle = self.angles.wind_angle_less_cog

        if self.angles.is_starboard:
            if angle >= -self.tack_threshold:
                return None
            naive_tack = not (angle < -self.gybe_threshold and not self.angles.is_upwind)
        else:
            if angle <= self.tack_threshold:
                return None
            naive_tack = not (angle > self.gybe_threshold and not self.angles.is_upwind)

        old_side = self.angles.tack_side
        self.angles.set_tack(not self.angles.is_starboard)

        # The point of sail before the crossing decides; the crossing rule is only a coarse guess
        is_tack = self.angles.was_upwind
        if is_tack != naive_tack:
            logger.debug(f"Crossing reclassified as {'tack' if is_tack else 'gybe'} "
                         f"from prior point of sail (wind angle {angle:.1f}°)")

        if self.pending is not None:
            logger.warning(f"Unresolved {'tack' if self.pending.is_tack else 'gybe'} detected at "
                           f"{self.pending.detected_at_ms} ms replaced by a new crossing")

        self.pending = PendingManeuver(
            is_tack=is_tack,
            detected_at_ms=int(timestamp_ms),
            wind_angle_before=self.angles.previous_wind_angle,
            old_tack_side=old_side,
            new_tack_side=self.angles.tack_side
        )

        logger.info(f"{'Tack' if is_tack else 'Gybe'} detected at {timestamp_ms} ms: "
                    f"{old_side} -> {self.angles.tack_side} (speed {speed_knots:.1f} kn)")
        return self.pending

    # ------------------------------------------------------------------
    # Delayed angle measurement
    # ------------------------------------------------------------------

    def check_pending_maneuvers(self, timestamp_ms: int, wind_direction: float,
                                lap_number: int = 0) -> Optional[ManeuverRecord]:
        """
        Resolve the pending maneuver once its guard window has elapsed.

        The turning angle is the shortest-arc difference between the mean
        heading over [t - measure - ignore, t - ignore] and over
        [t + ignore, t + ignore + measure], where t is the crossing time.
        If either window holds no samples the maneuver is dropped.

        Args:
            timestamp_ms: Current time in milliseconds
            wind_direction: Current wind direction, used to orient wind inference
            lap_number: Lap active at resolution time (0 if none)

        Returns:
            The resolved ManeuverRecord, or None
        """
        pending = self.pending
        if pending is None:
            return None

        if timestamp_ms - pending.detected_at_ms < self.resolution_delay_ms:
            return None

        self.pending = None
        t = pending.detected_at_ms

        before = self.angles.calculate_average_heading(
            t - self.measure_window_ms - self.ignore_window_ms, t - self.ignore_window_ms
        )
        after = self.angles.calculate_average_heading(
            t + self.ignore_window_ms, t + self.ignore_window_ms + self.measure_window_ms
        )

        if before is None or after is None:
            logger.warning(f"Dropped {'tack' if pending.is_tack else 'gybe'} detected at {t} ms: "
                           f"insufficient heading history")
            return None

        angle = angle_abs_difference(before, after)
        return self._record_maneuver(pending, after, angle, wind_direction, lap_number)

    def _record_maneuver(self, pending: PendingManeuver, resulting_heading: float, angle: float,
                         wind_direction: float, lap_number: int) -> ManeuverRecord:
        record = ManeuverRecord(
            is_tack=pending.is_tack,
            resulting_heading=resulting_heading,
            angle=angle,
            wall_clock_time=self._clock(),
            timestamp_ms=pending.detected_at_ms,
            lap_number=lap_number
        )

        if pending.is_tack:
            self.tack_count += 1
            self.last_tack_angle = angle
            self.last_tack_ms = pending.detected_at_ms
            self.tack_headings = [self.tack_headings[1], resulting_heading]
            self._store(self.tack_history, self.tack_count, record)
            pair = self.tack_headings
        else:
            self.gybe_count += 1
            self.last_gybe_angle = angle
            self.gybe_headings = [self.gybe_headings[1], resulting_heading]
            self._store(self.gybe_history, self.gybe_count, record)
            pair = self.gybe_headings

        self.stats = summarize_maneuvers(self.tack_history, self.gybe_history)
        # History stops growing at capacity, the latest tack time does not
        self.stats.last_tack_ms = self.last_tack_ms

        logger.info(f"{record.kind.capitalize()} #{self.tack_count if record.is_tack else self.gybe_count} "
                    f"resolved: {angle:.1f}° turn, new heading {resulting_heading:.1f}°")

        if pair[0] is not None:
            self.recommended_wind_direction = self._infer_wind_direction(
                pair[0], pair[1], pending.is_tack, wind_direction
            )

        return record

    def _store(self, history: List[ManeuverRecord], count: int, record: ManeuverRecord) -> None:
        # Slot index is count - 1; beyond capacity the record is not kept
        index = count - 1
        if index < self.history_capacity:
            if index < len(history):
                history[index] = record
            else:
                history.append(record)

    # ------------------------------------------------------------------
    # Wind inference
    # ------------------------------------------------------------------

    def _infer_wind_direction(self, previous_heading: float, current_heading: float,
                              is_tack: bool, wind_direction: float) -> float:
        candidate = calculate_angle_bisector(previous_heading, current_heading)
        if not is_tack:
            # Gybe headings bracket the downwind axis
            candidate = normalize_angle(candidate + ANGLE_WRAP_BOUNDARY_DEGREES)

        if angle_abs_difference(candidate, wind_direction) > self.wind_flip_threshold:
            candidate = normalize_angle(candidate + ANGLE_WRAP_BOUNDARY_DEGREES)

        logger.debug(f"Wind candidate {candidate:.1f}° from headings "
                     f"{previous_heading:.1f}° and {current_heading:.1f}°")
        return candidate

    def take_wind_recommendation(self) -> Optional[float]:
        """Return and clear the latest inferred wind direction."""
        candidate = self.recommended_wind_direction
        self.recommended_wind_direction = None
        return candidate

    def get_maneuver_history(self) -> List[ManeuverRecord]:
        """All stored tacks and gybes ordered by crossing time."""
        return sorted(self.tack_history + self.gybe_history, key=lambda record: record.timestamp_ms)
