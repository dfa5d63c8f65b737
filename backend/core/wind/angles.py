"""
Course smoothing and wind-relative angle state.

The AngleCalculator converts the raw course over ground into a smoothed,
wind-relative angular state: the wind angle relative to COG, the tack
(port/starboard) and the point of sail (upwind/downwind). It also keeps a
time-stamped history of smoothed headings that the maneuver detector averages
over to measure turning angles.
"""

import logging
from collections import deque
from typing import Deque, List, Optional

from core.calculations import (
    normalize_angle, normalize_signed_angle, signed_angle_delta,
    angle_abs_difference, calculate_angle_bisector, circular_mean
)
from core.constants import (
    HEADING_SMOOTHING_FACTOR, HEADING_HISTORY_CAPACITY, UPWIND_DOWNWIND_BOUNDARY_DEGREES
)
from core.models.maneuver import PORT, STARBOARD
from core.models.wind import HeadingSample

logger = logging.getLogger(__name__)

UPWIND = 'Upwind'
DOWNWIND = 'Downwind'


def is_upwind_angle(wind_angle: float) -> bool:
    """A wind angle relative to COG is upwind iff it lies in (-90, 90)."""
    return -UPWIND_DOWNWIND_BOUNDARY_DEGREES < wind_angle < UPWIND_DOWNWIND_BOUNDARY_DEGREES


class HeadingHistory:
    """Fixed-capacity ring buffer of time-stamped headings, oldest overwritten first."""

    def __init__(self, capacity: int = HEADING_HISTORY_CAPACITY):
        self.capacity = capacity
        self._samples: Deque[HeadingSample] = deque(maxlen=capacity)

    def __len__(self) -> int:
        return len(self._samples)

    def append(self, heading: float, timestamp_ms: int, valid: bool = True) -> None:
        self._samples.append(HeadingSample(normalize_angle(heading), int(timestamp_ms), valid))

    def clear(self) -> None:
        self._samples.clear()

    @property
    def headings(self) -> List[float]:
        """Stored headings, oldest first."""
        return [sample.heading for sample in self._samples]

    def samples_between(self, start_ms: int, end_ms: int) -> List[HeadingSample]:
        """Valid samples with start_ms <= timestamp <= end_ms."""
        return [
            sample for sample in self._samples
            if sample.valid and start_ms <= sample.timestamp_ms <= end_ms
        ]

    def average(self, start_ms: int, end_ms: int) -> Optional[float]:
        """
        Circular mean of the valid headings within a time window.

        Returns:
            Mean heading in degrees, or None if no sample falls in the window.
            None means insufficient data and must never be read as 0°.
        """
        samples = self.samples_between(start_ms, end_ms)
        if not samples:
            return None
        return circular_mean(sample.heading for sample in samples)


class AngleCalculator:
    """
    Smooths course over ground and tracks the wind-relative angular state.

    The wind direction is passed in with each heading rather than read from
    an owner, so the calculator can be used and tested on its own.
    """

    def __init__(self,
                 smoothing_factor: float = HEADING_SMOOTHING_FACTOR,
                 history_capacity: int = HEADING_HISTORY_CAPACITY):
        self.smoothing_factor = smoothing_factor
        self.history = HeadingHistory(history_capacity)

        self.smoothed_heading: Optional[float] = None
        self.wind_angle_less_cog = 0.0
        self.previous_wind_angle = 0.0
        self.is_starboard = True
        self.is_upwind = True
        self._orientation_initialized = False

    # ------------------------------------------------------------------
    # Per-sample processing
    # ------------------------------------------------------------------

    def process_heading(self, raw_heading: float, timestamp_ms: int, wind_direction: float) -> float:
        """
        Smooth a raw heading and update the wind-relative state.

        Args:
            raw_heading: Course over ground in degrees (any range)
            timestamp_ms: Monotonic sample timestamp in milliseconds
            wind_direction: Current wind direction estimate in degrees

        Returns:
            float: Smoothed heading in degrees (0-360)
        """
        heading = normalize_angle(raw_heading)

        if self.smoothed_heading is None:
            self.smoothed_heading = heading
        else:
            # Apply the EMA to the shortest signed delta so 359° -> 1° moves by 2°
            delta = signed_angle_delta(self.smoothed_heading, heading)
            self.smoothed_heading = normalize_angle(self.smoothed_heading + self.smoothing_factor * delta)

        self.history.append(self.smoothed_heading, timestamp_ms)
        self.update_wind_angle(wind_direction)

        return self.smoothed_heading

    def update_wind_angle(self, wind_direction: float) -> float:
        """
        Recompute the wind angle relative to the smoothed COG.

        On the first call after construction or reset_orientation() the tack and
        point of sail are initialized without counting as a transition. Later
        calls re-evaluate the point of sail only; tack changes belong to the
        maneuver detector.
        """
        if self.smoothed_heading is None:
            return self.wind_angle_less_cog

        self.previous_wind_angle = self.wind_angle_less_cog
        self.wind_angle_less_cog = normalize_signed_angle(wind_direction - self.smoothed_heading)

        if not self._orientation_initialized:
            self.previous_wind_angle = self.wind_angle_less_cog
            self.is_starboard = self.wind_angle_less_cog >= 0
            self.is_upwind = is_upwind_angle(self.wind_angle_less_cog)
            self._orientation_initialized = True
            logger.info(f"Initial orientation: {self.tack_side} tack, {self.point_of_sail} "
                        f"(wind angle {self.wind_angle_less_cog:.1f}°)")
            return self.wind_angle_less_cog

        was_upwind = self.is_upwind
        self.is_upwind = is_upwind_angle(self.wind_angle_less_cog)
        if was_upwind != self.is_upwind:
            logger.info(f"Point of sail changed to {self.point_of_sail} "
                        f"(wind angle {self.wind_angle_less_cog:.1f}°)")

        logger.debug(f"Heading {self.smoothed_heading:.1f}°, wind angle {self.wind_angle_less_cog:.1f}°, "
                     f"{self.tack_side} tack")
        return self.wind_angle_less_cog

    def reset_orientation(self) -> None:
        """Re-initialize tack and point of sail from the next wind angle."""
        self._orientation_initialized = False

    def set_tack(self, is_starboard: bool) -> None:
        self.is_starboard = is_starboard

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def was_upwind(self) -> bool:
        """Point of sail implied by the previous sample's wind angle."""
        return is_upwind_angle(self.previous_wind_angle)

    @property
    def tack_side(self) -> str:
        return STARBOARD if self.is_starboard else PORT

    @property
    def point_of_sail(self) -> str:
        return UPWIND if self.is_upwind else DOWNWIND

    def calculate_average_heading(self, start_ms: int, end_ms: int) -> Optional[float]:
        """Circular mean of the heading history within [start_ms, end_ms], or None."""
        return self.history.average(start_ms, end_ms)

    @staticmethod
    def calculate_bisector_angle(angle1: float, angle2: float) -> float:
        return calculate_angle_bisector(angle1, angle2)

    @staticmethod
    def angle_abs_difference(angle1: float, angle2: float) -> float:
        return angle_abs_difference(angle1, angle2)
