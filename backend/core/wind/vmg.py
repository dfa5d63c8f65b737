"""
Smoothed velocity made good.
"""

import math
import logging

from core.constants import VMG_SMOOTHING_FACTOR, ANGLE_WRAP_BOUNDARY_DEGREES

logger = logging.getLogger(__name__)


class VMGCalculator:
    """Speed made good toward the wind (upwind) or away from it (downwind), in knots."""

    def __init__(self, smoothing_factor: float = VMG_SMOOTHING_FACTOR):
        self.smoothing_factor = smoothing_factor
        self.current_vmg = 0.0

    def calculate_vmg(self, speed: float, is_upwind: bool, abs_wind_angle: float) -> float:
        """
        Update and return the smoothed VMG.

        A non-positive speed resets VMG to 0 immediately, with no smoothing lag.
        The first non-zero value after a reset seeds the average directly.

        Args:
            speed: Boat speed in knots
            is_upwind: Current point of sail
            abs_wind_angle: Absolute wind angle relative to COG (0-180)

        Returns:
            float: VMG in knots, never negative
        """
        if speed <= 0:
            self.current_vmg = 0.0
            return 0.0

        if is_upwind:
            wind_angle_rad = math.radians(abs_wind_angle)
        else:
            wind_angle_rad = math.radians(ANGLE_WRAP_BOUNDARY_DEGREES - abs_wind_angle)

        raw_vmg = speed * math.cos(wind_angle_rad)
        if raw_vmg < 0:
            raw_vmg = -raw_vmg

        if self.current_vmg > 0:
            self.current_vmg += self.smoothing_factor * (raw_vmg - self.current_vmg)
        else:
            self.current_vmg = raw_vmg

        return self.current_vmg

    def reset(self) -> None:
        self.current_vmg = 0.0
