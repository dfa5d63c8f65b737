"""
Wind state and sample data models.
"""

from dataclasses import dataclass, field
from typing import Dict, Any, Optional, Tuple

from core.models.maneuver import ManeuverStats


@dataclass(frozen=True)
class HeadingSample:
    """One smoothed heading in the time-stamped history."""
    heading: float  # Degrees (0-360)
    timestamp_ms: int
    valid: bool = True


@dataclass(frozen=True)
class PositionSample:
    """
    A validated GPS sample.

    Heading is in degrees and speed in knots; conversion from the raw sensor
    units happens before this object is built.
    """
    heading: float
    speed_knots: float
    timestamp_ms: int
    position: Optional[Tuple[float, float]] = None  # (latitude, longitude)


@dataclass
class WindState:
    """
    Session-wide wind direction state.

    Created when the session starts with a user-supplied wind direction and
    discarded with the session.
    """
    wind_direction: float
    initial_wind_direction: float
    auto_detection_active: bool = True
    locked: bool = False


@dataclass(frozen=True)
class WindSnapshot:
    """Consolidated wind and maneuver state exposed to the application."""
    wind_direction: float
    initial_wind_direction: float
    auto_detection_active: bool
    locked: bool
    current_vmg: float
    tack_count: int
    gybe_count: int
    last_tack_angle: float
    last_gybe_angle: float
    current_tack_side: str  # 'Port' or 'Starboard'
    current_point_of_sail: str  # 'Upwind' or 'Downwind'
    wind_angle_less_cog: float
    maneuver_stats: ManeuverStats = field(default_factory=ManeuverStats)

    def to_dict(self) -> Dict[str, Any]:
        """Convert snapshot to dictionary."""
        return {
            'wind_direction': self.wind_direction,
            'initial_wind_direction': self.initial_wind_direction,
            'auto_detection_active': self.auto_detection_active,
            'locked': self.locked,
            'current_vmg': self.current_vmg,
            'tack_count': self.tack_count,
            'gybe_count': self.gybe_count,
            'last_tack_angle': self.last_tack_angle,
            'last_gybe_angle': self.last_gybe_angle,
            'current_tack_side': self.current_tack_side,
            'current_point_of_sail': self.current_point_of_sail,
            'wind_angle_less_cog': self.wind_angle_less_cog,
            'maneuver_stats': self.maneuver_stats.to_dict()
        }
