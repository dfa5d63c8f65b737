"""
Lap data models.

A lap is a user-triggered interval boundary used to segment statistics. Each
lap keeps its own maneuver list and running totals, independent of the
session-wide statistics.
"""

from dataclasses import dataclass, field
from typing import Dict, Any, List, Optional, Tuple

from core.constants import RECORD_FIELD_SCALE
from core.models.maneuver import ManeuverRecord


@dataclass
class LapStats:
    """Per-lap statistics."""
    tack_count: int = 0
    gybe_count: int = 0
    avg_tack_angle: float = 0.0
    avg_gybe_angle: float = 0.0
    max_tack_angle: float = 0.0
    max_gybe_angle: float = 0.0
    lap_vmg: float = 0.0  # Knots made good along the wind axis since lap start
    pct_on_foil: float = 0.0
    avg_vmg_up: float = 0.0
    avg_vmg_down: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        """Convert stats to dictionary."""
        return {
            'tack_count': self.tack_count,
            'gybe_count': self.gybe_count,
            'avg_tack_angle': self.avg_tack_angle,
            'avg_gybe_angle': self.avg_gybe_angle,
            'max_tack_angle': self.max_tack_angle,
            'max_gybe_angle': self.max_gybe_angle,
            'lap_vmg': self.lap_vmg,
            'pct_on_foil': self.pct_on_foil,
            'avg_vmg_up': self.avg_vmg_up,
            'avg_vmg_down': self.avg_vmg_down
        }


@dataclass
class LapRecord:
    """Running state of one lap, keyed by its 1-based lap number."""
    lap_number: int
    start_timestamp_ms: Optional[int]  # None until the first sample when marked early
    start_position: Optional[Tuple[float, float]] = None  # (latitude, longitude)
    distance_meters: float = 0.0
    tacks: List[ManeuverRecord] = field(default_factory=list)
    gybes: List[ManeuverRecord] = field(default_factory=list)
    stats: LapStats = field(default_factory=LapStats)

    # Running totals
    foiling_point_count: int = 0
    total_point_count: int = 0
    vmg_up_total: float = 0.0
    vmg_up_points: int = 0
    vmg_down_total: float = 0.0
    vmg_down_points: int = 0
    lap_vmg_points: int = 0

    @property
    def last_tack_ms(self) -> Optional[int]:
        """Timestamp of the most recent tack in this lap."""
        return self.tacks[-1].timestamp_ms if self.tacks else None


@dataclass(frozen=True)
class LapSnapshot:
    """
    Fixed-shape lap summary consumed by display and recording collaborators.

    All values are already clamped and rounded.
    """
    vmg_up: float
    vmg_down: float
    seconds_since_last_tack: float
    lap_distance_meters: float
    avg_tack_angle: int
    cumulative_lap_vmg: float
    percent_on_foil: int

    def to_dict(self) -> Dict[str, Any]:
        """Convert snapshot to dictionary."""
        return {
            'vmg_up': self.vmg_up,
            'vmg_down': self.vmg_down,
            'seconds_since_last_tack': self.seconds_since_last_tack,
            'lap_distance_meters': self.lap_distance_meters,
            'avg_tack_angle': self.avg_tack_angle,
            'cumulative_lap_vmg': self.cumulative_lap_vmg,
            'percent_on_foil': self.percent_on_foil
        }

    def to_record_fields(self) -> Dict[str, int]:
        """
        Integer encoding for activity recording fields.

        Decimal values are stored multiplied by 10; angle and percentage
        are already integers.
        """
        return {
            'vmg_up': int(round(self.vmg_up * RECORD_FIELD_SCALE)),
            'vmg_down': int(round(self.vmg_down * RECORD_FIELD_SCALE)),
            'seconds_since_last_tack': int(round(self.seconds_since_last_tack)),
            'lap_distance_meters': int(round(self.lap_distance_meters)),
            'avg_tack_angle': self.avg_tack_angle,
            'cumulative_lap_vmg': int(round(self.cumulative_lap_vmg * RECORD_FIELD_SCALE)),
            'percent_on_foil': self.percent_on_foil
        }
