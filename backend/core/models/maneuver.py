"""
Maneuver data models.

This module defines the data structures for tacks and gybes detected in the
heading stream.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Any, List, Optional

import numpy as np
import pandas as pd


PORT = 'Port'
STARBOARD = 'Starboard'


@dataclass
class PendingManeuver:
    """
    A detected wind-angle crossing awaiting its angle measurement.

    The turning angle is only measured once enough heading history has
    accumulated after the crossing.
    """
    is_tack: bool
    detected_at_ms: int
    wind_angle_before: float  # Wind angle relative to COG before the crossing
    old_tack_side: str  # 'Port' or 'Starboard'
    new_tack_side: str


@dataclass(frozen=True)
class ManeuverRecord:
    """A resolved tack or gybe."""
    is_tack: bool
    resulting_heading: float  # Average heading after the maneuver (0-360)
    angle: float  # Turning angle in degrees (0-180)
    wall_clock_time: datetime
    timestamp_ms: int  # Monotonic timestamp of the crossing
    lap_number: int  # 0 if no lap was active

    @property
    def kind(self) -> str:
        """'tack' or 'gybe'."""
        return 'tack' if self.is_tack else 'gybe'

    def to_dict(self) -> Dict[str, Any]:
        """Convert record to dictionary for DataFrame creation."""
        return {
            'kind': self.kind,
            'resulting_heading': self.resulting_heading,
            'angle': self.angle,
            'wall_clock_time': self.wall_clock_time,
            'timestamp_ms': self.timestamp_ms,
            'lap_number': self.lap_number
        }


@dataclass
class ManeuverStats:
    """Count, average and maximum turning angle per maneuver type."""
    tack_count: int = 0
    gybe_count: int = 0
    avg_tack_angle: float = 0.0
    avg_gybe_angle: float = 0.0
    max_tack_angle: float = 0.0
    max_gybe_angle: float = 0.0
    last_tack_ms: Optional[int] = field(default=None, compare=False)

    def to_dict(self) -> Dict[str, Any]:
        """Convert stats to dictionary."""
        return {
            'tack_count': self.tack_count,
            'gybe_count': self.gybe_count,
            'avg_tack_angle': self.avg_tack_angle,
            'avg_gybe_angle': self.avg_gybe_angle,
            'max_tack_angle': self.max_tack_angle,
            'max_gybe_angle': self.max_gybe_angle
        }


def summarize_maneuvers(tacks: List[ManeuverRecord], gybes: List[ManeuverRecord]) -> ManeuverStats:
    """
    Compute count, average and maximum angles over stored maneuver records.

    Args:
        tacks: Resolved tack records
        gybes: Resolved gybe records

    Returns:
        ManeuverStats for the given records
    """
    stats = ManeuverStats(tack_count=len(tacks), gybe_count=len(gybes))

    if tacks:
        tack_angles = np.array([record.angle for record in tacks])
        stats.avg_tack_angle = float(np.mean(tack_angles))
        stats.max_tack_angle = float(np.max(tack_angles))
        stats.last_tack_ms = tacks[-1].timestamp_ms

    if gybes:
        gybe_angles = np.array([record.angle for record in gybes])
        stats.avg_gybe_angle = float(np.mean(gybe_angles))
        stats.max_gybe_angle = float(np.max(gybe_angles))

    return stats


def maneuvers_to_dataframe(records: List[ManeuverRecord]) -> pd.DataFrame:
    """
    Convert a list of maneuver records to a pandas DataFrame.

    Args:
        records: List of ManeuverRecord objects

    Returns:
        pandas DataFrame with one row per maneuver, ordered by timestamp
    """
    if not records:
        return pd.DataFrame(columns=['kind', 'resulting_heading', 'angle',
                                     'wall_clock_time', 'timestamp_ms', 'lap_number'])

    df = pd.DataFrame([record.to_dict() for record in records])
    return df.sort_values('timestamp_ms').reset_index(drop=True)
