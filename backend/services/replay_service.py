"""
Track replay service.

This module replays a recorded track through a fresh WindTracker exactly as
the live engine would have processed it, and tabulates the results.
"""

import pandas as pd
import logging
from typing import Dict, Any, Iterable, List, Optional

from core.gpx import calculate_point_metrics
from core.calculations import meters_per_second_to_knots
from core.constants import MILLISECONDS_PER_SECOND
from core.models.lap import LapSnapshot
from core.models.maneuver import maneuvers_to_dataframe
from core.models.wind import PositionSample, WindSnapshot
from core.validation import ValidationError, validate_track_dataframe
from core.wind.tracker import WindTracker, TrackerParams
from config.settings import TrackerConfig, SessionConfig

logger = logging.getLogger(__name__)

TIMELINE_COLUMNS = [
    'timestamp_ms', 'latitude', 'longitude', 'heading', 'smoothed_heading',
    'speed_knots', 'wind_direction', 'wind_angle', 'tack', 'point_of_sail',
    'vmg', 'tack_count', 'gybe_count', 'lap'
]


class ReplayResult:
    """Container for track replay results."""

    def __init__(self,
                 timeline: pd.DataFrame,
                 maneuvers: pd.DataFrame,
                 lap_stats: Dict[int, Dict[str, Any]],
                 wind_snapshot: WindSnapshot,
                 lap_snapshot: LapSnapshot,
                 initial_wind: float,
                 filename: str,
                 metadata: Optional[Dict[str, Any]] = None):
        self.timeline = timeline
        self.maneuvers = maneuvers
        self.lap_stats = lap_stats
        self.wind_snapshot = wind_snapshot
        self.lap_snapshot = lap_snapshot
        self.initial_wind = initial_wind
        self.filename = filename
        self.metadata = metadata or {}

        self._calculate_summary_metrics()

    def _calculate_summary_metrics(self) -> None:
        """Calculate summary metrics from the timeline."""
        self.final_wind = self.wind_snapshot.wind_direction
        self.tack_count = self.wind_snapshot.tack_count
        self.gybe_count = self.wind_snapshot.gybe_count

        if self.timeline.empty:
            self.duration_seconds = 0.0
            self.avg_speed = 0.0
            self.max_speed = 0.0
            self.pct_upwind = 0.0
            return

        self.duration_seconds = float(
            (self.timeline['timestamp_ms'].iloc[-1] - self.timeline['timestamp_ms'].iloc[0]) / MILLISECONDS_PER_SECOND
        )
        self.avg_speed = float(self.timeline['speed_knots'].mean())
        self.max_speed = float(self.timeline['speed_knots'].max())
        self.pct_upwind = float((self.timeline['point_of_sail'] == 'Upwind').mean() * 100)

    def summary(self) -> Dict[str, Any]:
        """Summary dictionary for display or API responses."""
        return {
            'filename': self.filename,
            'initial_wind': self.initial_wind,
            'final_wind': self.final_wind,
            'tack_count': self.tack_count,
            'gybe_count': self.gybe_count,
            'duration_seconds': self.duration_seconds,
            'avg_speed_knots': self.avg_speed,
            'max_speed_knots': self.max_speed,
            'pct_upwind': self.pct_upwind,
            'lap_count': len(self.lap_stats)
        }


def replay_track(track_data: pd.DataFrame,
                 initial_wind_direction: float,
                 params: Optional[TrackerParams] = None,
                 lap_marks: Optional[Iterable[float]] = None,
                 filename: str = "current_track.gpx",
                 metadata: Optional[Dict[str, Any]] = None) -> ReplayResult:
    """
    Replay a track through a WindTracker.

    Args:
        track_data: DataFrame with 'latitude', 'longitude', 'time' columns
        initial_wind_direction: Wind direction entered at session start (degrees)
        params: Tracker parameters, or None to use TrackerConfig
        lap_marks: Seconds from track start at which to mark laps
        filename: Name for the track (for display purposes)
        metadata: Optional metadata dict

    Returns:
        ReplayResult with a per-sample timeline and maneuver table

    Raises:
        ValidationError: If the track data is unusable
    """
    validate_track_dataframe(track_data, f"Replay input {filename}")

    if params is None:
        params = TrackerParams.from_dict(TrackerConfig.as_dict())

    if len(track_data) > SessionConfig.REPLAY_MAX_POINTS:
        logger.warning(f"Track has {len(track_data)} points, replaying the first "
                       f"{SessionConfig.REPLAY_MAX_POINTS}")
        track_data = track_data.iloc[:SessionConfig.REPLAY_MAX_POINTS]

    points = calculate_point_metrics(track_data)
    if len(points) < 2:
        raise ValidationError(f"Replay input {filename} needs at least 2 timed points")
    tracker = WindTracker(initial_wind_direction, params=params)

    pending_marks: List[int] = sorted(int(mark * MILLISECONDS_PER_SECOND) for mark in (lap_marks or []))
    rows = []

    for point in points.itertuples(index=False):
        position = (float(point.latitude), float(point.longitude))
        timestamp_ms = int(point.timestamp_ms)

        while pending_marks and pending_marks[0] <= timestamp_ms:
            pending_marks.pop(0)
            tracker.on_lap_marked(timestamp_ms, position)

        # Track-derived course is already in degrees, so the sensor heuristics are bypassed
        speed_knots = meters_per_second_to_knots(float(point.speed_ms))
        tracker.process_sample(PositionSample(
            heading=float(point.bearing),
            speed_knots=speed_knots,
            timestamp_ms=timestamp_ms,
            position=position
        ))

        rows.append({
            'timestamp_ms': timestamp_ms,
            'latitude': position[0],
            'longitude': position[1],
            'heading': float(point.bearing),
            'smoothed_heading': tracker.angles.smoothed_heading,
            'speed_knots': speed_knots,
            'wind_direction': tracker.wind_direction,
            'wind_angle': tracker.angles.wind_angle_less_cog,
            'tack': tracker.angles.tack_side,
            'point_of_sail': tracker.angles.point_of_sail,
            'vmg': tracker.vmg.current_vmg,
            'tack_count': tracker.maneuvers.tack_count,
            'gybe_count': tracker.maneuvers.gybe_count,
            'lap': tracker.current_lap
        })

    timeline = pd.DataFrame(rows, columns=TIMELINE_COLUMNS)
    maneuvers = maneuvers_to_dataframe(tracker.get_maneuver_history())

    logger.info(f"Replayed {len(timeline)} points from {filename}: "
                f"{tracker.maneuvers.tack_count} tacks, {tracker.maneuvers.gybe_count} gybes, "
                f"final wind {tracker.wind_direction:.1f}°")

    return ReplayResult(
        timeline=timeline,
        maneuvers=maneuvers,
        lap_stats={number: stats.to_dict() for number, stats in tracker.get_all_lap_stats().items()},
        wind_snapshot=tracker.get_wind_snapshot(),
        lap_snapshot=tracker.get_lap_snapshot(),
        initial_wind=initial_wind_direction,
        filename=filename,
        metadata=metadata
    )
