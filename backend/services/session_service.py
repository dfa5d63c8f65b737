"""
Live session service.

This module wraps one WindTracker for the lifetime of a sailing session and
provides the business logic used by the API backend: starting and ending the
session, feeding samples and lap marks, and controlling the wind direction.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from core.models.lap import LapSnapshot
from core.models.maneuver import ManeuverRecord
from core.models.wind import WindSnapshot
from core.wind.tracker import WindTracker, TrackerParams
from config.settings import (
    TrackerConfig,
    DEFAULT_INITIAL_WIND_DIRECTION,
    DEFAULT_AUTO_WIND_DETECTION
)

logger = logging.getLogger(__name__)


class SessionNotStartedError(Exception):
    """Raised when a session operation is requested before a session is started."""
    pass


@dataclass
class SessionParams:
    """Parameters for starting a session."""
    initial_wind_direction: float = DEFAULT_INITIAL_WIND_DIRECTION
    foiling_speed_threshold: Optional[float] = None  # None uses TrackerConfig
    auto_wind_detection: bool = DEFAULT_AUTO_WIND_DETECTION

    def tracker_params(self) -> TrackerParams:
        """Build tracker parameters from configuration plus session overrides."""
        values = TrackerConfig.as_dict()
        if self.foiling_speed_threshold is not None:
            values['foiling_speed_threshold'] = self.foiling_speed_threshold
        return TrackerParams.from_dict(values)


class SessionService:
    """
    Service for a single live tracking session.

    Intermediate state lives only in memory and is discarded when the session
    ends.
    """

    def __init__(self):
        self.tracker: Optional[WindTracker] = None

    @property
    def is_active(self) -> bool:
        return self.tracker is not None

    def _require_tracker(self) -> WindTracker:
        if self.tracker is None:
            raise SessionNotStartedError("No active session - start a session first")
        return self.tracker

    def start_session(self, params: Optional[SessionParams] = None) -> WindSnapshot:
        """
        Start a new session, replacing any active one.

        Raises:
            ValidationError: If the wind direction or threshold is invalid
        """
        if params is None:
            params = SessionParams()

        if self.tracker is not None:
            logger.info("Replacing active session")

        self.tracker = WindTracker(
            params.initial_wind_direction,
            params=params.tracker_params(),
            auto_detection=params.auto_wind_detection
        )
        return self.tracker.get_wind_snapshot()

    def end_session(self) -> Dict[str, Any]:
        """End the session and return its final summary."""
        tracker = self._require_tracker()
        summary = {
            'wind': tracker.get_wind_snapshot().to_dict(),
            'lap': tracker.get_lap_snapshot().to_dict(),
            'laps': {number: stats.to_dict() for number, stats in tracker.get_all_lap_stats().items()},
            'samples': tracker.sample_count
        }
        self.tracker = None
        logger.info(f"Session ended after {summary['samples']} samples")
        return summary

    def push_sample(self, heading: Any, speed: Any, timestamp_ms: Any,
                    position: Optional[Tuple[float, float]] = None) -> bool:
        """Feed one raw GPS sample; returns False if it was dropped."""
        return self._require_tracker().on_position_sample(heading, speed, timestamp_ms, position)

    def tick(self, timestamp_ms: int) -> Optional[ManeuverRecord]:
        return self._require_tracker().on_timer_tick(timestamp_ms)

    def mark_lap(self, position: Optional[Tuple[float, float]] = None,
                 timestamp_ms: Optional[int] = None) -> int:
        tracker = self._require_tracker()
        if position is None:
            position = tracker.current_position
        return tracker.on_lap_marked(timestamp_ms, position)

    def set_wind_direction(self, wind_direction: float) -> WindSnapshot:
        tracker = self._require_tracker()
        tracker.set_initial_wind_direction(wind_direction)
        return tracker.get_wind_snapshot()

    def lock_wind(self) -> WindSnapshot:
        tracker = self._require_tracker()
        tracker.lock_wind_direction()
        return tracker.get_wind_snapshot()

    def unlock_wind(self) -> WindSnapshot:
        tracker = self._require_tracker()
        tracker.unlock_wind_direction()
        return tracker.get_wind_snapshot()

    def set_auto_detection(self, active: bool) -> WindSnapshot:
        tracker = self._require_tracker()
        tracker.set_auto_detection(active)
        return tracker.get_wind_snapshot()

    def reset_wind(self) -> WindSnapshot:
        tracker = self._require_tracker()
        tracker.reset_to_manual_direction()
        return tracker.get_wind_snapshot()

    def wind_snapshot(self) -> WindSnapshot:
        return self._require_tracker().get_wind_snapshot()

    def lap_snapshot(self) -> LapSnapshot:
        return self._require_tracker().get_lap_snapshot()

    def maneuvers(self) -> List[ManeuverRecord]:
        return self._require_tracker().get_maneuver_history()

    def lap_stats(self) -> Dict[int, Dict[str, Any]]:
        return {number: stats.to_dict() for number, stats in self._require_tracker().get_all_lap_stats().items()}


_session_service: Optional[SessionService] = None


def get_session_service() -> SessionService:
    """
    Get the process-wide SessionService instance.

    Returns:
        SessionService instance
    """
    global _session_service
    if _session_service is None:
        _session_service = SessionService()
    return _session_service
