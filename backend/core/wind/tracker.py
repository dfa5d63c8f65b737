"""
Wind tracker orchestrator.

The WindTracker owns the wind direction state and the four processing
components, drives the per-sample pipeline and exposes consolidated queries
to the rest of the application:

    sample -> AngleCalculator.process_heading
           -> ManeuverDetector.detect_maneuver + check_pending_maneuvers
           -> VMGCalculator.calculate_vmg
           -> LapTracker.process_data
           -> update_auto_wind_direction

Components never call back into the tracker; the tracker passes them the
values they need and applies what they return.
"""

import math
import logging
from dataclasses import dataclass, asdict, fields
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple

from core.calculations import meters_per_second_to_knots, angle_abs_difference
from core.constants import (
    DEFAULT_FOILING_SPEED_THRESHOLD_KNOTS, HEADING_SMOOTHING_FACTOR, VMG_SMOOTHING_FACTOR,
    MANEUVER_MEASURE_WINDOW_SECONDS, MANEUVER_IGNORE_WINDOW_SECONDS,
    TACK_CROSSING_THRESHOLD_DEGREES, GYBE_CROSSING_THRESHOLD_DEGREES,
    WIND_FLIP_THRESHOLD_DEGREES, RADIANS_HEURISTIC_LIMIT
)
from core.laps.tracker import LapTracker, LapFallback
from core.models.lap import LapSnapshot, LapStats
from core.models.maneuver import ManeuverRecord, ManeuverStats
from core.models.wind import PositionSample, WindState, WindSnapshot
from core.validation import coerce_sample_value, validate_wind_direction, validate_parameter_ranges
from core.wind.angles import AngleCalculator
from core.wind.maneuvers import ManeuverDetector
from core.wind.vmg import VMGCalculator

logger = logging.getLogger(__name__)


@dataclass
class TrackerParams:
    """Parameters injected into the tracker and its components."""
    foiling_speed_threshold: float = DEFAULT_FOILING_SPEED_THRESHOLD_KNOTS
    heading_smoothing_factor: float = HEADING_SMOOTHING_FACTOR
    vmg_smoothing_factor: float = VMG_SMOOTHING_FACTOR
    measure_window: float = MANEUVER_MEASURE_WINDOW_SECONDS
    ignore_window: float = MANEUVER_IGNORE_WINDOW_SECONDS
    tack_threshold: float = TACK_CROSSING_THRESHOLD_DEGREES
    gybe_threshold: float = GYBE_CROSSING_THRESHOLD_DEGREES
    wind_flip_threshold: float = WIND_FLIP_THRESHOLD_DEGREES

    def to_dict(self) -> Dict[str, float]:
        """Convert to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, values: Dict[str, Any]) -> 'TrackerParams':
        """Build params from a dictionary, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        return cls(**{key: value for key, value in values.items() if key in known})

    def validate(self) -> 'TrackerParams':
        """
        Check parameter ranges.

        Raises:
            ValidationError: If any parameter is out of range
        """
        validate_parameter_ranges(
            foiling_speed_threshold=self.foiling_speed_threshold,
            smoothing_factor=self.heading_smoothing_factor,
            measure_window=self.measure_window,
            ignore_window=self.ignore_window,
            crossing_threshold=self.tack_threshold
        )
        validate_parameter_ranges(
            smoothing_factor=self.vmg_smoothing_factor,
            crossing_threshold=self.gybe_threshold
        )
        validate_parameter_ranges(crossing_threshold=self.wind_flip_threshold)
        return self


def heading_to_degrees(heading: float) -> float:
    """
    Convert a sensor heading to degrees.

    Values below 2π are taken to be radians. Headings within 2π degrees of
    north are therefore misread; this is a known limitation of the sensor
    units heuristic.
    """
    if heading < RADIANS_HEURISTIC_LIMIT:
        return math.degrees(heading)
    return heading


class WindTracker:
    """
    Real-time wind-relative navigation engine.

    Args:
        initial_wind_direction: User-supplied wind direction in degrees
        params: Tracker parameters, or None to use defaults
        auto_detection: Whether inferred wind directions are applied
        clock: Wall clock used to stamp maneuvers
    """

    def __init__(self,
                 initial_wind_direction: float,
                 params: Optional[TrackerParams] = None,
                 auto_detection: bool = True,
                 clock: Callable[[], datetime] = datetime.now):
        if params is None:
            params = TrackerParams()
        self.params = params.validate()

        wind = validate_wind_direction(initial_wind_direction, "Initial wind direction")
        self.state = WindState(
            wind_direction=wind,
            initial_wind_direction=wind,
            auto_detection_active=auto_detection
        )

        self.angles = AngleCalculator(smoothing_factor=params.heading_smoothing_factor)
        self.maneuvers = ManeuverDetector(
            self.angles,
            speed_threshold=params.foiling_speed_threshold,
            measure_window=params.measure_window,
            ignore_window=params.ignore_window,
            tack_threshold=params.tack_threshold,
            gybe_threshold=params.gybe_threshold,
            wind_flip_threshold=params.wind_flip_threshold,
            clock=clock
        )
        self.vmg = VMGCalculator(smoothing_factor=params.vmg_smoothing_factor)
        self.laps = LapTracker(foiling_speed_threshold=params.foiling_speed_threshold)

        self.current_speed = 0.0
        self.current_position: Optional[Tuple[float, float]] = None
        self.last_timestamp_ms: Optional[int] = None
        self.sample_count = 0

        logger.info(f"Wind tracker started with wind {wind:.1f}°, "
                    f"foiling threshold {params.foiling_speed_threshold:.1f} kn")

    # ------------------------------------------------------------------
    # Inputs
    # ------------------------------------------------------------------

    def on_position_sample(self,
                           heading: Any,
                           speed: Any,
                           timestamp_ms: Any,
                           position: Optional[Tuple[float, float]] = None) -> bool:
        """
        Process one raw GPS sample.

        Args:
            heading: Course over ground in radians (below 2π) or degrees
            speed: Speed over ground in meters per second
            timestamp_ms: Monotonic timestamp in milliseconds
            position: Optional (latitude, longitude)

        Returns:
            bool: True if the sample was processed, False if it was dropped
        """
        heading_value = coerce_sample_value(heading)
        speed_value = coerce_sample_value(speed)
        timestamp_value = coerce_sample_value(timestamp_ms)

        if heading_value is None or speed_value is None or timestamp_value is None:
            logger.debug(f"Dropped invalid sample (heading={heading!r}, speed={speed!r}, "
                         f"timestamp={timestamp_ms!r})")
            return False

        if position is not None:
            lat = coerce_sample_value(position[0])
            lon = coerce_sample_value(position[1])
            position = (lat, lon) if lat is not None and lon is not None else None

        sample = PositionSample(
            heading=heading_to_degrees(heading_value),
            speed_knots=meters_per_second_to_knots(speed_value),
            timestamp_ms=int(timestamp_value),
            position=position
        )
        self.process_sample(sample)
        return True

    def process_sample(self, sample: PositionSample) -> None:
        """Run the per-sample pipeline on a validated sample."""
        timestamp_ms = sample.timestamp_ms
        self.sample_count += 1
        self.last_timestamp_ms = timestamp_ms
        self.current_speed = sample.speed_knots
        if sample.position is not None:
            self.current_position = sample.position

        self.angles.process_heading(sample.heading, timestamp_ms, self.state.wind_direction)

        self.maneuvers.detect_maneuver(sample.speed_knots, timestamp_ms)
        self._resolve_pending_maneuvers(timestamp_ms)

        vmg = self.vmg.calculate_vmg(
            sample.speed_knots, self.angles.is_upwind, abs(self.angles.wind_angle_less_cog)
        )

        self.laps.process_data(
            sample.position, sample.speed_knots, self.angles.is_upwind,
            vmg, self.state.wind_direction, timestamp_ms
        )

        self.update_auto_wind_direction()

    def on_timer_tick(self, timestamp_ms: int) -> Optional[ManeuverRecord]:
        """Resolve a due pending maneuver without a new position sample."""
        record = self._resolve_pending_maneuvers(int(timestamp_ms))
        if record is not None:
            self.update_auto_wind_direction()
        return record

    def _resolve_pending_maneuvers(self, timestamp_ms: int) -> Optional[ManeuverRecord]:
        record = self.maneuvers.check_pending_maneuvers(
            timestamp_ms, self.state.wind_direction, self.laps.current_lap
        )
        if record is not None:
            self.laps.record_maneuver_in_lap(record)
        return record

    def on_lap_marked(self, timestamp_ms: Optional[int] = None,
                      position: Optional[Tuple[float, float]] = None) -> int:
        """
        Start a new lap at the given (or last sample's) time and position.

        A lap marked before any sample starts timing at the first sample.

        Returns:
            int: The new lap number
        """
        if timestamp_ms is None:
            timestamp_ms = self.last_timestamp_ms
        return self.laps.on_lap_marked(timestamp_ms, position)

    # ------------------------------------------------------------------
    # Wind direction state
    # ------------------------------------------------------------------

    @property
    def wind_direction(self) -> float:
        return self.state.wind_direction

    def set_initial_wind_direction(self, wind_direction: float) -> None:
        """
        Set a new user-supplied wind direction.

        Starts a new wind direction epoch: maneuver counters and history are
        reset and the tack is re-initialized from the next wind angle.

        Raises:
            ValidationError: If the direction is not a finite number
        """
        wind = validate_wind_direction(wind_direction, "Initial wind direction")
        self.state.initial_wind_direction = wind
        self._apply_manual_direction(wind)
        logger.info(f"Wind direction set manually to {wind:.1f}°")

    def reset_to_manual_direction(self) -> None:
        """Return to the user-supplied wind direction and start a new epoch."""
        self._apply_manual_direction(self.state.initial_wind_direction)
        logger.info(f"Wind direction reset to manual {self.state.initial_wind_direction:.1f}°")

    def _apply_manual_direction(self, wind: float) -> None:
        self.state.wind_direction = wind
        self.maneuvers.reset()
        self.angles.reset_orientation()
        self.angles.update_wind_angle(wind)

    def lock_wind_direction(self) -> None:
        self.state.locked = True
        logger.info(f"Wind direction locked at {self.state.wind_direction:.1f}°")

    def unlock_wind_direction(self) -> None:
        self.state.locked = False
        logger.info("Wind direction unlocked")

    def set_auto_detection(self, active: bool) -> None:
        self.state.auto_detection_active = bool(active)
        logger.info(f"Auto wind detection {'enabled' if active else 'disabled'}")

    def update_auto_wind_direction(self) -> Optional[float]:
        """
        Apply the maneuver detector's latest wind recommendation.

        The recommendation is consumed even when it is not applied (auto
        detection off or wind direction locked).

        Returns:
            The new wind direction if it changed, else None
        """
        candidate = self.maneuvers.take_wind_recommendation()
        if candidate is None:
            return None

        if not self.state.auto_detection_active or self.state.locked:
            logger.debug(f"Wind candidate {candidate:.1f}° ignored "
                         f"({'locked' if self.state.locked else 'auto detection off'})")
            return None

        previous = self.state.wind_direction
        self.state.wind_direction = candidate
        logger.info(f"Auto wind direction {previous:.1f}° -> {candidate:.1f}° "
                    f"(shift {angle_abs_difference(previous, candidate):.1f}°)")
        return candidate

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_wind_snapshot(self) -> WindSnapshot:
        return WindSnapshot(
            wind_direction=self.state.wind_direction,
            initial_wind_direction=self.state.initial_wind_direction,
            auto_detection_active=self.state.auto_detection_active,
            locked=self.state.locked,
            current_vmg=self.vmg.current_vmg,
            tack_count=self.maneuvers.tack_count,
            gybe_count=self.maneuvers.gybe_count,
            last_tack_angle=self.maneuvers.last_tack_angle,
            last_gybe_angle=self.maneuvers.last_gybe_angle,
            current_tack_side=self.angles.tack_side,
            current_point_of_sail=self.angles.point_of_sail,
            wind_angle_less_cog=self.angles.wind_angle_less_cog,
            maneuver_stats=self.maneuvers.stats
        )

    def get_lap_snapshot(self, timestamp_ms: Optional[int] = None) -> LapSnapshot:
        if timestamp_ms is None:
            timestamp_ms = self.last_timestamp_ms if self.last_timestamp_ms is not None else 0

        stats = self.maneuvers.stats
        fallback = LapFallback(
            current_vmg=self.vmg.current_vmg,
            is_upwind=self.angles.is_upwind,
            avg_tack_angle=stats.avg_tack_angle,
            last_tack_ms=stats.last_tack_ms,
            speed_knots=self.current_speed
        )
        return self.laps.get_lap_data(timestamp_ms, fallback)

    def get_maneuver_history(self) -> List[ManeuverRecord]:
        return self.maneuvers.get_maneuver_history()

    def get_maneuver_stats(self) -> ManeuverStats:
        return self.maneuvers.stats

    def get_all_lap_stats(self) -> Dict[int, LapStats]:
        return {record.lap_number: record.stats for record in self.laps.get_all_laps()}

    @property
    def current_lap(self) -> int:
        return self.laps.current_lap
