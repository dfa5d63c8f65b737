"""
Application settings and configuration.

This module contains application-specific configuration and defaults.
For algorithmic constants, see core.constants module.
"""

import logging
from typing import Dict, Any

# Import algorithmic constants from core module
from core.constants import (
    DEFAULT_FOILING_SPEED_THRESHOLD_KNOTS,
    HEADING_SMOOTHING_FACTOR,
    VMG_SMOOTHING_FACTOR,
    MANEUVER_MEASURE_WINDOW_SECONDS,
    MANEUVER_IGNORE_WINDOW_SECONDS,
    TACK_CROSSING_THRESHOLD_DEGREES,
    GYBE_CROSSING_THRESHOLD_DEGREES,
    WIND_FLIP_THRESHOLD_DEGREES
)

# App information
APP_NAME = "Foil Tracker"
APP_VERSION = "1.0.0"
APP_DESCRIPTION = "Real-time wind, maneuver and lap tracking for foiling sessions"

# Session defaults
DEFAULT_INITIAL_WIND_DIRECTION = 0.0  # Degrees - user enters the real value at session start
DEFAULT_FOILING_SPEED_THRESHOLD = DEFAULT_FOILING_SPEED_THRESHOLD_KNOTS  # 7 knots
DEFAULT_AUTO_WIND_DETECTION = True

# Replay defaults
DEFAULT_REPLAY_MAX_POINTS = 50000  # Maximum points to replay from a track

# API configuration
API_HOST = "0.0.0.0"
API_PORT = 8000
API_MAX_UPLOAD_BYTES = 50 * 1024 * 1024  # 50MB
API_CORS_ORIGINS = [
    "http://localhost:3000",
    "http://localhost:3001",
]

# Logging configuration
LOGGING_CONFIG = {
    "level": logging.INFO,
    "format": '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
}


# =============== Configuration Classes ===============
# These classes provide typed access to configuration sections

class TrackerConfig:
    """Configuration parameters for the wind tracker."""
    FOILING_SPEED_THRESHOLD = DEFAULT_FOILING_SPEED_THRESHOLD
    HEADING_SMOOTHING_FACTOR = HEADING_SMOOTHING_FACTOR  # From core.constants
    VMG_SMOOTHING_FACTOR = VMG_SMOOTHING_FACTOR  # From core.constants
    MEASURE_WINDOW = MANEUVER_MEASURE_WINDOW_SECONDS
    IGNORE_WINDOW = MANEUVER_IGNORE_WINDOW_SECONDS
    TACK_THRESHOLD = TACK_CROSSING_THRESHOLD_DEGREES
    GYBE_THRESHOLD = GYBE_CROSSING_THRESHOLD_DEGREES
    WIND_FLIP_THRESHOLD = WIND_FLIP_THRESHOLD_DEGREES

    @classmethod
    def as_dict(cls) -> Dict[str, Any]:
        """Get tracker configuration as a dictionary (TrackerParams field names)."""
        return {
            'foiling_speed_threshold': cls.FOILING_SPEED_THRESHOLD,
            'heading_smoothing_factor': cls.HEADING_SMOOTHING_FACTOR,
            'vmg_smoothing_factor': cls.VMG_SMOOTHING_FACTOR,
            'measure_window': cls.MEASURE_WINDOW,
            'ignore_window': cls.IGNORE_WINDOW,
            'tack_threshold': cls.TACK_THRESHOLD,
            'gybe_threshold': cls.GYBE_THRESHOLD,
            'wind_flip_threshold': cls.WIND_FLIP_THRESHOLD,
        }


class SessionConfig:
    """Configuration parameters for a live session."""
    INITIAL_WIND_DIRECTION = DEFAULT_INITIAL_WIND_DIRECTION
    AUTO_WIND_DETECTION = DEFAULT_AUTO_WIND_DETECTION
    REPLAY_MAX_POINTS = DEFAULT_REPLAY_MAX_POINTS

    @classmethod
    def as_dict(cls) -> Dict[str, Any]:
        """Get session configuration as a dictionary."""
        return {
            'initial_wind_direction': cls.INITIAL_WIND_DIRECTION,
            'auto_wind_detection': cls.AUTO_WIND_DETECTION,
            'replay_max_points': cls.REPLAY_MAX_POINTS,
        }


class ApiConfig:
    """Configuration parameters for the REST API."""
    HOST = API_HOST
    PORT = API_PORT
    MAX_UPLOAD_BYTES = API_MAX_UPLOAD_BYTES
    CORS_ORIGINS = API_CORS_ORIGINS

    @classmethod
    def as_dict(cls) -> Dict[str, Any]:
        """Get API configuration as a dictionary."""
        return {
            'host': cls.HOST,
            'port': cls.PORT,
            'max_upload_bytes': cls.MAX_UPLOAD_BYTES,
            'cors_origins': list(cls.CORS_ORIGINS),
        }
