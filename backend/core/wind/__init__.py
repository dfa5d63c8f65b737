"""
Wind tracking module.

This module provides the real-time wind-relative navigation engine: course
smoothing, maneuver detection, VMG and the orchestrating WindTracker.
"""

from .angles import AngleCalculator, HeadingHistory
from .maneuvers import ManeuverDetector
from .vmg import VMGCalculator
from .tracker import WindTracker, TrackerParams

__all__ = [
    'AngleCalculator',
    'HeadingHistory',
    'ManeuverDetector',
    'VMGCalculator',
    'WindTracker',
    'TrackerParams',
]
