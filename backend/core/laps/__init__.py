"""
Laps package.

This package contains per-lap statistics tracking.
"""

from .tracker import LapTracker, LapFallback

# Lap models
from core.models.lap import LapRecord, LapStats, LapSnapshot

__all__ = [
    'LapTracker',
    'LapFallback',

    # Models
    'LapRecord',
    'LapStats',
    'LapSnapshot',
]
