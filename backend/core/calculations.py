"""
Shared calculations module.

This module contains the angular and geographic math shared by the angle
calculator, maneuver detector, VMG calculator and lap tracker, providing a
single source of truth for mathematical operations.
"""

import math
import numpy as np
from geopy.distance import geodesic
from typing import Iterable, Optional, Tuple
import logging

from core.constants import (
    FULL_CIRCLE_DEGREES, ANGLE_WRAP_BOUNDARY_DEGREES, METERS_PER_SECOND_TO_KNOTS,
    METERS_PER_NAUTICAL_MILE, METERS_PER_DEGREE_LATITUDE, MIN_BISECTOR_VECTOR_LENGTH
)

logger = logging.getLogger(__name__)


# =============================================================================
# ANGLE NORMALIZATION
# =============================================================================

def normalize_angle(angle: float) -> float:
    """Normalize an angle to the range [0, 360)."""
    normalized = angle % FULL_CIRCLE_DEGREES
    # -1e-14 % 360 rounds to 360.0 in floating point
    if normalized >= FULL_CIRCLE_DEGREES:
        normalized = 0.0
    return float(normalized)


def normalize_signed_angle(angle: float) -> float:
    """Normalize an angle to the range (-180, 180]."""
    normalized = normalize_angle(angle)
    if normalized > ANGLE_WRAP_BOUNDARY_DEGREES:
        normalized -= FULL_CIRCLE_DEGREES
    return normalized


def signed_angle_delta(from_angle: float, to_angle: float) -> float:
    """Signed shortest rotation from one angle to another, in (-180, 180]."""
    return normalize_signed_angle(to_angle - from_angle)


def angle_abs_difference(angle1: float, angle2: float) -> float:
    """
    Shortest-arc absolute difference between two angles.

    Args:
        angle1, angle2: Angles in degrees (any range)

    Returns:
        float: Difference in degrees (0-180)
    """
    diff = abs(normalize_angle(angle1) - normalize_angle(angle2))
    return min(diff, FULL_CIRCLE_DEGREES - diff)


# =============================================================================
# CIRCULAR STATISTICS
# =============================================================================

def circular_mean(angles: Iterable[float]) -> Optional[float]:
    """
    Circular mean of a collection of angles via unit-vector summation.

    Args:
        angles: Angles in degrees

    Returns:
        Mean angle in degrees (0-360), or None if there are no angles
    """
    values = np.asarray(list(angles), dtype=float)
    if values.size == 0:
        return None

    radians = np.radians(values)
    sum_sin = np.sum(np.sin(radians))
    sum_cos = np.sum(np.cos(radians))

    return normalize_angle(math.degrees(math.atan2(sum_sin, sum_cos)))


def calculate_angle_bisector(angle1: float, angle2: float) -> float:
    """
    Calculate the bisector of two angles as the average of their unit vectors.

    Handles the 0/360 wraparound naturally: the bisector of 10° and 350° is 0°,
    not 180°. Opposite angles have no defined bisector and return 0.

    Args:
        angle1, angle2: Angles in degrees (0-360)

    Returns:
        float: Bisector angle in degrees (0-360)
    """
    rad1 = math.radians(angle1)
    rad2 = math.radians(angle2)

    x = (math.cos(rad1) + math.cos(rad2)) / 2
    y = (math.sin(rad1) + math.sin(rad2)) / 2

    if math.hypot(x, y) < MIN_BISECTOR_VECTOR_LENGTH:
        logger.debug(f"Degenerate bisector for {angle1:.1f}° and {angle2:.1f}°")
        return 0.0

    return normalize_angle(math.degrees(math.atan2(y, x)))


# =============================================================================
# GEOGRAPHIC CALCULATIONS
# =============================================================================

def calculate_bearing(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Calculate the bearing between two points in degrees."""
    # Convert to radians
    lat1 = math.radians(lat1)
    lon1 = math.radians(lon1)
    lat2 = math.radians(lat2)
    lon2 = math.radians(lon2)

    # Calculate bearing
    x = math.sin(lon2 - lon1) * math.cos(lat2)
    y = math.cos(lat1) * math.sin(lat2) - math.sin(lat1) * math.cos(lat2) * math.cos(lon2 - lon1)
    initial_bearing = math.atan2(x, y)

    return normalize_angle(math.degrees(initial_bearing))


def calculate_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Calculate distance between two points in meters."""
    return geodesic((lat1, lon1), (lat2, lon2)).meters


def planar_distance_and_bearing(lat1: float, lon1: float,
                                lat2: float, lon2: float) -> Tuple[float, float]:
    """
    Equirectangular approximation of distance and bearing.

    Latitude degrees are scaled by 111320 m/deg and longitude degrees by the
    cosine of the mean latitude. Accurate enough over a single lap.

    Returns:
        tuple: (distance in meters, bearing in degrees 0-360)
    """
    mean_lat = math.radians((lat1 + lat2) / 2)
    north = (lat2 - lat1) * METERS_PER_DEGREE_LATITUDE
    east = (lon2 - lon1) * METERS_PER_DEGREE_LATITUDE * math.cos(mean_lat)

    distance = math.hypot(north, east)
    bearing = normalize_angle(math.degrees(math.atan2(east, north)))
    return distance, bearing


def distance_and_bearing(lat1: float, lon1: float,
                         lat2: float, lon2: float) -> Tuple[float, float]:
    """
    Distance (meters) and bearing (degrees) from one point to another.

    Uses the geodesic distance, falling back to the planar approximation if
    the geodesic calculation fails for the given coordinates.
    """
    try:
        distance = calculate_distance(lat1, lon1, lat2, lon2)
        bearing = calculate_bearing(lat1, lon1, lat2, lon2)
    except (ValueError, ArithmeticError) as e:
        logger.warning(f"Geodesic distance failed ({e}), using planar approximation")
        return planar_distance_and_bearing(lat1, lon1, lat2, lon2)
    return distance, bearing


# =============================================================================
# UNIT CONVERSIONS
# =============================================================================

def meters_per_second_to_knots(speed_ms: float) -> float:
    """Convert meters per second to knots."""
    return speed_ms * METERS_PER_SECOND_TO_KNOTS


def meters_to_nautical_miles(distance_m: float) -> float:
    """Convert meters to nautical miles."""
    return distance_m / METERS_PER_NAUTICAL_MILE
