"""
Input validation utilities for core functions.

This module provides validation functions for configuration values and
incoming sensor samples. Configuration errors raise ValidationError; sample
errors never raise, they simply yield None so the sample can be dropped.
"""

import math
import numpy as np
import pandas as pd
import logging
from typing import Any, Optional, Union

logger = logging.getLogger(__name__)


class ValidationError(Exception):
    """Custom exception for validation errors."""
    pass


def coerce_sample_value(value: Any) -> Optional[float]:
    """
    Convert a raw sample value to float.

    Args:
        value: Raw value from the position callback

    Returns:
        The value as a finite float, or None if missing, non-numeric or not finite
    """
    if value is None or isinstance(value, bool):
        return None

    try:
        number = float(value)
    except (ValueError, TypeError):
        return None

    if math.isnan(number) or math.isinf(number):
        return None

    return number


def validate_track_dataframe(df: pd.DataFrame, context: str = "Track data") -> pd.DataFrame:
    """
    Validate a track DataFrame has required columns and valid data.

    Args:
        df: DataFrame to validate
        context: Context description for error messages

    Returns:
        Validated DataFrame

    Raises:
        ValidationError: If validation fails
    """
    if df is None:
        raise ValidationError(f"{context}: DataFrame is None")

    if df.empty:
        raise ValidationError(f"{context}: DataFrame is empty")

    required_columns = ['latitude', 'longitude', 'time']
    missing_columns = [col for col in required_columns if col not in df.columns]

    if missing_columns:
        raise ValidationError(f"{context}: Missing required columns: {missing_columns}")

    # Validate coordinate ranges
    if not df['latitude'].between(-90, 90).all():
        invalid_count = (~df['latitude'].between(-90, 90)).sum()
        raise ValidationError(f"{context}: {invalid_count} invalid latitude values (must be -90 to 90)")

    if not df['longitude'].between(-180, 180).all():
        invalid_count = (~df['longitude'].between(-180, 180)).sum()
        raise ValidationError(f"{context}: {invalid_count} invalid longitude values (must be -180 to 180)")

    if df['time'].isna().any():
        nan_count = df['time'].isna().sum()
        logger.warning(f"{context}: {nan_count} points without timestamps")

    # Validate minimum data points
    if len(df) < 2:
        raise ValidationError(f"{context}: Need at least 2 data points for replay, got {len(df)}")

    logger.debug(f"{context}: Validation passed for {len(df)} data points")
    return df


def validate_wind_direction(wind_direction: Union[int, float, str], context: str = "Wind direction") -> float:
    """
    Validate and normalize wind direction.

    Args:
        wind_direction: Wind direction value to validate
        context: Context description for error messages

    Returns:
        Normalized wind direction (0-359.99)

    Raises:
        ValidationError: If validation fails
    """
    if wind_direction is None:
        raise ValidationError(f"{context}: Value is None")

    try:
        wind_float = float(wind_direction)
    except (ValueError, TypeError) as e:
        raise ValidationError(f"{context}: Cannot convert to float: {wind_direction}") from e

    if np.isnan(wind_float) or np.isinf(wind_float):
        raise ValidationError(f"{context}: Invalid value: {wind_float}")

    # Normalize to 0-359.99 range
    normalized = wind_float % 360.0

    logger.debug(f"{context}: {wind_direction} → {normalized}")
    return normalized


def validate_parameter_ranges(
    foiling_speed_threshold: Optional[float] = None,
    smoothing_factor: Optional[float] = None,
    measure_window: Optional[float] = None,
    ignore_window: Optional[float] = None,
    crossing_threshold: Optional[float] = None
) -> None:
    """
    Validate parameter ranges for the tracker.

    Args:
        foiling_speed_threshold: Foiling / maneuver speed threshold in knots
        smoothing_factor: EMA smoothing factor
        measure_window: Maneuver measurement window in seconds
        ignore_window: Maneuver guard window in seconds
        crossing_threshold: Wind angle crossing threshold in degrees

    Raises:
        ValidationError: If any parameter is out of valid range
    """
    if foiling_speed_threshold is not None:
        if not 0 <= foiling_speed_threshold <= 60:
            raise ValidationError(f"Foiling speed threshold must be 0-60 knots, got {foiling_speed_threshold}")

    if smoothing_factor is not None:
        if not 0 < smoothing_factor <= 1:
            raise ValidationError(f"Smoothing factor must be in (0, 1], got {smoothing_factor}")

    if measure_window is not None:
        if not 0 < measure_window <= 60:
            raise ValidationError(f"Measure window must be 0-60s, got {measure_window}")

    if ignore_window is not None:
        if not 0 <= ignore_window <= 30:
            raise ValidationError(f"Ignore window must be 0-30s, got {ignore_window}")

    if crossing_threshold is not None:
        if not 0 <= crossing_threshold <= 180:
            raise ValidationError(f"Crossing threshold must be 0-180°, got {crossing_threshold}")
