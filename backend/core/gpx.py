"""
GPX file parsing and handling.

This module loads recorded GPX tracks and derives the per-point course and
speed that the live engine would otherwise receive from the GPS sensor, so a
recorded session can be replayed through the wind tracker.
"""

import os
import gpxpy
import pandas as pd
import logging
from typing import Tuple, Dict, Any

from core.calculations import calculate_bearing, calculate_distance
from core.constants import MILLISECONDS_PER_SECOND
from core.validation import validate_track_dataframe, ValidationError

logger = logging.getLogger(__name__)


def load_gpx_file(gpx_file) -> Tuple[pd.DataFrame, Dict[str, Any]]:
    """
    Load and parse a GPX file into a pandas DataFrame.

    Args:
        gpx_file: A file-like object containing GPX data

    Returns:
        tuple: (DataFrame with latitude/longitude/time, dict with metadata)

    Raises:
        ValidationError: If parsing fails or the track is unusable
    """
    try:
        gpx = gpxpy.parse(gpx_file)

        if not gpx.tracks:
            raise ValidationError("GPX file contains no tracks")

    except gpxpy.gpx.GPXException as e:
        raise ValidationError(f"Invalid GPX file format: {str(e)}") from e

    metadata = {
        'name': None,
        'time': None
    }

    if gpx.tracks[0].name:
        metadata['name'] = gpx.tracks[0].name
    elif hasattr(gpx_file, 'name'):
        filename = os.path.basename(gpx_file.name)
        metadata['name'] = os.path.splitext(filename)[0]

    if gpx.time:
        metadata['time'] = gpx.time

    data = []
    for track in gpx.tracks:
        for segment in track.segments:
            for point in segment.points:
                data.append({
                    'latitude': point.latitude,
                    'longitude': point.longitude,
                    'time': point.time,
                })

    df = pd.DataFrame(data, columns=['latitude', 'longitude', 'time'])
    validated_df = validate_track_dataframe(df, f"GPX file {metadata.get('name') or 'unknown'}")

    logger.info(f"Successfully loaded GPX file with {len(validated_df)} track points")
    return validated_df, metadata


def load_gpx_from_path(file_path: str) -> Tuple[pd.DataFrame, Dict[str, Any]]:
    """
    Load a GPX file from disk path.

    Raises:
        FileNotFoundError: If the file does not exist
    """
    if not os.path.exists(file_path):
        raise FileNotFoundError(f"GPX file not found: {file_path}")

    with open(file_path, 'r') as f:
        data, metadata = load_gpx_file(f)

        if not metadata['name']:
            metadata['name'] = os.path.splitext(os.path.basename(file_path))[0]

        return data, metadata


def calculate_point_metrics(df: pd.DataFrame) -> pd.DataFrame:
    """
    Calculate course, speed and a millisecond timestamp for each track point.

    Course and speed for point i are taken from the leg i-1 -> i; the first
    point reuses the first leg. Points without a timestamp are dropped.

    Args:
        df: DataFrame with 'latitude', 'longitude', 'time' columns

    Returns:
        DataFrame with added 'bearing' (degrees), 'speed_ms' and 'timestamp_ms' columns
    """
    result = df.dropna(subset=['time']).reset_index(drop=True)
    if len(result) < 2:
        logger.warning(f"Only {len(result)} timed points, cannot calculate metrics")
        return result.iloc[0:0].assign(bearing=pd.Series(dtype=float),
                                       speed_ms=pd.Series(dtype=float),
                                       timestamp_ms=pd.Series(dtype='int64'))

    times = pd.to_datetime(result['time'], utc=True)
    start = times.iloc[0]
    timestamps = ((times - start).dt.total_seconds() * MILLISECONDS_PER_SECOND).round().astype('int64')

    bearings = []
    speeds = []

    for i in range(1, len(result)):
        lat1, lon1 = result.iloc[i - 1]['latitude'], result.iloc[i - 1]['longitude']
        lat2, lon2 = result.iloc[i]['latitude'], result.iloc[i]['longitude']

        distance = calculate_distance(lat1, lon1, lat2, lon2)
        duration = (timestamps.iloc[i] - timestamps.iloc[i - 1]) / MILLISECONDS_PER_SECOND

        bearings.append(calculate_bearing(lat1, lon1, lat2, lon2))
        speeds.append(distance / duration if duration > 0 else 0.0)

    # The first point has no incoming leg
    bearings.insert(0, bearings[0])
    speeds.insert(0, speeds[0])

    result['bearing'] = bearings
    result['speed_ms'] = speeds
    result['timestamp_ms'] = timestamps.values

    logger.debug(f"Calculated metrics for {len(result)} points")
    return result
