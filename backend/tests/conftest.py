"""
Shared fixtures: a synthetic upwind track with two tacks bracketing north.
"""

import math

import gpxpy
import gpxpy.gpx
import pandas as pd
import pytest

from core.constants import METERS_PER_DEGREE_LATITUDE

START = (50.0, -1.0)
LEGS = [(45, 60), (315, 60), (45, 60)]  # (heading degrees, seconds)
SPEED_MS = 6.0


def build_track(legs=LEGS, speed_ms=SPEED_MS, start=START) -> pd.DataFrame:
    """Dead-reckon a 1 Hz track through the given legs."""
    lat, lon = start
    rows = []
    times = pd.date_range('2024-06-01 12:00:00', periods=sum(s for _, s in legs) + 1, freq='s', tz='UTC')

    rows.append({'latitude': lat, 'longitude': lon, 'time': times[0]})
    i = 1
    for heading, seconds in legs:
        for _ in range(seconds):
            rad = math.radians(heading)
            lat += speed_ms * math.cos(rad) / METERS_PER_DEGREE_LATITUDE
            lon += speed_ms * math.sin(rad) / (METERS_PER_DEGREE_LATITUDE * math.cos(math.radians(lat)))
            rows.append({'latitude': lat, 'longitude': lon, 'time': times[i]})
            i += 1

    return pd.DataFrame(rows, columns=['latitude', 'longitude', 'time'])


@pytest.fixture
def track_frame():
    return build_track()


@pytest.fixture
def gpx_bytes(track_frame):
    gpx = gpxpy.gpx.GPX()
    track = gpxpy.gpx.GPXTrack(name="Two tacks")
    segment = gpxpy.gpx.GPXTrackSegment()
    for row in track_frame.itertuples(index=False):
        segment.points.append(gpxpy.gpx.GPXTrackPoint(
            row.latitude, row.longitude, time=row.time.to_pydatetime()
        ))
    track.segments.append(segment)
    gpx.tracks.append(track)
    return gpx.to_xml().encode('utf-8')
