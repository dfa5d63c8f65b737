#!/usr/bin/env python3
"""
Replay a recorded GPX track through the wind tracker.

Prints the wind, maneuver and lap results the live engine would have shown
for the session.

Usage:
    python replay_track.py data/session.gpx --wind 270
    python replay_track.py data/session.gpx --wind 270 --lap 0 --lap 600 --csv timeline.csv
"""

import argparse
import sys
import logging
from pathlib import Path

# Add backend to path
backend_dir = Path(__file__).parent
sys.path.insert(0, str(backend_dir))

from core.gpx import load_gpx_from_path
from core.validation import ValidationError
from core.wind.tracker import TrackerParams
from services.replay_service import replay_track
from config.settings import TrackerConfig

# Set up logging
logging.basicConfig(
    level=logging.INFO,
    format='%(levelname)s: %(message)s'
)
logger = logging.getLogger(__name__)


def print_section_header(title: str, char: str = "="):
    """Print a formatted section header."""
    print("\n" + char * 80)
    print(f"  {title}")
    print(char * 80 + "\n")


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Replay a GPX track through the wind tracker")
    parser.add_argument("path", help="GPX file to replay")
    parser.add_argument("--wind", type=float, required=True,
                        help="Initial wind direction in degrees (0-359)")
    parser.add_argument("--foiling-speed", type=float, default=TrackerConfig.FOILING_SPEED_THRESHOLD,
                        help="Foiling / maneuver speed threshold in knots")
    parser.add_argument("--lap", type=float, action="append", default=[],
                        help="Mark a lap this many seconds after the track start (repeatable)")
    parser.add_argument("--csv", type=Path, help="Write the per-sample timeline to this CSV file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    values = TrackerConfig.as_dict()
    values['foiling_speed_threshold'] = args.foiling_speed

    try:
        track_data, metadata = load_gpx_from_path(args.path)
        result = replay_track(
            track_data,
            initial_wind_direction=args.wind,
            params=TrackerParams.from_dict(values),
            lap_marks=args.lap,
            filename=Path(args.path).name,
            metadata=metadata
        )
    except (ValidationError, FileNotFoundError) as e:
        logger.error(f"Cannot replay {args.path}: {e}")
        return 1

    summary = result.summary()
    print_section_header(f"REPLAY: {summary['filename']}")
    print(f"  Duration:        {summary['duration_seconds'] / 60:.1f} min")
    print(f"  Speed:           avg {summary['avg_speed_knots']:.1f} kn, max {summary['max_speed_knots']:.1f} kn")
    print(f"  Upwind:          {summary['pct_upwind']:.0f}% of samples")
    print(f"  Wind:            {summary['initial_wind']:.0f}° → {summary['final_wind']:.0f}°")
    print(f"  Tacks / gybes:   {summary['tack_count']} / {summary['gybe_count']}")

    stats = result.wind_snapshot.maneuver_stats
    if stats.tack_count:
        print(f"  Tack angle:      avg {stats.avg_tack_angle:.0f}°, max {stats.max_tack_angle:.0f}°")
    if stats.gybe_count:
        print(f"  Gybe angle:      avg {stats.avg_gybe_angle:.0f}°, max {stats.max_gybe_angle:.0f}°")

    if not result.maneuvers.empty:
        print_section_header("MANEUVERS", "-")
        for row in result.maneuvers.itertuples(index=False):
            print(f"  {row.timestamp_ms / 1000:8.1f}s  {row.kind:<5} {row.angle:6.1f}°  "
                  f"→ {row.resulting_heading:5.1f}°  lap {row.lap_number}")

    if result.lap_stats:
        print_section_header("LAPS", "-")
        for number, lap in result.lap_stats.items():
            print(f"  Lap {number}: {lap['tack_count']} tacks, {lap['gybe_count']} gybes, "
                  f"{lap['pct_on_foil']:.0f}% on foil, lap VMG {lap['lap_vmg']:.1f} kn, "
                  f"VMG up {lap['avg_vmg_up']:.1f} / down {lap['avg_vmg_down']:.1f} kn")

    if args.csv:
        result.timeline.to_csv(args.csv, index=False)
        print(f"\nTimeline written to {args.csv}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
