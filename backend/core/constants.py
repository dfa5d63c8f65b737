"""
Constants for the foil tracker engine.

This module contains all the mathematical, algorithmic, and domain-specific
constants used throughout the codebase. Constants are grouped by their purpose
and documented with their units where applicable.
"""

# =============================================================================
# CONVERSION FACTORS
# =============================================================================

# Speed conversions
METERS_PER_SECOND_TO_KNOTS = 1.94384  # 1 m/s = 1.94384 knots

# Distance conversions
METERS_PER_NAUTICAL_MILE = 1852.0
METERS_PER_DEGREE_LATITUDE = 111320.0  # Equirectangular approximation

# Time conversions
MILLISECONDS_PER_SECOND = 1000
MILLISECONDS_PER_HOUR = 3600 * 1000

# =============================================================================
# ANGLE CONSTANTS (all in degrees)
# =============================================================================

# Fundamental angle values
FULL_CIRCLE_DEGREES = 360
ANGLE_WRAP_BOUNDARY_DEGREES = 180  # Used for angle wrapping calculations
UPWIND_DOWNWIND_BOUNDARY_DEGREES = 90  # Boundary between upwind and downwind

# Heading values below this are assumed to be radians (sensor unit heuristic)
RADIANS_HEURISTIC_LIMIT = 6.283185307179586  # 2 * pi

# Vector length below which a bisector is considered degenerate
MIN_BISECTOR_VECTOR_LENGTH = 1e-6

# =============================================================================
# SMOOTHING
# =============================================================================

HEADING_SMOOTHING_FACTOR = 0.15  # EMA factor applied to course over ground
VMG_SMOOTHING_FACTOR = 0.1  # EMA factor applied to VMG

# =============================================================================
# MANEUVER DETECTION
# =============================================================================

# Wind angle crossings (relative to COG) that signal a tack or gybe
TACK_CROSSING_THRESHOLD_DEGREES = 10
GYBE_CROSSING_THRESHOLD_DEGREES = 170

# Delayed angle measurement windows
MANEUVER_MEASURE_WINDOW_SECONDS = 10  # Length of each before/after window
MANEUVER_IGNORE_WINDOW_SECONDS = 2  # Guard band around the crossing itself

# Auto wind candidates further than this from the current wind are flipped
WIND_FLIP_THRESHOLD_DEGREES = 120

# =============================================================================
# SPEED THRESHOLDS (knots)
# =============================================================================

DEFAULT_FOILING_SPEED_THRESHOLD_KNOTS = 7.0

# =============================================================================
# BUFFER CAPACITIES
# =============================================================================

HEADING_HISTORY_CAPACITY = 60  # ~60 s at 1 Hz
MANEUVER_HISTORY_CAPACITY = 100

# =============================================================================
# LAP TRACKING
# =============================================================================

MIN_LAP_ELAPSED_HOURS = 1e-6  # Skip lap VMG projection below this

# Snapshot clamping ranges (consumers store these as fixed-point integers)
MAX_SNAPSHOT_VMG_KNOTS = 99.9
MAX_SNAPSHOT_SECONDS = 86400
MAX_SNAPSHOT_DISTANCE_METERS = 999999.9
MAX_SNAPSHOT_ANGLE_DEGREES = 180
MAX_SNAPSHOT_PERCENT = 100

RECORD_FIELD_SCALE = 10  # Decimal values are stored multiplied by this

# =============================================================================
# VALIDATION
# =============================================================================

assert 0 < HEADING_SMOOTHING_FACTOR <= 1, "Heading smoothing factor must be in (0, 1]"
assert 0 < VMG_SMOOTHING_FACTOR <= 1, "VMG smoothing factor must be in (0, 1]"
assert TACK_CROSSING_THRESHOLD_DEGREES < GYBE_CROSSING_THRESHOLD_DEGREES, \
    "Tack crossing threshold must be below gybe crossing threshold"
