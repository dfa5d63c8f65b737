"""
FastAPI backend for Foil Tracker.

This provides REST API endpoints for driving a live tracking session and for
replaying recorded GPX tracks through the wind tracker.
"""

from fastapi import FastAPI, UploadFile, File, HTTPException, Depends, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from typing import Dict, List, Optional, Any
import logging
import io
import json
import sys
import os

# Add parent directory to path to import our modules
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config.settings import (
    APP_NAME, APP_VERSION, APP_DESCRIPTION, LOGGING_CONFIG, ApiConfig, TrackerConfig, SessionConfig
)

# Initialize logging
logging.basicConfig(level=LOGGING_CONFIG["level"], format=LOGGING_CONFIG["format"])
logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title=f"{APP_NAME} API",
    description=APP_DESCRIPTION,
    version=APP_VERSION
)

# Add CORS middleware for frontend access
app.add_middleware(
    CORSMiddleware,
    allow_origins=ApiConfig.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

# Import our services
from core.gpx import load_gpx_file
from core.validation import ValidationError
from services.replay_service import replay_track
from services.session_service import (
    SessionService, SessionParams, SessionNotStartedError, get_session_service
)


# Pydantic models for API requests/responses
class SessionStartRequest(BaseModel):
    initial_wind_direction: float = SessionConfig.INITIAL_WIND_DIRECTION
    foiling_speed_threshold: Optional[float] = None
    auto_wind_detection: bool = SessionConfig.AUTO_WIND_DETECTION


class SampleRequest(BaseModel):
    heading: Optional[float] = None  # Radians below 2π, otherwise degrees
    speed: Optional[float] = None  # Meters per second
    timestamp_ms: int
    latitude: Optional[float] = None
    longitude: Optional[float] = None


class TickRequest(BaseModel):
    timestamp_ms: int


class LapMarkRequest(BaseModel):
    timestamp_ms: Optional[int] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None


class WindDirectionRequest(BaseModel):
    wind_direction: float


class AutoDetectionRequest(BaseModel):
    active: bool


class ManeuverStatsResponse(BaseModel):
    tack_count: int
    gybe_count: int
    avg_tack_angle: float
    avg_gybe_angle: float
    max_tack_angle: float
    max_gybe_angle: float


class WindSnapshotResponse(BaseModel):
    wind_direction: float
    initial_wind_direction: float
    auto_detection_active: bool
    locked: bool
    current_vmg: float
    tack_count: int
    gybe_count: int
    last_tack_angle: float
    last_gybe_angle: float
    current_tack_side: str
    current_point_of_sail: str
    wind_angle_less_cog: float
    maneuver_stats: ManeuverStatsResponse


class LapSnapshotResponse(BaseModel):
    vmg_up: float
    vmg_down: float
    seconds_since_last_tack: float
    lap_distance_meters: float
    avg_tack_angle: int
    cumulative_lap_vmg: float
    percent_on_foil: int
    record_fields: Dict[str, int]


class ReplayResponse(BaseModel):
    summary: Dict[str, Any]
    wind: WindSnapshotResponse
    maneuvers: List[Dict[str, Any]]
    laps: Dict[int, Dict[str, Any]]


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    logger.warning(f"Rejected request to {request.url.path}: {exc}")
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(SessionNotStartedError)
async def session_not_started_handler(request: Request, exc: SessionNotStartedError):
    return JSONResponse(status_code=409, content={"detail": str(exc)})


def _position(latitude: Optional[float], longitude: Optional[float]):
    if latitude is None or longitude is None:
        return None
    return (latitude, longitude)


def _lap_response(snapshot) -> LapSnapshotResponse:
    return LapSnapshotResponse(**snapshot.to_dict(), record_fields=snapshot.to_record_fields())


@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "message": f"{APP_NAME} API",
        "version": APP_VERSION,
        "endpoints": {
            "POST /api/session": "Start a tracking session",
            "POST /api/session/samples": "Push a GPS sample",
            "POST /api/session/laps": "Mark a new lap",
            "GET /api/session/wind": "Wind and maneuver snapshot",
            "GET /api/session/lap": "Current lap snapshot",
            "POST /api/replay-track": "Replay a GPX track file",
            "GET /api/health": "Health check endpoint"
        }
    }


@app.get("/api/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": "foil-tracker-api"}


@app.get("/api/config")
async def get_config():
    """Get default configuration values."""
    return {
        "tracker": TrackerConfig.as_dict(),
        "session": SessionConfig.as_dict(),
        "ranges": {
            "initial_wind_direction": {"min": 0, "max": 359, "step": 1},
            "foiling_speed_threshold": {"min": 0, "max": 30, "step": 0.5}
        }
    }


# =============================================================================
# LIVE SESSION
# =============================================================================

@app.post("/api/session", response_model=WindSnapshotResponse)
async def start_session(request: SessionStartRequest,
                        service: SessionService = Depends(get_session_service)):
    """Start a new session with the user's initial wind direction."""
    snapshot = service.start_session(SessionParams(
        initial_wind_direction=request.initial_wind_direction,
        foiling_speed_threshold=request.foiling_speed_threshold,
        auto_wind_detection=request.auto_wind_detection
    ))
    return snapshot.to_dict()


@app.delete("/api/session")
async def end_session(service: SessionService = Depends(get_session_service)):
    """End the active session and return its summary."""
    return service.end_session()


@app.post("/api/session/samples")
async def push_sample(request: SampleRequest,
                      service: SessionService = Depends(get_session_service)):
    """Push one GPS sample. Invalid samples are dropped, not rejected."""
    accepted = service.push_sample(
        request.heading, request.speed, request.timestamp_ms,
        _position(request.latitude, request.longitude)
    )
    return {"accepted": accepted}


@app.post("/api/session/tick")
async def tick(request: TickRequest, service: SessionService = Depends(get_session_service)):
    """Timer tick: resolve a due maneuver without a new sample."""
    record = service.tick(request.timestamp_ms)
    return {"resolved": record.to_dict() if record is not None else None}


@app.post("/api/session/laps")
async def mark_lap(request: LapMarkRequest, service: SessionService = Depends(get_session_service)):
    """Mark a new lap at the given (or last known) position."""
    lap = service.mark_lap(_position(request.latitude, request.longitude), request.timestamp_ms)
    return {"lap": lap}


@app.get("/api/session/laps")
async def get_laps(service: SessionService = Depends(get_session_service)):
    """Statistics for every lap of the session."""
    return {"laps": service.lap_stats()}


@app.get("/api/session/wind", response_model=WindSnapshotResponse)
async def get_wind(service: SessionService = Depends(get_session_service)):
    return service.wind_snapshot().to_dict()


@app.post("/api/session/wind", response_model=WindSnapshotResponse)
async def set_wind(request: WindDirectionRequest,
                   service: SessionService = Depends(get_session_service)):
    """Manually set the wind direction (resets maneuver counters)."""
    return service.set_wind_direction(request.wind_direction).to_dict()


@app.post("/api/session/wind/lock", response_model=WindSnapshotResponse)
async def lock_wind(service: SessionService = Depends(get_session_service)):
    return service.lock_wind().to_dict()


@app.post("/api/session/wind/unlock", response_model=WindSnapshotResponse)
async def unlock_wind(service: SessionService = Depends(get_session_service)):
    return service.unlock_wind().to_dict()


@app.post("/api/session/wind/auto", response_model=WindSnapshotResponse)
async def set_auto_detection(request: AutoDetectionRequest,
                             service: SessionService = Depends(get_session_service)):
    """Turn maneuver-based wind direction updates on or off."""
    return service.set_auto_detection(request.active).to_dict()


@app.post("/api/session/wind/reset", response_model=WindSnapshotResponse)
async def reset_wind(service: SessionService = Depends(get_session_service)):
    """Return to the manually entered wind direction."""
    return service.reset_wind().to_dict()


@app.get("/api/session/lap", response_model=LapSnapshotResponse)
async def get_lap(service: SessionService = Depends(get_session_service)):
    return _lap_response(service.lap_snapshot())


@app.get("/api/session/maneuvers")
async def get_maneuvers(service: SessionService = Depends(get_session_service)):
    return {"maneuvers": [record.to_dict() for record in service.maneuvers()]}


# =============================================================================
# TRACK REPLAY
# =============================================================================

@app.post("/api/replay-track", response_model=ReplayResponse)
async def replay_track_file(
    file: UploadFile = File(...),
    wind_direction: float = 0.0,
    foiling_speed_threshold: float = TrackerConfig.FOILING_SPEED_THRESHOLD,
    lap_marks: Optional[List[float]] = Query(None)
):
    """
    Replay a GPX track file through the wind tracker.

    Args:
        file: GPX file to replay
        wind_direction: Initial wind direction (0-359 degrees)
        foiling_speed_threshold: Foiling / maneuver speed threshold in knots
        lap_marks: Seconds from track start at which to mark laps

    Returns:
        Replay summary, final wind snapshot, maneuvers and per-lap statistics
    """
    if not file.filename or not file.filename.lower().endswith('.gpx'):
        raise HTTPException(status_code=400, detail="Only GPX files are allowed")

    content = await file.read()

    if len(content) > ApiConfig.MAX_UPLOAD_BYTES:
        raise HTTPException(
            status_code=413,
            detail=f"File too large. Maximum size is {ApiConfig.MAX_UPLOAD_BYTES // (1024 * 1024)}MB, "
                   f"received {len(content) / 1024 / 1024:.1f}MB"
        )

    if len(content) < 100:  # Minimum reasonable GPX file size
        raise HTTPException(status_code=400, detail="File appears to be empty or corrupted")

    logger.info(f"Replaying file: {file.filename}")
    track_data, metadata = load_gpx_file(io.BytesIO(content))

    from core.wind.tracker import TrackerParams
    values = TrackerConfig.as_dict()
    values['foiling_speed_threshold'] = foiling_speed_threshold

    try:
        result = replay_track(
            track_data,
            initial_wind_direction=wind_direction,
            params=TrackerParams.from_dict(values),
            lap_marks=lap_marks,
            filename=file.filename,
            metadata=metadata
        )
    except ValidationError:
        raise
    except Exception as e:
        logger.error(f"Error replaying track: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Error replaying track: {str(e)}")

    return ReplayResponse(
        summary=result.summary(),
        wind=result.wind_snapshot.to_dict(),
        maneuvers=json.loads(result.maneuvers.to_json(orient='records', date_format='iso')),
        laps=result.lap_stats
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=ApiConfig.HOST, port=ApiConfig.PORT)
