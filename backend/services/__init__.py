"""
Services package.

Provides business logic layer between API and core algorithms.

Modules:
    session_service: Live tracking session around one WindTracker
    replay_service: Replay of recorded tracks through the tracker
"""

from services.replay_service import replay_track, ReplayResult
from services.session_service import (
    SessionService, SessionParams, SessionNotStartedError, get_session_service
)

__all__ = [
    'replay_track',
    'ReplayResult',
    'SessionService',
    'SessionParams',
    'SessionNotStartedError',
    'get_session_service',
]
