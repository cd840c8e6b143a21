"""Domain package exposing session models, persistence, and export helpers."""
from .models import (
    LevelPoint,
    SessionConfig,
    SessionSummary,
    SessionTrack,
    TempoPointRecord,
    TrackSpec,
)
from .persistence import (
    LevelsFileAdapter,
    SessionFileAdapter,
    load_session_config,
)
from .session_export_service import SessionExportResult, SessionExportService

__all__ = [
    "LevelPoint",
    "LevelsFileAdapter",
    "SessionConfig",
    "SessionExportResult",
    "SessionExportService",
    "SessionFileAdapter",
    "SessionSummary",
    "SessionTrack",
    "TempoPointRecord",
    "TrackSpec",
    "load_session_config",
]
