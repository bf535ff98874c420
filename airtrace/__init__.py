"""
AirTrace - Pinch-to-draw fingertip tracking and path tracing.

Turns hand landmark frames into a smoothed fingertip, a debounced pen
state and forward-only progress along tracing paths.
"""

__version__ = "1.0.0"
__author__ = "AirTrace Team"

from .config import TrackerSettings
from .fingertip_tracker import FingertipTracker, TrackingResult
from .landmarks import HandLandmarks, Landmark, LandmarkFrame
from .one_euro_filter import OneEuroFilter
from .pen_state_machine import PenEvent, PenEventType, PenState, PenStateMachine
from .predictive_smoothing import TwoStageFilter
from .progress_store import JsonFileStore, MemoryStore, ProgressStore
from .settings_loader import SettingsLoadError, load_settings
from .tracing_paths import TracingPath, get_pack, get_path
from .tracing_session import TracingSession, TracingTick

__all__ = [
    "TrackerSettings",
    "FingertipTracker",
    "TrackingResult",
    "HandLandmarks",
    "Landmark",
    "LandmarkFrame",
    "OneEuroFilter",
    "PenEvent",
    "PenEventType",
    "PenState",
    "PenStateMachine",
    "TwoStageFilter",
    "JsonFileStore",
    "MemoryStore",
    "ProgressStore",
    "SettingsLoadError",
    "load_settings",
    "TracingPath",
    "get_pack",
    "get_path",
    "TracingSession",
    "TracingTick",
]
