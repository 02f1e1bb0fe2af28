"""
Orchestration: timers, events, recording, preview, playback and the engine.
"""

from webtest.orchestration.engine import CaptureEngine
from webtest.orchestration.events import (
    EngineEvent,
    EngineEventType,
    EventBus,
    Notification,
    NotificationSeverity,
)
from webtest.orchestration.playback import PlaybackDriver, PlaybackPhase
from webtest.orchestration.preview import PreviewDecision, PreviewScheduler, PreviewState
from webtest.orchestration.recording import RecordingSessionController, RecordingState
from webtest.orchestration.timers import TimerHandle

__all__ = [
    "CaptureEngine",
    "EngineEvent",
    "EngineEventType",
    "EventBus",
    "Notification",
    "NotificationSeverity",
    "PlaybackDriver",
    "PlaybackPhase",
    "PreviewDecision",
    "PreviewScheduler",
    "PreviewState",
    "RecordingSessionController",
    "RecordingState",
    "TimerHandle",
]
