"""
Core module exports.
"""

from webtest.core.catalog import AVAILABLE_ACTIONS, get_action_kind
from webtest.core.types import (
    ActionKind,
    AvailableActionKind,
    BoundingBox,
    DetectedElement,
    DetectElementsResponse,
    ExecuteTestRequest,
    ExecuteTestResponse,
    LoadWebsiteResponse,
    PlaybackState,
    RecordedAction,
    RecordedActionsResponse,
    RenderGeometry,
    ScaledBox,
    Session,
    StartRecordingResponse,
    StepResult,
    StepStatus,
    StopRecordingResponse,
    TestStep,
    sequences_equivalent,
)

__all__ = [
    # Catalog
    "AVAILABLE_ACTIONS",
    "get_action_kind",
    # Types
    "ActionKind",
    "AvailableActionKind",
    "BoundingBox",
    "DetectedElement",
    "RecordedAction",
    "TestStep",
    "StepStatus",
    "StepResult",
    "Session",
    "PlaybackState",
    "RenderGeometry",
    "ScaledBox",
    # Gateway payloads
    "ExecuteTestRequest",
    "ExecuteTestResponse",
    "LoadWebsiteResponse",
    "DetectElementsResponse",
    "StartRecordingResponse",
    "RecordedActionsResponse",
    "StopRecordingResponse",
    "sequences_equivalent",
]
