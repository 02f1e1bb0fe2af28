"""
Core data models for the capture engine.

Wire payloads exchanged with the automation backend use camelCase keys;
attributes are snake_case and either form is accepted on input.
"""

from enum import Enum
from typing import Any, Dict, List, Optional, Sequence
from uuid import uuid4

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    """Base for models that travel to or from the automation backend."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_wire(self) -> Dict[str, Any]:
        """Dump with backend (camelCase) keys, dropping unset optionals."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class ActionKind(str, Enum):
    """Action kinds known to the automation backend."""

    CLICK = "click"
    INPUT = "input"
    WAIT = "wait"
    SCROLL = "scroll"
    ASSERT = "assert"
    HOVER = "hover"
    SELECT = "select"
    ASSERT_TEXT_CONTAINS = "assertTextContains"
    ASSERT_ELEMENT_COUNT = "assertElementCount"


class StepStatus(str, Enum):
    """Outcome of one executed step."""

    PASSED = "passed"
    FAILED = "failed"


class AvailableActionKind(WireModel):
    """A catalog entry describing one action kind."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Action kind identifier (e.g. 'click')")
    type: str = Field(..., description="Action category, usually the same as id")
    name: str = Field(..., description="Display name")
    icon: str = Field("", description="Icon hint for the hosting UI")
    description: str = Field("", description="What the action does")

    @property
    def display_name(self) -> str:
        return self.name


class BoundingBox(WireModel):
    """Element box in natural screenshot pixels."""

    x: float
    y: float
    width: float
    height: float


class DetectedElement(WireModel):
    """A DOM element reported by the automation backend."""

    id: str
    type: str = Field("element", description="Element category (button, link, input, ...)")
    selector: str
    tag: str
    text: str = ""
    attributes: Dict[str, str] = Field(default_factory=dict)
    bounding_box: Optional[BoundingBox] = None

    @field_validator("text", mode="before")
    @classmethod
    def none_text_is_empty(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator("attributes", mode="before")
    @classmethod
    def stringify_attributes(cls, v: Any) -> Any:
        if isinstance(v, dict):
            return {str(k): "" if val is None else str(val) for k, val in v.items()}
        return v


class RecordedAction(WireModel):
    """A raw action captured by the backend during a recording session."""

    model_config = ConfigDict(frozen=True)

    kind: str = Field(..., validation_alias=AliasChoices("kind", "type", "action"))
    selector: Optional[str] = None
    value: Optional[str] = None
    timestamp: float
    target_tag: Optional[str] = None
    target_text: Optional[str] = None

    @field_validator("value", mode="before")
    @classmethod
    def stringify_value(cls, v: Any) -> Any:
        if v is None or isinstance(v, str):
            return v
        return str(v)


class TestStep(WireModel):
    """One structured step of a test sequence."""

    __test__ = False

    id: str = Field(default_factory=lambda: f"step-{uuid4().hex[:12]}")
    action_kind: AvailableActionKind = Field(
        ...,
        alias="action",
        validation_alias=AliasChoices("action", "actionKind", "action_kind"),
    )
    target_element: Optional[DetectedElement] = None
    value: Optional[str] = None


class StepResult(WireModel):
    """Result of one executed step, as reported by the backend."""

    model_config = ConfigDict(frozen=True)

    name: str = ""
    action_kind: Optional[str] = Field(
        None,
        alias="action",
        validation_alias=AliasChoices("action", "actionKind", "action_kind"),
    )
    selector: Optional[str] = None
    value: Optional[str] = None
    status: StepStatus
    screenshot: Optional[str] = None
    error: Optional[str] = None
    details: Any = None

    @property
    def passed(self) -> bool:
        return self.status == StepStatus.PASSED


class Session(BaseModel):
    """A backend recording session."""

    id: str
    active: bool = True


class PlaybackState(BaseModel):
    """Transient state of the playback driver."""

    steps: List[StepResult] = Field(default_factory=list)
    current_index: Optional[int] = None
    overall_result: Optional[bool] = None


class RenderGeometry(BaseModel):
    """Rendered container size against the screenshot's natural size."""

    rendered_width: float = Field(..., ge=0.0)
    rendered_height: float = Field(..., ge=0.0)
    natural_width: float = Field(..., ge=0.0)
    natural_height: float = Field(..., ge=0.0)


class ScaledBox(BaseModel):
    """Highlight box in rendered container pixels."""

    top: int
    left: int
    width: int
    height: int


# Gateway requests and responses


class ExecuteTestRequest(WireModel):
    """Payload for a direct (ad hoc) execution."""

    url: str
    sequence: List[TestStep]
    elements: List[DetectedElement] = Field(default_factory=list)
    name: Optional[str] = None


class LoadWebsiteResponse(WireModel):
    success: bool
    screenshot: Optional[str] = None
    html: Optional[str] = None
    error: Optional[str] = None


class DetectElementsResponse(WireModel):
    elements: List[DetectedElement] = Field(default_factory=list)


class StartRecordingResponse(WireModel):
    success: bool
    session_id: Optional[str] = None
    error: Optional[str] = None


class RecordedActionsResponse(WireModel):
    """Poll result. ``sequence`` stays raw so one bad item drops alone."""

    success: bool
    sequence: Optional[List[Any]] = None
    error: Optional[str] = None
    session_ended: bool = False


class StopRecordingResponse(WireModel):
    success: bool
    sequence: Optional[List[Any]] = None
    error: Optional[str] = None


class ExecuteTestResponse(WireModel):
    success: bool
    steps: Optional[List[StepResult]] = None
    detected_elements: Optional[List[DetectedElement]] = None
    error: Optional[str] = None
    duration: Optional[float] = None

    @property
    def overall_result(self) -> bool:
        """True when the call succeeded and no returned step failed."""
        return self.success and all(step.passed for step in self.steps or [])


def sequences_equivalent(a: Sequence[TestStep], b: Sequence[TestStep]) -> bool:
    """
    Structural equality of two step sequences.

    Generated ids (step ids and placeholder element ids) are ignored, so a
    re-mapped poll result that carries the same actions compares equal.
    """
    if len(a) != len(b):
        return False

    exclude = {"id": True, "target_element": {"id"}}
    return all(
        left.model_dump(exclude=exclude) == right.model_dump(exclude=exclude)
        for left, right in zip(a, b)
    )
