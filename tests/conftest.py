"""
Shared fixtures for engine tests.
"""

import base64
import io
from typing import Callable, Optional

import pytest
from PIL import Image

from webtest.config.settings import Settings
from webtest.core.catalog import get_action_kind
from webtest.core.types import AvailableActionKind, BoundingBox, DetectedElement, TestStep


@pytest.fixture
def element() -> DetectedElement:
    """A detected button with a natural-resolution box."""
    return DetectedElement(
        id="elem-1",
        type="button",
        selector="#submit",
        tag="button",
        text="Submit",
        bounding_box=BoundingBox(x=100, y=50, width=200, height=100),
    )


@pytest.fixture
def make_step(element: DetectedElement) -> Callable[..., TestStep]:
    """Build a TestStep for a catalog kind."""

    def _make(
        kind: str,
        value: Optional[str] = None,
        target: bool = True,
        step_id: Optional[str] = None,
    ) -> TestStep:
        action_kind = get_action_kind(kind) or AvailableActionKind(
            id=kind, type=kind, name=kind.title()
        )
        data = {
            "action_kind": action_kind,
            "target_element": element if target else None,
            "value": value,
        }
        if step_id is not None:
            data["id"] = step_id
        return TestStep(**data)

    return _make


@pytest.fixture
def fast_settings() -> Settings:
    """Settings with millisecond-scale timers."""
    return Settings(
        _env_file=None,
        backend_base_url="http://backend.test",
        recording_poll_interval_ms=20,
        preview_debounce_ms=30,
        playback_step_delay_ms=10,
        default_test_url="https://example.com",
    )


@pytest.fixture
def png_data_url() -> Callable[[int, int], str]:
    """Encode a blank PNG of the given size as a data URL."""

    def _encode(width: int, height: int) -> str:
        buffer = io.BytesIO()
        Image.new("RGB", (width, height), color="white").save(buffer, format="PNG")
        return "data:image/png;base64," + base64.b64encode(buffer.getvalue()).decode()

    return _encode
