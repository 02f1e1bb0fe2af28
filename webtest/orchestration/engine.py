"""
Capture engine facade.

Owns every piece of mutable engine state (target site, screenshot, detected
elements, live sequence, highlight, geometry, last outcome) and wires the
recording controller, preview scheduler and playback driver together.
Callers request transitions; effects come back as events on ``bus``.
"""

from typing import Any, List, Optional, Sequence, Tuple

from webtest.config.settings import Settings, get_settings
from webtest.core.types import (
    DetectedElement,
    ExecuteTestResponse,
    RenderGeometry,
    ScaledBox,
    TestStep,
)
from webtest.error_handling.exceptions import WebTestError
from webtest.evaluation.completeness import incomplete_steps
from webtest.gateway.client import ExecutionGateway
from webtest.geometry.scaler import (
    letterbox_offset,
    natural_size_from_screenshot,
    scale_bounding_box,
)
from webtest.monitoring.logger import get_logger
from webtest.orchestration.events import (
    EngineEvent,
    EngineEventType,
    EventBus,
    NotificationSeverity,
)
from webtest.orchestration.playback import PlaybackDriver
from webtest.orchestration.preview import PreviewDecision, PreviewScheduler
from webtest.orchestration.recording import RecordingSessionController, RecordingState
from webtest.recording.action_mapper import ActionMapper

logger = get_logger(__name__)


class CaptureEngine:
    """
    Interactive capture and playback engine.

    All state lives on this instance and is driven from one asyncio loop.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        gateway: Optional[ExecutionGateway] = None,
        bus: Optional[EventBus] = None,
        mapper: Optional[ActionMapper] = None,
    ):
        """
        Initialize the engine.

        Args:
            settings: Engine settings (defaults to get_settings())
            gateway: Automation backend client
            bus: Event bus the hosting UI subscribes to
            mapper: Recorded action mapper
        """
        self.settings = settings or get_settings()
        self._owns_gateway = gateway is None
        self.gateway = gateway or ExecutionGateway(settings=self.settings)
        self.bus = bus or EventBus()

        self.target_url: Optional[str] = self.settings.default_test_url
        self.site_loaded = False
        self.screenshot: Optional[str] = None
        self.elements: List[DetectedElement] = []
        self.sequence: List[TestStep] = []
        self.highlighted_element_id: Optional[str] = None
        self.geometry: Optional[RenderGeometry] = None
        self.last_outcome: Optional[bool] = None

        self._rendered_size: Optional[Tuple[float, float]] = None
        self._natural_size: Optional[Tuple[float, float]] = None

        # Last-request-wins: only the response for the latest token is applied
        self._request_token = 0
        self._pending_token: Optional[int] = None

        self.playback = PlaybackDriver(
            self.bus,
            step_delay=self.settings.playback_step_delay,
            on_finished=self._on_playback_finished,
        )
        self.preview = PreviewScheduler(
            execute=self._execute,
            is_busy=self._is_busy,
            site_loaded=lambda: self.site_loaded,
            clear_playback=self.playback.clear,
            debounce=self.settings.preview_debounce,
        )
        self.recording = RecordingSessionController(
            self.gateway,
            self.bus,
            current_sequence=lambda: self.sequence,
            apply_sequence=self._apply_recorded_sequence,
            site_loaded=lambda: self.site_loaded,
            mapper=mapper,
            poll_interval=self.settings.recording_poll_interval,
        )

        self.bus.subscribe(EngineEventType.SCREENSHOT_CHANGED, self._on_screenshot_changed)

    async def __aenter__(self) -> "CaptureEngine":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    @property
    def is_executing(self) -> bool:
        return self._pending_token is not None

    def _is_busy(self) -> bool:
        return self.is_executing or self.playback.is_playing

    # ==========================================
    # Target site
    # ==========================================

    async def load_website(self, url: Optional[str] = None) -> bool:
        """
        Load the target site and display its screenshot.

        Args:
            url: Site to load (defaults to the current target URL)

        Returns:
            True if the site is loaded
        """
        url = url or self.target_url
        if not url:
            self.bus.notify(NotificationSeverity.ERROR, "Failed to load website", "No URL given")
            return False

        self.target_url = url
        try:
            response = await self.gateway.load_website(url)
        except WebTestError as e:
            self._site_failed(e.message)
            return False

        if not response.success:
            self._site_failed(response.error or "Failed to load website")
            return False

        self.site_loaded = True
        self.bus.publish(
            EngineEventType.SCREENSHOT_CHANGED,
            {"screenshot": response.screenshot, "source": "site"},
        )
        self.bus.notify(
            NotificationSeverity.INFO, "Website loaded", "Website loaded successfully in preview"
        )
        return True

    def _site_failed(self, reason: str) -> None:
        self.site_loaded = False
        self.bus.publish(EngineEventType.SCREENSHOT_CHANGED, {"screenshot": None, "source": "site"})
        self.bus.notify(NotificationSeverity.ERROR, "Failed to load website", reason)

    async def detect_elements(self) -> List[DetectedElement]:
        """Ask the backend for the interactive elements of the loaded site."""
        if not self.site_loaded or not self.target_url:
            self.bus.notify(
                NotificationSeverity.ERROR, "Failed to detect elements", "Load the website first"
            )
            return []

        try:
            elements = await self.gateway.detect_elements(self.target_url)
        except WebTestError as e:
            self.bus.notify(NotificationSeverity.ERROR, "Failed to detect elements", e.message)
            return []

        self._set_elements(elements)
        self.bus.notify(
            NotificationSeverity.INFO,
            "Elements detected",
            f"Found {len(elements)} elements on the page",
        )
        return list(elements)

    def _set_elements(self, elements: Sequence[DetectedElement]) -> None:
        self.elements = list(elements)
        self.bus.publish(
            EngineEventType.ELEMENTS_CHANGED,
            {"count": len(self.elements), "ids": [e.id for e in self.elements]},
        )
        self._refresh_highlight()

    def _on_screenshot_changed(self, event: EngineEvent) -> None:
        self.screenshot = event.payload.get("screenshot")
        size = natural_size_from_screenshot(self.screenshot)
        if size is not None:
            self._natural_size = (float(size[0]), float(size[1]))
            self._recompute_geometry()

    # ==========================================
    # Sequence
    # ==========================================

    def update_sequence(self, steps: Sequence[TestStep]) -> Optional[PreviewDecision]:
        """
        Replace the sequence with a manual edit.

        Manual edits are locked while a recording session is active.

        Returns:
            The preview decision, or None if the edit was rejected
        """
        if self.recording.is_recording:
            self.bus.notify(
                NotificationSeverity.WARNING,
                "Sequence locked",
                "Stop recording before editing steps manually",
            )
            return None
        return self._set_sequence(steps, source="manual")

    def clear_sequence(self) -> Optional[PreviewDecision]:
        """Empty the sequence; drops pending previews and playback."""
        return self.update_sequence([])

    def _apply_recorded_sequence(self, steps: List[TestStep]) -> None:
        self._set_sequence(steps, source="recording")

    def _set_sequence(self, steps: Sequence[TestStep], source: str) -> PreviewDecision:
        self.sequence = list(steps)
        if not self.sequence:
            # A response still in flight belongs to the old sequence
            self._invalidate_pending_execution()

        self.bus.publish(
            EngineEventType.SEQUENCE_CHANGED,
            {
                "source": source,
                "steps": [step.to_wire() for step in self.sequence],
                "incomplete": incomplete_steps(self.sequence),
            },
        )
        decision = self.preview.on_sequence_updated(self.sequence)
        logger.debug(
            "Sequence updated",
            extra={"source": source, "steps": len(self.sequence), "decision": decision.value},
        )
        return decision

    # ==========================================
    # Execution
    # ==========================================

    async def run_test(self) -> Optional[ExecuteTestResponse]:
        """Execute the current sequence now (manual Run)."""
        if not self.sequence:
            self.bus.notify(
                NotificationSeverity.ERROR, "No test steps", "Add some test steps before running"
            )
            return None
        if not self.site_loaded or not self.target_url:
            self.bus.notify(NotificationSeverity.ERROR, "Cannot run test", "Load the website first")
            return None
        return await self._execute(list(self.sequence))

    async def _execute(self, steps: List[TestStep]) -> Optional[ExecuteTestResponse]:
        """Issue one execution; only the latest request's response is applied."""
        self.preview.cancel()
        # Results belong to one execution; drop them before the next is issued
        self.playback.clear()

        self._request_token += 1
        token = self._request_token
        self._pending_token = token
        self.bus.publish(EngineEventType.EXECUTION_STARTED, {"token": token, "steps": len(steps)})

        try:
            response = await self.gateway.execute_test_direct(
                self.target_url,
                steps,
                self.elements,
                name=self.settings.default_test_name,
            )
        except WebTestError as e:
            if self._is_stale(token):
                return None
            self._execution_failed(e.message)
            return None

        if self._is_stale(token):
            return None

        if not response.success:
            self._execution_failed(response.error or "Execution failed")
            return response

        self._pending_token = None
        if response.detected_elements is not None:
            self._set_elements(response.detected_elements)

        overall = response.overall_result
        self.bus.publish(
            EngineEventType.EXECUTION_FINISHED,
            {
                "token": token,
                "success": True,
                "overall_result": overall,
                "steps": len(response.steps or []),
                "duration": response.duration,
            },
        )
        self.playback.start(response.steps or [], overall)
        return response

    def _is_stale(self, token: int) -> bool:
        if token == self._request_token:
            return False
        logger.info(
            "Discarding stale execution response",
            extra={"token": token, "latest_token": self._request_token},
        )
        return True

    def _invalidate_pending_execution(self) -> None:
        if self._pending_token is not None:
            self._request_token += 1
            self._pending_token = None

    def _execution_failed(self, reason: str) -> None:
        self._pending_token = None
        self.playback.clear()
        self._set_elements([])
        self.last_outcome = False
        self.bus.publish(EngineEventType.EXECUTION_FINISHED, {"success": False, "error": reason})
        self.bus.notify(NotificationSeverity.ERROR, "Test execution failed", reason)

    def _on_playback_finished(self, passed: bool) -> None:
        self.last_outcome = passed
        if passed:
            self.bus.notify(NotificationSeverity.INFO, "Test passed", "All steps passed")
        else:
            self.bus.notify(NotificationSeverity.ERROR, "Test failed", "One or more steps failed")

    # ==========================================
    # Recording
    # ==========================================

    async def start_recording(self, url: Optional[str] = None) -> bool:
        """Start a recording session on ``url`` or the current target."""
        return await self.recording.start_recording(url or self.target_url)

    async def stop_recording(self) -> bool:
        """Stop the active recording session."""
        return await self.recording.stop_recording()

    # ==========================================
    # Highlight and geometry
    # ==========================================

    def hover_element(self, element_id: Optional[str]) -> bool:
        """
        Highlight a detected element, or clear the highlight with None.

        Ignored while playback is playing.
        """
        if self.playback.is_playing:
            logger.debug("Hover ignored during playback", extra={"element_id": element_id})
            return False

        self.highlighted_element_id = element_id
        self._refresh_highlight()
        return True

    def set_render_geometry(
        self,
        rendered_width: float,
        rendered_height: float,
        natural_width: Optional[float] = None,
        natural_height: Optional[float] = None,
    ) -> Optional[RenderGeometry]:
        """
        Record the displayed image's container size.

        The natural size falls back to the displayed screenshot's own size.
        """
        self._rendered_size = (rendered_width, rendered_height)
        if natural_width is not None and natural_height is not None:
            self._natural_size = (natural_width, natural_height)
        self._recompute_geometry()
        return self.geometry

    def _recompute_geometry(self) -> None:
        if self._rendered_size is None or self._natural_size is None:
            self.geometry = None
        else:
            self.geometry = RenderGeometry(
                rendered_width=self._rendered_size[0],
                rendered_height=self._rendered_size[1],
                natural_width=self._natural_size[0],
                natural_height=self._natural_size[1],
            )
        self._refresh_highlight()

    def highlight_box(self) -> Optional[ScaledBox]:
        """Box of the highlighted element in rendered container pixels."""
        if self.highlighted_element_id is None:
            return None

        element = next(
            (e for e in self.elements if e.id == self.highlighted_element_id), None
        )
        if element is None:
            return None
        return scale_bounding_box(self.geometry, element.bounding_box)

    def _refresh_highlight(self) -> None:
        box = self.highlight_box()
        if box is not None:
            logger.debug(
                "Highlight box computed",
                extra={"box": box.model_dump(), "offset": letterbox_offset(self.geometry)},
            )
        self.bus.publish(
            EngineEventType.HIGHLIGHT_CHANGED,
            {
                "element_id": self.highlighted_element_id,
                "box": box.model_dump() if box is not None else None,
            },
        )

    # ==========================================
    # Lifecycle
    # ==========================================

    async def close(self) -> None:
        """Stop timers, end any recording session and close the gateway."""
        self._invalidate_pending_execution()
        await self.preview.shutdown()
        self.playback.cancel()

        if self.recording.state == RecordingState.RECORDING:
            await self.recording.stop_recording()
        self.recording.shutdown()

        if self._owns_gateway:
            await self.gateway.close()
        logger.info("Capture engine closed")
