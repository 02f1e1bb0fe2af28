"""
Recording session lifecycle and recorded-action reconciliation.

State machine::

    IDLE -> STARTING -> RECORDING -> STOPPING -> IDLE
               |            |
               +-> IDLE     +-> IDLE   (start failure / session ended)

The poller is owned by the RECORDING state: entering it arms the interval,
leaving it cancels the interval before anything else happens.
"""

from enum import Enum
from typing import Callable, Dict, List, Optional, Set

from webtest.core.types import Session, TestStep, sequences_equivalent
from webtest.error_handling.exceptions import (
    RecordingStateError,
    SessionNotFoundError,
    WebTestError,
)
from webtest.gateway.client import ExecutionGateway
from webtest.monitoring.logger import get_logger
from webtest.orchestration.events import EngineEventType, EventBus, NotificationSeverity
from webtest.orchestration.timers import TimerHandle
from webtest.recording.action_mapper import ActionMapper

logger = get_logger(__name__)


class RecordingState(str, Enum):
    """Lifecycle states of a recording session."""

    IDLE = "idle"
    STARTING = "starting"
    RECORDING = "recording"
    STOPPING = "stopping"


_VALID_TRANSITIONS: Dict[RecordingState, Set[RecordingState]] = {
    RecordingState.IDLE: {RecordingState.STARTING},
    RecordingState.STARTING: {RecordingState.RECORDING, RecordingState.IDLE},
    RecordingState.RECORDING: {RecordingState.STOPPING, RecordingState.IDLE},
    RecordingState.STOPPING: {RecordingState.IDLE},
}


class RecordingSessionController:
    """
    Owns the recording session, the recording flag and the poll loop.

    The live sequence itself belongs to the caller: ``current_sequence``
    reads it and ``apply_sequence`` replaces it wholesale.
    """

    def __init__(
        self,
        gateway: ExecutionGateway,
        bus: EventBus,
        current_sequence: Callable[[], List[TestStep]],
        apply_sequence: Callable[[List[TestStep]], None],
        site_loaded: Callable[[], bool] = lambda: True,
        mapper: Optional[ActionMapper] = None,
        poll_interval: float = 3.0,
    ):
        """
        Initialize the controller.

        Args:
            gateway: Automation backend client
            bus: Event bus for state changes and notifications
            current_sequence: Returns the live step sequence
            apply_sequence: Replaces the live step sequence
            site_loaded: Whether the target site has been loaded
            mapper: Recorded action mapper
            poll_interval: Seconds between recorded-action polls
        """
        self.gateway = gateway
        self.bus = bus
        self.mapper = mapper or ActionMapper()
        self.poll_interval = poll_interval
        self._current_sequence = current_sequence
        self._apply_sequence = apply_sequence
        self._site_loaded = site_loaded

        self._state = RecordingState.IDLE
        self._session: Optional[Session] = None
        self._poller = TimerHandle("recording-poll")

    @property
    def state(self) -> RecordingState:
        return self._state

    @property
    def session(self) -> Optional[Session]:
        return self._session

    @property
    def is_recording(self) -> bool:
        """True from the start request until the session is finalized."""
        return self._state != RecordingState.IDLE

    @property
    def polling(self) -> bool:
        return self._poller.active

    def _transition(self, new_state: RecordingState) -> None:
        """Single authoritative transition; owns the poller handle."""
        old_state = self._state
        if new_state not in _VALID_TRANSITIONS[old_state]:
            raise RecordingStateError(
                f"Cannot move recording from {old_state.value} to {new_state.value}",
                current_state=old_state.value,
                requested_state=new_state.value,
            )

        if old_state == RecordingState.RECORDING:
            self._poller.cancel()

        self._state = new_state

        if new_state == RecordingState.RECORDING:
            self._poller.schedule_every(self.poll_interval, self.poll_once)
        elif new_state == RecordingState.IDLE:
            self._session = None

        logger.info(
            f"Recording state: {old_state.value} -> {new_state.value}",
            extra={"session_id": self._session.id if self._session else None},
        )
        self.bus.publish(
            EngineEventType.RECORDING_STATE_CHANGED,
            {
                "state": new_state.value,
                "previous_state": old_state.value,
                "session_id": self._session.id if self._session else None,
            },
        )

    async def start_recording(self, url: Optional[str]) -> bool:
        """
        Open a recording session on ``url``.

        Returns:
            True if the session is now recording
        """
        if self._state != RecordingState.IDLE:
            self.bus.notify(NotificationSeverity.WARNING, "Recording already in progress")
            return False
        if not url:
            self.bus.notify(
                NotificationSeverity.ERROR, "Cannot start recording", "Enter a website URL first"
            )
            return False
        if not self._site_loaded():
            self.bus.notify(
                NotificationSeverity.ERROR, "Cannot start recording", "Load the website first"
            )
            return False

        self._transition(RecordingState.STARTING)
        try:
            response = await self.gateway.start_recording(url)
        except WebTestError as e:
            self._abort_start(e.message)
            return False

        if self._state != RecordingState.STARTING:
            logger.warning("Recording start resolved after the controller moved on")
            return False

        if not response.success or not response.session_id:
            self._abort_start(response.error or "Backend did not open a session")
            return False

        self._session = Session(id=response.session_id)
        self._transition(RecordingState.RECORDING)
        self.bus.notify(
            NotificationSeverity.INFO,
            "Recording started",
            "Interact with the browser; actions are added as steps",
        )
        return True

    def _abort_start(self, reason: str) -> None:
        if self._state == RecordingState.STARTING:
            self._transition(RecordingState.IDLE)
        self.bus.notify(NotificationSeverity.ERROR, "Failed to start recording", reason)

    async def stop_recording(self) -> bool:
        """
        Stop the active session and apply its final sequence.

        Always finishes in IDLE, whatever the backend answers.

        Returns:
            True if the backend confirmed the stop
        """
        if self._state != RecordingState.RECORDING or self._session is None:
            self.bus.notify(NotificationSeverity.INFO, "No active recording session")
            return False

        session_id = self._session.id
        self._transition(RecordingState.STOPPING)

        stopped = False
        try:
            response = await self.gateway.stop_recording(session_id)
            self._apply_sequence(self.mapper.map_actions(response.sequence or []))
            stopped = response.success
            if not stopped:
                self.bus.notify(
                    NotificationSeverity.ERROR,
                    "Failed to stop recording",
                    response.error or "Backend rejected the stop request",
                )
        except SessionNotFoundError:
            self.bus.notify(
                NotificationSeverity.INFO,
                "Recording ended",
                "Recording session no longer exists",
            )
        except WebTestError as e:
            self.bus.notify(NotificationSeverity.ERROR, "Failed to stop recording", e.message)
        finally:
            self._transition(RecordingState.IDLE)

        if stopped:
            self.bus.notify(NotificationSeverity.INFO, "Recording stopped")
        return stopped

    async def poll_once(self) -> None:
        """One reconciliation tick against the backend's recorded actions."""
        if self._state != RecordingState.RECORDING or self._session is None:
            return

        session_id = self._session.id
        try:
            response = await self.gateway.get_recorded_actions(session_id)
        except SessionNotFoundError:
            if self._is_current(session_id):
                self._end_session("Recording session no longer exists")
            return
        except WebTestError as e:
            # Transient: keep the last known sequence and wait for the next tick
            logger.warning(
                "Recorded-action poll failed",
                extra={"session_id": session_id, "error": e.message},
            )
            return

        if not self._is_current(session_id):
            logger.debug("Discarding stale poll result", extra={"session_id": session_id})
            return

        if not response.success and not response.session_ended:
            self.bus.notify(
                NotificationSeverity.WARNING,
                "Could not fetch recorded actions",
                response.error or "",
            )
            return

        if response.sequence is not None:
            self._apply_if_changed(self.mapper.map_actions(response.sequence or []))

        if response.session_ended:
            self._end_session("The browser session has ended")

    def _is_current(self, session_id: str) -> bool:
        return (
            self._state == RecordingState.RECORDING
            and self._session is not None
            and self._session.id == session_id
        )

    def _apply_if_changed(self, steps: List[TestStep]) -> bool:
        if sequences_equivalent(self._current_sequence(), steps):
            return False
        self._apply_sequence(steps)
        return True

    def _end_session(self, reason: str) -> None:
        self._transition(RecordingState.IDLE)
        self.bus.notify(NotificationSeverity.INFO, "Recording ended", reason)

    def shutdown(self) -> None:
        """Drop the session locally without calling the backend."""
        self._poller.cancel()
        if self._state in (RecordingState.STARTING, RecordingState.RECORDING):
            self._transition(RecordingState.IDLE)
