"""
Tests for the recording session controller.
"""

import asyncio
from unittest.mock import AsyncMock

import pytest

from webtest.core.types import (
    RecordedActionsResponse,
    StartRecordingResponse,
    StopRecordingResponse,
)
from webtest.error_handling.exceptions import (
    GatewayError,
    GatewayUnavailableError,
    RecordingStateError,
    SessionNotFoundError,
)
from webtest.gateway.client import ExecutionGateway
from webtest.orchestration.events import EngineEventType, EventBus
from webtest.orchestration.recording import RecordingSessionController, RecordingState

CLICK = {"kind": "click", "selector": "#go", "timestamp": 1}
INPUT = {"kind": "input", "selector": "#q", "value": "shoes", "timestamp": 2}


class Harness:
    """Holds the live sequence the controller reads and replaces."""

    def __init__(self, poll_interval: float = 10.0, site_loaded: bool = True):
        self.sequence = []
        self.applied = []
        self.site_loaded = site_loaded
        self.bus = EventBus()
        self.gateway = AsyncMock(spec=ExecutionGateway)
        self.gateway.start_recording.return_value = StartRecordingResponse(
            success=True, session_id="sess-1"
        )
        self.controller = RecordingSessionController(
            self.gateway,
            self.bus,
            current_sequence=lambda: self.sequence,
            apply_sequence=self._apply,
            site_loaded=lambda: self.site_loaded,
            poll_interval=poll_interval,
        )

    def _apply(self, steps):
        self.sequence = steps
        self.applied.append(steps)

    def notifications(self):
        return [e.payload for e in self.bus.get_history(EngineEventType.NOTIFICATION)]


@pytest.fixture
def harness():
    return Harness()


async def start(harness: Harness) -> None:
    assert await harness.controller.start_recording("https://example.com")


class TestStartRecording:

    @pytest.mark.asyncio
    async def test_start_success(self, harness):
        await start(harness)

        assert harness.controller.state == RecordingState.RECORDING
        assert harness.controller.session.id == "sess-1"
        assert harness.controller.polling
        harness.gateway.start_recording.assert_awaited_once_with("https://example.com")

        states = [
            e.payload["state"]
            for e in harness.bus.get_history(EngineEventType.RECORDING_STATE_CHANGED)
        ]
        assert states == ["starting", "recording"]
        harness.controller.shutdown()

    @pytest.mark.asyncio
    async def test_rejected_without_url(self, harness):
        assert not await harness.controller.start_recording(None)

        assert harness.controller.state == RecordingState.IDLE
        harness.gateway.start_recording.assert_not_awaited()
        assert harness.notifications()[-1]["severity"] == "error"

    @pytest.mark.asyncio
    async def test_rejected_when_site_not_loaded(self):
        harness = Harness(site_loaded=False)

        assert not await harness.controller.start_recording("https://example.com")

        harness.gateway.start_recording.assert_not_awaited()
        assert harness.notifications()[-1]["message"] == "Load the website first"

    @pytest.mark.asyncio
    async def test_backend_refuses(self, harness):
        harness.gateway.start_recording.return_value = StartRecordingResponse(
            success=False, error="Browser busy"
        )

        assert not await harness.controller.start_recording("https://example.com")

        assert harness.controller.state == RecordingState.IDLE
        assert harness.controller.session is None
        assert not harness.controller.polling
        assert harness.notifications()[-1]["message"] == "Browser busy"

    @pytest.mark.asyncio
    async def test_backend_unreachable(self, harness):
        harness.gateway.start_recording.side_effect = GatewayUnavailableError(
            "down", operation="start-recording", base_url="http://backend.test"
        )

        assert not await harness.controller.start_recording("https://example.com")
        assert harness.controller.state == RecordingState.IDLE

    @pytest.mark.asyncio
    async def test_second_start_rejected(self, harness):
        await start(harness)

        assert not await harness.controller.start_recording("https://example.com")
        assert harness.gateway.start_recording.await_count == 1
        harness.controller.shutdown()


class TestStopRecording:

    @pytest.mark.asyncio
    async def test_stop_applies_final_sequence(self, harness):
        harness.gateway.stop_recording.return_value = StopRecordingResponse(
            success=True, sequence=[CLICK, INPUT]
        )
        await start(harness)

        assert await harness.controller.stop_recording()

        harness.gateway.stop_recording.assert_awaited_once_with("sess-1")
        assert harness.controller.state == RecordingState.IDLE
        assert harness.controller.session is None
        assert not harness.controller.polling
        assert [s.action_kind.id for s in harness.sequence] == ["click", "input"]

    @pytest.mark.asyncio
    async def test_stop_drops_non_object_items(self, harness):
        harness.gateway.stop_recording.return_value = StopRecordingResponse(
            success=True, sequence=[CLICK, None, "junk", INPUT]
        )
        await start(harness)

        assert await harness.controller.stop_recording()

        assert [s.action_kind.id for s in harness.sequence] == ["click", "input"]

    @pytest.mark.asyncio
    async def test_stop_without_sequence_applies_empty(self, harness):
        harness.sequence = ["stale"]
        harness.gateway.stop_recording.return_value = StopRecordingResponse(success=True)
        await start(harness)

        await harness.controller.stop_recording()

        assert harness.sequence == []

    @pytest.mark.asyncio
    async def test_stop_while_idle_is_a_notice(self, harness):
        result = await harness.controller.stop_recording()

        assert result is False
        assert harness.controller.state == RecordingState.IDLE
        harness.gateway.stop_recording.assert_not_awaited()
        assert harness.notifications()[-1]["title"] == "No active recording session"
        assert harness.bus.get_history(EngineEventType.RECORDING_STATE_CHANGED) == []

    @pytest.mark.asyncio
    async def test_stop_failure_still_ends_idle(self, harness):
        harness.sequence = ["kept"]
        harness.gateway.stop_recording.side_effect = GatewayError(
            "boom", operation="stop-recording", status_code=500
        )
        await start(harness)

        assert not await harness.controller.stop_recording()

        assert harness.controller.state == RecordingState.IDLE
        assert not harness.controller.polling
        assert harness.sequence == ["kept"]

    @pytest.mark.asyncio
    async def test_stop_on_vanished_session_is_informational(self, harness):
        harness.sequence = ["kept"]
        harness.gateway.stop_recording.side_effect = SessionNotFoundError(
            "gone", session_id="sess-1"
        )
        await start(harness)

        assert not await harness.controller.stop_recording()

        assert harness.controller.state == RecordingState.IDLE
        assert harness.sequence == ["kept"]
        assert harness.notifications()[-1] == {
            "severity": "info",
            "title": "Recording ended",
            "message": "Recording session no longer exists",
        }

    @pytest.mark.asyncio
    async def test_logical_stop_failure_still_ends_idle(self, harness):
        harness.gateway.stop_recording.return_value = StopRecordingResponse(
            success=False, error="Already closed"
        )
        await start(harness)

        assert not await harness.controller.stop_recording()

        assert harness.controller.state == RecordingState.IDLE
        assert harness.notifications()[-1]["message"] == "Already closed"


class TestPolling:

    @pytest.mark.asyncio
    async def test_success_replaces_sequence_once(self, harness):
        harness.gateway.get_recorded_actions.return_value = RecordedActionsResponse(
            success=True, sequence=[CLICK, INPUT, {"kind": "teleport", "timestamp": 3}]
        )
        await start(harness)

        await harness.controller.poll_once()
        await harness.controller.poll_once()

        assert len(harness.applied) == 1
        assert [s.action_kind.id for s in harness.sequence] == ["click", "input"]
        harness.gateway.get_recorded_actions.assert_awaited_with("sess-1")
        harness.controller.shutdown()

    @pytest.mark.asyncio
    async def test_non_object_item_does_not_block_poll(self, harness):
        harness.gateway.get_recorded_actions.return_value = RecordedActionsResponse(
            success=True, sequence=[CLICK, None]
        )
        await start(harness)

        await harness.controller.poll_once()

        assert [s.action_kind.id for s in harness.sequence] == ["click"]
        assert harness.controller.state == RecordingState.RECORDING
        harness.controller.shutdown()

    @pytest.mark.asyncio
    async def test_new_actions_replace_sequence(self, harness):
        harness.gateway.get_recorded_actions.return_value = RecordedActionsResponse(
            success=True, sequence=[CLICK]
        )
        await start(harness)
        await harness.controller.poll_once()

        harness.gateway.get_recorded_actions.return_value = RecordedActionsResponse(
            success=True, sequence=[CLICK, INPUT]
        )
        await harness.controller.poll_once()

        assert len(harness.applied) == 2
        assert len(harness.sequence) == 2
        harness.controller.shutdown()

    @pytest.mark.asyncio
    async def test_transient_failure_keeps_sequence(self, harness):
        harness.sequence = ["kept"]
        harness.gateway.get_recorded_actions.side_effect = GatewayError(
            "boom", operation="get-recorded-actions", status_code=502
        )
        await start(harness)

        await harness.controller.poll_once()

        assert harness.sequence == ["kept"]
        assert harness.controller.state == RecordingState.RECORDING
        harness.controller.shutdown()

    @pytest.mark.asyncio
    async def test_session_not_found_ends_recording(self, harness):
        harness.gateway.get_recorded_actions.side_effect = SessionNotFoundError(
            "gone", session_id="sess-1"
        )
        await start(harness)

        await harness.controller.poll_once()

        assert harness.controller.state == RecordingState.IDLE
        assert harness.controller.session is None
        assert not harness.controller.polling
        assert harness.notifications()[-1]["severity"] == "info"

    @pytest.mark.asyncio
    async def test_logical_failure_warns_and_keeps_recording(self, harness):
        harness.sequence = ["kept"]
        harness.gateway.get_recorded_actions.return_value = RecordedActionsResponse(
            success=False, error="Recorder hiccup"
        )
        await start(harness)

        await harness.controller.poll_once()

        assert harness.sequence == ["kept"]
        assert harness.controller.state == RecordingState.RECORDING
        assert harness.notifications()[-1]["severity"] == "warning"
        harness.controller.shutdown()

    @pytest.mark.asyncio
    async def test_session_ended_applies_final_batch(self, harness):
        harness.gateway.get_recorded_actions.return_value = RecordedActionsResponse(
            success=False, session_ended=True, sequence=[CLICK]
        )
        await start(harness)

        await harness.controller.poll_once()

        assert [s.action_kind.id for s in harness.sequence] == ["click"]
        assert harness.controller.state == RecordingState.IDLE
        assert not harness.controller.polling

    @pytest.mark.asyncio
    async def test_stale_result_ignored(self, harness):
        await start(harness)

        async def stop_mid_flight(session_id):
            harness.controller.shutdown()
            return RecordedActionsResponse(success=True, sequence=[CLICK])

        harness.gateway.get_recorded_actions.side_effect = stop_mid_flight

        await harness.controller.poll_once()

        assert harness.applied == []
        assert harness.controller.state == RecordingState.IDLE

    @pytest.mark.asyncio
    async def test_poll_while_idle_is_noop(self, harness):
        await harness.controller.poll_once()
        harness.gateway.get_recorded_actions.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_poller_runs_only_while_recording(self):
        harness = Harness(poll_interval=0.01)
        harness.gateway.get_recorded_actions.return_value = RecordedActionsResponse(
            success=True, sequence=[CLICK]
        )
        harness.gateway.stop_recording.return_value = StopRecordingResponse(success=True)
        await start(harness)

        await asyncio.sleep(0.05)
        await harness.controller.stop_recording()
        polls = harness.gateway.get_recorded_actions.await_count
        await asyncio.sleep(0.03)

        assert polls >= 2
        assert harness.gateway.get_recorded_actions.await_count == polls
        assert [s.action_kind.id for s in harness.applied[0]] == ["click"]


class TestTransitions:

    def test_illegal_transition_rejected(self, harness):
        with pytest.raises(RecordingStateError):
            harness.controller._transition(RecordingState.STOPPING)

        assert harness.controller.state == RecordingState.IDLE
