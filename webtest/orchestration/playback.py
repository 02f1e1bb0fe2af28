"""
Timed, cancellable playback of executed step results.
"""

from enum import Enum
from typing import Callable, Optional, Sequence

from webtest.core.types import PlaybackState, StepResult
from webtest.monitoring.logger import get_logger
from webtest.orchestration.events import EngineEventType, EventBus
from webtest.orchestration.timers import TimerHandle

logger = get_logger(__name__)


class PlaybackPhase(str, Enum):
    IDLE = "idle"
    PLAYING = "playing"


class PlaybackDriver:
    """
    Steps through StepResults on a fixed delay.

    Only one tick timer exists per driver, so two chains can never advance
    the same playback. The step list survives the end of playback until
    start() or clear() replaces it.
    """

    def __init__(
        self,
        bus: EventBus,
        step_delay: float = 1.5,
        on_finished: Optional[Callable[[bool], None]] = None,
    ):
        self.bus = bus
        self.step_delay = step_delay
        self.on_finished = on_finished
        self._phase = PlaybackPhase.IDLE
        self._state = PlaybackState()
        self._timer = TimerHandle("playback-tick")

    @property
    def phase(self) -> PlaybackPhase:
        return self._phase

    @property
    def state(self) -> PlaybackState:
        return self._state

    @property
    def is_playing(self) -> bool:
        return self._phase == PlaybackPhase.PLAYING

    @property
    def current_step(self) -> Optional[StepResult]:
        index = self._state.current_index
        if index is None or index >= len(self._state.steps):
            return None
        return self._state.steps[index]

    def start(self, steps: Sequence[StepResult], overall_result: bool) -> None:
        """
        Begin playback at the first step.

        Args:
            steps: Ordered results of one execution
            overall_result: Whether the execution passed as a whole
        """
        self._timer.cancel()
        self._state = PlaybackState(
            steps=list(steps),
            current_index=0,
            overall_result=overall_result,
        )
        self._phase = PlaybackPhase.PLAYING
        logger.info(
            "Playback started",
            extra={"steps": len(self._state.steps), "overall_result": overall_result},
        )
        self._show_current()

    def advance(self) -> None:
        """Move to the next step, finishing past the last one."""
        if self._phase != PlaybackPhase.PLAYING:
            return

        self._timer.cancel()
        self._state.current_index += 1
        self._show_current()

    def _show_current(self) -> None:
        step = self.current_step
        if step is None:
            self._finish()
            return

        index = self._state.current_index
        if step.screenshot:
            self.bus.publish(
                EngineEventType.SCREENSHOT_CHANGED,
                {"screenshot": step.screenshot, "source": "playback", "step_index": index},
            )
        self.bus.publish(
            EngineEventType.PLAYBACK_PROGRESS,
            {
                "index": index,
                "total": len(self._state.steps),
                "name": step.name,
                "status": step.status.value,
                "error": step.error,
            },
        )
        self._timer.schedule(self.step_delay, self.advance)

    def _finish(self) -> None:
        self._timer.cancel()
        self._phase = PlaybackPhase.IDLE
        self._state.current_index = None
        passed = bool(self._state.overall_result)

        logger.info(f"Playback finished: {'passed' if passed else 'failed'}")
        self.bus.publish(
            EngineEventType.PLAYBACK_FINISHED,
            {"result": "passed" if passed else "failed", "passed": passed},
        )
        if self.on_finished is not None:
            self.on_finished(passed)

    def cancel(self) -> None:
        """Stop the tick timer; the step list is kept."""
        self._timer.cancel()
        if self._phase == PlaybackPhase.PLAYING:
            self._phase = PlaybackPhase.IDLE
            self._state.current_index = None
            logger.debug("Playback cancelled")

    def clear(self) -> None:
        """Stop and forget the current results."""
        self.cancel()
        self._state = PlaybackState()
