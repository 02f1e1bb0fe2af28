"""
Real-time preview: debounced auto-execution of complete sequences.
"""

import asyncio
from enum import Enum
from typing import Any, Awaitable, Callable, List, Optional, Sequence

from webtest.core.types import TestStep
from webtest.evaluation.completeness import is_sequence_complete
from webtest.monitoring.logger import get_logger
from webtest.orchestration.timers import TimerHandle

logger = get_logger(__name__)


class PreviewState(str, Enum):
    IDLE = "idle"
    PENDING = "pending"


class PreviewDecision(str, Enum):
    """What a sequence update did to the preview."""

    CLEARED = "cleared"
    INCOMPLETE = "incomplete"
    NO_SITE = "no_site"
    SCHEDULED = "scheduled"


class PreviewScheduler:
    """
    Schedules at most one debounced preview execution.

    A newer qualifying update replaces the pending call. At fire time the
    call is skipped if an execution or playback is already in flight.
    """

    def __init__(
        self,
        execute: Callable[[List[TestStep]], Awaitable[Any]],
        is_busy: Callable[[], bool],
        site_loaded: Callable[[], bool],
        clear_playback: Callable[[], None],
        debounce: float = 0.75,
    ):
        self._execute = execute
        self._is_busy = is_busy
        self._site_loaded = site_loaded
        self._clear_playback = clear_playback
        self.debounce = debounce
        self._timer = TimerHandle("preview-debounce")
        self._in_flight: Optional[asyncio.Task] = None

    @property
    def state(self) -> PreviewState:
        return PreviewState.PENDING if self._timer.active else PreviewState.IDLE

    def on_sequence_updated(self, steps: Sequence[TestStep]) -> PreviewDecision:
        """
        React to a new live sequence.

        Args:
            steps: The sequence after the update

        Returns:
            The decision taken
        """
        if not steps:
            self.cancel()
            self._clear_playback()
            return PreviewDecision.CLEARED

        if not is_sequence_complete(steps):
            self.cancel()
            return PreviewDecision.INCOMPLETE

        if not self._site_loaded():
            self.cancel()
            return PreviewDecision.NO_SITE

        snapshot = list(steps)
        self._timer.schedule(self.debounce, lambda: self._fire(snapshot))
        logger.debug("Preview scheduled", extra={"steps": len(snapshot)})
        return PreviewDecision.SCHEDULED

    @property
    def executing(self) -> bool:
        """True while a fired preview's execution is still awaiting."""
        return self._in_flight is not None and not self._in_flight.done()

    def cancel(self) -> None:
        """Drop the pending preview, if any. A fired preview keeps running."""
        self._timer.cancel()

    async def shutdown(self) -> None:
        """Drop the pending preview and abort a fired one that is still running."""
        self._timer.cancel()
        task, self._in_flight = self._in_flight, None
        if task is None or task.done() or task is asyncio.current_task():
            return

        task.cancel()
        await asyncio.wait({task})
        logger.debug("In-flight preview execution cancelled")

    async def _fire(self, steps: List[TestStep]) -> None:
        if self._is_busy():
            logger.debug("Preview skipped: execution or playback in flight")
            return

        self._in_flight = asyncio.current_task()
        try:
            await self._execute(steps)
        finally:
            if self._in_flight is asyncio.current_task():
                self._in_flight = None
