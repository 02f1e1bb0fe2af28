"""
Owned, cancellable timer handles on the running asyncio loop.

Every engine timer (recording poll, preview debounce, playback tick) is one
TimerHandle stored on its owner. At most one timer is pending per handle;
scheduling again replaces the previous one.
"""

import asyncio
import inspect
from typing import Any, Awaitable, Callable, Optional, Union

from webtest.monitoring.logger import get_logger

logger = get_logger(__name__)

TimerCallback = Callable[[], Union[None, Awaitable[Any]]]


class TimerHandle:
    """A single named one-shot or interval timer."""

    def __init__(self, name: str):
        self.name = name
        self._task: Optional[asyncio.Task] = None
        # Bumped on every schedule/cancel; a running loop exits once it no
        # longer owns the current generation.
        self._generation = 0

    @property
    def active(self) -> bool:
        """True while a timer is pending or an interval is running."""
        return self._task is not None and not self._task.done()

    def schedule(self, delay: float, callback: TimerCallback) -> None:
        """
        Run ``callback`` once after ``delay`` seconds.

        The handle is detached before the callback runs, so cancel() issued
        while the callback is in progress does not abort it.
        """
        self.cancel()
        generation = self._generation
        self._task = asyncio.get_running_loop().create_task(
            self._run_once(generation, delay, callback),
            name=f"timer:{self.name}",
        )

    def schedule_every(self, interval: float, callback: TimerCallback) -> None:
        """Run ``callback`` every ``interval`` seconds until cancelled."""
        self.cancel()
        generation = self._generation
        self._task = asyncio.get_running_loop().create_task(
            self._run_every(generation, interval, callback),
            name=f"timer:{self.name}",
        )

    def cancel(self) -> None:
        """Cancel the pending timer. Idempotent."""
        self._generation += 1
        task, self._task = self._task, None
        if task is None or task.done():
            return

        # Called from inside our own callback: let the loop notice the
        # generation change instead of cancelling the running callback.
        if task is asyncio.current_task():
            return

        task.cancel()
        logger.debug(f"Timer cancelled: {self.name}")

    async def _run_once(self, generation: int, delay: float, callback: TimerCallback) -> None:
        await asyncio.sleep(delay)
        if generation != self._generation:
            return

        self._task = None
        await self._invoke(callback)

    async def _run_every(self, generation: int, interval: float, callback: TimerCallback) -> None:
        while generation == self._generation:
            await asyncio.sleep(interval)
            if generation != self._generation:
                return
            await self._invoke(callback)

    async def _invoke(self, callback: TimerCallback) -> None:
        try:
            result = callback()
            if inspect.isawaitable(result):
                await result
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception(f"Timer callback failed: {self.name}")
