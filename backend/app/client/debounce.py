"""
DevDoc Backend — Debouncer
============================

What:  Runs an async callback only after calls have stopped for `delay` seconds.
How:   Each call() cancels the pending timer task and starts a new one with
       the latest arguments; only the last call of a burst reaches the callback.
       A callback that is already running is never interrupted.
Who:   Notes autosave (NOTES_AUTOSAVE_DELAY) and search-as-you-type
       (SEARCH_DELAY) on top of ProjectStore.

Example:
    autosave = Debouncer(
        NOTES_AUTOSAVE_DELAY,
        lambda notes: store.update_project(pid, {"notes": notes}, quiet=True),
    )
    autosave.call("# dra")
    autosave.call("# draft")   # only this one is saved
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional, Tuple

logger = logging.getLogger(__name__)

NOTES_AUTOSAVE_DELAY = 1.0
SEARCH_DELAY = 0.3


class Debouncer:
    def __init__(self, delay: float, callback: Callable[..., Awaitable[Any]]):
        self.delay = delay
        self.callback = callback
        self._task: Optional[asyncio.Task] = None
        self._pending_args: Optional[Tuple[tuple, dict]] = None
        # True while the current task is still in its delay
        self._sleeping = False

    @property
    def pending(self) -> bool:
        return self._task is not None and not self._task.done()

    def call(self, *args: Any, **kwargs: Any) -> None:
        """Schedule the callback, replacing any call still waiting."""
        self.cancel()
        self._pending_args = (args, kwargs)
        self._sleeping = True
        self._task = asyncio.get_running_loop().create_task(self._fire_later())
        self._task.add_done_callback(self._consume_exception)

    async def _fire_later(self) -> Any:
        await asyncio.sleep(self.delay)
        self._sleeping = False
        return await self._fire()

    async def _fire(self) -> Any:
        if self._pending_args is None:
            return None
        args, kwargs = self._pending_args
        self._pending_args = None
        try:
            return await self.callback(*args, **kwargs)
        except Exception as e:
            logger.error("Debounced call failed: %s", str(e))
            raise

    @staticmethod
    def _consume_exception(task: asyncio.Task) -> None:
        # Already logged by _fire; wait() still re-raises it
        if not task.cancelled():
            task.exception()

    def cancel(self) -> None:
        """Drop the waiting call, if any. A callback already running is left to finish."""
        if self.pending and self._sleeping:
            self._task.cancel()
            self._task = None
        self._sleeping = False
        self._pending_args = None

    async def flush(self) -> Any:
        """Run the waiting call now (e.g. when leaving the editor)."""
        if self.pending and self._sleeping:
            self._task.cancel()
            self._task = None
        self._sleeping = False
        return await self._fire()

    async def wait(self) -> Any:
        """Wait for the scheduled call to run and return its result."""
        if self._task is None:
            return None
        task = self._task
        return await task
