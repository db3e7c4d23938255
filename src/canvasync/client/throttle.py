from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional

log = logging.getLogger(__name__)


class Throttle:
    """
    Coalesce a burst of local mutations into one emit per window.

    The first `poke()` in a window schedules `emit` for the window's end;
    pokes while that is pending are absorbed. `emit` reads the current state
    when it runs, so the last mutation in the window is what goes out.
    """

    def __init__(self, window_s: float, emit: Callable[[], Awaitable[None]]) -> None:
        self.window_s = window_s
        self._emit = emit
        self._handle: Optional[asyncio.TimerHandle] = None
        self._inflight: set[asyncio.Task] = set()

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def poke(self) -> bool:
        if self._handle is not None:
            return False
        self._handle = asyncio.get_running_loop().call_later(self.window_s, self._fire)
        return True

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    async def drain(self) -> None:
        """Wait for emits already started (not ones still scheduled)."""
        if self._inflight:
            await asyncio.gather(*self._inflight, return_exceptions=True)

    def _fire(self) -> None:
        self._handle = None
        task = asyncio.ensure_future(self._emit())
        self._inflight.add(task)
        task.add_done_callback(self._done)

    def _done(self, task: asyncio.Task) -> None:
        self._inflight.discard(task)
        if not task.cancelled() and task.exception() is not None:
            log.warning("throttled emit failed: %s", task.exception())
