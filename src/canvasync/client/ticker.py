from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional

log = logging.getLogger(__name__)


class Ticker:
    """Run `step` every `interval_s` until it returns False or `stop()` is called."""

    def __init__(self, interval_s: float, step: Callable[[], Awaitable[bool]], name: str = "ticker") -> None:
        self.interval_s = interval_s
        self.name = name
        self._step = step
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> bool:
        if self.running:
            return False
        self._task = asyncio.get_running_loop().create_task(self._run(), name=self.name)
        self._task.add_done_callback(self._done)
        return True

    def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None

    async def join(self) -> None:
        if self._task is not None:
            await asyncio.gather(self._task, return_exceptions=True)

    async def _run(self) -> None:
        while True:
            if not await self._step():
                log.debug("%s finished", self.name)
                return
            await asyncio.sleep(self.interval_s)

    def _done(self, task: asyncio.Task) -> None:
        if not task.cancelled() and task.exception() is not None:
            log.warning("%s stopped: %s", self.name, task.exception())
