from __future__ import annotations

import asyncio
from typing import Optional

from canvasync.protocol.constants import ECHO_SUPPRESS_S


class EchoGuard:
    """
    "Ignore the next full state replace" flag.

    Armed right before this client emits a full_sync and lowered `hold_s`
    later; while armed, incoming canvas_data is treated as our own echo.
    """

    def __init__(self, hold_s: float = ECHO_SUPPRESS_S) -> None:
        self.hold_s = hold_s
        self.raised = False
        self._handle: Optional[asyncio.TimerHandle] = None

    def arm(self) -> None:
        self.raised = True
        if self._handle is not None:
            self._handle.cancel()
        self._handle = asyncio.get_running_loop().call_later(self.hold_s, self.lower)

    def lower(self) -> None:
        self.raised = False
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
