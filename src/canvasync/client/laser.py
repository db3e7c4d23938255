from __future__ import annotations

import time
from typing import Callable

from canvasync.protocol.constants import LASER_LIFETIME_S
from canvasync.protocol.messages import Laser


class LaserTrail:
    """Laser strokes seen locally; each fades out `lifetime_s` after it arrived."""

    def __init__(self, lifetime_s: float = LASER_LIFETIME_S, clock: Callable[[], float] = time.monotonic) -> None:
        self.lifetime_s = lifetime_s
        self._clock = clock
        self._trails: list[tuple[Laser, float]] = []

    def __len__(self) -> int:
        return len(self._trails)

    def add(self, laser: Laser) -> None:
        # measured from receipt, not the sender's timestamp: clocks differ
        self._trails.append((laser, self._clock()))

    def active(self) -> list[tuple[Laser, float]]:
        """Live strokes with their opacity (1.0 fresh, approaching 0.0); expired ones are dropped."""
        now = self._clock()
        live: list[tuple[Laser, float]] = []
        kept: list[tuple[Laser, float]] = []
        for laser, seen in self._trails:
            age = now - seen
            if age > self.lifetime_s:
                continue
            kept.append((laser, seen))
            live.append((laser, 1.0 - age / self.lifetime_s))
        self._trails = kept
        return live
