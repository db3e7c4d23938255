from __future__ import annotations

import asyncio
import logging

from canvasync.client.echo import EchoGuard
from canvasync.client.laser import LaserTrail
from canvasync.client.throttle import Throttle
from canvasync.client.ticker import Ticker
from canvasync.protocol.messages import Laser, Point


async def test_echo_guard_lowers_after_hold():
    guard = EchoGuard(hold_s=0.02)
    assert not guard.raised
    guard.arm()
    assert guard.raised
    await asyncio.sleep(0.05)
    assert not guard.raised


async def test_echo_guard_rearm_extends_the_hold():
    guard = EchoGuard(hold_s=0.04)
    guard.arm()
    await asyncio.sleep(0.025)
    guard.arm()
    await asyncio.sleep(0.025)
    assert guard.raised
    guard.lower()
    assert not guard.raised


async def test_throttle_emits_latest_state_once_per_window():
    state = {"v": 0}
    emitted: list[int] = []

    async def emit() -> None:
        emitted.append(state["v"])

    throttle = Throttle(0.02, emit)
    assert throttle.poke()
    for v in range(1, 6):
        state["v"] = v
        assert not throttle.poke()
    assert throttle.pending

    await asyncio.sleep(0.06)
    await throttle.drain()
    assert emitted == [5]
    assert not throttle.pending

    state["v"] = 9
    throttle.poke()
    await asyncio.sleep(0.06)
    await throttle.drain()
    assert emitted == [5, 9]


async def test_throttle_cancel_drops_the_pending_emit():
    emitted: list[int] = []

    async def emit() -> None:
        emitted.append(1)

    throttle = Throttle(0.02, emit)
    throttle.poke()
    throttle.cancel()
    await asyncio.sleep(0.05)
    assert emitted == []


async def test_throttle_survives_a_failing_emit():
    async def emit() -> None:
        raise RuntimeError("socket closed")

    throttle = Throttle(0.01, emit)
    throttle.poke()
    await asyncio.sleep(0.03)
    await throttle.drain()
    assert not throttle.pending


async def test_ticker_stops_when_step_returns_false():
    calls: list[int] = []

    async def step() -> bool:
        calls.append(1)
        return len(calls) < 3

    ticker = Ticker(0.001, step)
    assert ticker.start()
    assert not ticker.start()
    await asyncio.wait_for(ticker.join(), timeout=1)
    assert len(calls) == 3
    assert not ticker.running


async def test_ticker_logs_a_failing_step(caplog):
    async def step() -> bool:
        raise ConnectionError("socket closed")

    ticker = Ticker(0.001, step, name="pingpong-x")
    with caplog.at_level(logging.WARNING, logger="canvasync.client.ticker"):
        ticker.start()
        await asyncio.sleep(0.02)

    assert not ticker.running
    assert "pingpong-x stopped: socket closed" in caplog.text


async def test_ticker_stop_cancels():
    async def step() -> bool:
        return True

    ticker = Ticker(0.001, step)
    ticker.start()
    await asyncio.sleep(0.01)
    ticker.stop()
    await asyncio.sleep(0)
    assert not ticker.running


def test_laser_trail_fades_and_expires():
    now = [100.0]
    trail = LaserTrail(lifetime_s=2.0, clock=lambda: now[0])
    laser = Laser(points=[Point(x=1, y=1)])
    trail.add(laser)

    assert trail.active() == [(laser, 1.0)]
    now[0] += 1.5
    (_, opacity), = trail.active()
    assert opacity == 0.25
    now[0] += 0.6
    assert trail.active() == []
    assert len(trail) == 0
