"""
Replay Provider Tests
=====================
"""

import pytest

from jt.tracking.config import TrackerConfig
from jt.tracking.provider import Permission, ReplayProvider
from jt.tracking.session import TrackingSession
from jt.tracking.types import SessionState
from jt.utils.validate import FixRecord

pytestmark = pytest.mark.asyncio

M = 1 / 111_194.93


def rec(ts, lat, channel="foreground", **kw):
    return FixRecord(ts=ts, lat=lat, lon=0.0, channel=channel, **kw)


async def test_foreground_and_background_batches():
    provider = ReplayProvider([
        rec(0, 0.0),
        rec(10_000, 50 * M, "background"),
        rec(20_000, 100 * M, "background"),
        rec(30_000, 150 * M),
    ])
    singles, batches = [], []
    await provider.subscribe(singles.append)
    await provider.subscribe_background(batches.append)

    delivered = await provider.play()

    assert delivered == 4
    assert [f.timestamp for f in singles] == [0, 30_000]
    assert [[f.timestamp for f in b] for b in batches] == [[10_000, 20_000]]


async def test_ticks_follow_simulated_time():
    provider = ReplayProvider([rec(1_000, 0.0), rec(4_500, 50 * M)])
    ticks = []
    await provider.subscribe(lambda f: None)
    await provider.play(on_tick=ticks.append)
    assert ticks == [2_000, 3_000, 4_000]
    assert provider.clock() == 4_500


async def test_nothing_delivered_without_subscribers():
    provider = ReplayProvider([rec(0, 0.0), rec(1_000, 1.0)])
    assert await provider.play() == 0


async def test_unsubscribe_stops_delivery():
    provider = ReplayProvider([rec(0, 0.0)])
    got = []
    handle = await provider.subscribe(got.append)
    await provider.unsubscribe(handle)
    await provider.play()
    assert got == []
    assert provider.active_subscriptions == 0


async def test_drives_a_session_end_to_end():
    provider = ReplayProvider([
        rec(0, 0.0, accuracy=10.0),
        rec(10_000, 50 * M, accuracy=10.0),
        rec(20_000, 50 * M + 1 * M, accuracy=10.0),   # jitter
        rec(30_000, 100 * M, "background", accuracy=10.0),
        rec(31_000, 100 * M, "background", accuracy=10.0),  # duplicate
    ])
    session = TrackingSession(provider, "walking", cfg=TrackerConfig(), clock=provider.clock, auto_tick=False)
    await session.start()
    await provider.play(on_tick=session.tick)
    record = await session.finalize()

    assert record.duration_s == 31
    assert len(record.coordinates) == 3
    assert record.distance_m == pytest.approx(100, abs=0.05)
    assert provider.active_subscriptions == 0


async def test_permission_answers():
    provider = ReplayProvider([], foreground=Permission.DENIED)
    session = TrackingSession(provider, clock=provider.clock, auto_tick=False)
    assert await session.start() is SessionState.PERMISSION_DENIED
