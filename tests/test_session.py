"""Tests for CompassSession lifecycle and frame loop."""

from __future__ import annotations

import asyncio

import pytest

from config import SessionConfig
from errors import OrientationUnsupported, PositionUnavailable
from models import EngineStatus, GeoPoint, TrueHeadingSample
from session import CompassSession, FrameThrottle, SessionStatus

POSITION = GeoPoint(21.0, 39.0)


async def fixed_position():
    return POSITION


@pytest.fixture()
def session(make_engine):
    return CompassSession(make_engine(), SessionConfig(frame_ms=1, position_timeout_s=0.05,
                                                       orientation_timeout_s=0.05))


def test_start_computes_target_bearing(session):
    bearing = asyncio.run(session.start(fixed_position))
    assert session.status is SessionStatus.RUNNING
    assert bearing == session.engine.state.target_bearing


def test_position_timeout_fails_start_and_allows_retry(session):
    async def never():
        await asyncio.sleep(10)

    with pytest.raises(PositionUnavailable):
        asyncio.run(session.start(never))
    assert session.status is SessionStatus.IDLE

    asyncio.run(session.start(fixed_position))
    assert session.status is SessionStatus.RUNNING


def test_position_denied_is_reported(session):
    async def denied():
        raise PermissionError("User denied Geolocation")

    with pytest.raises(PositionUnavailable, match="denied"):
        asyncio.run(session.start(denied))


def test_run_delivers_frames(session):
    frames = []

    async def scenario():
        await session.start(fixed_position)
        assert session.on_orientation({"webkitCompassHeading": 80.0})
        return await session.run(frames.append, max_frames=3)

    assert asyncio.run(scenario()) == 3
    assert [f.smoothed_heading for f in frames] == [80.0, 80.0, 80.0]
    target = session.engine.state.target_bearing
    assert frames[0].relative_bearing == pytest.approx((target - 80.0) % 360.0)


def test_no_orientation_ends_in_no_heading(session):
    async def scenario():
        await session.start(fixed_position)
        await session.run(lambda result: None)

    with pytest.raises(OrientationUnsupported):
        asyncio.run(scenario())
    assert session.status is SessionStatus.NO_HEADING


def test_ended_stream_without_usable_sample_ends_in_no_heading(make_engine):
    session = CompassSession(make_engine(), SessionConfig(frame_ms=1, orientation_timeout_s=60.0))

    async def scenario():
        await session.start(fixed_position)
        assert not session.on_orientation({"bogus": 1})
        session.end_input()
        await asyncio.wait_for(session.run(lambda result: None), 5.0)

    with pytest.raises(OrientationUnsupported, match="ended"):
        asyncio.run(scenario())
    assert session.status is SessionStatus.NO_HEADING
    assert session.engine.status is EngineStatus.CLOSED


def test_malformed_events_are_dropped(session):
    asyncio.run(session.start(fixed_position))
    assert not session.on_orientation({"foo": 1})
    assert not session.on_orientation({"alpha": "x"})
    assert session.engine.state.raw_heading is None


def test_close_stops_consuming_samples(session):
    async def scenario():
        await session.start(fixed_position)
        session.on_orientation(TrueHeadingSample(80.0))

        async def stop_soon():
            await asyncio.sleep(0.01)
            session.close()

        stopper = asyncio.ensure_future(stop_soon())
        frames = await session.run(lambda result: None)
        await stopper
        return frames

    assert asyncio.run(scenario()) >= 1
    assert session.status is SessionStatus.CLOSED
    assert not session.on_orientation(TrueHeadingSample(90.0))
    assert session.engine.state.raw_heading is None


def test_samples_ignored_before_start(session):
    assert not session.on_orientation(TrueHeadingSample(80.0))


def test_frame_throttle():
    throttle = FrameThrottle(16)
    assert throttle.ready(0.0)
    assert not throttle.ready(0.010)
    assert throttle.ready(0.016)
    assert not throttle.ready(0.020)
    assert throttle.ready(0.040)
