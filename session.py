"""Session lifecycle around a DirectionEngine.

Wires the engine to its collaborators: a one-shot async position source, the
host's orientation event callback, and a frame loop feeding a render sink.
"""

import asyncio
import logging
import time
from enum import Enum
from typing import Awaitable, Callable, Optional, Union

from config import SessionConfig
from engine import DirectionEngine
from errors import MalformedSample, OrientationUnsupported, PositionUnavailable
from heading_extractor import parse_sample
from models import GeoPoint, OrientationSample, TickResult

logger = logging.getLogger(__name__)

PositionSource = Callable[[], Awaitable[GeoPoint]]
RenderSink = Callable[[TickResult], None]


class SessionStatus(Enum):
    IDLE = "idle"
    RUNNING = "running"
    NO_HEADING = "no_heading"
    CLOSED = "closed"


class FrameThrottle:
    """Lets through at most one frame per interval."""

    def __init__(self, frame_ms: float):
        self.interval = frame_ms / 1000.0
        self._last: Optional[float] = None

    def ready(self, now: float) -> bool:
        if self._last is not None and now - self._last < self.interval:
            return False
        self._last = now
        return True


class CompassSession:
    """Runs one direction-finding session from position fix to teardown."""

    def __init__(
        self,
        engine: Optional[DirectionEngine] = None,
        config: Optional[SessionConfig] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.engine = engine if engine is not None else DirectionEngine()
        self.config = config if config is not None else SessionConfig()
        self.status = SessionStatus.IDLE
        self._clock = clock
        self._input_ended = False
        self._throttle = FrameThrottle(self.config.frame_ms)

    async def start(self, position_source: PositionSource) -> float:
        """Fetch the position fix and compute the target bearing.

        Returns:
            The target bearing in degrees.

        Raises:
            PositionUnavailable: if the source fails or exceeds the timeout.
                The session stays IDLE and start() may be called again.
        """
        if self.status is SessionStatus.CLOSED:
            raise RuntimeError("Session is closed")
        self.engine.begin()
        try:
            point = await asyncio.wait_for(position_source(), self.config.position_timeout_s)
        except asyncio.TimeoutError as exc:
            raise PositionUnavailable(
                f"No position fix within {self.config.position_timeout_s:g} s"
            ) from exc
        except PositionUnavailable:
            raise
        except Exception as exc:
            raise PositionUnavailable(f"Position source failed: {exc}") from exc

        bearing = self.engine.ingest_position(point)
        self.status = SessionStatus.RUNNING
        return bearing

    def on_orientation(self, event: Union[OrientationSample, dict]) -> bool:
        """Host callback for one orientation event (sample or raw dict)."""
        if self.status is not SessionStatus.RUNNING:
            return False
        if isinstance(event, dict):
            try:
                event = parse_sample(event)
            except MalformedSample as exc:
                logger.debug("%s", exc)
                return False
        return self.engine.ingest_orientation_sample(event)

    async def run(self, sink: RenderSink, max_frames: Optional[int] = None) -> int:
        """Tick the engine at the frame cadence until closed.

        Returns:
            Number of frames delivered to *sink*.

        Raises:
            OrientationUnsupported: if no usable sample arrives within
                ``orientation_timeout_s``, or before
                end_input() is signalled. The session ends in NO_HEADING.
        """
        if self.status is not SessionStatus.RUNNING:
            raise RuntimeError(f"Session not running ({self.status.value})")

        interval = self.config.frame_ms / 1000.0
        started = self._clock()
        frames = 0
        while self.status is SessionStatus.RUNNING:
            now = self._clock()
            if not self.engine.is_tracking:
                if self._input_ended:
                    self._give_up("Orientation stream ended without a usable sample")
                if now - started >= self.config.orientation_timeout_s:
                    self._give_up(
                        f"No usable orientation sample within {self.config.orientation_timeout_s:g} s"
                    )
            elif self._throttle.ready(now):
                result = self.engine.tick()
                if result is not None:
                    sink(result)
                    frames += 1
                    if max_frames is not None and frames >= max_frames:
                        break
            await asyncio.sleep(interval)
        return frames

    def close(self) -> None:
        """Stop consuming samples and discard the engine state."""
        if self.status is SessionStatus.CLOSED:
            return
        self.status = SessionStatus.CLOSED
        self.engine.close()
        logger.debug("Session closed")

    def end_input(self) -> None:
        """Signal that the host orientation stream has finished."""
        self._input_ended = True

    def _give_up(self, reason: str) -> None:
        self.status = SessionStatus.NO_HEADING
        self.engine.close()
        raise OrientationUnsupported(reason)
