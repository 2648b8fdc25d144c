"""Direction engine: owns the session state and turns inputs into frames.

Inputs arrive on the owner thread (the host event loop): one position fix,
then a stream of orientation samples, and a periodic tick. Declination is
resolved once, lazily, on a worker thread; the worker only hands its outcome
back through a queue and the owner applies it on the next ingest or tick.
"""

import datetime as dt
import logging
import queue
import time
from concurrent.futures import Executor, ThreadPoolExecutor
from typing import Callable, Optional

from config import EngineConfig
from declination import DeclinationProvider
from errors import DeclinationUnavailable
from geodesy import geodesic_distance, initial_bearing, normalize
from heading_extractor import HeadingExtractor
from models import (
    DeclinationStatus,
    EngineState,
    EngineStatus,
    GeoPoint,
    OrientationSample,
    Posture,
    PostureReading,
    TickResult,
)
from posture import evaluate as evaluate_posture
from smoothing import AngleSmoother

logger = logging.getLogger(__name__)


class DirectionEngine:
    """Tracks the device heading relative to the target bearing."""

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        provider: Optional[DeclinationProvider] = None,
        extractor: Optional[HeadingExtractor] = None,
        executor: Optional[Executor] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.config = config if config is not None else EngineConfig()
        if provider is None:
            provider = DeclinationProvider(self.config.declination)
        self.provider = provider
        if extractor is None:
            extractor = HeadingExtractor(invert_alpha=self.config.invert_alpha)
        self.extractor = extractor
        self._executor = executor
        self._owns_executor = executor is None
        self._clock = clock

        self.state = EngineState()
        self.status = EngineStatus.UNINITIALIZED
        self._smoother = AngleSmoother()
        self._point: Optional[GeoPoint] = None
        self._as_of: Optional[dt.date] = None
        self._completed: "queue.SimpleQueue" = queue.SimpleQueue()
        self._generation = 0

    # -----------------------------------------------------------------------
    # Status
    # -----------------------------------------------------------------------

    @property
    def is_tracking(self) -> bool:
        return self.status is EngineStatus.TRACKING

    @property
    def degraded(self) -> bool:
        """True while the heading is not a corrected true-north value."""
        s = self.state
        if s.is_true_north:
            return False
        return s.declination_status is not DeclinationStatus.READY or s.source_rank == 0

    def begin(self) -> None:
        if self.status is EngineStatus.CLOSED:
            raise RuntimeError("Engine is closed")
        if self.status is EngineStatus.UNINITIALIZED:
            self.status = EngineStatus.AWAITING_POSITION

    # -----------------------------------------------------------------------
    # Inputs
    # -----------------------------------------------------------------------

    def ingest_position(self, point: GeoPoint, now: Optional[dt.date] = None) -> float:
        """Compute and store the target bearing for *point*. Returns it."""
        if self.status is EngineStatus.CLOSED:
            raise RuntimeError("Engine is closed")

        result = initial_bearing(point, self.config.target, self.config.bearing_method)

        self._point = point
        self._as_of = now or dt.date.today()
        self.state.target_bearing = result.bearing_deg
        self.state.bearing_method = result.method
        if self.status is not EngineStatus.TRACKING:
            self.status = EngineStatus.AWAITING_FIRST_SAMPLE

        logger.info(
            "Target bearing %.2f° from (%.5f, %.5f), %.0f km [%s]",
            result.bearing_deg, point.latitude_deg, point.longitude_deg,
            geodesic_distance(point, self.config.target) / 1000.0, result.method,
        )
        return result.bearing_deg

    def ingest_orientation_sample(
        self,
        sample: OrientationSample,
        point: Optional[GeoPoint] = None,
        now: Optional[dt.date] = None,
    ) -> bool:
        """Apply one orientation sample. Returns False if it was dropped."""
        if self.status not in (EngineStatus.AWAITING_FIRST_SAMPLE, EngineStatus.TRACKING):
            return False
        self._drain_declination()

        reading = self.extractor.extract(sample)
        if reading is None:
            logger.debug("Dropped unusable sample %r", sample)
            return False

        s = self.state
        t = self._clock()
        rank = reading.source_rank
        if rank < s.source_rank and t - s.last_sample_at < self.config.source_hold_s:
            return False

        if reading.is_true_north:
            heading = reading.heading_deg
            grade = PostureReading(Posture.FLAT, 1.0)
        else:
            if s.declination_status is DeclinationStatus.NOT_NEEDED:
                self._request_declination(point or self._point, now or self._as_of)
            heading = normalize(reading.heading_deg + s.declination_offset)
            beta, gamma = reading.attitude
            grade = evaluate_posture(beta, gamma)

        s.raw_heading = heading
        s.is_true_north = reading.is_true_north
        s.posture = grade.posture
        s.quality = grade.quality
        s.source_rank = rank
        s.last_sample_at = t

        if self.status is EngineStatus.AWAITING_FIRST_SAMPLE and s.ready:
            self.status = EngineStatus.TRACKING
            logger.info("Tracking (first heading %.1f°)", heading)
        return True

    def tick(self) -> Optional[TickResult]:
        """Advance the smoothed heading by one frame.

        Returns None until both the target bearing and a heading are known.
        """
        self._drain_declination()
        if not self.is_tracking or not self.state.ready:
            return None

        s = self.state
        smoothed = self._smoother.advance(s.raw_heading, s.quality)
        s.smoothed_heading = smoothed
        return TickResult(
            smoothed_heading=smoothed,
            relative_bearing=normalize(s.target_bearing - smoothed),
            target_bearing=s.target_bearing,
            posture=s.posture,
            quality=s.quality,
            is_true_north=s.is_true_north,
            degraded=self.degraded,
        )

    def close(self, wait: bool = False) -> None:
        """Discard the session state; later inputs are ignored.

        In-flight declination lookups still finish and fill the provider
        cache. With *wait*, block until they have (safe to call again after
        an earlier non-waiting close).
        """
        self._generation += 1
        self.status = EngineStatus.CLOSED
        self.state = EngineState()
        self._smoother.reset()
        if self._owns_executor and self._executor is not None:
            self._executor.shutdown(wait=wait)

    # -----------------------------------------------------------------------
    # Declination
    # -----------------------------------------------------------------------

    def _request_declination(self, point: Optional[GeoPoint], as_of: Optional[dt.date]) -> None:
        self.state.declination_status = DeclinationStatus.PENDING
        if point is None:
            self._mark_declination_unavailable("no position")
            return
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="declination")

        generation = self._generation
        try:
            future = self._executor.submit(self.provider.get_declination, point, as_of or dt.date.today())
        except RuntimeError as exc:
            self._mark_declination_unavailable(str(exc))
            return
        future.add_done_callback(lambda f: self._completed.put((generation, f)))
        self._drain_declination()

    def _drain_declination(self) -> None:
        while True:
            try:
                generation, future = self._completed.get_nowait()
            except queue.Empty:
                return
            if generation != self._generation or self.status is EngineStatus.CLOSED:
                continue
            try:
                result = future.result()
            except DeclinationUnavailable as exc:
                self._mark_declination_unavailable(str(exc))
            except Exception as exc:
                self._mark_declination_unavailable(f"lookup failed: {exc}")
            else:
                self.state.declination_offset = self.provider.config.sign * result.offset_deg
                self.state.declination_status = DeclinationStatus.READY
                logger.info(
                    "Declination %+.2f° applied (%s, %s)",
                    result.offset_deg, result.model, result.source.value,
                )

    def _mark_declination_unavailable(self, reason: str) -> None:
        logger.warning("Declination unavailable (%s); heading accuracy degraded", reason)
        self.state.declination_offset = 0.0
        self.state.declination_status = DeclinationStatus.UNAVAILABLE
