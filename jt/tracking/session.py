"""
Tracking session: wires the location provider into the filter, speed
estimator, track accumulator and clock, and owns their lifecycle.

States: INITIALIZING -> ACTIVE <-> PAUSED -> FINALIZED, or
INITIALIZING -> PERMISSION_DENIED.
"""

from __future__ import annotations

import asyncio
import contextlib
import threading
from typing import Any, Callable, Iterable, Mapping, Optional

from jt.tracking.clock import SessionClock, wall_clock_ms
from jt.tracking.config import TrackerConfig
from jt.tracking.filter import LocationFilter
from jt.tracking.notify import LogNotifier, Notifier
from jt.tracking.provider import LocationProvider, Permission, ProviderError
from jt.tracking.speed import SpeedEstimator
from jt.tracking.track import TrackAccumulator
from jt.tracking.types import AcceptedCoordinate, Reject, SessionSnapshot, SessionState, TripRecord
from jt.utils.log import get_logger
from jt.utils.validate import coerce_fix

logger = get_logger(__name__)


class TrackingSession:
    """
    One tracked trip.

    Foreground fixes and background batches both end up in `on_raw_fix`,
    which runs under a single lock, so the filter always sees one serialized
    stream whichever thread or task the provider calls back from.

    Parameters
    ----------
    provider
        Platform location provider.
    activity_type
        Activity label; also selects the config preset when `cfg` is None.
    cfg
        Filter and smoothing thresholds.
    notifier
        Receives user-facing warnings (permission, subscription problems).
    clock
        Millisecond clock; replays pass their simulated clock here.
    auto_tick
        Run the periodic tick as an asyncio task. Disable when the caller
        drives `tick` itself.
    """
    def __init__(
        self,
        provider: LocationProvider,
        activity_type: str = "walking",
        cfg: TrackerConfig | None = None,
        notifier: Notifier | None = None,
        clock: Callable[[], int] = wall_clock_ms,
        auto_tick: bool = True,
    ) -> None:
        self.provider = provider
        self.activity_type = activity_type
        self.cfg = cfg or TrackerConfig.for_activity(activity_type)
        self.notifier = notifier or LogNotifier()
        self.auto_tick = auto_tick
        self._now_ms = clock

        self.state = SessionState.INITIALIZING
        self.filter = LocationFilter(self.cfg)
        self.speed = SpeedEstimator(self.cfg)
        self.track = TrackAccumulator()
        self.clock = SessionClock(clock)
        self.last_accepted: Optional[AcceptedCoordinate] = None
        self.background_enabled = False

        self._lock = threading.RLock()
        self._fg_handle: Any = None
        self._bg_handle: Any = None
        self._ticker: Optional[asyncio.Task] = None
        self._record: Optional[TripRecord] = None

    # ------------------------------------------------------------------ lifecycle

    async def start(self) -> SessionState:
        """
        Ask for permissions and, when granted, begin tracking.
        """
        if self.state is not SessionState.INITIALIZING:
            return self.state

        if await self.provider.request_foreground_permission() != Permission.GRANTED:
            with self._lock:
                # finalized while the request was pending
                if self.state is not SessionState.INITIALIZING:
                    return self.state
                self.state = SessionState.PERMISSION_DENIED
            self.notifier.warn(
                "Location permission denied",
                "The journey cannot be tracked without access to location.",
            )
            return self.state

        if await self.provider.request_background_permission() == Permission.GRANTED:
            self.background_enabled = True
        else:
            self.notifier.warn(
                "Background location permission denied",
                "The journey will only be tracked while the app is in the foreground.",
            )

        await self._activate(SessionState.INITIALIZING)
        if self.state is SessionState.ACTIVE:
            logger.info(
                "Tracking started: activity=%s, background=%s", self.activity_type, self.background_enabled,
                extra={"activity": self.activity_type},
            )
        return self.state

    async def pause(self) -> None:
        with self._lock:
            if self.state is not SessionState.ACTIVE:
                return
            self.state = SessionState.PAUSED
            self.clock.stop()
        await self._stop_ticker()
        await self._unsubscribe()
        logger.info("Tracking paused at %ds", self.clock.elapsed_seconds())

    async def resume(self) -> None:
        await self._activate(SessionState.PAUSED)
        if self.state is SessionState.ACTIVE:
            logger.info("Tracking resumed")

    async def toggle_pause(self) -> None:
        if self.state is SessionState.ACTIVE:
            await self.pause()
        else:
            await self.resume()

    async def finalize(self) -> Optional[TripRecord]:
        """
        Stop tracking for good and return the trip record.

        Idempotent: later calls return the same record. Returns None for a
        session that never got location permission.
        """
        with self._lock:
            if self._record is not None:
                return self._record
            if self.state is SessionState.PERMISSION_DENIED:
                return None
            now = self._now_ms()
            self.clock.stop(now)
            self.state = SessionState.FINALIZED
            snap = self.track.finalize()
            self._record = TripRecord(
                distance_m=snap.distance_m,
                duration_s=self.clock.elapsed_seconds(now),
                max_speed_mps=self.speed.max_speed,
                coordinates=snap.coordinates,
                activity_type=self.activity_type,
            )
        await self._stop_ticker()
        await self._unsubscribe()
        logger.info(
            "Trip finalized: %.1fm in %ds, %d points, max %.2f km/h",
            self._record.distance_m,
            self._record.duration_s,
            len(self._record.coordinates),
            self._record.max_speed_kmh,
        )
        logger.debug("Filter verdicts: %s", dict(self.filter.stats))
        return self._record

    async def _activate(self, expected: SessionState) -> None:
        with self._lock:
            if self.state is not expected:
                return
            self.state = SessionState.ACTIVE
            self.clock.start()
        await self._subscribe()
        self._start_ticker()

    # ------------------------------------------------------------------ fix intake

    def on_raw_fix(self, payload: Any) -> bool:
        """
        Feed one fix from either delivery channel.

        Returns
        -------
        bool
            True when the fix was accepted into the track.
        """
        fix = coerce_fix(payload)
        if fix is None:
            logger.debug("Skipping malformed fix payload: %r", payload)
            return False

        with self._lock:
            if self.state is not SessionState.ACTIVE:
                logger.debug("Ignoring fix at %d while %s", fix.timestamp, self.state.value)
                return False
            result = self.filter.evaluate(self.last_accepted, fix)
            if isinstance(result, Reject):
                return False
            coord = AcceptedCoordinate.from_fix(fix)
            self.track.append(coord, result.distance_m)
            self.speed.observe(result.instant_speed_mps, self._now_ms())
            self.last_accepted = coord
            return True

    def on_fix_batch(self, payloads: Iterable[Any]) -> int:
        """
        Feed a background batch; returns how many fixes were accepted.
        """
        if not isinstance(payloads, Iterable) or isinstance(payloads, (str, bytes, Mapping)):
            logger.debug("Skipping malformed fix batch: %r", payloads)
            return 0
        with self._lock:
            return sum(1 for p in payloads if self.on_raw_fix(p))

    def tick(self, now: Optional[int] = None) -> None:
        with self._lock:
            if self.state is not SessionState.ACTIVE:
                return
            self.speed.tick(self._now_ms() if now is None else now)

    # ------------------------------------------------------------------ read model

    @property
    def is_active(self) -> bool:
        return self.state is SessionState.ACTIVE

    @property
    def is_degraded(self) -> bool:
        """Active but without a foreground subscription."""
        return self.is_active and self._fg_handle is None

    @property
    def has_ticker(self) -> bool:
        return self._ticker is not None

    def snapshot(self) -> SessionSnapshot:
        with self._lock:
            return SessionSnapshot(
                state=self.state,
                is_active=self.is_active,
                distance_m=self.track.distance_m,
                duration_s=self.clock.elapsed_seconds(),
                display_speed_kmh=self.speed.display_speed_kmh,
                max_speed_kmh=self.speed.max_speed_kmh,
                coordinates=self.track.coordinates,
            )

    # ------------------------------------------------------------------ resources

    async def _subscribe(self) -> None:
        try:
            self._fg_handle = await self.provider.subscribe(self.on_raw_fix)
        except ProviderError as exc:
            logger.warning("Foreground subscription failed: %s", exc)
            self.notifier.warn("Location updates unavailable", str(exc))

        if self.background_enabled:
            try:
                self._bg_handle = await self.provider.subscribe_background(self.on_fix_batch)
            except ProviderError as exc:
                logger.warning("Background subscription failed: %s", exc)
                self.notifier.warn(
                    "Background tracking unavailable",
                    "The journey will only be tracked while the app is in the foreground.",
                )

        # paused or finalized while we were waiting on the provider
        if self.state is not SessionState.ACTIVE:
            await self._unsubscribe()

    async def _unsubscribe(self) -> None:
        for attr in ("_fg_handle", "_bg_handle"):
            handle = getattr(self, attr)
            if handle is None:
                continue
            setattr(self, attr, None)
            try:
                await self.provider.unsubscribe(handle)
            except ProviderError as exc:
                logger.warning("Failed to release location subscription %r: %s", handle, exc)

    def _start_ticker(self) -> None:
        if not self.auto_tick or self._ticker is not None or self.state is not SessionState.ACTIVE:
            return
        self._ticker = asyncio.get_running_loop().create_task(self._tick_loop())

    async def _tick_loop(self) -> None:
        while True:
            await asyncio.sleep(self.cfg.tick_interval_s)
            self.tick()

    async def _stop_ticker(self) -> None:
        task, self._ticker = self._ticker, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task


async def start_session(
    provider: LocationProvider,
    activity_type: str = "walking",
    **kwargs: Any,
) -> TrackingSession:
    """
    Create a session for `activity_type` and start it.

    Check `session.state` for PERMISSION_DENIED before using it.
    """
    session = TrackingSession(provider, activity_type, **kwargs)
    await session.start()
    return session
