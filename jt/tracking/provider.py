"""
Boundary to the platform location provider, plus a replay implementation.

The real provider (foreground watch + background location service) lives
outside this package; the session only relies on the `LocationProvider`
protocol below.
"""

from __future__ import annotations

import asyncio
import itertools
from enum import Enum
from typing import Any, Callable, Iterable, Iterator, List, Optional, Protocol, Sequence

from jt.utils.log import get_logger
from jt.utils.validate import FixRecord

logger = get_logger(__name__)

FixCallback = Callable[[Any], None]
BatchCallback = Callable[[Sequence[Any]], None]


class Permission(str, Enum):
    GRANTED = "granted"
    DENIED = "denied"


class ProviderError(RuntimeError):
    """
    Raised by a provider when a subscription cannot be set up.
    """


class LocationProvider(Protocol):
    async def request_foreground_permission(self) -> Permission:
        ...

    async def request_background_permission(self) -> Permission:
        ...

    async def subscribe(self, on_fix: FixCallback) -> Any:
        ...

    async def subscribe_background(self, on_batch: BatchCallback) -> Any:
        ...

    async def unsubscribe(self, handle: Any) -> None:
        ...


class ReplayProvider:
    """
    Provider that plays back a recorded fix log against a simulated clock.

    Foreground records are delivered one at a time; consecutive background
    records are delivered as a single batch, the way a platform location
    service flushes its queue. Records arriving while nobody is subscribed
    (e.g. while the session is paused) are dropped.

    Parameters
    ----------
    records
        Fix log in delivery order.
    foreground
        Answer to the foreground permission request.
    background
        Answer to the background permission request.
    """
    def __init__(
        self,
        records: Iterable[FixRecord],
        foreground: Permission = Permission.GRANTED,
        background: Permission = Permission.GRANTED,
    ) -> None:
        self.records: List[FixRecord] = list(records)
        self.foreground = foreground
        self.background = background
        self.now_ms: int = self.records[0].ts if self.records else 0
        self._handles = itertools.count(1)
        self._fg: dict[int, FixCallback] = {}
        self._bg: dict[int, BatchCallback] = {}

    def clock(self) -> int:
        """Simulated time in epoch ms; pass as the session's clock."""
        return self.now_ms

    @property
    def active_subscriptions(self) -> int:
        return len(self._fg) + len(self._bg)

    async def request_foreground_permission(self) -> Permission:
        return self.foreground

    async def request_background_permission(self) -> Permission:
        return self.background

    async def subscribe(self, on_fix: FixCallback) -> int:
        handle = next(self._handles)
        self._fg[handle] = on_fix
        return handle

    async def subscribe_background(self, on_batch: BatchCallback) -> int:
        handle = next(self._handles)
        self._bg[handle] = on_batch
        return handle

    async def unsubscribe(self, handle: Any) -> None:
        self._fg.pop(handle, None)
        self._bg.pop(handle, None)

    def _groups(self) -> Iterator[tuple[str, List[FixRecord]]]:
        for channel, group in itertools.groupby(self.records, key=lambda r: r.channel):
            recs = list(group)
            if channel == "background":
                yield channel, recs
            else:
                for r in recs:
                    yield channel, [r]

    async def play(
        self,
        on_tick: Optional[Callable[[int], Any]] = None,
        tick_ms: int = 1000,
    ) -> int:
        """
        Deliver every record, advancing the simulated clock in `tick_ms` steps.

        Returns
        -------
        int
            Number of records delivered to at least one subscriber.
        """
        delivered = 0
        for channel, recs in self._groups():
            target = max(recs[-1].ts, self.now_ms)
            while on_tick is not None and self.now_ms + tick_ms <= target:
                self.now_ms += tick_ms
                on_tick(self.now_ms)
            self.now_ms = target
            fixes = [r.to_raw_fix() for r in recs]
            if channel == "background":
                for cb in list(self._bg.values()):
                    cb(fixes)
                delivered += len(fixes) if self._bg else 0
            else:
                for cb in list(self._fg.values()):
                    cb(fixes[0])
                delivered += 1 if self._fg else 0
            await asyncio.sleep(0)
        logger.info("Replayed %d/%d fixes", delivered, len(self.records))
        return delivered
