"""
Decide whether a raw fix is genuine movement worth recording.

Gates run in a fixed order and the first one that fails rejects the fix:
accuracy, temporal ordering, identity, time delta, minimum movement,
reported-vs-derived speed agreement, absolute speed ceiling.
"""

from __future__ import annotations
from collections import Counter
from typing import Optional

from jt.tracking.config import TrackerConfig
from jt.tracking.types import AcceptedCoordinate, RawFix, Accept, Reject, RejectReason, FilterResult
from jt.utils.geo import haversine
from jt.utils.log import get_logger

logger = get_logger(__name__)


class LocationFilter:
    """
    Pure accept/reject decision over (previous accepted point, new fix).

    Holds no track state of its own; `stats` only counts verdicts.
    """
    def __init__(self, cfg: TrackerConfig | None = None) -> None:
        self.cfg = cfg or TrackerConfig()
        self.stats: Counter[str] = Counter()

    def evaluate(self, previous: Optional[AcceptedCoordinate], fix: RawFix) -> FilterResult:
        result = self._evaluate(previous, fix)
        if isinstance(result, Reject):
            self.stats[result.reason.value] += 1
            logger.debug(
                "Rejected fix at %d (%s): %s", fix.timestamp, result.reason.value, result.detail,
                extra={"reason": result.reason.value, "fix_ts": fix.timestamp},
            )
        else:
            self.stats["accepted"] += 1
        return result

    def _evaluate(self, previous: Optional[AcceptedCoordinate], fix: RawFix) -> FilterResult:
        cfg = self.cfg

        # 1) accuracy, lenient for the very first fix
        limit = cfg.first_fix_accuracy_m if previous is None else cfg.accuracy_m
        if fix.accuracy is not None and fix.accuracy > limit:
            return Reject(RejectReason.ACCURACY, f"accuracy {fix.accuracy:.1f}m > {limit:.1f}m")

        if previous is None:
            return Accept(0.0, 0.0)

        # 2) ordering and 3) identity
        if fix.timestamp <= previous.timestamp:
            return Reject(RejectReason.OUT_OF_ORDER, f"ts {fix.timestamp} <= {previous.timestamp}")
        if fix.latitude == previous.latitude and fix.longitude == previous.longitude:
            return Reject(RejectReason.DUPLICATE, "same coordinate as last point")

        # 4-5) distance and elapsed time
        distance = haversine(previous.latlon, (fix.latitude, fix.longitude))
        dt = (fix.timestamp - previous.timestamp) / 1000
        if dt <= 0:
            return Reject(RejectReason.NO_TIME_DELTA, f"dt {dt:.3f}s")

        # 6) jitter while stationary
        if distance < cfg.min_distance_m:
            return Reject(RejectReason.JITTER, f"moved {distance:.2f}m < {cfg.min_distance_m:.2f}m")

        # 7-8) cross-check against the Doppler speed, prefer it when they agree
        calculated = distance / dt
        instant = calculated
        if fix.speed is not None and fix.speed >= 0:
            gap = abs(fix.speed - calculated)
            if gap > cfg.speed_discrepancy_mps:
                return Reject(
                    RejectReason.SPEED_MISMATCH,
                    f"reported {fix.speed:.2f} vs derived {calculated:.2f} m/s",
                )
            instant = fix.speed

        # 9) impossible jumps, whatever the device claims
        if calculated > cfg.max_speed_mps:
            return Reject(RejectReason.IMPOSSIBLE_SPEED, f"{calculated:.2f} m/s > {cfg.max_speed_mps:.2f} m/s")

        return Accept(distance, instant)
