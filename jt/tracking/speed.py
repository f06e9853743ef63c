# jt/tracking/speed.py

"""
Smoothed, decaying current-speed estimate and monotonic maximum.
"""

from typing import Optional

from jt.tracking.config import TrackerConfig

MPS_TO_KMH = 3.6


class SpeedEstimator:
    """
    Exponential moving average of the validated instantaneous speed.

    `observe` is fed by accepted fixes; `tick` runs on a fixed cadence and
    blends the latest reading in, or zero plus a decay multiplier once no fix
    has been accepted for `decay_threshold_ms`.
    """
    def __init__(self, cfg: TrackerConfig | None = None) -> None:
        self.cfg = cfg or TrackerConfig()
        self.smoothed_speed = 0.0
        self.max_speed = 0.0
        self.latest_instant = 0.0
        self.last_observation_ms: Optional[int] = None

    def observe(self, instant_speed: float, now_ms: int) -> None:
        """
        Record the instantaneous speed of a freshly accepted fix.
        """
        self.max_speed = max(self.max_speed, instant_speed)
        self.latest_instant = instant_speed
        self.last_observation_ms = now_ms

    def is_stale(self, now_ms: int) -> bool:
        if self.last_observation_ms is None:
            return False
        return now_ms - self.last_observation_ms > self.cfg.decay_threshold_ms

    def tick(self, now_ms: int) -> float:
        """
        Advance the average by one step and return the new smoothed speed.
        """
        alpha = self.cfg.smoothing_alpha
        current = self.latest_instant
        if self.last_observation_ms is None:
            current = 0.0
        elif self.is_stale(now_ms):
            current = 0.0
            self.smoothed_speed *= self.cfg.decay_factor
        self.smoothed_speed = alpha * current + (1 - alpha) * self.smoothed_speed
        return self.smoothed_speed

    @property
    def display_speed_kmh(self) -> str:
        return f"{self.smoothed_speed * MPS_TO_KMH:.2f}"

    @property
    def max_speed_kmh(self) -> float:
        return self.max_speed * MPS_TO_KMH
