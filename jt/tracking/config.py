# jt/tracking/config.py

import os
from dataclasses import dataclass

@dataclass
class TrackerConfig:
    """
    Tuning knobs for the live track-processing pipeline.

    Attributes
    ----------
    first_fix_accuracy_m
        Accuracy ceiling (m) for the first fix of a session; cold-start fixes are worse.
    accuracy_m
        Accuracy ceiling (m) for every later fix.
    min_distance_m
        Minimum movement (m) from the last accepted point; below this is jitter.
    speed_discrepancy_mps
        Maximum allowed gap (m/s) between reported and position-derived speed.
    max_speed_mps
        Absolute ceiling (m/s) on position-derived speed.
    smoothing_alpha
        EMA weight of the newest instantaneous speed.
    decay_threshold_ms
        Silence (ms) after which the displayed speed starts decaying.
    decay_factor
        Extra multiplier applied to the smoothed speed on every stale tick.
    tick_interval_s
        Cadence (s) of the periodic speed/clock tick.
    """
    first_fix_accuracy_m:  float = 30.0
    accuracy_m:            float = 12.0
    min_distance_m:        float = 5.0
    speed_discrepancy_mps: float = 7.0
    max_speed_mps:         float = 40.0
    smoothing_alpha:       float = 0.2
    decay_threshold_ms:    int   = 10_000
    decay_factor:          float = 0.9
    tick_interval_s:       float = 1.0

    @classmethod
    def walking(cls):
        """Preset for pedestrian activities (tighter ceiling)."""
        return cls(
            min_distance_m=5.0,
            max_speed_mps=35.0,
        )

    @classmethod
    def cycling(cls):
        """Preset for bikes (default thresholds)."""
        return cls()

    @classmethod
    def driving(cls):
        """Preset for vehicle mode (coarser jitter gate, higher ceiling)."""
        return cls(
            min_distance_m=10.0,
            speed_discrepancy_mps=10.0,
            max_speed_mps=50.0,
            smoothing_alpha=0.25,
        )

    @classmethod
    def for_activity(cls, activity_type: str | None):
        """
        Pick the preset matching a free-text activity type, defaults otherwise.
        """
        presets = {
            "walking": cls.walking,
            "running": cls.walking,
            "hiking":  cls.walking,
            "cycling": cls.cycling,
            "driving": cls.driving,
        }
        key = (activity_type or "").strip().lower()
        return presets.get(key, cls)()


@dataclass
class RoadsConfig:
    """
    Settings for the road-snapping post-processing client.

    Attributes
    ----------
    api_key
        Roads API key; snapping is skipped when empty.
    base_url
        Endpoint of the snapToRoads call.
    batch_size
        Maximum points per request (the API caps this at 100).
    timeout_s
        Per-request timeout in seconds.
    interpolate
        Ask the API to add points along the road geometry.
    """
    api_key:     str   = ""
    base_url:    str   = "https://roads.googleapis.com/v1/snapToRoads"
    batch_size:  int   = 100
    timeout_s:   float = 10.0
    interpolate: bool  = True

    @classmethod
    def from_env(cls):
        """Read the API key from JT_ROADS_API_KEY."""
        return cls(api_key=os.environ.get("JT_ROADS_API_KEY", ""))
