# jt/tracking/types.py

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Union

@dataclass(frozen=True)
class RawFix:
    """
    Single location reading as delivered by the location provider.

    Parameters
    ----------
    latitude : float
        Latitude in decimal degrees.
    longitude : float
        Longitude in decimal degrees.
    timestamp : int
        Time of the fix (milliseconds since epoch).
    accuracy : Optional[float]
        Horizontal accuracy radius in metres, if reported.
    speed : Optional[float]
        Device-reported speed in m/s; absent or negative means unknown.
    """
    latitude: float
    longitude: float
    timestamp: int
    accuracy: Optional[float] = None
    speed: Optional[float] = None

@dataclass(frozen=True)
class AcceptedCoordinate:
    """
    One point of the permanent track.

    Parameters
    ----------
    latitude : float
        Latitude in decimal degrees.
    longitude : float
        Longitude in decimal degrees.
    timestamp : int
        Time of the fix (milliseconds since epoch).
    """
    latitude: float
    longitude: float
    timestamp: int

    @classmethod
    def from_fix(cls, fix: RawFix) -> AcceptedCoordinate:
        return cls(fix.latitude, fix.longitude, fix.timestamp)

    @property
    def latlon(self) -> tuple[float, float]:
        return (self.latitude, self.longitude)


class RejectReason(str, Enum):
    """Which filter gate turned a fix down."""
    ACCURACY = "accuracy"
    OUT_OF_ORDER = "out_of_order"
    DUPLICATE = "duplicate"
    NO_TIME_DELTA = "no_time_delta"
    JITTER = "jitter"
    SPEED_MISMATCH = "speed_mismatch"
    IMPOSSIBLE_SPEED = "impossible_speed"

@dataclass(frozen=True)
class Accept:
    """
    Filter verdict for a fix that represents genuine movement.

    Parameters
    ----------
    distance_m : float
        Distance from the previous accepted point (0 for the first fix).
    instant_speed_mps : float
        Validated instantaneous speed.
    """
    distance_m: float
    instant_speed_mps: float
    accepted: bool = field(default=True, init=False)

@dataclass(frozen=True)
class Reject:
    """
    Filter verdict for a fix that must not touch session state.
    """
    reason: RejectReason
    detail: str = ""
    accepted: bool = field(default=False, init=False)

FilterResult = Union[Accept, Reject]

@dataclass(frozen=True)
class TrackSnapshot:
    """
    Immutable view of a finalized track.
    """
    coordinates: tuple[AcceptedCoordinate, ...]
    distance_m: float


class SessionState(str, Enum):
    INITIALIZING = "initializing"
    ACTIVE = "active"
    PAUSED = "paused"
    FINALIZED = "finalized"
    PERMISSION_DENIED = "permission_denied"

@dataclass(frozen=True)
class TripRecord:
    """
    Finalized trip handed to the persistence layer.

    Parameters
    ----------
    distance_m : float
        Sum of accepted increments, in metres.
    duration_s : int
        Active (unpaused) duration in whole seconds.
    max_speed_mps : float
        Highest validated instantaneous speed.
    coordinates : tuple[AcceptedCoordinate, ...]
        Cleaned polyline in chronological order.
    activity_type : str
        Activity label chosen when the trip started.
    memo : str
        Free text attached by the user.
    """
    distance_m: float
    duration_s: int
    max_speed_mps: float
    coordinates: tuple[AcceptedCoordinate, ...]
    activity_type: str
    memo: str = ""

    @property
    def start_ts(self) -> Optional[int]:
        return self.coordinates[0].timestamp if self.coordinates else None

    @property
    def end_ts(self) -> Optional[int]:
        return self.coordinates[-1].timestamp if self.coordinates else None

    @property
    def max_speed_kmh(self) -> float:
        return self.max_speed_mps * 3.6

@dataclass
class SessionSnapshot:
    """
    Read model polled by the UI while a trip is in progress.
    """
    state: SessionState
    is_active: bool
    distance_m: float
    duration_s: int
    display_speed_kmh: str
    max_speed_kmh: float
    coordinates: List[AcceptedCoordinate] = field(default_factory=list)
