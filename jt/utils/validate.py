"""
Pydantic schemas to validate fix payloads and stored trips.
"""

from dataclasses import asdict
from typing import Any, Literal, Mapping, Optional

from pydantic import AliasChoices, BaseModel, Field, ValidationError, field_validator

from jt.tracking.types import RawFix


class FixRecord(BaseModel):
    """
    Normalized record for a single location fix.

    Accepts both the short column names of a fix log (`lat`, `lon`, `ts`)
    and the provider's long names (`latitude`, `longitude`, `timestamp`).
    """
    ts: int = Field(validation_alias=AliasChoices("ts", "timestamp"))
    lat: float = Field(ge=-90, le=90, allow_inf_nan=False, validation_alias=AliasChoices("lat", "latitude"))
    lon: float = Field(ge=-180, le=180, allow_inf_nan=False, validation_alias=AliasChoices("lon", "longitude"))
    accuracy: Optional[float] = Field(default=None, allow_inf_nan=False)
    speed: Optional[float] = Field(default=None, allow_inf_nan=False)
    channel: Literal["foreground", "background"] = "foreground"

    @field_validator("ts", mode="before")
    @classmethod
    def _round_ts(cls, v: Any) -> Any:
        # providers report float milliseconds
        if isinstance(v, float):
            return round(v)
        return v

    @field_validator("accuracy", "speed", mode="before")
    @classmethod
    def _blank_is_missing(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("channel", mode="before")
    @classmethod
    def _default_channel(cls, v: Any) -> Any:
        if v is None or (isinstance(v, str) and not v.strip()):
            return "foreground"
        return v.strip().lower() if isinstance(v, str) else v

    def to_raw_fix(self) -> RawFix:
        return RawFix(
            latitude=self.lat,
            longitude=self.lon,
            timestamp=self.ts,
            accuracy=self.accuracy,
            speed=self.speed,
        )


def coerce_fix(payload: Any) -> Optional[RawFix]:
    """
    Turn a provider payload into a RawFix, or None when it is malformed.

    Handles RawFix instances, flat mappings, and the nested
    `{"coords": {...}, "timestamp": ...}` shape mobile location APIs emit.
    """
    if isinstance(payload, RawFix):
        values = asdict(payload)
    elif isinstance(payload, Mapping):
        values = dict(payload)
        coords = values.pop("coords", None)
        if isinstance(coords, Mapping):
            values.update(coords)
    else:
        return None
    values.pop("channel", None)
    try:
        return FixRecord.model_validate(values).to_raw_fix()
    except ValidationError:
        return None


class Coordinate(BaseModel):
    """
    One polyline vertex as persisted (JSON-encoded) with a trip.
    """
    latitude: float
    longitude: float
    timestamp: int


class TripSummary(BaseModel):
    """
    Normalized record for a stored trip, without its polyline.
    """
    id: int
    activity_type: str
    memo: str
    distance_m: float
    duration_s: int
    max_speed_mps: float
    start_ts: Optional[int]
    end_ts: Optional[int]
    n_points: int
    snapped: bool
    created_at: str


class Trip(TripSummary):
    """
    A stored trip with its full polyline.
    """
    coordinates: list[Coordinate]
