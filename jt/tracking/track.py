# jt/tracking/track.py

from typing import List, Optional

from jt.tracking.types import AcceptedCoordinate, TrackSnapshot
from jt.utils.log import get_logger

logger = get_logger(__name__)


class TrackAccumulator:
    """
    Append-only polyline plus running distance for one session.

    Trusts its caller: ordering and de-duplication are the filter's job.
    """
    def __init__(self) -> None:
        self._coords: List[AcceptedCoordinate] = []
        self.distance_m = 0.0
        self._snapshot: Optional[TrackSnapshot] = None

    def append(self, coord: AcceptedCoordinate, incremental_distance: float) -> None:
        if self._snapshot is not None:
            logger.warning("Ignoring append to a finalized track (ts=%d)", coord.timestamp)
            return
        self._coords.append(coord)
        self.distance_m += incremental_distance

    @property
    def last(self) -> Optional[AcceptedCoordinate]:
        return self._coords[-1] if self._coords else None

    @property
    def coordinates(self) -> List[AcceptedCoordinate]:
        """Copy of the points accepted so far."""
        return list(self._coords)

    def __len__(self) -> int:
        return len(self._coords)

    @property
    def is_finalized(self) -> bool:
        return self._snapshot is not None

    def finalize(self) -> TrackSnapshot:
        """
        Freeze the track; repeated calls return the same snapshot.
        """
        if self._snapshot is None:
            self._snapshot = TrackSnapshot(tuple(self._coords), self.distance_m)
        return self._snapshot
