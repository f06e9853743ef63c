"""
Track Accumulator Unit Tests
============================
"""

import dataclasses

import pytest

from jt.tracking.track import TrackAccumulator
from jt.tracking.types import AcceptedCoordinate


def coord(i):
    return AcceptedCoordinate(0.0, i * 0.001, i * 1000)


class TestTrackAccumulator:
    def test_starts_empty(self):
        acc = TrackAccumulator()
        assert len(acc) == 0
        assert acc.last is None
        assert acc.distance_m == 0.0

    def test_distance_is_non_decreasing(self):
        acc = TrackAccumulator()
        seen = []
        for i, d in enumerate([0.0, 11.1, 0.0, 44.5, 7.25]):
            acc.append(coord(i), d)
            seen.append(acc.distance_m)
        assert seen == sorted(seen)
        assert acc.distance_m == pytest.approx(62.85)

    def test_keeps_insertion_order(self):
        acc = TrackAccumulator()
        for i in range(5):
            acc.append(coord(i), 1.0)
        assert [c.timestamp for c in acc.coordinates] == [0, 1000, 2000, 3000, 4000]
        assert acc.last == coord(4)

    def test_coordinates_returns_copy(self):
        acc = TrackAccumulator()
        acc.append(coord(0), 0.0)
        acc.coordinates.append(coord(1))
        assert len(acc) == 1

    def test_finalize_is_idempotent(self):
        acc = TrackAccumulator()
        acc.append(coord(0), 0.0)
        acc.append(coord(1), 5.0)
        first = acc.finalize()
        assert acc.finalize() is first
        assert first.coordinates == (coord(0), coord(1))
        assert first.distance_m == 5.0

    def test_append_after_finalize_is_ignored(self):
        acc = TrackAccumulator()
        acc.append(coord(0), 0.0)
        snap = acc.finalize()
        acc.append(coord(1), 100.0)
        assert len(acc) == 1
        assert acc.distance_m == 0.0
        assert snap.coordinates == (coord(0),)

    def test_coordinates_are_immutable(self):
        with pytest.raises(dataclasses.FrozenInstanceError):
            coord(0).latitude = 1.0
