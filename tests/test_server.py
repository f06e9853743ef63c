"""
Read API Tests
==============
"""

import pytest
from fastapi.testclient import TestClient

from jt.server import create_app
from jt.storage.dao import DAO
from jt.tracking.types import AcceptedCoordinate, TripRecord


@pytest.fixture
def db_path(tmp_path):
    path = str(tmp_path / "api.sqlite")
    dao = DAO(path)
    for activity in ("walking", "cycling"):
        dao.add_trip(TripRecord(
            distance_m=100.0,
            duration_s=60,
            max_speed_mps=2.5,
            coordinates=(AcceptedCoordinate(0.0, 0.0, 0), AcceptedCoordinate(0.0, 0.0009, 60_000)),
            activity_type=activity,
        ))
    dao.close()
    return path


@pytest.fixture
def client(db_path):
    return TestClient(create_app("test", db_path=db_path))


def test_status(client):
    resp = client.get("/api/status")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


def test_list_trips(client):
    resp = client.get("/api/trips")
    assert resp.status_code == 200
    body = resp.json()
    assert [t["activity_type"] for t in body] == ["cycling", "walking"]
    assert "coordinates" not in body[0]


def test_list_trips_filtered(client):
    body = client.get("/api/trips", params={"activity": "walking", "limit": 5}).json()
    assert len(body) == 1
    assert body[0]["activity_type"] == "walking"


def test_get_trip(client):
    body = client.get("/api/trips/1").json()
    assert body["id"] == 1
    assert len(body["coordinates"]) == 2
    assert body["coordinates"][1] == {"latitude": 0.0, "longitude": 0.0009, "timestamp": 60_000}


def test_get_unknown_trip(client):
    assert client.get("/api/trips/404").status_code == 404


def test_path_distance(client):
    resp = client.post("/api/path-distance", json=[
        {"latitude": 0.0, "longitude": 0.0, "timestamp": 0},
        {"latitude": 0.0, "longitude": 1.0, "timestamp": 1},
    ])
    assert resp.status_code == 200
    assert resp.json()["distance_m"] == pytest.approx(111_194.9, abs=1.0)


def test_requests_close_their_connection(db_path, monkeypatch):
    closed = []
    close = DAO.close

    def tracking_close(self):
        closed.append(self)
        close(self)

    monkeypatch.setattr(DAO, "close", tracking_close)
    client = TestClient(create_app("test", db_path=db_path))

    assert client.get("/api/trips").status_code == 200
    assert client.get("/api/trips/404").status_code == 404
    assert len(closed) == 2
