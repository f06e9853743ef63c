import json
from sqlite3 import Connection, Row
from typing import Optional, Sequence
from jt.tracking.types import AcceptedCoordinate, TripRecord
from jt.utils.validate import Coordinate, Trip, TripSummary
from jt.storage.db import init_db
from jt.utils.log import get_logger

logger = get_logger(__name__)

SUMMARY_COLUMNS = (
    "id, activity_type, memo, distance_m, duration_s, max_speed_mps, "
    "start_ts, end_ts, n_points, snapped, created_at"
)


def encode_polyline(coords: Sequence[AcceptedCoordinate]) -> str:
    """
    JSON-encode a polyline as a list of {latitude, longitude, timestamp}.
    """
    return json.dumps([
        {"latitude": c.latitude, "longitude": c.longitude, "timestamp": c.timestamp}
        for c in coords
    ])


def decode_polyline(text: str) -> list[Coordinate]:
    return [Coordinate(**item) for item in json.loads(text or "[]")]


class DAO:
    """
    Encapsulates all inserts/queries against the trip DB.
    """

    def __init__(self, db_path: str):
        """
        Create/connect and apply schema if needed.
        """
        self.conn: Connection = init_db(db_path)

    def close(self) -> None:
        self.conn.close()

    def add_trip(self, record: TripRecord) -> int:
        """
        Insert a finalized trip and return its id.
        """
        with self.conn:
            cur = self.conn.execute(
                """
                INSERT INTO trips
                  (activity_type, memo, distance_m, duration_s, max_speed_mps,
                   start_ts, end_ts, n_points, polyline)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    record.activity_type,
                    record.memo,
                    record.distance_m,
                    record.duration_s,
                    record.max_speed_mps,
                    record.start_ts,
                    record.end_ts,
                    len(record.coordinates),
                    encode_polyline(record.coordinates),
                ),
            )
        trip_id = cur.lastrowid
        logger.info(
            "Stored trip %d (%d points)", trip_id, len(record.coordinates),
            extra={"trip_id": trip_id, "activity": record.activity_type},
        )
        return trip_id

    def get_trip(self, trip_id: int) -> Optional[Trip]:
        """
        Fetch one trip with its polyline, or None when unknown.
        """
        row = self.conn.execute(
            f"SELECT {SUMMARY_COLUMNS}, polyline FROM trips WHERE id = ?",
            (trip_id,),
        ).fetchone()
        if row is None:
            return None
        return Trip(**self._summary_fields(row), coordinates=decode_polyline(row["polyline"]))

    def get_trip_coordinates(self, trip_id: int) -> Optional[list[AcceptedCoordinate]]:
        trip = self.get_trip(trip_id)
        if trip is None:
            return None
        return [AcceptedCoordinate(c.latitude, c.longitude, c.timestamp) for c in trip.coordinates]

    def list_trips(self, activity_type: Optional[str] = None, limit: Optional[int] = None) -> list[TripSummary]:
        """
        Return trip summaries, newest first.
        """
        sql = f"SELECT {SUMMARY_COLUMNS} FROM trips"
        params: list = []
        if activity_type:
            sql += " WHERE activity_type = ?"
            params.append(activity_type)
        sql += " ORDER BY id DESC"
        if limit is not None:
            sql += " LIMIT ?"
            params.append(limit)
        return [TripSummary(**self._summary_fields(r)) for r in self.conn.execute(sql, params)]

    def update_trip_path(
        self,
        trip_id: int,
        coords: Sequence[AcceptedCoordinate],
        distance_m: float,
        snapped: bool = True,
    ) -> bool:
        """
        Replace a trip's polyline and distance (e.g. after road snapping).
        """
        with self.conn:
            cur = self.conn.execute(
                """
                UPDATE trips
                   SET polyline = ?, distance_m = ?, n_points = ?, snapped = ?
                 WHERE id = ?
                """,
                (encode_polyline(coords), distance_m, len(coords), int(snapped), trip_id),
            )
        return cur.rowcount > 0

    @staticmethod
    def _summary_fields(row: Row) -> dict:
        fields = {k: row[k] for k in SUMMARY_COLUMNS.replace(" ", "").split(",")}
        fields["snapped"] = bool(fields["snapped"])
        return fields
