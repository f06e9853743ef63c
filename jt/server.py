# jt/server.py
"""
FastAPI server for the jt CLI.
"""

from typing import AsyncIterator, Optional

from fastapi import Depends, FastAPI, HTTPException, Request
from starlette.responses import JSONResponse

from jt.utils.geo import path_distance
from jt.utils.log import get_logger
from jt.storage.dao import DAO
from jt.utils.validate import Coordinate, Trip, TripSummary

logger = get_logger(__name__)


def db_path_for(name: str) -> str:
    return f"jt_{name}.sqlite"


async def get_dao(request: Request) -> AsyncIterator[DAO]:
    """
    One DAO per request, closed once the response is sent.
    """
    dao = DAO(request.app.state.db_path)
    try:
        yield dao
    finally:
        dao.close()


def create_app(name: str, db_path: Optional[str] = None) -> FastAPI:
    """
    Build a FastAPI instance bound to a specific trip database.
    """
    app = FastAPI()
    app.state.name = name
    app.state.db_path = db_path or db_path_for(name)

    @app.get("/api/status", response_class=JSONResponse)
    async def status() -> JSONResponse:
        return JSONResponse(status_code=200, content={"status": "ok"})

    @app.get("/api/trips", response_model=list[TripSummary])
    async def list_trips(
        activity: Optional[str] = None,
        limit: Optional[int] = None,
        dao: DAO = Depends(get_dao),
    ):
        return dao.list_trips(activity_type=activity, limit=limit)

    @app.get("/api/trips/{trip_id}", response_model=Trip)
    async def get_trip(trip_id: int, dao: DAO = Depends(get_dao)):
        trip = dao.get_trip(trip_id)
        if trip is None:
            raise HTTPException(status_code=404, detail=f"trip {trip_id} not found")
        return trip

    @app.post("/api/path-distance", response_class=JSONResponse)
    async def get_path_distance(coordinates: list[Coordinate]) -> JSONResponse:
        """
        Recompute the length of an externally corrected polyline.
        """
        distance = path_distance((c.latitude, c.longitude) for c in coordinates)
        return JSONResponse(status_code=200, content={"distance_m": distance})

    logger.debug("App bound to %s", app.state.db_path)
    return app
