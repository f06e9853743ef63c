#!/usr/bin/env python3
"""
CLI entry point for the jt journey-tracking toolkit.

Defines the following commands:
  jt replay NAME <fix_log> [--activity TYPE] [--memo TEXT] [--no-save]
  jt trips NAME [--activity TYPE] [--limit N]
  jt snap NAME TRIP_ID
  jt serve NAME [--port 8000]
  jt version
"""

import sys
import os
import asyncio
import logging
from argparse import ArgumentParser, Namespace
from dataclasses import replace
from importlib.metadata import PackageNotFoundError, version as _get_version

import uvicorn

from jt.utils.log import get_logger, set_level
from jt.storage.dao import DAO
from jt.server import create_app, db_path_for
from jt.parsers.fixes import load_fixes
from jt.roads.snap import RoadsClient, snap_to_roads, snapped_distance
from jt.tracking.config import RoadsConfig
from jt.tracking.provider import ReplayProvider
from jt.tracking.session import start_session
from jt.tracking.types import SessionState, TripRecord

logger = get_logger(__name__)


async def _replay_session(provider: ReplayProvider, activity: str) -> TripRecord | None:
    session = await start_session(provider, activity, clock=provider.clock, auto_tick=False)
    if session.state is SessionState.PERMISSION_DENIED:
        return None
    await provider.play(on_tick=session.tick)
    return await session.finalize()


def replay(name: str, fix_log: str, activity: str, memo: str, save: bool) -> None:
    """
    Replay a recorded fix log through a tracking session and store the trip.

    Parameters
    ----------
    name
        Trip database name, which dictates the SQLite database file name.
    fix_log
        CSV or JSON-lines file of raw fixes.
    activity
        Activity type; selects the filter preset.
    memo
        Free text stored with the trip.
    save
        Persist the resulting trip record.
    """
    logger.info("Replay: name=%s, fix_log=%s, activity=%s", name, fix_log, activity)
    if not os.path.isfile(fix_log):
        logger.error("Fix log %s does not exist", fix_log)
        sys.exit(1)

    records, skipped = load_fixes(fix_log)
    if not records:
        logger.error("No usable fixes in %s (%d rows skipped)", fix_log, skipped)
        sys.exit(1)

    provider = ReplayProvider(records)
    record = asyncio.run(_replay_session(provider, activity))
    if record is None:
        logger.error("Location permission denied, nothing recorded")
        sys.exit(1)
    record = replace(record, memo=memo)

    logger.info(
        "Trip: %.1f m, %d s, max %.2f km/h, %d/%d fixes kept",
        record.distance_m, record.duration_s, record.max_speed_kmh,
        len(record.coordinates), len(records),
    )
    if save:
        dao = DAO(db_path_for(name))
        try:
            trip_id = dao.add_trip(record)
        finally:
            dao.close()
        logger.info("Saved as trip %d in %s", trip_id, db_path_for(name))


def trips(name: str, activity: str | None, limit: int | None) -> None:
    """
    List stored trips, newest first.
    """
    dao = DAO(db_path_for(name))
    try:
        rows = dao.list_trips(activity_type=activity, limit=limit)
    finally:
        dao.close()
    if not rows:
        logger.info("No trips stored in %s", db_path_for(name))
    for t in rows:
        logger.info(
            "#%d %-10s %9.1f m %6d s max %6.2f km/h %4d pts%s",
            t.id, t.activity_type, t.distance_m, t.duration_s,
            t.max_speed_mps * 3.6, t.n_points, " (snapped)" if t.snapped else "",
        )


async def _snap(coords, cfg: RoadsConfig):
    async with RoadsClient(cfg) as client:
        return await snap_to_roads(coords, client)


def snap(name: str, trip_id: int) -> None:
    """
    Snap a stored trip to roads and recompute its distance.

    Parameters
    ----------
    name
        Trip database name.
    trip_id
        Id of the stored trip.
    """
    logger.info("Snap: name=%s, trip=%d", name, trip_id)
    cfg = RoadsConfig.from_env()
    if not cfg.api_key:
        logger.error("JT_ROADS_API_KEY is not set")
        sys.exit(1)

    dao = DAO(db_path_for(name))
    try:
        coords = dao.get_trip_coordinates(trip_id)
        if coords is None:
            logger.error("Trip %d not found", trip_id)
            sys.exit(1)

        snapped = asyncio.run(_snap(coords, cfg))
        distance = snapped_distance(snapped)
        dao.update_trip_path(trip_id, snapped, distance)
    finally:
        dao.close()
    logger.info("Trip %d: %d -> %d points, %.1f m", trip_id, len(coords), len(snapped), distance)


def serve(name: str, port: int) -> None:
    """
    Spin up FastAPI+Uvicorn to serve the trip read API.

    Parameters
    ----------
    name
        Trip database name.
    port
        Port on which to serve HTTP.
    """
    logger.info("Serve: name=%s, port=%d", name, port)
    app = create_app(name)
    uvicorn.run(app, host="127.0.0.1", port=port)

def version() -> None:
    """
    Print the installed jt package version.
    """
    try:
        ver = _get_version("jt")
    except PackageNotFoundError:
        ver = "unknown"
    logger.info("jt version %s", ver)


def parse_args(argv: list[str] | None = None) -> Namespace:
    """
    Parse command-line arguments and return the populated namespace.
    """
    parser = ArgumentParser(prog="jt")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # jt replay
    p = subparsers.add_parser("replay", help="Replay a fix log into a trip.")
    p.add_argument("name", type=str, help="Trip database name.")
    p.add_argument("fix_log", type=str, help="CSV or JSON-lines fix log.")
    p.add_argument("--activity", type=str, default="walking", help="Activity type.")
    p.add_argument("--memo", type=str, default="", help="Memo stored with the trip.")
    p.add_argument("--no-save", dest="save", action="store_false", help="Do not store the trip.")

    # jt trips
    p = subparsers.add_parser("trips", help="List stored trips.")
    p.add_argument("name", type=str, help="Trip database name.")
    p.add_argument("--activity", type=str, help="Only this activity type.")
    p.add_argument("--limit", type=int, help="Maximum number of trips.")

    # jt snap
    p = subparsers.add_parser("snap", help="Snap a stored trip to roads.")
    p.add_argument("name", type=str, help="Trip database name.")
    p.add_argument("trip_id", type=int, help="Trip id.")

    # jt serve
    p = subparsers.add_parser("serve", help="Serve via FastAPI + Uvicorn.")
    p.add_argument("name", type=str, help="Trip database name.")
    p.add_argument(
        "--port", type=int, default=8000, help="Port number to serve on."
    )

    # jt version
    subparsers.add_parser("version", help="Show jt version and exit.")

    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    """
    Entry point: dispatch to the selected subcommand.
    """
    args = parse_args(argv)
    if args.verbose:
        set_level(logging.DEBUG)
    match args.command:
        case "replay":
            replay(args.name, args.fix_log, args.activity, args.memo, args.save)
        case "trips":
            trips(args.name, args.activity, args.limit)
        case "snap":
            snap(args.name, args.trip_id)
        case "serve":
            serve(args.name, args.port)
        case "version":
            version()
        case _:
            sys.exit(1)


if __name__ == "__main__":
    main()
