"""
Road snapping for finalized tracks.

Sends the polyline to a snapToRoads-style API in overlapping batches and
rebuilds a timestamped coordinate list from the answer. Batches that fail
keep their original points, so snapping never loses track data.
"""

from __future__ import annotations

import asyncio
from typing import Any, Optional, Sequence

import aiohttp

from jt.tracking.config import RoadsConfig
from jt.tracking.types import AcceptedCoordinate
from jt.utils.geo import path_distance
from jt.utils.log import get_logger

logger = get_logger(__name__)


class RoadsClient:
    """
    Thin async wrapper around the snapToRoads endpoint.

    The aiohttp session is opened on first use, inside the running loop.
    """
    def __init__(self, cfg: RoadsConfig, session: Optional[aiohttp.ClientSession] = None) -> None:
        self.cfg = cfg
        self._session = session
        self._owns_session = session is None

    @property
    def enabled(self) -> bool:
        return bool(self.cfg.api_key)

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.cfg.timeout_s),
            )
        return self._session

    async def snap_batch(self, batch: Sequence[AcceptedCoordinate]) -> Optional[list[dict[str, Any]]]:
        """
        Snap one batch; returns the API's `snappedPoints` or None when absent.

        Raises
        ------
        aiohttp.ClientError
            On transport errors and non-2xx responses.
        asyncio.TimeoutError
            When the request exceeds `timeout_s`.
        ValueError
            When the body is not JSON.
        """
        params = {
            "path": "|".join(f"{c.latitude},{c.longitude}" for c in batch),
            "interpolate": "true" if self.cfg.interpolate else "false",
            "key": self.cfg.api_key,
        }
        async with self._get_session().get(self.cfg.base_url, params=params) as resp:
            logger.debug("snapToRoads answered %d for %d points", resp.status, len(batch))
            resp.raise_for_status()
            data = await resp.json(content_type=None)
        if not isinstance(data, dict):
            return None
        return data.get("snappedPoints") or None

    async def aclose(self) -> None:
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None

    async def __aenter__(self) -> RoadsClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()


def _timestamp_for(points: list[dict[str, Any]], index: int, batch: Sequence[AcceptedCoordinate]) -> int:
    """
    Timestamp of snapped point `index`: the original point's when it maps to
    one, otherwise interpolated by step between the nearest mapped neighbours.
    """
    orig = points[index].get("originalIndex")
    if orig is not None:
        return batch[orig].timestamp

    prev_idx = next((j for j in range(index - 1, -1, -1) if points[j].get("originalIndex") is not None), None)
    next_idx = next((j for j in range(index + 1, len(points)) if points[j].get("originalIndex") is not None), None)

    if prev_idx is not None and next_idx is not None:
        prev_ts = batch[points[prev_idx]["originalIndex"]].timestamp
        next_ts = batch[points[next_idx]["originalIndex"]].timestamp
        step = (index - prev_idx) / (next_idx - prev_idx)
        return round(prev_ts + (next_ts - prev_ts) * step)
    if prev_idx is not None:
        return batch[points[prev_idx]["originalIndex"]].timestamp
    if next_idx is not None:
        return batch[points[next_idx]["originalIndex"]].timestamp
    return 0


def _rebuild(points: list[dict[str, Any]], batch: Sequence[AcceptedCoordinate], skip_first: bool) -> list[AcceptedCoordinate]:
    out: list[AcceptedCoordinate] = []
    for index, point in enumerate(points):
        # first point of a follow-up batch is the overlap with the previous one
        if skip_first and index == 0:
            continue
        loc = point["location"]
        out.append(AcceptedCoordinate(
            latitude=float(loc["latitude"]),
            longitude=float(loc["longitude"]),
            timestamp=_timestamp_for(points, index, batch),
        ))
    return out


async def snap_to_roads(
    coordinates: Sequence[AcceptedCoordinate],
    client: RoadsClient,
) -> list[AcceptedCoordinate]:
    """
    Snap a finalized track to the road network.

    Parameters
    ----------
    coordinates
        Track in chronological order.
    client
        Configured roads client; without an API key the input is returned as is.

    Returns
    -------
    list[AcceptedCoordinate]
        Snapped track, possibly longer than the input when interpolation is on.
    """
    if not client.enabled:
        logger.warning("Roads API key is missing, skipping snap to roads")
        return list(coordinates)
    if not coordinates:
        return []

    size = max(2, client.cfg.batch_size)
    snapped: list[AcceptedCoordinate] = []
    for start in range(0, len(coordinates), size - 1):
        batch = coordinates[start:start + size]
        if len(batch) < 2 and len(coordinates) > 1:
            break
        n_batch = start // (size - 1) + 1
        logger.debug("Snapping batch %d (%d points)", n_batch, len(batch))
        try:
            points = await client.snap_batch(batch)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as exc:
            logger.error("Snap to roads failed for batch %d: %s", n_batch, exc)
            points = None
        else:
            if points is None:
                logger.warning("Snap to roads returned no points for batch %d", n_batch)

        if points is None:
            snapped.extend(batch[1:] if start > 0 else batch)
        else:
            try:
                snapped.extend(_rebuild(points, batch, skip_first=start > 0))
            except (KeyError, IndexError, TypeError, ValueError) as exc:
                logger.error("Unexpected snapToRoads payload in batch %d: %s", n_batch, exc)
                snapped.extend(batch[1:] if start > 0 else batch)
    return snapped


def snapped_distance(coordinates: Sequence[AcceptedCoordinate]) -> float:
    """
    Distance of a (snapped) track, with the same haversine the live filter uses.
    """
    return path_distance(c.latlon for c in coordinates)
