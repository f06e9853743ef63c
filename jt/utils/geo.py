# jt/utils/geo.py

"""
Geospatial utility functions.
"""

import math
from typing import Iterable, Tuple

EARTH_RADIUS_M = 6371000.0


def haversine(a: Tuple[float, float], b: Tuple[float, float]) -> float:
    """
    Compute the great-circle distance between two points on the Earth.

    Parameters
    ----------
    a
        (latitude, longitude) of point A, in decimal degrees.
    b
        (latitude, longitude) of point B, in decimal degrees.

    Returns
    -------
    float
        Distance between A and B in metres.
    """
    lat1, lon1 = a
    lat2, lon2 = b
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = phi2 - phi1
    d_lam = math.radians(lon2 - lon1)
    h = math.sin(d_phi/2)**2 + math.cos(phi1)*math.cos(phi2)*math.sin(d_lam/2)**2
    return 2 * EARTH_RADIUS_M * math.asin(math.sqrt(h))


def path_distance(points: Iterable[Tuple[float, float]]) -> float:
    """
    Sum the haversine length of a polyline.

    Used to recompute a trip's distance after its coordinates were replaced
    (e.g. by road snapping), so the figure stays consistent with the one the
    live filter accumulates.
    """
    total = 0.0
    prev = None
    for p in points:
        if prev is not None:
            total += haversine(prev, p)
        prev = p
    return total
