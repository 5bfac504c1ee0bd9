"""Bounding-box computation for GPS routes."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Protocol


class _LatLon(Protocol):
    lat: float
    lon: float


@dataclass(frozen=True)
class RouteBounds:
    """Exact min/max latitude and longitude over a route's points."""

    min_lat: float
    max_lat: float
    min_lon: float
    max_lon: float


def compute_bounds(points: Iterable[_LatLon]) -> RouteBounds:
    """Return the bounding box of a non-empty point sequence.

    Raises:
        ValueError: If ``points`` is empty.
    """
    it = iter(points)
    try:
        first = next(it)
    except StopIteration:
        raise ValueError("Cannot compute bounds of an empty route") from None

    min_lat = max_lat = first.lat
    min_lon = max_lon = first.lon
    for p in it:
        if p.lat < min_lat:
            min_lat = p.lat
        elif p.lat > max_lat:
            max_lat = p.lat
        if p.lon < min_lon:
            min_lon = p.lon
        elif p.lon > max_lon:
            max_lon = p.lon
    return RouteBounds(min_lat=min_lat, max_lat=max_lat, min_lon=min_lon, max_lon=max_lon)
