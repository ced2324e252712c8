"""Geospatial helpers."""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Iterable, Optional, Tuple

from . import config


@dataclass(frozen=True)
class Bounds:
    north: float
    south: float
    east: float
    west: float

    def contains(self, lat: float, lon: float) -> bool:
        if lat > self.north or lat < self.south:
            return False
        if self.west <= self.east:
            return self.west <= lon <= self.east
        # Box crosses the antimeridian.
        return lon >= self.west or lon <= self.east

    def as_params(self) -> dict:
        return {"north": self.north, "south": self.south, "east": self.east, "west": self.west}


def haversine_miles(
    lat1: float, lon1: float, lat2: float, lon2: float, radius: Optional[float] = None
) -> float:
    r = config.EARTH_RADIUS_MILES if radius is None else radius
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlambda = math.radians(lon2 - lon1)

    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return r * c


def valid_coordinates(lat: Any, lon: Any) -> bool:
    if lat is None or lon is None:
        return False
    try:
        lat_f = float(lat)
        lon_f = float(lon)
    except (TypeError, ValueError):
        return False
    if not (math.isfinite(lat_f) and math.isfinite(lon_f)):
        return False
    return -90.0 <= lat_f <= 90.0 and -180.0 <= lon_f <= 180.0


def has_coordinates(obj: Any) -> bool:
    return valid_coordinates(getattr(obj, "lat", None), getattr(obj, "lon", None))


def centroid(points: Iterable[Tuple[float, float]]) -> Tuple[float, float]:
    """Arithmetic mean of (lat, lon) pairs; fine at metro scale."""
    total_lat = 0.0
    total_lon = 0.0
    n = 0
    for lat, lon in points:
        total_lat += lat
        total_lon += lon
        n += 1
    if n == 0:
        raise ValueError("centroid of an empty point set")
    return total_lat / n, total_lon / n


def bounds_for_zoom(
    lat: float,
    lon: float,
    zoom: float,
    width_px: Optional[int] = None,
    height_px: Optional[int] = None,
) -> Bounds:
    """Approximate the extent of a web-mercator viewport centred on (lat, lon)."""
    width = config.VIEWPORT_WIDTH_PX if width_px is None else width_px
    height = config.VIEWPORT_HEIGHT_PX if height_px is None else height_px
    world_px = config.TILE_SIZE_PX * (2 ** zoom)
    lon_span = min(360.0, width * 360.0 / world_px)
    lat_span = height * 360.0 / world_px * max(0.01, math.cos(math.radians(lat)))
    if lon_span >= 360.0:
        west, east = -180.0, 180.0
    else:
        west, east = _wrap_lon(lon - lon_span / 2), _wrap_lon(lon + lon_span / 2)
    return Bounds(
        north=min(90.0, lat + lat_span / 2),
        south=max(-90.0, lat - lat_span / 2),
        east=east,
        west=west,
    )


def _wrap_lon(lon: float) -> float:
    if -180.0 <= lon <= 180.0:
        return lon
    return ((lon + 180.0) % 360.0) - 180.0
