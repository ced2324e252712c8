"""Display ordering for city bubbles and locations."""
from __future__ import annotations

import math
from typing import Iterable, List, Optional, Tuple

from .geo import has_coordinates, haversine_miles
from .models import CityBubble, Location, SortMode
from .scoring import COLOR_RANK, green_sub_rank, overall_color


def bubble_sort_key(bubble: CityBubble) -> Tuple[int, str]:
    return (-bubble.total_votes, bubble.label)


def distance_to_center(
    location: Location, center_lat: Optional[float], center_lon: Optional[float]
) -> float:
    if center_lat is None or center_lon is None or not has_coordinates(location):
        return math.inf
    return haversine_miles(location.lat, location.lon, center_lat, center_lon)


def location_sort_key(
    location: Location, center_lat: Optional[float], center_lon: Optional[float]
) -> Tuple[int, float, str]:
    return (
        -location.vote_count,
        distance_to_center(location, center_lat, center_lon),
        location.id,
    )


def viable_sort_key(
    location: Location, center_lat: Optional[float], center_lon: Optional[float]
) -> Tuple[int, int, int, float, str]:
    return (
        COLOR_RANK[overall_color(location)],
        -green_sub_rank(location),
    ) + location_sort_key(location, center_lat, center_lon)


def rank_city_bubbles(bubbles: Iterable[CityBubble]) -> List[CityBubble]:
    return sorted(bubbles, key=bubble_sort_key)


def rank_locations(
    locations: Iterable[Location],
    center_lat: Optional[float],
    center_lon: Optional[float],
    mode: SortMode = SortMode.MOST_SUPPORT,
) -> List[Location]:
    if mode is SortMode.MOST_VIABLE:
        return sorted(locations, key=lambda loc: viable_sort_key(loc, center_lat, center_lon))
    return sorted(locations, key=lambda loc: location_sort_key(loc, center_lat, center_lon))
