"""Role-aware visibility rules for candidate locations."""
from __future__ import annotations

from typing import Iterable, List, Optional

from . import config
from .geo import Bounds, has_coordinates
from .models import FilterState, Location, LocationStatus, SizeClass, ViewerRole
from .scoring import category_color


def is_visible(
    location: Location,
    role: ViewerRole,
    filter_state: Optional[FilterState] = None,
    exclude_red_reject: Optional[bool] = None,
) -> bool:
    if location.status is not LocationStatus.ACTIVE:
        return False

    if role is ViewerRole.NONADMIN:
        if not location.released:
            return False
        exclude = config.EXCLUDE_RED_REJECT_FOR_PUBLIC if exclude_red_reject is None else exclude_red_reject
        if exclude and location.size_class is SizeClass.RED_REJECT:
            return False
        return True

    state = filter_state if filter_state is not None else FilterState.default()
    if not state.released_scope.matches(location.released):
        return False
    if location.size_class not in state.sizes:
        return False
    for category, accepted in state.colors.items():
        if category_color(location, category) not in accepted:
            return False
    return True


def filter_visible(
    locations: Iterable[Location],
    role: ViewerRole,
    filter_state: Optional[FilterState] = None,
    exclude_red_reject: Optional[bool] = None,
) -> List[Location]:
    return [
        loc
        for loc in locations
        if is_visible(loc, role, filter_state, exclude_red_reject=exclude_red_reject)
    ]


def in_bounds(locations: Iterable[Location], bounds: Bounds) -> List[Location]:
    return [loc for loc in locations if has_coordinates(loc) and bounds.contains(loc.lat, loc.lon)]


def matches_query(location: Location, query: str) -> bool:
    needle = (query or "").strip().lower()
    if not needle:
        return True
    for text in (location.name, location.address, location.city):
        if text and needle in text.lower():
            return True
    return False
