"""Domain records shared by the engine stages."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, Iterable, Optional, Tuple

from .geo import Bounds, bounds_for_zoom

NEIGHBORHOOD = "Neighborhood"
REGULATORY = "Regulatory"
BUILDING = "Building"
PRICE = "Price"
OVERALL = "Overall"

SCORE_CATEGORIES: Tuple[str, ...] = (NEIGHBORHOOD, REGULATORY, BUILDING, PRICE)
ALL_CATEGORIES: Tuple[str, ...] = SCORE_CATEGORIES + (OVERALL,)

# Aliases seen in upstream payloads ("zoning" is the old name for Regulatory).
_CATEGORY_ALIASES = {
    "neighborhood": NEIGHBORHOOD,
    "regulatory": REGULATORY,
    "zoning": REGULATORY,
    "building": BUILDING,
    "price": PRICE,
    "overall": OVERALL,
}


def normalize_category(name: str) -> str:
    key = (name or "").strip().lower()
    if key not in _CATEGORY_ALIASES:
        raise ValueError(f"Unknown score category: {name!r}")
    return _CATEGORY_ALIASES[key]


def _normalize_token(text: str) -> str:
    return (text or "").strip().upper().replace("-", "_").replace(" ", "_")


class ScoreColor(Enum):
    GREEN = "GREEN"
    YELLOW = "YELLOW"
    AMBER = "AMBER"
    RED = "RED"
    UNSCORED = "UNSCORED"

    @classmethod
    def from_text(cls, text: Optional[str]) -> "ScoreColor":
        if text is None or not str(text).strip():
            return cls.UNSCORED
        token = _normalize_token(str(text))
        try:
            return cls(token)
        except ValueError:
            raise ValueError(f"Unknown score color: {text!r}") from None


class SizeClass(Enum):
    MICRO = "MICRO"
    MICRO2 = "MICRO2"
    GROWTH = "GROWTH"
    FLAGSHIP = "FLAGSHIP"
    RED_REJECT = "RED_REJECT"
    UNCLASSIFIED = "UNCLASSIFIED"

    @classmethod
    def from_text(cls, text: Optional[str]) -> "SizeClass":
        if text is None or not str(text).strip():
            return cls.UNCLASSIFIED
        token = _normalize_token(str(text))
        if token == "REDREJECT":
            token = "RED_REJECT"
        try:
            return cls(token)
        except ValueError:
            raise ValueError(f"Unknown size class: {text!r}") from None


class LocationStatus(Enum):
    PENDING = "pending"
    ACTIVE = "active"
    REJECTED = "rejected"

    @classmethod
    def from_text(cls, text: Optional[str]) -> "LocationStatus":
        token = (text or "").strip().lower()
        if token == "pending_review":
            token = "pending"
        try:
            return cls(token)
        except ValueError:
            raise ValueError(f"Unknown location status: {text!r}") from None


class ViewerRole(Enum):
    ADMIN = "admin"
    NONADMIN = "nonadmin"

    @classmethod
    def from_text(cls, text: str) -> "ViewerRole":
        token = (text or "").strip().lower().replace("-", "").replace("_", "")
        try:
            return cls(token)
        except ValueError:
            raise ValueError(f"Unknown viewer role: {text!r}") from None


class ReleasedScope(Enum):
    ALL = "all"
    RELEASED = "released"
    UNRELEASED = "unreleased"

    @classmethod
    def from_text(cls, text: str) -> "ReleasedScope":
        try:
            return cls((text or "").strip().lower())
        except ValueError:
            raise ValueError(f"Unknown released scope: {text!r}") from None

    def matches(self, released: bool) -> bool:
        if self is ReleasedScope.ALL:
            return True
        if self is ReleasedScope.RELEASED:
            return released
        return not released


class Tier(Enum):
    CITY = "city"
    LOCATION = "location"


class SortMode(Enum):
    MOST_SUPPORT = "most_support"
    MOST_VIABLE = "most_viable"

    @classmethod
    def from_text(cls, text: str) -> "SortMode":
        try:
            return cls((text or "").strip().lower().replace("-", "_"))
        except ValueError:
            raise ValueError(f"Unknown sort mode: {text!r}") from None


@dataclass(frozen=True)
class Score:
    color: ScoreColor = ScoreColor.UNSCORED
    value: Optional[float] = None


@dataclass(frozen=True)
class Location:
    id: str
    lat: Optional[float]
    lon: Optional[float]
    address: str = ""
    city: str = ""
    state: str = ""
    name: str = ""
    vote_count: int = 0
    released: bool = False
    scores: Dict[str, Score] = field(default_factory=dict, hash=False, compare=True)
    size_class: SizeClass = SizeClass.UNCLASSIFIED
    status: LocationStatus = LocationStatus.PENDING

    def score(self, category: str) -> Optional[Score]:
        return self.scores.get(category)

    @property
    def city_label(self) -> str:
        return f"{self.city}, {self.state}" if self.state else self.city


@dataclass(frozen=True)
class CitySummary:
    city: str
    state: str
    lat: Optional[float]
    lon: Optional[float]
    count: int
    votes: int


@dataclass(frozen=True)
class CityBubble:
    key: str
    label: str
    lat: float
    lon: float
    location_count: int
    total_votes: int
    location_ids: Tuple[str, ...] = ()


@dataclass(frozen=True)
class Viewport:
    center_lat: float
    center_lon: float
    zoom: float
    bounds: Bounds

    @classmethod
    def around(cls, lat: float, lon: float, zoom: float) -> "Viewport":
        return cls(center_lat=lat, center_lon=lon, zoom=zoom, bounds=bounds_for_zoom(lat, lon, zoom))


@dataclass(frozen=True)
class FilterState:
    """Admin filter controls.

    ``colors`` maps a category to its accepted colors; a category missing
    from the mapping is unconstrained. Categories combine with AND, colors
    within one category with OR.
    """

    colors: Dict[str, FrozenSet[ScoreColor]] = field(default_factory=dict, hash=False)
    sizes: FrozenSet[SizeClass] = frozenset(s for s in SizeClass if s is not SizeClass.RED_REJECT)
    released_scope: ReleasedScope = ReleasedScope.ALL

    @classmethod
    def default(cls) -> "FilterState":
        all_colors = frozenset(ScoreColor)
        return cls(colors={c: all_colors for c in ALL_CATEGORIES})

    @classmethod
    def unrestricted(cls) -> "FilterState":
        return cls(
            colors={},
            sizes=frozenset(SizeClass),
            released_scope=ReleasedScope.ALL,
        )

    def with_colors(self, category: str, colors: Iterable[ScoreColor]) -> "FilterState":
        updated = dict(self.colors)
        updated[normalize_category(category)] = frozenset(colors)
        return FilterState(colors=updated, sizes=self.sizes, released_scope=self.released_scope)

    def key(self) -> tuple:
        color_key = tuple(
            sorted((cat, tuple(sorted(c.value for c in accepted))) for cat, accepted in self.colors.items())
        )
        return (
            color_key,
            tuple(sorted(s.value for s in self.sizes)),
            self.released_scope.value,
        )


@dataclass(frozen=True)
class Viewer:
    role: ViewerRole = ViewerRole.NONADMIN
    view_as_public: bool = False

    @property
    def effective_role(self) -> ViewerRole:
        if self.role is ViewerRole.ADMIN and self.view_as_public:
            return ViewerRole.NONADMIN
        return self.role

    @property
    def is_admin(self) -> bool:
        return self.effective_role is ViewerRole.ADMIN
