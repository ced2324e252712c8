"""Metro gazetteer and city-bubble consolidation."""
from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from . import config
from .geo import has_coordinates, haversine_miles, valid_coordinates
from .models import CityBubble, CitySummary, Location, Viewport

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Metro:
    name: str
    state: str
    lat: float
    lon: float
    radius_miles: Optional[float] = None

    @property
    def label(self) -> str:
        return f"{self.name}, {self.state}"

    @property
    def key(self) -> str:
        return f"metro:{self.name}|{self.state}"

    def catchment_miles(self) -> float:
        return config.METRO_RADIUS_MILES if self.radius_miles is None else self.radius_miles


# Major US metro areas used for city bubble consolidation.
US_METROS: Tuple[Metro, ...] = (
    # Texas
    Metro("Houston", "TX", 29.7604, -95.3698),
    Metro("Dallas-Fort Worth", "TX", 32.7767, -96.7970),
    Metro("San Antonio", "TX", 29.4241, -98.4936),
    Metro("Austin", "TX", 30.2672, -97.7431),
    Metro("El Paso", "TX", 31.7619, -106.4850),
    Metro("Corpus Christi", "TX", 27.8006, -97.3964),
    # Florida
    Metro("Miami", "FL", 25.7617, -80.1918),
    Metro("Fort Lauderdale", "FL", 26.1224, -80.1373),
    Metro("Palm Beach", "FL", 26.65, -80.08),
    Metro("Tampa", "FL", 27.9506, -82.4572),
    Metro("Orlando", "FL", 28.5383, -81.3792),
    Metro("Jacksonville", "FL", 30.3322, -81.6557),
    Metro("Sarasota", "FL", 27.3364, -82.5307),
    Metro("Fort Myers", "FL", 26.6406, -81.8723),
    # California
    Metro("Los Angeles", "CA", 34.0522, -118.2437),
    Metro("San Diego", "CA", 32.7157, -117.1611),
    Metro("San Francisco", "CA", 37.7749, -122.4194),
    Metro("San Jose", "CA", 37.3382, -121.8863),
    Metro("Sacramento", "CA", 38.5816, -121.4944),
    Metro("Fresno", "CA", 36.7378, -119.7871),
    Metro("Riverside", "CA", 33.9533, -117.3962),
    Metro("Orange County", "CA", 33.7175, -117.8311),
    Metro("Bakersfield", "CA", 35.3733, -119.0187),
    # Northeast
    Metro("New York", "NY", 40.7128, -74.0060),
    Metro("Boston", "MA", 42.3601, -71.0589),
    Metro("Philadelphia", "PA", 39.9526, -75.1652),
    Metro("Pittsburgh", "PA", 40.4406, -79.9959),
    Metro("Hartford", "CT", 41.7658, -72.6734),
    Metro("Providence", "RI", 41.8240, -71.4128),
    Metro("Rochester", "NY", 43.1566, -77.6088),
    Metro("Buffalo", "NY", 42.8864, -78.8784),
    Metro("Albany", "NY", 42.6526, -73.7562),
    Metro("Syracuse", "NY", 43.0481, -76.1474),
    # Mid-Atlantic
    Metro("Washington", "DC", 38.9072, -77.0369),
    Metro("Baltimore", "MD", 39.2904, -76.6122),
    Metro("Richmond", "VA", 37.5407, -77.4360),
    Metro("Virginia Beach", "VA", 36.8529, -75.9780),
    # Southeast
    Metro("Atlanta", "GA", 33.7490, -84.3880),
    Metro("Charlotte", "NC", 35.2271, -80.8431),
    Metro("Raleigh-Durham", "NC", 35.8801, -78.7880),
    Metro("Nashville", "TN", 36.1627, -86.7816),
    Metro("Memphis", "TN", 35.1495, -90.0490),
    Metro("Birmingham", "AL", 33.5207, -86.8025),
    Metro("Charleston", "SC", 32.7765, -79.9311),
    Metro("Greensboro", "NC", 36.0726, -79.7920),
    Metro("Knoxville", "TN", 35.9606, -83.9207),
    Metro("Savannah", "GA", 32.0809, -81.0912),
    Metro("Columbia", "SC", 34.0007, -81.0348),
    Metro("Greenville", "SC", 34.8526, -82.3940),
    # Midwest
    Metro("Chicago", "IL", 41.8781, -87.6298),
    Metro("Detroit", "MI", 42.3314, -83.0458),
    Metro("Minneapolis", "MN", 44.9778, -93.2650),
    Metro("Cleveland", "OH", 41.4993, -81.6944),
    Metro("Columbus", "OH", 39.9612, -82.9988),
    Metro("Cincinnati", "OH", 39.1031, -84.5120),
    Metro("Indianapolis", "IN", 39.7684, -86.1581),
    Metro("Milwaukee", "WI", 43.0389, -87.9065),
    Metro("Kansas City", "MO", 39.0997, -94.5786),
    Metro("St. Louis", "MO", 38.6270, -90.1994),
    Metro("Madison", "WI", 43.0731, -89.4012),
    Metro("Omaha", "NE", 41.2565, -95.9345),
    Metro("Des Moines", "IA", 41.5868, -93.6250),
    Metro("Grand Rapids", "MI", 42.9634, -85.6681),
    Metro("Louisville", "KY", 38.2527, -85.7585),
    Metro("Wichita", "KS", 37.6872, -97.3301),
    # South Central
    Metro("New Orleans", "LA", 29.9511, -90.0715),
    Metro("Baton Rouge", "LA", 30.4515, -91.1871),
    Metro("Oklahoma City", "OK", 35.4676, -97.5164),
    Metro("Tulsa", "OK", 36.1540, -95.9928),
    Metro("Little Rock", "AR", 34.7465, -92.2896),
    # Mountain West
    Metro("Denver", "CO", 39.7392, -104.9903),
    Metro("Colorado Springs", "CO", 38.8339, -104.8214),
    Metro("Salt Lake City", "UT", 40.7608, -111.8910),
    Metro("Phoenix", "AZ", 33.4484, -112.0740),
    Metro("Tucson", "AZ", 32.2226, -110.9747),
    Metro("Albuquerque", "NM", 35.0844, -106.6504),
    Metro("Las Vegas", "NV", 36.1699, -115.1398),
    Metro("Boise", "ID", 43.6150, -116.2023),
    Metro("Reno", "NV", 39.5296, -119.8138),
    # Pacific Northwest
    Metro("Seattle", "WA", 47.6062, -122.3321),
    Metro("Portland", "OR", 45.5152, -122.6784),
    Metro("Spokane", "WA", 47.6588, -117.4260),
    # Other
    Metro("Honolulu", "HI", 21.3069, -157.8583),
)


def validate_gazetteer(metros: Sequence[Metro]) -> None:
    seen = set()
    invalid = []
    for metro in metros:
        if not metro.name or not valid_coordinates(metro.lat, metro.lon):
            invalid.append(metro.label)
            continue
        if metro.radius_miles is not None and metro.radius_miles <= 0:
            invalid.append(metro.label)
            continue
        if metro.key in seen:
            raise ValueError(f"Duplicate metro in gazetteer: {metro.label}")
        seen.add(metro.key)
    if invalid:
        raise ValueError("Invalid gazetteer entries: " + ", ".join(invalid))


def load_gazetteer(entries: Iterable[Dict[str, Any]]) -> List[Metro]:
    metros: List[Metro] = []
    for entry in entries:
        radius = entry.get("radius_miles", entry.get("radius"))
        metros.append(
            Metro(
                name=str(entry.get("name") or entry.get("label") or "").strip(),
                state=str(entry.get("state") or "").strip(),
                lat=float(entry["lat"]),
                lon=float(entry.get("lon", entry.get("lng"))),
                radius_miles=float(radius) if radius is not None else None,
            )
        )
    validate_gazetteer(metros)
    return metros


def default_gazetteer() -> List[Metro]:
    if config.GAZETTEER:
        return load_gazetteer(config.GAZETTEER)
    return list(US_METROS)


def nearest_metro(lat: float, lon: float, gazetteer: Sequence[Metro]) -> Optional[Metro]:
    """Nearest metro whose catchment contains the point; lower index wins ties."""
    best: Optional[Metro] = None
    best_dist: Optional[float] = None
    for metro in gazetteer:
        dist = haversine_miles(lat, lon, metro.lat, metro.lon)
        if dist > metro.catchment_miles():
            continue
        if best_dist is None or dist < best_dist:
            best = metro
            best_dist = dist
    return best


class _BubbleAccumulator:
    def __init__(self, key: str, label: str) -> None:
        self.key = key
        self.label = label
        self.count = 0
        self.votes = 0
        self.weighted_lat = 0.0
        self.weighted_lon = 0.0
        self.ids: List[str] = []

    def add(self, lat: float, lon: float, count: int, votes: int, ids: Iterable[str] = ()) -> None:
        self.count += count
        self.votes += votes
        self.weighted_lat += lat * count
        self.weighted_lon += lon * count
        self.ids.extend(ids)

    def build(self) -> CityBubble:
        return CityBubble(
            key=self.key,
            label=self.label,
            lat=self.weighted_lat / self.count,
            lon=self.weighted_lon / self.count,
            location_count=self.count,
            total_votes=self.votes,
            location_ids=tuple(self.ids),
        )


def _standalone_key(city: str, state: str) -> Tuple[str, str]:
    label = f"{city}, {state}" if state else city
    return f"city:{city}|{state}", label


def consolidate_locations(
    locations: Iterable[Location], gazetteer: Optional[Sequence[Metro]] = None
) -> List[CityBubble]:
    """Group visible locations into metro bubbles.

    Input must already be visibility-filtered for the viewer. Locations
    without usable coordinates are skipped; locations outside every
    catchment become standalone bubbles keyed by their own city/state.
    """
    metros = default_gazetteer() if gazetteer is None else gazetteer
    buckets: Dict[str, _BubbleAccumulator] = {}
    skipped = 0
    for loc in locations:
        if not has_coordinates(loc):
            skipped += 1
            continue
        metro = nearest_metro(loc.lat, loc.lon, metros)
        if metro is not None:
            key, label = metro.key, metro.label
        else:
            key, label = _standalone_key(loc.city, loc.state)
        acc = buckets.get(key)
        if acc is None:
            acc = buckets[key] = _BubbleAccumulator(key, label)
        acc.add(loc.lat, loc.lon, 1, loc.vote_count, ids=(loc.id,))
    if skipped:
        logger.debug("Skipped %s locations without coordinates during consolidation", skipped)
    return [acc.build() for acc in buckets.values()]


def consolidate_city_summaries(
    summaries: Iterable[CitySummary], gazetteer: Optional[Sequence[Metro]] = None
) -> List[CityBubble]:
    """Fold per-city aggregates into metro bubbles with a count-weighted centroid."""
    metros = default_gazetteer() if gazetteer is None else gazetteer
    buckets: Dict[str, _BubbleAccumulator] = {}
    for summary in summaries:
        if summary.count <= 0 or not valid_coordinates(summary.lat, summary.lon):
            continue
        metro = nearest_metro(summary.lat, summary.lon, metros)
        if metro is not None:
            key, label = metro.key, metro.label
        else:
            key, label = _standalone_key(summary.city, summary.state)
        acc = buckets.get(key)
        if acc is None:
            acc = buckets[key] = _BubbleAccumulator(key, label)
        acc.add(summary.lat, summary.lon, summary.count, summary.votes)
    return [acc.build() for acc in buckets.values()]


def bubble_fly_to(bubble: CityBubble, zoom: Optional[float] = None) -> Viewport:
    target_zoom = config.BUBBLE_FLY_TO_ZOOM if zoom is None else zoom
    return Viewport.around(bubble.lat, bubble.lon, target_zoom)


def dominant_city(locations: Iterable[Location]) -> Optional[str]:
    counts = Counter(loc.city for loc in locations if loc.city)
    if not counts:
        return None
    return sorted(counts.items(), key=lambda item: (-item[1], item[0]))[0][0]
