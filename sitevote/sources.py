"""Location source contracts, payload parsing and a file-backed source."""
from __future__ import annotations

import json
import logging
from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Protocol

from .geo import Bounds, centroid, valid_coordinates
from .models import (
    CitySummary,
    Location,
    LocationStatus,
    Score,
    ScoreColor,
    SizeClass,
    normalize_category,
)

logger = logging.getLogger(__name__)


class SourceError(RuntimeError):
    pass


class LocationSource(Protocol):
    async def fetch_locations_in_viewport(
        self, bounds: Optional[Bounds], released_only: bool
    ) -> List[Location]:
        ...

    async def fetch_all_city_summaries(
        self, released_only: bool, exclude_red_reject: bool = False
    ) -> List[CitySummary]:
        ...


class VoteSink(Protocol):
    async def cast_vote(self, location_id: str, delta: int, comment: Optional[str] = None) -> int:
        ...


# Adapter/mapper for location payload fields

def _first(row: Dict[str, Any], *keys: str) -> Any:
    for key in keys:
        value = row.get(key)
        if value is not None:
            return value
    return None


def _float_or_none(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "y")
    return bool(value)


def parse_scores(raw: Any) -> Dict[str, Score]:
    if not isinstance(raw, dict):
        return {}
    scores: Dict[str, Score] = {}
    for key, value in raw.items():
        if key in ("overallColor", "overall_color"):
            continue
        try:
            category = normalize_category(key)
        except ValueError:
            logger.debug("Ignoring unknown score category %r", key)
            continue
        if isinstance(value, dict):
            color = ScoreColor.from_text(value.get("color"))
            numeric = _float_or_none(_first(value, "value", "score", "numericValue", "numeric_value"))
        else:
            color = ScoreColor.UNSCORED
            numeric = _float_or_none(value)
        scores[category] = Score(color=color, value=numeric)

    flat_overall_color = _first(raw, "overallColor", "overall_color")
    if flat_overall_color:
        existing = scores.get("Overall", Score())
        scores["Overall"] = Score(color=ScoreColor.from_text(flat_overall_color), value=existing.value)
    return scores


def parse_location_row(row: Dict[str, Any]) -> Optional[Location]:
    location_id = _first(row, "id", "location_id", "locationId")
    if location_id is None or str(location_id).strip() == "":
        return None
    lat = _float_or_none(_first(row, "lat", "latitude"))
    lon = _float_or_none(_first(row, "lon", "lng", "longitude"))
    if not valid_coordinates(lat, lon):
        lat, lon = None, None
    votes = _first(row, "vote_count", "voteCount", "votes")
    try:
        vote_count = max(0, int(votes)) if votes is not None else 0
    except (TypeError, ValueError):
        vote_count = 0
    return Location(
        id=str(location_id),
        lat=lat,
        lon=lon,
        address=str(row.get("address") or ""),
        city=str(row.get("city") or ""),
        state=str(row.get("state") or ""),
        name=str(row.get("name") or ""),
        vote_count=vote_count,
        released=_as_bool(row.get("released", False)),
        scores=parse_scores(row.get("scores")),
        size_class=SizeClass.from_text(
            _first(row, "size_class", "sizeClass", "size_classification", "sizeClassification")
        ),
        status=LocationStatus.from_text(row.get("status") or "pending"),
    )


def parse_locations_response(response: Any) -> List[Location]:
    rows = response.get("locations") if isinstance(response, dict) else response
    parsed: List[Location] = []
    for row in rows or []:
        if not isinstance(row, dict):
            continue
        try:
            loc = parse_location_row(row)
        except ValueError as exc:
            logger.warning("Skipping malformed location row %s: %s", row.get("id"), exc)
            continue
        if loc is not None:
            parsed.append(loc)
    return parsed


def parse_city_summary_row(row: Dict[str, Any]) -> Optional[CitySummary]:
    city = row.get("city")
    if not city:
        return None
    lat = _float_or_none(_first(row, "lat", "latitude"))
    lon = _float_or_none(_first(row, "lon", "lng", "longitude"))
    if not valid_coordinates(lat, lon):
        lat, lon = None, None
    return CitySummary(
        city=str(city),
        state=str(row.get("state") or ""),
        lat=lat,
        lon=lon,
        count=int(_first(row, "count", "location_count", "locationCount") or 0),
        votes=int(_first(row, "votes", "total_votes", "totalVotes") or 0),
    )


def parse_city_summaries_response(response: Any) -> List[CitySummary]:
    rows = response.get("cities") if isinstance(response, dict) else response
    parsed: List[CitySummary] = []
    for row in rows or []:
        if not isinstance(row, dict):
            continue
        summary = parse_city_summary_row(row)
        if summary is not None:
            parsed.append(summary)
    return parsed


def is_publicly_released(location: Location) -> bool:
    return location.status is LocationStatus.ACTIVE and location.released


def is_red_reject(location: Location) -> bool:
    return location.size_class is SizeClass.RED_REJECT


def summarize_cities(locations: Iterable[Location]) -> List[CitySummary]:
    groups: Dict[tuple, List[Location]] = {}
    for loc in locations:
        groups.setdefault((loc.city, loc.state), []).append(loc)
    summaries: List[CitySummary] = []
    for (city, state), members in sorted(groups.items()):
        points = [(m.lat, m.lon) for m in members if valid_coordinates(m.lat, m.lon)]
        lat, lon = centroid(points) if points else (None, None)
        summaries.append(
            CitySummary(
                city=city,
                state=state,
                lat=lat,
                lon=lon,
                count=len(members),
                votes=sum(m.vote_count for m in members),
            )
        )
    return summaries


class StaticLocationSource:
    """Serves a fixed set of locations, e.g. loaded from a JSON export."""

    def __init__(self, locations: Iterable[Location]) -> None:
        self._locations: Dict[str, Location] = {loc.id: loc for loc in locations}

    @classmethod
    def from_json_file(cls, path: str) -> "StaticLocationSource":
        file_path = Path(path)
        if not file_path.exists():
            raise SourceError(f"Locations file missing: {file_path}")
        with file_path.open("r", encoding="utf-8") as f:
            try:
                data = json.load(f)
            except ValueError as exc:
                raise SourceError(f"Locations file is not valid JSON: {file_path}") from exc
        return cls(parse_locations_response(data))

    @property
    def locations(self) -> List[Location]:
        return list(self._locations.values())

    def _scoped(self, bounds: Optional[Bounds], released_only: bool) -> List[Location]:
        out: List[Location] = []
        for loc in self._locations.values():
            if released_only and not is_publicly_released(loc):
                continue
            if bounds is not None:
                if not valid_coordinates(loc.lat, loc.lon) or not bounds.contains(loc.lat, loc.lon):
                    continue
            out.append(loc)
        return out

    async def fetch_locations_in_viewport(
        self, bounds: Optional[Bounds], released_only: bool
    ) -> List[Location]:
        return self._scoped(bounds, released_only)

    async def fetch_all_city_summaries(
        self, released_only: bool, exclude_red_reject: bool = False
    ) -> List[CitySummary]:
        rows = self._scoped(None, released_only)
        if exclude_red_reject:
            rows = [loc for loc in rows if not is_red_reject(loc)]
        return summarize_cities(rows)

    async def cast_vote(self, location_id: str, delta: int, comment: Optional[str] = None) -> int:
        loc = self._locations.get(location_id)
        if loc is None:
            raise SourceError(f"Unknown location: {location_id}")
        updated = replace(loc, vote_count=max(0, loc.vote_count + delta))
        self._locations[location_id] = updated
        return updated.vote_count
