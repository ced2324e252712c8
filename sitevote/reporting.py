"""Output reporting helpers."""
from __future__ import annotations

import csv
import json
import os
import tempfile
from contextlib import contextmanager
from typing import Any, Dict, Iterable, Iterator, List, Optional, TextIO

from .models import CityBubble, Location, Tier
from .scoring import overall_color, size_label, status_label

LOCATION_FIELDS = [
    "rank",
    "id",
    "name",
    "address",
    "city",
    "state",
    "lat",
    "lon",
    "vote_count",
    "released",
    "status",
    "size_class",
    "size_label",
    "overall_color",
    "status_label",
]

BUBBLE_FIELDS = [
    "rank",
    "key",
    "label",
    "lat",
    "lon",
    "location_count",
    "total_votes",
]


def ensure_dir(path: str) -> None:
    os.makedirs(path, exist_ok=True)


def _fsync_dir(path: str) -> None:
    try:
        dir_fd = os.open(path, os.O_DIRECTORY)
    except OSError:
        return
    try:
        os.fsync(dir_fd)
    except OSError:
        pass
    finally:
        os.close(dir_fd)


@contextmanager
def atomic_writer(
    path: str,
    mode: str = "w",
    encoding: str = "utf-8",
    newline: Optional[str] = None,
) -> Iterator[TextIO]:
    dir_path = os.path.dirname(path) or "."
    base = os.path.basename(path)
    fd, tmp_path = tempfile.mkstemp(prefix=f".{base}.", suffix=".tmp", dir=dir_path)
    try:
        with os.fdopen(fd, mode, encoding=encoding, newline=newline) as f:
            yield f
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, path)
        _fsync_dir(dir_path)
    except Exception:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise


def atomic_write_text(path: str, text: str) -> None:
    with atomic_writer(path, mode="w", encoding="utf-8") as f:
        f.write(text)


def build_location_row(location: Location, rank: int) -> Dict[str, Any]:
    color = overall_color(location)
    return {
        "rank": rank,
        "id": location.id,
        "name": location.name,
        "address": location.address,
        "city": location.city,
        "state": location.state,
        "lat": location.lat,
        "lon": location.lon,
        "vote_count": location.vote_count,
        "released": location.released,
        "status": location.status.value,
        "size_class": location.size_class.value,
        "size_label": size_label(location.size_class),
        "overall_color": color.value,
        "status_label": status_label(color),
    }


def build_bubble_row(bubble: CityBubble, rank: int) -> Dict[str, Any]:
    return {
        "rank": rank,
        "key": bubble.key,
        "label": bubble.label,
        "lat": round(bubble.lat, 6),
        "lon": round(bubble.lon, 6),
        "location_count": bubble.location_count,
        "total_votes": bubble.total_votes,
    }


def build_page_rows(tier: Optional[Tier], items: Iterable[Any]) -> List[Dict[str, Any]]:
    if tier is Tier.CITY:
        return [build_bubble_row(b, i) for i, b in enumerate(items, start=1)]
    return [build_location_row(loc, i) for i, loc in enumerate(items, start=1)]


def write_page_json(path: str, rows: Iterable[Dict[str, Any]]) -> None:
    with atomic_writer(path, mode="w", encoding="utf-8") as f:
        json.dump(list(rows), f, ensure_ascii=False, indent=2)


def write_page_csv(path: str, tier: Optional[Tier], rows: Iterable[Dict[str, Any]]) -> None:
    rows = list(rows)
    if not rows:
        with atomic_writer(path, mode="w", encoding="utf-8", newline="") as f:
            f.write("")
        return

    fieldnames = BUBBLE_FIELDS if tier is Tier.CITY else LOCATION_FIELDS
    with atomic_writer(path, mode="w", encoding="utf-8", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=fieldnames)
        writer.writeheader()
        for row in rows:
            writer.writerow(row)


def write_json_object(path: str, payload: Dict[str, Any]) -> None:
    with atomic_writer(path, mode="w", encoding="utf-8") as f:
        json.dump(payload, f, ensure_ascii=False, indent=2)


def write_summary(path: str, summary_lines: List[str]) -> None:
    atomic_write_text(path, "\n".join(summary_lines))


def render_frame_summary(frame: Any, metrics: Any = None) -> List[str]:
    lines = []
    tier = frame.tier.value if frame.tier is not None else "unresolved"
    lines.append(f"Tier: {tier}")
    if frame.metro_name:
        lines.append(f"Metro: {frame.metro_name}")
    lines.append(frame.counter_text or "Showing 0 of 0")
    lines.append(f"More available: {'yes' if frame.has_next else 'no'}")
    if frame.error:
        lines.append(f"Error: {frame.error}")
    if metrics is not None:
        lines.append(
            "Fetches: issued={issued}, applied={applied}, stale_discards={stale}, failures={failures}".format(
                issued=metrics.fetches_issued,
                applied=metrics.fetches_applied,
                stale=metrics.stale_discards,
                failures=metrics.fetch_failures,
            )
        )
    lines.append("Items:")
    for row in build_page_rows(frame.tier, frame.items):
        if frame.tier is Tier.CITY:
            lines.append(
                "  {rank}. {label} locations={location_count} votes={total_votes}".format(**row)
            )
        else:
            lines.append(
                "  {rank}. {name} ({id}) {city}, {state} votes={vote_count} overall={overall_color}".format(
                    **row
                )
            )
    return lines
