"""Score colors derived from numeric category scores."""
from __future__ import annotations

from typing import Dict, Optional

from . import config
from .models import (
    BUILDING,
    NEIGHBORHOOD,
    OVERALL,
    PRICE,
    REGULATORY,
    SCORE_CATEGORIES,
    Location,
    ScoreColor,
    SizeClass,
)

COLOR_RANK: Dict[ScoreColor, int] = {
    ScoreColor.GREEN: 0,
    ScoreColor.YELLOW: 1,
    ScoreColor.AMBER: 2,
    ScoreColor.RED: 3,
    ScoreColor.UNSCORED: 99,
}

# price(1) + building(2) + neighborhood(4) + regulatory(8)
_GREEN_WEIGHTS = {PRICE: 1, BUILDING: 2, NEIGHBORHOOD: 4, REGULATORY: 8}

_SIZE_LABELS = {
    SizeClass.MICRO: "Micro (25 students)",
    SizeClass.MICRO2: "Micro 2 (50 students)",
    SizeClass.GROWTH: "Growth (250 students)",
    SizeClass.FLAGSHIP: "Flagship (1,000 students)",
    SizeClass.RED_REJECT: "Rejected (size)",
}


def color_from_score(value: Optional[float]) -> ScoreColor:
    if value is None:
        return ScoreColor.UNSCORED
    if value >= config.SCORE_GREEN_MIN:
        return ScoreColor.GREEN
    if value >= config.SCORE_YELLOW_MIN:
        return ScoreColor.YELLOW
    if value >= config.SCORE_AMBER_MIN:
        return ScoreColor.AMBER
    return ScoreColor.RED


def category_color(location: Location, category: str) -> ScoreColor:
    if category == OVERALL:
        return overall_color(location)
    score = location.score(category)
    if score is None:
        return ScoreColor.UNSCORED
    if score.color is not ScoreColor.UNSCORED:
        return score.color
    return color_from_score(score.value)


def overall_color(location: Location) -> ScoreColor:
    score = location.score(OVERALL)
    if score is not None:
        if score.color is not ScoreColor.UNSCORED:
            return score.color
        if score.value is not None:
            return color_from_score(score.value)
    values = [
        s.value
        for s in (location.score(c) for c in SCORE_CATEGORIES)
        if s is not None and s.value is not None
    ]
    if not values:
        return ScoreColor.UNSCORED
    return color_from_score(sum(values) / len(values))


def green_sub_rank(location: Location) -> int:
    return sum(
        weight
        for category, weight in _GREEN_WEIGHTS.items()
        if category_color(location, category) is ScoreColor.GREEN
    )


def status_label(color: ScoreColor) -> Optional[str]:
    if color is ScoreColor.GREEN:
        return "Promising"
    if color in (ScoreColor.YELLOW, ScoreColor.AMBER):
        return "Viable"
    if color is ScoreColor.RED:
        return "Concerning"
    return None


def size_label(size_class: SizeClass) -> Optional[str]:
    return _SIZE_LABELS.get(size_class)
