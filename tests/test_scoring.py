from sitevote.models import (
    BUILDING,
    NEIGHBORHOOD,
    OVERALL,
    PRICE,
    REGULATORY,
    Location,
    Score,
    ScoreColor,
    SizeClass,
)
from sitevote.scoring import (
    category_color,
    color_from_score,
    green_sub_rank,
    overall_color,
    size_label,
    status_label,
)


def _loc(scores):
    return Location(id="x", lat=30.0, lon=-97.0, scores=scores)


def test_color_from_score_thresholds():
    assert color_from_score(None) is ScoreColor.UNSCORED
    assert color_from_score(0.9) is ScoreColor.GREEN
    assert color_from_score(0.75) is ScoreColor.GREEN
    assert color_from_score(0.5) is ScoreColor.YELLOW
    assert color_from_score(0.3) is ScoreColor.AMBER
    assert color_from_score(0.1) is ScoreColor.RED


def test_category_color_prefers_stored_color():
    loc = _loc({PRICE: Score(color=ScoreColor.RED, value=0.9)})
    assert category_color(loc, PRICE) is ScoreColor.RED
    assert category_color(loc, BUILDING) is ScoreColor.UNSCORED


def test_category_color_falls_back_to_value():
    loc = _loc({PRICE: Score(value=0.6)})
    assert category_color(loc, PRICE) is ScoreColor.YELLOW


def test_overall_color_from_stored_value_then_category_mean():
    assert overall_color(_loc({OVERALL: Score(color=ScoreColor.AMBER)})) is ScoreColor.AMBER
    assert overall_color(_loc({OVERALL: Score(value=0.8)})) is ScoreColor.GREEN
    mean = _loc({PRICE: Score(value=1.0), BUILDING: Score(value=0.0)})
    assert overall_color(mean) is ScoreColor.YELLOW
    assert overall_color(_loc({})) is ScoreColor.UNSCORED
    assert category_color(mean, OVERALL) is ScoreColor.YELLOW


def test_green_sub_rank_weights_regulatory_highest():
    regulatory_only = _loc({REGULATORY: Score(color=ScoreColor.GREEN)})
    price_building_neighborhood = _loc(
        {
            PRICE: Score(color=ScoreColor.GREEN),
            BUILDING: Score(color=ScoreColor.GREEN),
            NEIGHBORHOOD: Score(color=ScoreColor.GREEN),
        }
    )
    assert green_sub_rank(regulatory_only) == 8
    assert green_sub_rank(price_building_neighborhood) == 7
    assert green_sub_rank(_loc({})) == 0


def test_status_and_size_labels():
    assert status_label(ScoreColor.GREEN) == "Promising"
    assert status_label(ScoreColor.AMBER) == "Viable"
    assert status_label(ScoreColor.RED) == "Concerning"
    assert status_label(ScoreColor.UNSCORED) is None
    assert size_label(SizeClass.FLAGSHIP).startswith("Flagship")
    assert size_label(SizeClass.UNCLASSIFIED) is None
