from sitevote import config
from sitevote.models import (
    OVERALL,
    PRICE,
    FilterState,
    Location,
    LocationStatus,
    ReleasedScope,
    Score,
    ScoreColor,
    SizeClass,
    ViewerRole,
)
from sitevote.geo import Bounds
from sitevote.visibility import filter_visible, in_bounds, is_visible, matches_query


def _loc(loc_id, **kwargs):
    defaults = dict(
        lat=30.27,
        lon=-97.74,
        released=True,
        status=LocationStatus.ACTIVE,
        size_class=SizeClass.GROWTH,
    )
    defaults.update(kwargs)
    return Location(id=loc_id, **defaults)


def _mixed():
    return [
        _loc("public"),
        _loc("unreleased", released=False),
        _loc("pending", status=LocationStatus.PENDING),
        _loc("rejected", status=LocationStatus.REJECTED),
        _loc("red", size_class=SizeClass.RED_REJECT),
        _loc("red-unreleased", size_class=SizeClass.RED_REJECT, released=False),
    ]


def test_nonadmin_never_sees_unreleased_or_inactive():
    visible = filter_visible(_mixed(), ViewerRole.NONADMIN)
    assert [loc.id for loc in visible] == ["public"]


def test_active_unreleased_location_hidden_from_public_only():
    loc = _loc("L", released=False)
    assert not is_visible(loc, ViewerRole.NONADMIN)
    assert is_visible(loc, ViewerRole.ADMIN)


def test_public_red_reject_exclusion_is_configurable(monkeypatch):
    red = _loc("red", size_class=SizeClass.RED_REJECT)
    assert not is_visible(red, ViewerRole.NONADMIN)
    assert is_visible(red, ViewerRole.NONADMIN, exclude_red_reject=False)
    monkeypatch.setattr(config, "EXCLUDE_RED_REJECT_FOR_PUBLIC", False)
    assert is_visible(red, ViewerRole.NONADMIN)


def test_public_view_ignores_admin_filters():
    strict = FilterState.default().with_colors(OVERALL, [ScoreColor.GREEN])
    assert is_visible(_loc("public"), ViewerRole.NONADMIN, strict)


def test_admin_never_sees_pending_or_rejected():
    visible = filter_visible(_mixed(), ViewerRole.ADMIN, FilterState.unrestricted())
    assert "pending" not in {loc.id for loc in visible}
    assert "rejected" not in {loc.id for loc in visible}


def test_admin_color_filters_and_across_categories_or_within():
    state = (
        FilterState.default()
        .with_colors(OVERALL, [ScoreColor.GREEN, ScoreColor.YELLOW])
        .with_colors(PRICE, [ScoreColor.GREEN])
    )
    both = _loc(
        "both",
        scores={OVERALL: Score(ScoreColor.YELLOW), PRICE: Score(ScoreColor.GREEN)},
    )
    wrong_price = _loc(
        "wrong-price",
        scores={OVERALL: Score(ScoreColor.GREEN), PRICE: Score(ScoreColor.AMBER)},
    )
    wrong_overall = _loc(
        "wrong-overall",
        scores={OVERALL: Score(ScoreColor.RED), PRICE: Score(ScoreColor.GREEN)},
    )
    visible = filter_visible([both, wrong_price, wrong_overall], ViewerRole.ADMIN, state)
    assert [loc.id for loc in visible] == ["both"]


def test_admin_size_and_released_scope():
    state = FilterState(
        colors={},
        sizes=frozenset({SizeClass.FLAGSHIP}),
        released_scope=ReleasedScope.UNRELEASED,
    )
    candidates = [
        _loc("flagship-unreleased", size_class=SizeClass.FLAGSHIP, released=False),
        _loc("flagship-released", size_class=SizeClass.FLAGSHIP),
        _loc("micro-unreleased", size_class=SizeClass.MICRO, released=False),
    ]
    visible = filter_visible(candidates, ViewerRole.ADMIN, state)
    assert [loc.id for loc in visible] == ["flagship-unreleased"]


def test_public_set_is_subset_of_unfiltered_admin_set():
    locations = _mixed()
    public = {loc.id for loc in filter_visible(locations, ViewerRole.NONADMIN)}
    admin = {loc.id for loc in filter_visible(locations, ViewerRole.ADMIN, FilterState.unrestricted())}
    assert public <= admin


def test_filter_visible_is_idempotent():
    state = FilterState.default().with_colors(OVERALL, [ScoreColor.UNSCORED])
    once = filter_visible(_mixed(), ViewerRole.ADMIN, state)
    twice = filter_visible(once, ViewerRole.ADMIN, state)
    assert once == twice


def test_in_bounds_drops_locations_without_coordinates():
    box = Bounds(north=31.0, south=30.0, east=-97.0, west=-98.0)
    locations = [_loc("in"), _loc("out", lat=40.0, lon=-75.0), _loc("none", lat=None, lon=None)]
    assert [loc.id for loc in in_bounds(locations, box)] == ["in"]


def test_matches_query_searches_name_address_and_city():
    loc = _loc("q", name="Old Library", address="12 Congress Ave", city="Austin")
    assert matches_query(loc, "library")
    assert matches_query(loc, "CONGRESS")
    assert matches_query(loc, "aus")
    assert matches_query(loc, "  ")
    assert not matches_query(loc, "dallas")
