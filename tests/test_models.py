import pytest

from sitevote.models import (
    OVERALL,
    PRICE,
    REGULATORY,
    FilterState,
    LocationStatus,
    ReleasedScope,
    ScoreColor,
    SizeClass,
    SortMode,
    Viewer,
    ViewerRole,
    normalize_category,
)


def test_normalize_category_accepts_zoning_alias():
    assert normalize_category("zoning") == REGULATORY
    assert normalize_category(" Price ") == PRICE
    with pytest.raises(ValueError):
        normalize_category("schools")


def test_score_color_parsing():
    assert ScoreColor.from_text("green") is ScoreColor.GREEN
    assert ScoreColor.from_text("") is ScoreColor.UNSCORED
    assert ScoreColor.from_text(None) is ScoreColor.UNSCORED
    with pytest.raises(ValueError):
        ScoreColor.from_text("PURPLE")


def test_size_class_parsing():
    assert SizeClass.from_text("RedReject") is SizeClass.RED_REJECT
    assert SizeClass.from_text("red_reject") is SizeClass.RED_REJECT
    assert SizeClass.from_text("micro2") is SizeClass.MICRO2
    assert SizeClass.from_text(None) is SizeClass.UNCLASSIFIED
    with pytest.raises(ValueError):
        SizeClass.from_text("HUGE")


def test_status_role_scope_and_sort_parsing():
    assert LocationStatus.from_text("PENDING_REVIEW") is LocationStatus.PENDING
    assert LocationStatus.from_text("Active") is LocationStatus.ACTIVE
    assert ViewerRole.from_text("non-admin") is ViewerRole.NONADMIN
    assert ReleasedScope.from_text("Released") is ReleasedScope.RELEASED
    assert SortMode.from_text("most-viable") is SortMode.MOST_VIABLE
    with pytest.raises(ValueError):
        LocationStatus.from_text("archived")


def test_released_scope_matches():
    assert ReleasedScope.ALL.matches(True) and ReleasedScope.ALL.matches(False)
    assert ReleasedScope.RELEASED.matches(True)
    assert not ReleasedScope.RELEASED.matches(False)
    assert ReleasedScope.UNRELEASED.matches(False)
    assert not ReleasedScope.UNRELEASED.matches(True)


def test_filter_state_defaults_hide_red_reject_sizes():
    state = FilterState.default()
    assert SizeClass.RED_REJECT not in state.sizes
    assert SizeClass.FLAGSHIP in state.sizes
    assert state.colors[OVERALL] == frozenset(ScoreColor)


def test_filter_state_with_colors_and_key():
    base = FilterState.default()
    narrowed = base.with_colors("zoning", [ScoreColor.GREEN])
    assert narrowed.colors[REGULATORY] == frozenset({ScoreColor.GREEN})
    assert base.colors[REGULATORY] == frozenset(ScoreColor)
    assert narrowed.key() != base.key()
    assert base.with_colors("zoning", [ScoreColor.GREEN]).key() == narrowed.key()


def test_viewer_view_as_public_only_demotes_admins():
    assert Viewer(ViewerRole.ADMIN).is_admin
    assert not Viewer(ViewerRole.ADMIN, view_as_public=True).is_admin
    assert Viewer(ViewerRole.NONADMIN, view_as_public=True).effective_role is ViewerRole.NONADMIN
