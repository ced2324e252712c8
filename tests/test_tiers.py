import math

import pytest

from sitevote.models import Tier, Viewport
from sitevote.tiers import TierSelector, select_tier


def test_select_tier_threshold_is_inclusive():
    assert select_tier(9.0) is Tier.LOCATION
    assert select_tier(8.999) is Tier.CITY
    assert select_tier(0) is Tier.CITY
    assert select_tier(18) is Tier.LOCATION


def test_select_tier_custom_threshold():
    assert select_tier(7.0, threshold=7.0) is Tier.LOCATION
    assert select_tier(6.5, threshold=7.0) is Tier.CITY


def test_select_tier_rejects_nan():
    with pytest.raises(ValueError):
        select_tier(math.nan)


def test_selector_is_unresolved_until_first_viewport():
    selector = TierSelector()
    assert not selector.resolved
    decision = selector.observe(Viewport.around(39.8, -98.6, 4))
    assert selector.resolved
    assert decision.tier is Tier.CITY
    assert decision.changed
    assert decision.should_fetch
    assert decision.fetch_bounds is None


def test_city_tier_does_not_refetch_on_pan_or_zoom():
    selector = TierSelector()
    selector.observe(Viewport.around(39.8, -98.6, 4))
    decision = selector.observe(Viewport.around(35.0, -90.0, 6))
    assert decision.tier is Tier.CITY
    assert not decision.should_fetch


def test_location_tier_fetches_for_new_bounds_only():
    selector = TierSelector()
    selector.observe(Viewport.around(39.8, -98.6, 4))

    entered = selector.observe(Viewport.around(30.2672, -97.7431, 12))
    assert entered.tier is Tier.LOCATION
    assert entered.changed
    assert entered.should_fetch
    assert entered.fetch_bounds == Viewport.around(30.2672, -97.7431, 12).bounds

    same = selector.observe(Viewport.around(30.2672, -97.7431, 12))
    assert not same.should_fetch

    panned = selector.observe(Viewport.around(30.30, -97.70, 12))
    assert panned.should_fetch
    assert not panned.changed


def test_leaving_location_tier_fetches_city_data_again():
    selector = TierSelector()
    selector.observe(Viewport.around(30.2672, -97.7431, 12))
    decision = selector.observe(Viewport.around(30.2672, -97.7431, 8))
    assert decision.tier is Tier.CITY
    assert decision.changed
    assert decision.should_fetch


def test_failed_fetch_forces_refetch_within_city_tier():
    selector = TierSelector()
    selector.observe(Viewport.around(39.8, -98.6, 4))
    selector.mark_failed()

    retry = selector.observe(Viewport.around(38.0, -96.0, 5))
    assert retry.should_fetch
    assert retry.fetch_bounds is None

    selector.mark_applied()
    assert not selector.observe(Viewport.around(37.0, -95.0, 5)).should_fetch


def test_failed_fetch_forces_refetch_of_same_location_bounds():
    selector = TierSelector()
    selector.observe(Viewport.around(30.2672, -97.7431, 12))
    selector.mark_failed()
    assert selector.observe(Viewport.around(30.2672, -97.7431, 12)).should_fetch
