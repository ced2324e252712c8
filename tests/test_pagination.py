import pytest

from sitevote import config
from sitevote.pagination import Paginator


def test_thirty_items_show_twenty_five_then_all():
    pages = Paginator(25)
    pages.update(list(range(30)), reset_key="k")

    assert pages.counter_text == "Showing 25 of 30 locations"
    assert pages.visible == list(range(25))
    assert pages.has_next

    assert pages.next_page()
    assert pages.counter_text == "Showing 30 of 30 locations"
    assert pages.visible == list(range(30))
    assert not pages.has_next
    assert not pages.next_page()
    assert pages.shown == 30


def test_next_page_appends_without_dropping_earlier_items():
    pages = Paginator(2)
    pages.update(["a", "b", "c", "d", "e"], reset_key=1)
    first = pages.visible
    pages.next_page()
    assert pages.visible[: len(first)] == first
    assert pages.shown == 4
    assert pages.pages_loaded == 2


def test_new_reset_key_returns_to_first_page():
    pages = Paginator(2)
    pages.update(["a", "b", "c", "d"], reset_key="first")
    pages.next_page()
    pages.update(["a", "b", "c", "d"], reset_key="first")
    assert pages.shown == 4

    pages.update(["x", "y", "z"], reset_key="second")
    assert pages.shown == 2
    assert pages.visible == ["x", "y"]


def test_shrinking_list_clamps_shown():
    pages = Paginator(2)
    pages.update(list(range(6)), reset_key=0)
    pages.next_page()
    pages.update(list(range(3)), reset_key=0)
    assert pages.shown == 3
    assert not pages.has_next


def test_empty_list_and_custom_noun():
    pages = Paginator(10, noun="cities")
    pages.update([], reset_key=None)
    assert pages.counter_text == "Showing 0 of 0 cities"
    assert not pages.has_next


def test_page_size_defaults_to_config_and_rejects_non_positive(monkeypatch):
    monkeypatch.setattr(config, "PAGE_SIZE", 7)
    assert Paginator().page_size == 7
    with pytest.raises(ValueError):
        Paginator(0)
