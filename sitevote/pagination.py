"""Append-style pagination over a ranked list."""
from __future__ import annotations

from typing import Any, Generic, Hashable, List, Optional, Sequence, TypeVar

from . import config

T = TypeVar("T")


class Paginator(Generic[T]):
    """Shows a growing prefix of a ranked list.

    ``next_page`` extends the shown window by one page instead of replacing
    it. Handing in a list under a different ``reset_key`` starts over at the
    first page.
    """

    def __init__(self, page_size: Optional[int] = None, noun: str = "locations") -> None:
        size = config.PAGE_SIZE if page_size is None else page_size
        if size <= 0:
            raise ValueError(f"page_size must be positive, got {size}")
        self.page_size = int(size)
        self.noun = noun
        self._items: List[T] = []
        self._pages_loaded = 1
        self._reset_key: Any = None

    def update(self, items: Sequence[T], reset_key: Hashable = None) -> None:
        self._items = list(items)
        if reset_key != self._reset_key:
            self._reset_key = reset_key
            self._pages_loaded = 1

    @property
    def total(self) -> int:
        return len(self._items)

    @property
    def shown(self) -> int:
        return min(self.total, self._pages_loaded * self.page_size)

    @property
    def visible(self) -> List[T]:
        return self._items[: self.shown]

    @property
    def has_next(self) -> bool:
        return self.shown < self.total

    @property
    def pages_loaded(self) -> int:
        return self._pages_loaded

    def next_page(self) -> bool:
        if not self.has_next:
            return False
        self._pages_loaded += 1
        return True

    @property
    def counter_text(self) -> str:
        return f"Showing {self.shown} of {self.total} {self.noun}"
