"""Map session orchestration.

Ties the engine stages together for one viewer:

  viewport change -> tier decision -> (generation-tagged) fetch
    CITY:     visibility filter -> metro consolidation -> bubble ranking
    LOCATION: visibility filter -> bounds scoping -> location ranking
  -> paginator -> RenderFrame

Fetch results are applied only if no newer fetch was issued in the
meantime (last viewport wins). Failed fetches keep the previously applied
data on screen and surface an error on the frame instead.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional, Sequence, Set

from . import config
from .geo import Bounds
from .metros import (
    Metro,
    bubble_fly_to,
    consolidate_city_summaries,
    consolidate_locations,
    default_gazetteer,
    dominant_city,
)
from .models import (
    CityBubble,
    CitySummary,
    FilterState,
    Location,
    SortMode,
    Tier,
    Viewer,
    ViewerRole,
    Viewport,
)
from .pagination import Paginator
from .ranking import rank_city_bubbles, rank_locations
from .sources import LocationSource, VoteSink
from .tiers import TierSelector
from .visibility import filter_visible, in_bounds, matches_query

logger = logging.getLogger(__name__)


class VoteError(RuntimeError):
    pass


@dataclass
class SessionMetrics:
    fetches_issued: int = 0
    fetches_applied: int = 0
    stale_discards: int = 0
    fetch_failures: int = 0
    votes_cast: int = 0
    vote_rollbacks: int = 0


@dataclass(frozen=True)
class FetchRequest:
    generation: int
    tier: Tier
    viewport: Viewport
    bounds: Optional[Bounds]
    released_only: bool
    use_summaries: bool


@dataclass(frozen=True)
class RenderFrame:
    tier: Optional[Tier]
    items: List[Any] = field(default_factory=list)
    shown: int = 0
    total: int = 0
    has_next: bool = False
    counter_text: str = ""
    error: Optional[str] = None
    loading: bool = False
    metro_name: Optional[str] = None
    generation: int = 0


class MapSession:
    def __init__(
        self,
        source: LocationSource,
        viewer: Optional[Viewer] = None,
        filter_state: Optional[FilterState] = None,
        gazetteer: Optional[Sequence[Metro]] = None,
        vote_sink: Optional[VoteSink] = None,
        page_size: Optional[int] = None,
        zoom_threshold: Optional[float] = None,
        city_tier_source: Optional[str] = None,
        exclude_red_reject: Optional[bool] = None,
        sort_mode: SortMode = SortMode.MOST_SUPPORT,
    ) -> None:
        if vote_sink is None and hasattr(source, "cast_vote"):
            vote_sink = source
        self.source = source
        self.vote_sink = vote_sink
        self.viewer = viewer or Viewer()
        self.filter_state = filter_state or FilterState.default()
        self.gazetteer = list(gazetteer) if gazetteer is not None else default_gazetteer()
        self.city_tier_source = city_tier_source or config.CITY_TIER_SOURCE
        self.exclude_red_reject = exclude_red_reject
        self.sort_mode = sort_mode
        self.query = ""
        self.tiers = TierSelector(zoom_threshold)
        self.metrics = SessionMetrics()
        self.city_pages: Paginator[CityBubble] = Paginator(page_size, noun="cities")
        self.location_pages: Paginator[Location] = Paginator(page_size, noun="locations")

        self._generation = 0
        self._pending: Optional[int] = None
        self._applied: Optional[FetchRequest] = None
        self._locations: Dict[str, Location] = {}
        self._summaries: List[CitySummary] = []
        self._voted_ids: Set[str] = set()
        self._error: Optional[str] = None
        self._metro_name: Optional[str] = None

    # --- viewport and fetch ---

    @property
    def viewport(self) -> Optional[Viewport]:
        return self.tiers.viewport

    async def update_viewport(self, viewport: Viewport) -> RenderFrame:
        decision = self.tiers.observe(viewport)
        if not decision.should_fetch:
            return self.frame()
        return await self._fetch_and_apply(decision.tier, viewport, decision.fetch_bounds)

    async def refresh(self) -> RenderFrame:
        """Refetch the current viewport, e.g. after the viewer's role changed."""
        viewport = self.tiers.viewport
        if viewport is None or self.tiers.tier is None:
            return self.frame()
        bounds = viewport.bounds if self.tiers.tier is Tier.LOCATION else None
        return await self._fetch_and_apply(self.tiers.tier, viewport, bounds)

    async def fly_to_bubble(self, bubble: CityBubble) -> RenderFrame:
        return await self.update_viewport(bubble_fly_to(bubble))

    def _next_request(self, tier: Tier, viewport: Viewport, bounds: Optional[Bounds]) -> FetchRequest:
        self._generation += 1
        use_summaries = (
            tier is Tier.CITY
            and self.city_tier_source == "summaries"
            and not self.viewer.is_admin
        )
        return FetchRequest(
            generation=self._generation,
            tier=tier,
            viewport=viewport,
            bounds=bounds,
            released_only=not self.viewer.is_admin,
            use_summaries=use_summaries,
        )

    async def _fetch_and_apply(
        self, tier: Tier, viewport: Viewport, bounds: Optional[Bounds]
    ) -> RenderFrame:
        request = self._next_request(tier, viewport, bounds)
        self._pending = request.generation
        self.metrics.fetches_issued += 1
        try:
            if request.use_summaries:
                payload: Any = await self.source.fetch_all_city_summaries(
                    request.released_only, self._public_excludes_red_reject()
                )
            else:
                payload = await self.source.fetch_locations_in_viewport(
                    request.bounds, request.released_only
                )
        except asyncio.CancelledError:
            if self._pending == request.generation:
                self._pending = None
            raise
        except Exception as exc:
            if not self._is_current(request):
                return self.frame()
            self._pending = None
            self.tiers.mark_failed()
            self._error = f"Failed to load {request.tier.value} data: {exc}"
            self.metrics.fetch_failures += 1
            logger.warning("Fetch %s failed: %s", request.generation, exc)
            return self.frame()

        if not self._is_current(request):
            return self.frame()

        self._pending = None
        self.tiers.mark_applied()
        self._error = None
        self._applied = request
        if request.use_summaries:
            self._summaries = list(payload)
            self._locations = {}
        else:
            self._locations = {loc.id: loc for loc in payload}
            self._summaries = []
        self.metrics.fetches_applied += 1
        self._recompute()
        return self.frame()

    def _public_excludes_red_reject(self) -> bool:
        if self.exclude_red_reject is None:
            return config.EXCLUDE_RED_REJECT_FOR_PUBLIC
        return self.exclude_red_reject

    def _is_current(self, request: FetchRequest) -> bool:
        if request.generation == self._generation:
            return True
        self.metrics.stale_discards += 1
        logger.debug(
            "Discarding stale fetch %s (current %s)", request.generation, self._generation
        )
        return False

    # --- local controls ---

    def set_filter(self, filter_state: FilterState) -> RenderFrame:
        self.filter_state = filter_state
        self._recompute()
        return self.frame()

    def set_sort_mode(self, mode: SortMode) -> RenderFrame:
        self.sort_mode = mode
        self._recompute()
        return self.frame()

    def set_query(self, query: str) -> RenderFrame:
        self.query = query or ""
        self._recompute()
        return self.frame()

    async def set_view_as_public(self, enabled: bool) -> RenderFrame:
        if self.viewer.role is not ViewerRole.ADMIN:
            return self.frame()
        self.viewer = replace(self.viewer, view_as_public=enabled)
        # Data fetched for the public view lacks unreleased rows.
        return await self.refresh()

    def next_page(self) -> RenderFrame:
        pages = self._active_pages()
        if pages is not None:
            pages.next_page()
        return self.frame()

    # --- votes ---

    def has_voted(self, location_id: str) -> bool:
        return location_id in self._voted_ids

    async def vote(self, location_id: str, delta: int, comment: Optional[str] = None) -> int:
        if delta not in (1, -1):
            raise ValueError(f"Vote delta must be +1 or -1, got {delta}")
        if self.vote_sink is None:
            raise VoteError("No vote sink configured for this session")

        already = location_id in self._voted_ids
        current = self._locations.get(location_id)
        if (delta == 1 and already) or (delta == -1 and not already):
            return current.vote_count if current is not None else 0

        previous_count = current.vote_count if current is not None else None
        if current is not None:
            self._set_vote_count(location_id, previous_count + delta)
        optimistic_row = self._locations.get(location_id)
        if delta == 1:
            self._voted_ids.add(location_id)
        else:
            self._voted_ids.discard(location_id)
        self._recompute()

        try:
            new_count = await self.vote_sink.cast_vote(location_id, delta, comment)
        except Exception as exc:
            # A newer fetch may have replaced the row while the vote was in flight.
            if optimistic_row is not None and self._locations.get(location_id) is optimistic_row:
                self._set_vote_count(location_id, previous_count)
            if delta == 1:
                self._voted_ids.discard(location_id)
            else:
                self._voted_ids.add(location_id)
            self.metrics.vote_rollbacks += 1
            self._recompute()
            logger.warning("Vote on %s failed, rolled back: %s", location_id, exc)
            raise VoteError(f"Vote on {location_id} failed: {exc}") from exc

        self.metrics.votes_cast += 1
        self._set_vote_count(location_id, new_count)
        self._recompute()
        return new_count

    def _set_vote_count(self, location_id: str, count: int) -> None:
        loc = self._locations.get(location_id)
        if loc is None:
            return
        self._locations[location_id] = replace(loc, vote_count=max(0, count))

    # --- pipeline ---

    def _active_pages(self) -> Optional[Paginator]:
        if self._applied is None:
            return None
        return self.city_pages if self._applied.tier is Tier.CITY else self.location_pages

    def _recompute(self) -> None:
        request = self._applied
        if request is None:
            return
        role = self.viewer.effective_role
        if request.tier is Tier.CITY:
            if request.use_summaries:
                bubbles = consolidate_city_summaries(self._summaries, self.gazetteer)
            else:
                visible = filter_visible(
                    self._locations.values(),
                    role,
                    self.filter_state,
                    exclude_red_reject=self.exclude_red_reject,
                )
                bubbles = consolidate_locations(visible, self.gazetteer)
            reset_key = (request.generation, role, self.filter_state.key())
            self.city_pages.update(rank_city_bubbles(bubbles), reset_key)
            self._metro_name = None
            return

        viewport = request.viewport
        visible = filter_visible(
            self._locations.values(),
            role,
            self.filter_state,
            exclude_red_reject=self.exclude_red_reject,
        )
        scoped = in_bounds(visible, viewport.bounds)
        if self.query.strip():
            scoped = [loc for loc in scoped if matches_query(loc, self.query)]
        ranked = rank_locations(scoped, viewport.center_lat, viewport.center_lon, self.sort_mode)
        reset_key = (
            request.generation,
            role,
            self.filter_state.key(),
            self.sort_mode,
            self.query.strip().lower(),
        )
        self.location_pages.update(ranked, reset_key)
        self._metro_name = dominant_city(scoped)

    def frame(self) -> RenderFrame:
        pages = self._active_pages()
        if pages is None:
            return RenderFrame(
                tier=None,
                error=self._error,
                loading=self._pending is not None,
            )
        return RenderFrame(
            tier=self._applied.tier,
            items=pages.visible,
            shown=pages.shown,
            total=pages.total,
            has_next=pages.has_next,
            counter_text=pages.counter_text,
            error=self._error,
            loading=self._pending is not None,
            metro_name=self._metro_name,
            generation=self._applied.generation,
        )


class ViewportDebouncer:
    """Trailing-edge debounce for viewport events.

    Each ``submit`` cancels the previous pending update, so only the last
    viewport of a burst reaches the session.
    """

    def __init__(self, session: MapSession, delay: Optional[float] = None) -> None:
        self.session = session
        self.delay = config.VIEWPORT_DEBOUNCE_SECONDS if delay is None else delay
        self._task: Optional[asyncio.Task] = None

    def submit(self, viewport: Viewport) -> asyncio.Task:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = asyncio.ensure_future(self._run(viewport))
        return self._task

    async def _run(self, viewport: Viewport) -> RenderFrame:
        await asyncio.sleep(self.delay)
        return await self.session.update_viewport(viewport)

    async def flush(self) -> Optional[RenderFrame]:
        if self._task is None:
            return None
        return await self._task
