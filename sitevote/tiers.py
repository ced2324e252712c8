"""Zoom-driven choice between city bubbles and individual locations."""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional

from . import config
from .geo import Bounds
from .models import Tier, Viewport


def select_tier(zoom: float, threshold: Optional[float] = None) -> Tier:
    limit = config.ZOOM_THRESHOLD if threshold is None else threshold
    if zoom is None or math.isnan(zoom):
        raise ValueError(f"Invalid zoom level: {zoom!r}")
    return Tier.LOCATION if zoom >= limit else Tier.CITY


@dataclass(frozen=True)
class TierDecision:
    tier: Tier
    changed: bool
    should_fetch: bool
    # None means an unscoped (nationwide) fetch.
    fetch_bounds: Optional[Bounds]


class TierSelector:
    """Tracks the active tier across viewport changes.

    Stays unresolved until the first viewport arrives, so the initial tier
    comes from that viewport rather than from a hardcoded default.
    """

    def __init__(self, threshold: Optional[float] = None) -> None:
        self.threshold = threshold
        self.tier: Optional[Tier] = None
        self.viewport: Optional[Viewport] = None
        # Set while the last fetch for the current tier failed.
        self.needs_fetch = False

    @property
    def resolved(self) -> bool:
        return self.tier is not None

    def mark_failed(self) -> None:
        self.needs_fetch = True

    def mark_applied(self) -> None:
        self.needs_fetch = False

    def observe(self, viewport: Viewport) -> TierDecision:
        tier = select_tier(viewport.zoom, self.threshold)
        previous_tier = self.tier
        previous_viewport = self.viewport
        self.tier = tier
        self.viewport = viewport

        changed = previous_tier is not tier
        if tier is Tier.CITY:
            return TierDecision(
                tier=tier,
                changed=changed,
                should_fetch=changed or self.needs_fetch,
                fetch_bounds=None,
            )

        moved = previous_viewport is None or previous_viewport.bounds != viewport.bounds
        return TierDecision(
            tier=tier,
            changed=changed,
            should_fetch=changed or moved or self.needs_fetch,
            fetch_bounds=viewport.bounds,
        )
