"""Location API client."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional

import requests
from requests.utils import quote

from . import config
from .geo import Bounds
from .http import HttpClient
from .models import CitySummary, Location
from .sources import SourceError, parse_city_summaries_response, parse_locations_response

logger = logging.getLogger(__name__)


class ApiLocationSource:
    """Reads locations and city summaries over HTTP and forwards votes.

    Blocking requests run in a worker thread so a superseded fetch can be
    abandoned by the caller without stalling the event loop.
    """

    def __init__(self, http_client: HttpClient) -> None:
        self.http = http_client

    async def fetch_locations_in_viewport(
        self, bounds: Optional[Bounds], released_only: bool
    ) -> List[Location]:
        params = build_locations_params(bounds, released_only)
        response = await self._call(self.http.get_json, config.LOCATIONS_PATH, params)
        return parse_locations_response(response)

    async def fetch_all_city_summaries(
        self, released_only: bool, exclude_red_reject: bool = False
    ) -> List[CitySummary]:
        params = {
            "released_only": _flag(released_only),
            "exclude_red_reject": _flag(exclude_red_reject),
        }
        response = await self._call(self.http.get_json, config.CITY_SUMMARIES_PATH, params)
        return parse_city_summaries_response(response)

    async def cast_vote(self, location_id: str, delta: int, comment: Optional[str] = None) -> int:
        path = config.VOTE_PATH_TEMPLATE.format(location_id=quote(str(location_id), safe=""))
        # Vote deltas are not idempotent.
        response = await self._call(
            self.http.post_json, path, build_vote_body(delta, comment), False
        )
        return parse_vote_response(response)

    async def _call(self, fn, *args: Any) -> Any:
        try:
            return await asyncio.to_thread(fn, *args)
        except requests.RequestException as exc:
            logger.warning("Location API request failed: %s", exc)
            raise SourceError(f"Location API request failed: {exc}") from exc
        except ValueError as exc:
            raise SourceError(f"Location API returned an unreadable payload: {exc}") from exc


def _flag(value: bool) -> str:
    return "true" if value else "false"


def build_locations_params(bounds: Optional[Bounds], released_only: bool) -> Dict[str, Any]:
    params: Dict[str, Any] = {"released_only": _flag(released_only)}
    if bounds is not None:
        params.update(bounds.as_params())
    return params


def build_vote_body(delta: int, comment: Optional[str]) -> Dict[str, Any]:
    if delta not in (1, -1):
        raise ValueError(f"Vote delta must be +1 or -1, got {delta}")
    body: Dict[str, Any] = {"delta": delta}
    if comment:
        body["comment"] = comment
    return body


def parse_vote_response(response: Any) -> int:
    if isinstance(response, dict):
        count = response.get("votes", response.get("vote_count", response.get("newCount")))
    else:
        count = response
    if count is None:
        raise SourceError("Vote response did not include a vote count")
    try:
        return max(0, int(count))
    except (TypeError, ValueError) as exc:
        raise SourceError(f"Vote response count is not a number: {count!r}") from exc


def build_api_source(base_url: str, api_token: Optional[str] = None) -> ApiLocationSource:
    http_client = HttpClient(
        base_url,
        api_token=api_token,
        timeout=config.HTTP_TIMEOUT_SECONDS,
        retry_max=config.HTTP_RETRY_MAX,
        backoff_base=config.HTTP_BACKOFF_BASE,
        backoff_max=config.HTTP_BACKOFF_MAX,
    )
    return ApiLocationSource(http_client)
