"""CLI entrypoint."""
from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv

from sitevote import config
from sitevote.locations_client import build_api_source
from sitevote.metros import default_gazetteer, validate_gazetteer
from sitevote.models import (
    FilterState,
    ReleasedScope,
    ScoreColor,
    SizeClass,
    SortMode,
    Viewer,
    ViewerRole,
    Viewport,
)
from sitevote.reporting import (
    build_page_rows,
    ensure_dir,
    render_frame_summary,
    write_json_object,
    write_page_csv,
    write_page_json,
    write_summary,
)
from sitevote.session import MapSession, RenderFrame
from sitevote.sources import LocationSource, SourceError, StaticLocationSource


def _repo_root() -> Path:
    return Path(__file__).resolve().parent


def load_env(path: str = ".env", root_dir: Optional[Path] = None) -> None:
    """Load a repo-root .env file without overriding real env vars."""
    root = Path(root_dir) if root_dir else _repo_root()
    env_path = (root / path).resolve()
    if not env_path.exists():
        return
    load_dotenv(dotenv_path=env_path, override=False)


def parse_color_filters(text: Optional[str], base: FilterState) -> FilterState:
    """Parse "Overall=GREEN,YELLOW;Price=GREEN" into per-category color sets."""
    state = base
    if not text:
        return state
    for clause in text.split(";"):
        clause = clause.strip()
        if not clause:
            continue
        if "=" not in clause:
            raise ValueError(f"Color filter must look like Category=COLOR[,COLOR]: {clause!r}")
        category, colors = clause.split("=", 1)
        accepted = [ScoreColor.from_text(c) for c in colors.split(",") if c.strip()]
        state = state.with_colors(category, accepted)
    return state


def build_filter_state(args: argparse.Namespace) -> FilterState:
    state = FilterState.default()
    state = parse_color_filters(args.colors, state)
    if args.sizes:
        sizes = frozenset(SizeClass.from_text(s) for s in args.sizes.split(",") if s.strip())
        state = FilterState(colors=state.colors, sizes=sizes, released_scope=state.released_scope)
    if args.released_scope:
        state = FilterState(
            colors=state.colors,
            sizes=state.sizes,
            released_scope=ReleasedScope.from_text(args.released_scope),
        )
    return state


def build_source(args: argparse.Namespace) -> LocationSource:
    if args.locations:
        return StaticLocationSource.from_json_file(args.locations)
    base_url = (os.environ.get(config.API_URL_ENV) or "").strip()
    if not base_url:
        raise SourceError(f"Provide --locations or set {config.API_URL_ENV}")
    token = (os.environ.get(config.API_TOKEN_ENV) or "").strip() or None
    return build_api_source(base_url, token)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Rank candidate school sites for a map viewport")
    group = parser.add_mutually_exclusive_group()
    group.add_argument("--preflight", action="store_true", help="Run offline checks only")
    group.add_argument(
        "--preflight-online",
        action="store_true",
        help="Run offline checks + one nationwide fetch from the location source",
    )
    parser.add_argument("--config", type=str, default=None, help="Path to engine_config.json")
    parser.add_argument("--locations", type=str, default=None, help="JSON file of locations")
    parser.add_argument("--lat", type=float, default=39.8283, help="Viewport center latitude")
    parser.add_argument("--lon", type=float, default=-98.5795, help="Viewport center longitude")
    parser.add_argument("--zoom", type=float, default=4.0, help="Map zoom level")
    parser.add_argument("--role", choices=["admin", "nonadmin"], default="nonadmin")
    parser.add_argument(
        "--view-as-public",
        action="store_true",
        help="Admin only: show what a non-admin would see",
    )
    parser.add_argument(
        "--colors",
        type=str,
        default=None,
        help='Admin color filters, e.g. "Overall=GREEN,YELLOW;Price=GREEN"',
    )
    parser.add_argument("--sizes", type=str, default=None, help="Admin accepted size classes")
    parser.add_argument(
        "--released-scope",
        choices=["all", "released", "unreleased"],
        default=None,
        help="Admin released-scope selector (default: all)",
    )
    parser.add_argument(
        "--sort",
        choices=[m.value for m in SortMode],
        default=SortMode.MOST_SUPPORT.value,
    )
    parser.add_argument("--query", type=str, default="", help="Free-text search over locations")
    parser.add_argument("--pages", type=int, default=0, help="Number of Next operations to apply")
    parser.add_argument("--out", type=str, default=config.OUTPUT_DIR)
    parser.add_argument("--no-write", action="store_true", help="Print only; skip output files")
    return parser.parse_args(argv)


def build_frame_meta(frame: RenderFrame, session: MapSession) -> Dict[str, Any]:
    metrics = session.metrics
    return {
        "tier": frame.tier.value if frame.tier is not None else None,
        "counter_text": frame.counter_text,
        "shown": frame.shown,
        "total": frame.total,
        "has_next": frame.has_next,
        "metro_name": frame.metro_name,
        "error": frame.error,
        "generation": frame.generation,
        "viewer_role": session.viewer.effective_role.value,
        "metrics": {
            "fetches_issued": metrics.fetches_issued,
            "fetches_applied": metrics.fetches_applied,
            "stale_discards": metrics.stale_discards,
            "fetch_failures": metrics.fetch_failures,
        },
    }


def run_preflight(args: argparse.Namespace, online: bool) -> int:
    ok = True

    try:
        metros = default_gazetteer()
        validate_gazetteer(metros)
        print(f"Gazetteer: OK ({len(metros)} metros)")
    except ValueError as exc:
        print(f"Gazetteer: FAIL ({exc})")
        ok = False

    print(
        "Engine: page_size={page_size}, metro_radius_miles={radius}, zoom_threshold={zoom}, "
        "exclude_red_reject_for_public={red}".format(
            page_size=config.PAGE_SIZE,
            radius=config.METRO_RADIUS_MILES,
            zoom=config.ZOOM_THRESHOLD,
            red=config.EXCLUDE_RED_REJECT_FOR_PUBLIC,
        )
    )

    if online:
        try:
            source = build_source(args)
            rows = asyncio.run(source.fetch_locations_in_viewport(None, True))
            print(f"Location source: OK ({len(rows)} released locations)")
        except Exception as exc:
            print(f"Location source: FAIL ({exc})")
            ok = False

    print("Preflight: PASS" if ok else "Preflight: FAIL")
    return 0 if ok else 1


async def run_session(args: argparse.Namespace, source: LocationSource) -> MapSession:
    viewer = Viewer(role=ViewerRole.from_text(args.role), view_as_public=args.view_as_public)
    session = MapSession(
        source,
        viewer=viewer,
        filter_state=build_filter_state(args),
        sort_mode=SortMode.from_text(args.sort),
    )
    if args.query:
        session.set_query(args.query)
    await session.update_viewport(Viewport.around(args.lat, args.lon, args.zoom))
    for _ in range(max(0, args.pages)):
        session.next_page()
    return session


def main(argv: Optional[List[str]] = None) -> int:
    load_env()
    args = parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    try:
        config.load_engine_config(args.config)
    except (OSError, ValueError) as exc:
        print(f"Config error: {exc}", file=sys.stderr)
        return 1

    if args.preflight or args.preflight_online:
        return run_preflight(args, online=args.preflight_online)

    try:
        source = build_source(args)
        session = asyncio.run(run_session(args, source))
    except (SourceError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    frame = session.frame()
    lines = render_frame_summary(frame, session.metrics)
    for line in lines:
        print(line)

    if not args.no_write:
        ensure_dir(args.out)
        rows = build_page_rows(frame.tier, frame.items)
        write_page_json(os.path.join(args.out, "page.json"), rows)
        write_page_csv(os.path.join(args.out, "page.csv"), frame.tier, rows)
        write_summary(os.path.join(args.out, "summary.txt"), lines)
        write_json_object(os.path.join(args.out, "frame.json"), build_frame_meta(frame, session))
        print(f"Done. Page written to {args.out}/page.csv and {args.out}/page.json")

    return 1 if frame.error else 0


if __name__ == "__main__":
    raise SystemExit(main())
