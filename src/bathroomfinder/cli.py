"""
Bathroom Finder CLI entrypoint.

Useful for quick local demos and debugging without a web client:
- `list`: one-shot fetch + rank
- `watch`: live view that re-renders on every feed/location/filter change
- `add` / `comment`: user writes
- `serve`: run the HTTP API
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from typing import Any

from pydantic import ValidationError

from bathroomfinder.config.settings import Settings, get_settings
from bathroomfinder.core.logging import configure_logging
from bathroomfinder.domain.models import Bathroom, BathroomDraft, BathroomView, CommentDraft, Coordinate, FilterCriteria
from bathroomfinder.feed.base import FeedError
from bathroomfinder.feed.factory import build_feed
from bathroomfinder.feed.snapshot import parse_snapshot
from bathroomfinder.geolocation.providers import GeolocationError, build_location_provider
from bathroomfinder.ranking.context import build_context
from bathroomfinder.ranking.engine import rank_bathrooms
from bathroomfinder.submissions import SubmissionError, add_comment, submit_bathroom

logger = logging.getLogger(__name__)


def _criteria_from_args(args: argparse.Namespace) -> FilterCriteria:
    return FilterCriteria(
        wheelchair_access=bool(args.wheelchair),
        changing_tables=bool(args.changing_tables),
        gender_neutral=bool(args.gender_neutral),
        min_rating=float(args.min_rating),
        search_query=args.search or "",
    )


def _features(bathroom: Bathroom) -> str:
    labels = []
    if bathroom.has_wheelchair_access:
        labels.append("wheelchair")
    if bathroom.has_changing_tables:
        labels.append("changing tables")
    if bathroom.is_gender_neutral:
        labels.append("gender neutral")
    return ", ".join(labels)


def format_bathroom_line(index: int, bathroom: Bathroom) -> str:
    """Render one ranked bathroom as a single line."""
    distance = f"{bathroom.distance:.1f} mi" if bathroom.distance is not None else "-"
    rating = f"{bathroom.rating:.1f} ({bathroom.rating_count})" if bathroom.rating_count else "unrated"
    features = _features(bathroom)
    line = f"{index:>2}. {bathroom.name}  {distance}  rating={rating}"
    if features:
        line += f"  [{features}]"
    if bathroom.comments:
        line += f"  comments={len(bathroom.comments)}"
    return line


def _print_results(results: list[Bathroom]) -> None:
    if not results:
        print("No bathrooms found matching your criteria.")
        return
    for i, bathroom in enumerate(results, start=1):
        print(format_bathroom_line(i, bathroom))


def _print_view(view: BathroomView) -> None:
    if view.loading:
        print("Loading bathrooms...")
        return
    where = f"near ({view.location.lat:.4f}, {view.location.lng:.4f})" if view.location else "location unknown"
    print(f"--- {view.count} bathroom(s), {where} ---")
    _print_results(view.results)


def _location_from_args(args: argparse.Namespace) -> Coordinate | None:
    """Return the explicit `--lat/--lng` position, or None when neither is given."""
    if args.lat is None and args.lng is None:
        return None
    if args.lat is None or args.lng is None:
        raise ValueError("--lat and --lng must be given together")
    return Coordinate(lat=args.lat, lng=args.lng)


async def _resolve_location(settings: Settings, explicit: Coordinate | None) -> Coordinate | None:
    if explicit is not None:
        return explicit
    try:
        return await build_location_provider(settings).get_current_position()
    except GeolocationError:
        return None


async def _list(
    settings: Settings, args: argparse.Namespace, criteria: FilterCriteria, explicit: Coordinate | None
) -> list[Bathroom]:
    feed = build_feed(settings)
    try:
        raw = await feed.fetch(settings.feed.collection)
    except FeedError as e:
        logger.warning("Could not load bathrooms (%s); showing an empty list.", e)
        raw = None
    location = await _resolve_location(settings, explicit)
    search_mode = args.search_mode or settings.ranking.search_mode
    return rank_bathrooms(parse_snapshot(raw), location, criteria, search_mode=search_mode)


def _cmd_list(args: argparse.Namespace) -> int:
    settings = get_settings()
    try:
        criteria = _criteria_from_args(args)
    except ValidationError as e:
        print(f"Invalid filters: {e}", file=sys.stderr)
        return 2
    try:
        explicit = _location_from_args(args)
    except ValueError as e:
        # pydantic.ValidationError is a ValueError too.
        print(f"Invalid location: {e}", file=sys.stderr)
        return 2

    results = asyncio.run(_list(settings, args, criteria, explicit))
    if args.json:
        payload = [b.model_dump(mode="json", by_alias=True) for b in results]
        print(json.dumps(payload, ensure_ascii=False, indent=2))
        return 0
    _print_results(results)
    return 0


def _cmd_add(args: argparse.Namespace) -> int:
    settings = get_settings()
    try:
        draft = BathroomDraft(
            name=args.name,
            description=args.description,
            lat=args.lat,
            lng=args.lng,
            has_wheelchair_access=bool(args.wheelchair),
            has_changing_tables=bool(args.changing_tables),
            is_gender_neutral=bool(args.gender_neutral),
        )
    except ValidationError as e:
        print(f"Invalid bathroom: {e}", file=sys.stderr)
        return 2

    try:
        bathroom_id = asyncio.run(submit_bathroom(build_feed(settings), draft, collection=settings.feed.collection))
    except SubmissionError as e:
        print(str(e), file=sys.stderr)
        return 1
    print(bathroom_id)
    return 0


def _cmd_comment(args: argparse.Namespace) -> int:
    settings = get_settings()
    try:
        draft = CommentDraft(text=args.text)
    except ValidationError as e:
        print(f"Invalid comment: {e}", file=sys.stderr)
        return 2

    try:
        key = asyncio.run(
            add_comment(build_feed(settings), args.bathroom_id, draft, collection=settings.feed.collection)
        )
    except SubmissionError as e:
        print(str(e), file=sys.stderr)
        return 1
    print(key)
    return 0


async def _watch(settings: Settings, criteria: FilterCriteria) -> None:
    context = build_context(settings)
    context.set_filters(criteria)
    context.add_listener(_print_view)
    async with context:
        await asyncio.Event().wait()


def _cmd_watch(args: argparse.Namespace) -> int:
    settings = get_settings()
    try:
        criteria = _criteria_from_args(args)
    except ValidationError as e:
        print(f"Invalid filters: {e}", file=sys.stderr)
        return 2
    try:
        asyncio.run(_watch(settings, criteria))
    except KeyboardInterrupt:
        pass
    return 0


def _cmd_serve(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run("bathroomfinder.api.app:app", host=args.host, port=int(args.port), log_config=None)
    return 0


def _add_filter_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--wheelchair", action="store_true", help="Only wheelchair-accessible bathrooms")
    parser.add_argument("--changing-tables", dest="changing_tables", action="store_true")
    parser.add_argument("--gender-neutral", dest="gender_neutral", action="store_true")
    parser.add_argument("--min-rating", dest="min_rating", type=float, default=0.0, help="0..5 in 0.5 steps")
    parser.add_argument("--search", type=str, default="", help="Case-insensitive name/description match")


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the Bathroom Finder CLI."""
    parser = argparse.ArgumentParser(prog="bathroomfinder")
    parser.add_argument("--log-level", dest="log_level", default=None, help="Override app.log_level (e.g. DEBUG)")
    sub = parser.add_subparsers(dest="command", required=True)

    ls = sub.add_parser("list", help="Fetch the dataset once and print the ranked list.")
    _add_filter_args(ls)
    ls.add_argument("--lat", type=float, default=None, help="Your latitude (overrides the configured provider)")
    ls.add_argument("--lng", type=float, default=None, help="Your longitude (overrides the configured provider)")
    ls.add_argument("--search-mode", dest="search_mode", choices=["all", "search_overrides"], default=None)
    ls.add_argument("--json", action="store_true", help="Output machine-readable JSON")
    ls.set_defaults(func=_cmd_list)

    watch = sub.add_parser("watch", help="Live view; re-renders on every change (Ctrl-C to stop).")
    _add_filter_args(watch)
    watch.set_defaults(func=_cmd_watch)

    add = sub.add_parser("add", help="Submit a new bathroom.")
    add.add_argument("--name", required=True)
    add.add_argument("--description", required=True)
    add.add_argument("--lat", required=True, help="Latitude in decimal degrees")
    add.add_argument("--lng", required=True, help="Longitude in decimal degrees")
    add.add_argument("--wheelchair", action="store_true")
    add.add_argument("--changing-tables", dest="changing_tables", action="store_true")
    add.add_argument("--gender-neutral", dest="gender_neutral", action="store_true")
    add.set_defaults(func=_cmd_add)

    com = sub.add_parser("comment", help="Add an anonymous comment to a bathroom.")
    com.add_argument("bathroom_id")
    com.add_argument("text")
    com.set_defaults(func=_cmd_comment)

    srv = sub.add_parser("serve", help="Run the HTTP API with uvicorn.")
    srv.add_argument("--host", default="127.0.0.1")
    srv.add_argument("--port", type=int, default=8000)
    srv.set_defaults(func=_cmd_serve)
    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint callable used by `python -m bathroomfinder.cli`."""
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level)
    func: Any = getattr(args, "func")
    return int(func(args))


if __name__ == "__main__":
    raise SystemExit(main())
