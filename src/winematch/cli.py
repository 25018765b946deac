"""
WineMatch CLI entrypoint.

This CLI is intended for quick local demos and debugging without the web app.
It delegates all recommendation logic to `winematch.recommender.recommend.recommend`.
"""

from __future__ import annotations

import argparse
import json
from typing import Any

from winematch.config.settings import get_settings
from winematch.core.logging import configure_logging
from winematch.domain.models import RecommendationRequest
from winematch.recommender.recommend import build_sources, load_profile, recommend
from winematch.scoring.explain import one_line_summary, profile_summary


def _cmd_profile(args: argparse.Namespace) -> int:
    """Handle the `profile` subcommand."""
    settings = get_settings()
    rating_source, _ = build_sources(settings)
    profile = load_profile(args.user, rating_source=rating_source)

    if args.json:
        print(json.dumps(profile.model_dump(mode="json"), ensure_ascii=False, indent=2))
        return 0

    print(f"Taste profile for {args.user}:")
    for line in profile_summary(profile, top=int(args.top)):
        print(f"  {line}")
    return 0


def _cmd_recommend(args: argparse.Namespace) -> int:
    """Handle the `recommend` subcommand."""
    settings = get_settings()
    rating_source, candidate_source = build_sources(settings)

    if args.event:
        scope = "event"
    elif args.catalog:
        scope = "catalog"
    else:
        scope = "all"

    request = RecommendationRequest(
        user_id=args.user,
        scope=scope,
        event_id=args.event,
        exclude_rated=not args.include_rated,
        limit=int(args.limit) if args.limit is not None else None,
    )
    result = recommend(
        request,
        rating_source=rating_source,
        candidate_source=candidate_source,
        settings=settings,
    )

    if args.json:
        print(json.dumps(result.model_dump(mode="json"), ensure_ascii=False, indent=2))
        return 0

    print(f"Generated at: {result.generated_at.isoformat()}")
    if result.meta.get("cold_start"):
        print("(few ratings yet: showing wines to explore)")
    print("Top results:")
    for i, rec in enumerate(result.results, start=1):
        title = " ".join(p for p in [rec.producer, rec.wine_name, rec.vintage] if p) or rec.wine_id
        print(f"{i:>2}. {title} [{rec.wine_type or '?'}]  {one_line_summary(rec)}")
        for reason in rec.match_reasons:
            print(f"    - {reason}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the WineMatch CLI."""
    parser = argparse.ArgumentParser(prog="winematch")
    sub = parser.add_subparsers(dest="command", required=True)

    prof = sub.add_parser("profile", help="Show a user's taste profile.")
    prof.add_argument("--user", required=True)
    prof.add_argument("--top", type=int, default=3, help="Entries to show per dimension.")
    prof.add_argument("--json", action="store_true", help="Output machine-readable JSON")
    prof.set_defaults(func=_cmd_profile)

    rec = sub.add_parser("recommend", help="Recommend wines for a user.")
    rec.add_argument("--user", required=True)
    where = rec.add_mutually_exclusive_group()
    where.add_argument("--event", type=str, default=None, help="Only wines poured at this event")
    where.add_argument("--catalog", action="store_true", help="Only wines from the master catalog")
    where.add_argument("--all", action="store_true", help="Event wines and the catalog (default)")
    rec.add_argument("--limit", type=int, default=None)
    rec.add_argument("--include-rated", action="store_true", help="Keep wines the user already rated")
    rec.add_argument("--json", action="store_true", help="Output machine-readable JSON")
    rec.set_defaults(func=_cmd_recommend)
    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint callable used by `python -m winematch.cli`."""
    configure_logging()
    parser = build_parser()
    args = parser.parse_args(argv)
    func: Any = getattr(args, "func")
    return int(func(args))


if __name__ == "__main__":
    raise SystemExit(main())
