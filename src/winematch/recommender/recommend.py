from __future__ import annotations

# This module is the "orchestrator" for the recommendation pipeline.
# It wires together:
# - feeds (rating source + candidate source)
# - the profile builder (ratings -> TasteProfile)
# - candidate scoring (TasteProfile + candidate -> score + reasons)
# - final ranking (RecommendationResult)
#
# `rank` and `get_recommendations` are pure; `recommend` is the request-level entrypoint
# used by the API and CLI and is the only place feeds are called.

import logging
import time
from datetime import datetime
from typing import Iterable
from zoneinfo import ZoneInfo

from winematch.catalog.loader import load_store
from winematch.config.overrides import apply_settings_overrides
from winematch.config.settings import Settings, get_settings
from winematch.core.cache import ProfileCache
from winematch.domain.models import (
    RatingSubmission,
    RecommendationRequest,
    RecommendationResult,
    TasteProfile,
    WineCandidate,
    WineRecommendation,
)
from winematch.profile.builder import build_taste_profile
from winematch.scoring.match import score_candidate_signals
from winematch.sources.base import CandidateSource, RatingSource, RatingWriter, SourceError
from winematch.sources.supabase import SupabaseSource

logger = logging.getLogger(__name__)


def build_sources(settings: Settings) -> tuple[RatingSource, CandidateSource]:
    """Construct the configured feeds (one object serves both for every backend)."""
    if settings.sources.backend == "supabase":
        source = SupabaseSource(settings)
        return source, source
    store = load_store(settings)
    return store, store


def build_profile_cache(settings: Settings) -> ProfileCache:
    return ProfileCache(enabled=settings.cache.enabled, ttl_seconds=settings.cache.profile_ttl_seconds)


def filter_candidates(candidates: Iterable[WineCandidate], *, exclude_rated: bool) -> list[WineCandidate]:
    """Drop already-rated wines when asked; order is preserved."""
    if not exclude_rated:
        return list(candidates)
    return [c for c in candidates if not c.already_rated]


def rank(
    candidates: Iterable[WineCandidate],
    profile: TasteProfile,
    limit: int,
    *,
    settings: Settings | None = None,
) -> list[WineRecommendation]:
    """Score every candidate, sort by match score (desc, stable) and keep the top `limit`."""
    if limit <= 0:
        return []
    settings = settings or get_settings()
    min_score = settings.scoring.min_match_score

    scored: list[WineRecommendation] = []
    for candidate in candidates:
        breakdown = score_candidate_signals(candidate, profile, settings=settings)
        if breakdown.score < min_score:
            continue
        scored.append(
            WineRecommendation(
                **candidate.model_dump(),
                match_score=breakdown.score,
                match_reasons=breakdown.reasons,
                signals=breakdown.points_by_signal(),
            )
        )

    # list.sort is stable: equal scores keep the candidate feed's order.
    scored.sort(key=lambda r: r.match_score, reverse=True)
    return scored[:limit]


def get_recommendations(
    profile: TasteProfile,
    candidates: Iterable[WineCandidate],
    limit: int,
    *,
    exclude_rated: bool = True,
    settings: Settings | None = None,
) -> list[WineRecommendation]:
    """Filter out already-rated wines (when asked), then rank the rest."""
    eligible = filter_candidates(candidates, exclude_rated=exclude_rated)
    return rank(eligible, profile, limit, settings=settings)


def load_profile(
    user_id: str,
    *,
    rating_source: RatingSource,
    profile_cache: ProfileCache | None = None,
) -> TasteProfile:
    """Fetch a user's ratings and build their profile, via the cache when one is given."""

    def builder() -> TasteProfile:
        try:
            ratings = rating_source.get_ratings(user_id)
        except SourceError as e:
            logger.warning("Rating feed failed for user %s: %s", user_id, e)
            raise
        logger.debug("Building taste profile for user %s from %d ratings", user_id, len(ratings))
        return build_taste_profile(ratings, user_id=user_id)

    if profile_cache is None:
        return builder()
    return profile_cache.get_or_build(user_id, builder)


def record_rating(
    user_id: str,
    submission: RatingSubmission,
    *,
    writer: RatingWriter,
    profile_cache: ProfileCache | None = None,
) -> None:
    """Persist a new rating through `writer`, then drop the user's cached profile."""
    writer.record_rating(user_id, submission)
    if profile_cache is not None:
        profile_cache.invalidate(user_id)
        logger.debug("Invalidated cached taste profile for user %s", user_id)


def _effective_limit(request: RecommendationRequest, settings: Settings) -> int:
    limit = request.limit if request.limit is not None else settings.recommendations.default_limit
    return min(int(limit), settings.recommendations.max_limit)


def recommend(
    request: RecommendationRequest,
    *,
    rating_source: RatingSource,
    candidate_source: CandidateSource,
    settings: Settings | None = None,
    profile_cache: ProfileCache | None = None,
) -> RecommendationResult:
    t0 = time.monotonic()
    timings_ms: dict[str, int] = {}

    # Use injected settings (tests) or the YAML defaults, then apply per-request overrides.
    settings = settings or get_settings()
    settings = apply_settings_overrides(settings, request.settings_overrides)
    limit = _effective_limit(request, settings)

    # Feed errors propagate: "could not load" must not look like "no data yet".
    profile = load_profile(request.user_id, rating_source=rating_source, profile_cache=profile_cache)
    timings_ms["profile"] = int((time.monotonic() - t0) * 1000)

    try:
        candidates = candidate_source.get_candidates(
            scope=request.scope,
            event_id=request.event_id,
            user_id=request.user_id,
            exclude_rated=request.exclude_rated,
        )
    except SourceError as e:
        logger.warning("Candidate feed failed for user %s (scope=%s): %s", request.user_id, request.scope, e)
        raise
    timings_ms["candidates"] = int((time.monotonic() - t0) * 1000)

    eligible = filter_candidates(candidates, exclude_rated=request.exclude_rated)
    results = rank(eligible, profile, limit, settings=settings)
    timings_ms["rank"] = int((time.monotonic() - t0) * 1000)

    meta = {
        "counts": {
            "ratings": profile.total_ratings,
            "candidates_fetched": len(candidates),
            "candidates_eligible": len(eligible),
            "results": len(results),
        },
        "cold_start": profile.total_ratings < settings.scoring.cold_start_threshold,
        "settings_snapshot": {
            "limit": limit,
            "scope": request.scope,
            "event_id": request.event_id,
            "exclude_rated": request.exclude_rated,
            "scoring": settings.scoring.model_dump(mode="json"),
            "overrides_enabled": bool(request.settings_overrides),
        },
        "timings_ms": timings_ms,
    }

    return RecommendationResult(
        generated_at=datetime.now(ZoneInfo(settings.app.timezone)),
        query=request.model_copy(update={"limit": limit}),
        profile=profile,
        results=results,
        meta=meta,
    )
