"""
API routes.

Endpoints:
- GET  `/api/health`: liveness + configured backend.
- GET  `/api/settings`: public scoring settings (credentials never exposed).
- GET  `/api/users/{user_id}/taste-profile`: the user's current taste profile.
- POST `/api/recommendations`: main recommender entrypoint.
- POST `/api/users/{user_id}/ratings`: record a rating (invalidates the cached profile).
"""

from __future__ import annotations

import time
import uuid
from functools import lru_cache

from fastapi import APIRouter, HTTPException

from winematch.config.settings import get_settings
from winematch.core.cache import ProfileCache, record_cache_stats
from winematch.domain.models import RatingSubmission, RecommendationRequest, RecommendationResult, TasteProfile
from winematch.recommender.recommend import (
    build_profile_cache,
    build_sources,
    load_profile,
    recommend,
    record_rating,
)
from winematch.sources.base import CandidateSource, RatingSource, SourceError

router = APIRouter()


@lru_cache
def _sources() -> tuple[RatingSource, CandidateSource]:
    return build_sources(get_settings())


@lru_cache
def _profile_cache() -> ProfileCache:
    return build_profile_cache(get_settings())


def _upstream_error(e: SourceError) -> HTTPException:
    return HTTPException(status_code=502, detail={"code": "UPSTREAM_ERROR", "message": str(e)})


@router.get("/api/health")
def get_health() -> dict:
    settings = get_settings()
    return {"status": "ok", "backend": settings.sources.backend}


@router.get("/api/settings")
def get_public_settings() -> dict:
    """Return safe-to-expose settings (Supabase URL/key removed)."""
    settings = get_settings()
    return {
        "app": {"name": settings.app.name, "timezone": settings.app.timezone},
        "sources": {"backend": settings.sources.backend},
        "scoring": settings.scoring.model_dump(mode="json"),
        "recommendations": settings.recommendations.model_dump(mode="json"),
        "cache": settings.cache.model_dump(mode="json"),
    }


@router.get("/api/users/{user_id}/taste-profile", response_model=TasteProfile)
def get_taste_profile(user_id: str, refresh: bool = False) -> TasteProfile:
    """Return the user's taste profile (cached; `refresh=true` forces a rebuild)."""
    rating_source, _ = _sources()
    cache = _profile_cache()
    if refresh:
        cache.invalidate(user_id)
    try:
        return load_profile(user_id, rating_source=rating_source, profile_cache=cache)
    except SourceError as e:
        raise _upstream_error(e) from e


@router.post("/api/recommendations", response_model=RecommendationResult)
def post_recommendations(request: RecommendationRequest) -> RecommendationResult:
    """Build the user's profile and return their Top-N recommendations."""
    t0 = time.monotonic()
    settings = get_settings()
    rating_source, candidate_source = _sources()
    try:
        with record_cache_stats() as stats:
            result = recommend(
                request,
                rating_source=rating_source,
                candidate_source=candidate_source,
                settings=settings,
                profile_cache=_profile_cache(),
            )
    except SourceError as e:
        raise _upstream_error(e) from e
    except ValueError as e:
        raise HTTPException(status_code=400, detail={"code": "VALIDATION_ERROR", "message": str(e)}) from e
    except Exception as e:
        raise HTTPException(status_code=500, detail={"code": "INTERNAL_ERROR", "message": str(e)}) from e

    meta = {
        **(result.meta or {}),
        "cache": stats.as_dict(),
        "debug": {"request_id": uuid.uuid4().hex, "api_ms": int((time.monotonic() - t0) * 1000)},
    }
    return result.model_copy(update={"meta": meta})


@router.post("/api/users/{user_id}/ratings", status_code=201)
def post_rating(user_id: str, submission: RatingSubmission) -> dict:
    """Record a rating and invalidate the user's cached profile."""
    rating_source, _ = _sources()
    if not hasattr(rating_source, "record_rating"):
        raise HTTPException(
            status_code=409,
            detail={"code": "READ_ONLY_BACKEND", "message": "The configured rating source cannot record ratings."},
        )
    try:
        record_rating(user_id, submission, writer=rating_source, profile_cache=_profile_cache())
    except SourceError as e:
        raise _upstream_error(e) from e
    except ValueError as e:
        raise HTTPException(status_code=400, detail={"code": "VALIDATION_ERROR", "message": str(e)}) from e
    return {"status": "recorded", "user_id": user_id, "wine_id": submission.wine_id}
