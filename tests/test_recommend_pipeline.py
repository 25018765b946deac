from __future__ import annotations

from pathlib import Path

import pytest

from winematch.catalog.loader import load_ratings, load_wines
from winematch.core.cache import ProfileCache, record_cache_stats
from winematch.domain.models import RatingSubmission, RecommendationRequest
from winematch.recommender.recommend import load_profile, recommend, record_rating
from winematch.sources.base import CandidateSourceError, RatingSourceError
from winematch.sources.memory import InMemoryStore

DATA_DIR = Path(__file__).resolve().parents[1] / "data" / "catalogs"


def _store() -> InMemoryStore:
    return InMemoryStore(
        wines=load_wines(DATA_DIR / "wines.json"),
        ratings=load_ratings(DATA_DIR / "ratings.json"),
    )


def _run(store, **kwargs):
    cache = kwargs.pop("profile_cache", None)
    return recommend(
        RecommendationRequest(**kwargs),
        rating_source=store,
        candidate_source=store,
        profile_cache=cache,
    )


def test_event_scope_only_returns_unrated_wines_from_that_event():
    result = _run(_store(), user_id="alice", scope="event", event_id="ev1")

    # alice rated three of the four ev1 pours.
    assert [r.wine_id for r in result.results] == ["ev1-003"]
    assert result.profile.total_ratings == 3
    assert result.meta["cold_start"] is False


def test_all_scope_ranks_catalog_bordeaux_first_for_alice():
    result = _run(_store(), user_id="alice")

    ids = [r.wine_id for r in result.results]
    assert ids[0] == "m-001"
    assert not {"ev1-001", "ev1-002", "ev1-004"} & set(ids)
    scores = [r.match_score for r in result.results]
    assert scores == sorted(scores, reverse=True)

    counts = result.meta["counts"]
    assert counts == {"ratings": 3, "candidates_fetched": 7, "candidates_eligible": 7, "results": 7}


def test_include_rated_marks_rated_wines():
    result = _run(_store(), user_id="alice", scope="event", event_id="ev1", exclude_rated=False)

    by_id = {r.wine_id: r for r in result.results}
    assert set(by_id) == {"ev1-001", "ev1-002", "ev1-003", "ev1-004"}
    assert by_id["ev1-001"].already_rated is True
    assert by_id["ev1-003"].already_rated is False
    assert result.results[0].wine_id == "ev1-001"


def test_catalog_scope_skips_event_wines():
    result = _run(_store(), user_id="newcomer", scope="catalog")
    assert all(r.source == "catalog" for r in result.results)
    assert len(result.results) == 5


def test_new_user_gets_cold_start_results():
    result = _run(_store(), user_id="nobody-yet")

    assert result.profile.is_empty
    assert result.meta["cold_start"] is True
    assert len(result.results) == 10
    assert {r.match_score for r in result.results} == {5}


def test_limit_defaults_and_caps():
    store = _store()

    assert _run(store, user_id="newcomer").query.limit == 10
    capped = _run(store, user_id="newcomer", limit=500)
    assert capped.query.limit == 50
    assert capped.meta["settings_snapshot"]["limit"] == 50

    assert _run(store, user_id="newcomer", limit=2).meta["counts"]["results"] == 2
    assert _run(store, user_id="newcomer", limit=0).results == []


def test_default_limit_override_applies():
    result = _run(_store(), user_id="newcomer", settings_overrides={"recommendations": {"default_limit": 4}})
    assert len(result.results) == 4
    assert result.meta["settings_snapshot"]["overrides_enabled"] is True


def test_disallowed_override_is_rejected():
    with pytest.raises(ValueError, match="disallowed key"):
        _run(_store(), user_id="alice", settings_overrides={"catalog": {"wines_path": "x"}})


def test_event_scope_requires_event_id():
    with pytest.raises(ValueError):
        RecommendationRequest(user_id="alice", scope="event")


class _BrokenRatings:
    def get_ratings(self, user_id):
        raise RatingSourceError("ratings table unavailable")


class _BrokenCandidates:
    def get_candidates(self, **kwargs):
        raise CandidateSourceError("catalog unavailable")


def test_rating_feed_errors_are_not_treated_as_empty_history():
    store = _store()
    with pytest.raises(RatingSourceError):
        recommend(
            RecommendationRequest(user_id="alice"),
            rating_source=_BrokenRatings(),
            candidate_source=store,
        )


def test_candidate_feed_errors_propagate():
    store = _store()
    with pytest.raises(CandidateSourceError):
        recommend(
            RecommendationRequest(user_id="alice"),
            rating_source=store,
            candidate_source=_BrokenCandidates(),
        )


def test_failed_profile_build_is_not_cached():
    cache = ProfileCache()
    with pytest.raises(RatingSourceError):
        load_profile("alice", rating_source=_BrokenRatings(), profile_cache=cache)
    assert len(cache) == 0


def test_recording_a_rating_refreshes_the_cached_profile():
    store = _store()
    cache = ProfileCache(ttl_seconds=None)

    with record_cache_stats() as stats:
        before = _run(store, user_id="alice", profile_cache=cache)
        _run(store, user_id="alice", profile_cache=cache)
    assert stats.misses == 1
    assert stats.hits == 1
    assert before.profile.total_ratings == 3

    record_rating(
        "alice",
        RatingSubmission(wine_id="ev1-003", rating=5, would_buy=True),
        writer=store,
        profile_cache=cache,
    )

    after = _run(store, user_id="alice", scope="event", event_id="ev1", profile_cache=cache)
    assert after.profile.total_ratings == 4
    assert "sparkling" in [p.wine_type for p in after.profile.preferred_types]
    # Everything at ev1 is now rated.
    assert after.results == []


def test_recording_an_unknown_wine_fails():
    with pytest.raises(ValueError, match="Unknown wine"):
        record_rating("alice", RatingSubmission(wine_id="nope", rating=3), writer=_store())
