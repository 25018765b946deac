from __future__ import annotations

import httpx
import pytest

from winematch.config.settings import SourcesSettings, SupabaseSettings, get_settings
from winematch.domain.models import RatingSubmission
from winematch.sources import supabase as supabase_module
from winematch.sources.base import CandidateSourceError, RatingSourceError
from winematch.sources.supabase import SupabaseSource, rating_from_row

RATING_ROWS = [
    {
        "event_wine_id": "ew-1",
        "rating": 5,
        "would_buy": True,
        "created_at": "2026-03-14T19:05:00+00:00",
        "event_wines": {
            "wine_type": "red",
            "region": "Bordeaux",
            "country": "France",
            "price_point": "Premium",
            "grape_varieties": [{"name": "Merlot", "percentage": 80}, {"name": "Cabernet Franc"}],
            "wine_style": ["dry"],
        },
        "user_wine_descriptors": [{"descriptors": {"name": "plum"}}],
    },
    # Broken rows: no join, out-of-range rating.
    {"event_wine_id": "ew-2", "rating": 4, "event_wines": None},
    {"event_wine_id": "ew-3", "rating": 9, "event_wines": {"wine_type": "white"}},
]

EVENT_ROWS = [
    {"id": "ew-1", "wine_name": "Larose", "wine_type": "red", "event_id": "ev1", "vintage": 2018},
    {"id": "ew-4", "wine_name": "Brut", "wine_type": "sparkling", "event_id": "ev1"},
]
CATALOG_ROWS = [
    {"id": "m-1", "wine_name": "Barolo", "wine_type": "red", "region": "Piedmont"},
    {"wine_name": "no id"},
]


def _settings(url="https://demo.supabase.co/", key="anon"):
    base = get_settings()
    sources = SourcesSettings(backend="supabase", supabase=SupabaseSettings(url=url, anon_key=key, catalog_limit=25))
    return base.model_copy(update={"sources": sources})


class _FakeRest:
    """Routes `get_json` calls by table name and records what was asked."""

    def __init__(self, tables):
        self.tables = tables
        self.calls = []

    def __call__(self, url, *, params=None, headers=None, timeout_seconds=15):
        table = url.rsplit("/", 1)[-1]
        self.calls.append((table, dict(params or {}), dict(headers or {})))
        value = self.tables[table]
        if isinstance(value, Exception):
            raise value
        return value


def test_missing_credentials_are_rejected():
    with pytest.raises(ValueError, match="SUPABASE_URL"):
        SupabaseSource(_settings(url=None))


def test_rating_rows_map_and_bad_rows_are_skipped(monkeypatch):
    fake = _FakeRest({"user_wine_ratings": RATING_ROWS})
    monkeypatch.setattr(supabase_module, "get_json", fake)

    ratings = SupabaseSource(_settings()).get_ratings("u1")

    assert len(ratings) == 1
    (r,) = ratings
    assert (r.wine_id, r.wine_type, r.region, r.rating) == ("ew-1", "red", "Bordeaux", 5)
    assert r.grape_varieties == ["Merlot", "Cabernet Franc"]
    assert r.descriptors == ["plum"]
    assert r.rated_at is not None

    table, params, headers = fake.calls[0]
    assert table == "user_wine_ratings"
    assert params["user_id"] == "eq.u1"
    assert headers["apikey"] == "anon"
    assert headers["Authorization"] == "Bearer anon"


def test_rating_transport_errors_raise(monkeypatch):
    fake = _FakeRest({"user_wine_ratings": httpx.ConnectError("boom")})
    monkeypatch.setattr(supabase_module, "get_json", fake)

    with pytest.raises(RatingSourceError, match="u1"):
        SupabaseSource(_settings()).get_ratings("u1")


def test_non_list_payload_is_an_error(monkeypatch):
    fake = _FakeRest({"user_wine_ratings": {"message": "JWT expired"}})
    monkeypatch.setattr(supabase_module, "get_json", fake)

    with pytest.raises(RatingSourceError):
        SupabaseSource(_settings()).get_ratings("u1")


def test_candidates_for_all_scope_mark_rated_wines(monkeypatch):
    fake = _FakeRest(
        {"user_wine_ratings": RATING_ROWS, "event_wines": EVENT_ROWS, "wines_master": CATALOG_ROWS}
    )
    monkeypatch.setattr(supabase_module, "get_json", fake)

    candidates = SupabaseSource(_settings()).get_candidates(scope="all", user_id="u1")

    assert [(c.wine_id, c.source, c.already_rated) for c in candidates] == [
        ("ew-1", "event", True),
        ("ew-4", "event", False),
        ("m-1", "catalog", False),
    ]
    assert candidates[0].vintage == "2018"
    catalog_call = next(c for c in fake.calls if c[0] == "wines_master")
    assert catalog_call[1]["limit"] == 25


def test_event_scope_filters_by_event_and_excludes_rated(monkeypatch):
    fake = _FakeRest({"user_wine_ratings": RATING_ROWS, "event_wines": EVENT_ROWS})
    monkeypatch.setattr(supabase_module, "get_json", fake)

    candidates = SupabaseSource(_settings()).get_candidates(
        scope="event", event_id="ev1", user_id="u1", exclude_rated=True
    )

    assert [c.wine_id for c in candidates] == ["ew-4"]
    event_call = next(c for c in fake.calls if c[0] == "event_wines")
    assert event_call[1]["event_id"] == "eq.ev1"
    assert all(c[0] != "wines_master" for c in fake.calls)


def test_candidate_errors_raise(monkeypatch):
    request = httpx.Request("GET", "https://demo.supabase.co/rest/v1/wines_master")
    response = httpx.Response(503, request=request)
    fake = _FakeRest({"wines_master": httpx.HTTPStatusError("503", request=request, response=response)})
    monkeypatch.setattr(supabase_module, "get_json", fake)

    with pytest.raises(CandidateSourceError, match="catalog"):
        SupabaseSource(_settings()).get_candidates(scope="catalog")


def test_record_rating_posts_to_ratings_table(monkeypatch):
    posted = {}

    def fake_post(url, *, payload, headers=None, timeout_seconds=15):
        posted.update(url=url, payload=payload, headers=headers)
        return [payload]

    monkeypatch.setattr(supabase_module, "post_json", fake_post)

    SupabaseSource(_settings()).record_rating("u1", RatingSubmission(wine_id="ew-4", rating=4))

    assert posted["url"] == "https://demo.supabase.co/rest/v1/user_wine_ratings"
    assert posted["payload"] == {"user_id": "u1", "event_wine_id": "ew-4", "rating": 4, "would_buy": False}
    assert posted["headers"]["Prefer"] == "return=representation"


def test_rating_from_row_requires_wine_id():
    with pytest.raises(ValueError, match="event_wine_id"):
        rating_from_row({"rating": 3, "event_wines": {}})


def test_rated_lookup_only_touches_event_wines(monkeypatch):
    # A catalog wine that happens to share an id with a rated event wine is not "rated".
    fake = _FakeRest(
        {
            "user_wine_ratings": [{"event_wine_id": "ew-1"}],
            "event_wines": EVENT_ROWS,
            "wines_master": [{"id": "ew-1", "wine_name": "Catalog twin", "wine_type": "red"}],
        }
    )
    monkeypatch.setattr(supabase_module, "get_json", fake)

    candidates = SupabaseSource(_settings()).get_candidates(scope="all", user_id="u1", exclude_rated=True)

    assert [(c.wine_id, c.source) for c in candidates] == [("ew-4", "event"), ("ew-1", "catalog")]
    rated_call = next(c for c in fake.calls if c[0] == "user_wine_ratings")
    assert rated_call[1]["select"] == "event_wine_id"


def test_catalog_scope_skips_the_rated_lookup(monkeypatch):
    fake = _FakeRest({"wines_master": CATALOG_ROWS})
    monkeypatch.setattr(supabase_module, "get_json", fake)

    candidates = SupabaseSource(_settings()).get_candidates(scope="catalog", user_id="u1", exclude_rated=True)

    assert [c.wine_id for c in candidates] == ["m-1"]
    assert [c[0] for c in fake.calls] == ["wines_master"]
