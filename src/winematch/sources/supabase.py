"""
Supabase (PostgREST) feed client.

Reads the tasting app's tables over HTTP:
- `user_wine_ratings` joined with `event_wines` and tagged descriptors -> `Rating`
- `event_wines` (per event) and `wines_master` (catalog) -> `WineCandidate`

Rows that fail validation (e.g. a rating outside 1..5, a missing wine join) are skipped
with a warning. Transport errors, non-2xx responses and non-list payloads raise
`RatingSourceError` / `CandidateSourceError`.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from winematch.config.settings import Settings
from winematch.core.http import get_json, post_json
from winematch.domain.models import CandidateScope, Rating, RatingSubmission, WineCandidate
from winematch.sources.base import CandidateSourceError, RatingSourceError

logger = logging.getLogger(__name__)

RATING_SELECT = (
    "event_wine_id,rating,would_buy,created_at,"
    "event_wines(wine_type,region,country,price_point,grape_varieties,wine_style),"
    "user_wine_descriptors(descriptors(name))"
)


def _grape_names(value: Any) -> list[str]:
    # Stored as [{"name": "Merlot", "percentage": 60}, ...]; plain strings are tolerated.
    if not isinstance(value, list):
        return []
    out = []
    for g in value:
        name = g.get("name") if isinstance(g, dict) else g
        if isinstance(name, str) and name.strip():
            out.append(name)
    return out


def _descriptor_names(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    out = []
    for ud in value:
        desc = ud.get("descriptors") if isinstance(ud, dict) else None
        name = desc.get("name") if isinstance(desc, dict) else None
        if isinstance(name, str) and name.strip():
            out.append(name)
    return out


def rating_from_row(row: dict[str, Any]) -> Rating:
    """Map one joined `user_wine_ratings` row to a `Rating` (raises on invalid rows)."""
    wine = row.get("event_wines")
    if not isinstance(wine, dict):
        raise ValueError("rating row has no joined event_wines record")
    if not row.get("event_wine_id"):
        raise ValueError("rating row has no event_wine_id")
    return Rating(
        wine_id=str(row["event_wine_id"]),
        wine_type=wine.get("wine_type"),
        region=wine.get("region"),
        country=wine.get("country"),
        style_tags=wine.get("wine_style") or [],
        grape_varieties=_grape_names(wine.get("grape_varieties")),
        price_point=wine.get("price_point"),
        rating=row.get("rating"),
        would_buy=bool(row.get("would_buy")),
        descriptors=_descriptor_names(row.get("user_wine_descriptors")),
        rated_at=row.get("created_at"),
    )


def candidate_from_row(row: dict[str, Any], *, source: str) -> WineCandidate:
    """Map one `event_wines` / `wines_master` row to a `WineCandidate`."""
    if not row.get("id"):
        raise ValueError("wine row has no id")
    return WineCandidate(
        wine_id=str(row["id"]),
        wine_name=row.get("wine_name"),
        producer=row.get("producer"),
        vintage=row.get("vintage"),
        wine_type=row.get("wine_type"),
        region=row.get("region"),
        country=row.get("country"),
        style_tags=row.get("wine_style") or [],
        grape_varieties=_grape_names(row.get("grape_varieties")),
        price_point=row.get("price_point"),
        image_url=row.get("image_url"),
        event_id=row.get("event_id"),
        source=source,
    )


class SupabaseSource:
    """Rating + candidate feeds backed by Supabase's REST API."""

    def __init__(self, settings: Settings):
        cfg = settings.sources.supabase
        if not cfg.url or not cfg.anon_key:
            raise ValueError("Supabase backend requires SUPABASE_URL and SUPABASE_ANON_KEY.")
        self._base_url = cfg.url.rstrip("/") + "/rest/v1"
        self._catalog_limit = int(cfg.catalog_limit)
        self._timeout = float(settings.app.http_timeout_seconds)
        self._headers = {"apikey": cfg.anon_key, "Authorization": f"Bearer {cfg.anon_key}"}

    def _get_rows(self, table: str, params: dict[str, Any]) -> list[dict[str, Any]]:
        payload = get_json(
            f"{self._base_url}/{table}",
            params=params,
            headers=self._headers,
            timeout_seconds=self._timeout,
        )
        if not isinstance(payload, list):
            raise ValueError(f"Unexpected payload for {table}; expected a JSON array.")
        return [r for r in payload if isinstance(r, dict)]

    def _fetch_rating_rows(self, user_id: str) -> list[dict[str, Any]]:
        try:
            return self._get_rows("user_wine_ratings", {"select": RATING_SELECT, "user_id": f"eq.{user_id}"})
        except (httpx.HTTPError, ValueError) as e:
            raise RatingSourceError(f"Could not load ratings for user {user_id}: {e}") from e

    def _fetch_rated_wine_ids(self, user_id: str) -> set[str]:
        try:
            rows = self._get_rows("user_wine_ratings", {"select": "event_wine_id", "user_id": f"eq.{user_id}"})
        except (httpx.HTTPError, ValueError) as e:
            raise CandidateSourceError(f"Could not load rated wines for user {user_id}: {e}") from e
        return {str(r["event_wine_id"]) for r in rows if r.get("event_wine_id")}

    def get_ratings(self, user_id: str) -> list[Rating]:
        ratings: list[Rating] = []
        for row in self._fetch_rating_rows(user_id):
            try:
                ratings.append(rating_from_row(row))
            except ValueError as e:
                logger.warning("Skipping rating row for user %s: %s", user_id, e)
        return ratings

    def _fetch_candidate_rows(
        self, *, scope: CandidateScope, event_id: str | None
    ) -> list[tuple[str, dict[str, Any]]]:
        rows: list[tuple[str, dict[str, Any]]] = []
        try:
            if scope in ("event", "all"):
                params: dict[str, Any] = {"select": "*"}
                if event_id:
                    params["event_id"] = f"eq.{event_id}"
                rows.extend(("event", r) for r in self._get_rows("event_wines", params))
            if scope in ("catalog", "all"):
                params = {"select": "*", "limit": self._catalog_limit}
                rows.extend(("catalog", r) for r in self._get_rows("wines_master", params))
        except (httpx.HTTPError, ValueError) as e:
            raise CandidateSourceError(f"Could not load {scope} candidates: {e}") from e
        return rows

    def get_candidates(
        self,
        *,
        scope: CandidateScope,
        event_id: str | None = None,
        user_id: str | None = None,
        exclude_rated: bool = False,
    ) -> list[WineCandidate]:
        # Ratings point at event_wines ids; catalog wines live in a different id space.
        rated = self._fetch_rated_wine_ids(user_id) if user_id and scope != "catalog" else set()

        out: list[WineCandidate] = []
        for source, row in self._fetch_candidate_rows(scope=scope, event_id=event_id):
            try:
                candidate = candidate_from_row(row, source=source)
            except ValueError as e:
                logger.warning("Skipping %s wine row %r: %s", source, row.get("id"), e)
                continue
            if source == "event" and candidate.wine_id in rated:
                if exclude_rated:
                    continue
                candidate = candidate.model_copy(update={"already_rated": True})
            out.append(candidate)
        return out

    def record_rating(self, user_id: str, submission: RatingSubmission) -> None:
        payload = {
            "user_id": user_id,
            "event_wine_id": submission.wine_id,
            "rating": submission.rating,
            "would_buy": submission.would_buy,
        }
        try:
            post_json(
                f"{self._base_url}/user_wine_ratings",
                payload=payload,
                headers={**self._headers, "Prefer": "return=representation"},
                timeout_seconds=self._timeout,
            )
        except (httpx.HTTPError, ValueError) as e:
            raise RatingSourceError(f"Could not record rating for user {user_id}: {e}") from e
