"""
In-memory feed implementation.

Backs the JSON-file mode (see `winematch.catalog.loader`), the CLI, and the tests.
Implements `RatingSource`, `CandidateSource` and `RatingWriter`.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone

from winematch.domain.models import CandidateScope, Rating, RatingSubmission, WineCandidate

logger = logging.getLogger(__name__)


class InMemoryStore:
    """Wines (event + catalog) and per-user ratings held in process memory."""

    def __init__(
        self,
        wines: list[WineCandidate] | None = None,
        ratings: dict[str, list[Rating]] | None = None,
    ):
        self._wines = list(wines or [])
        self._ratings = {user: list(items) for user, items in (ratings or {}).items()}
        self._lock = threading.Lock()

    @property
    def wines(self) -> list[WineCandidate]:
        return list(self._wines)

    def get_ratings(self, user_id: str) -> list[Rating]:
        with self._lock:
            return list(self._ratings.get(user_id, []))

    def _rated_wine_ids(self, user_id: str) -> set[str]:
        return {r.wine_id for r in self.get_ratings(user_id)}

    def _in_scope(self, wine: WineCandidate, *, scope: CandidateScope, event_id: str | None) -> bool:
        if wine.source == "event":
            if scope == "catalog":
                return False
            return event_id is None or wine.event_id == event_id
        return scope in ("catalog", "all")

    def get_candidates(
        self,
        *,
        scope: CandidateScope,
        event_id: str | None = None,
        user_id: str | None = None,
        exclude_rated: bool = False,
    ) -> list[WineCandidate]:
        rated = self._rated_wine_ids(user_id) if user_id else set()

        scoped = [w for w in self._wines if self._in_scope(w, scope=scope, event_id=event_id)]
        # Event wines first, then the catalog, each in stored order.
        scoped.sort(key=lambda w: 0 if w.source == "event" else 1)

        out: list[WineCandidate] = []
        for wine in scoped:
            already_rated = wine.already_rated or wine.wine_id in rated
            if already_rated and exclude_rated:
                continue
            out.append(wine.model_copy(update={"already_rated": True}) if already_rated else wine)
        return out

    def record_rating(self, user_id: str, submission: RatingSubmission) -> None:
        wine = next((w for w in self._wines if w.wine_id == submission.wine_id), None)
        if wine is None:
            raise ValueError(f"Unknown wine '{submission.wine_id}'.")

        rating = Rating(
            wine_id=wine.wine_id,
            wine_type=wine.wine_type,
            region=wine.region,
            country=wine.country,
            style_tags=wine.style_tags,
            grape_varieties=wine.grape_varieties,
            price_point=wine.price_point,
            rating=submission.rating,
            would_buy=submission.would_buy,
            descriptors=submission.descriptors,
            rated_at=submission.rated_at or datetime.now(timezone.utc),
        )
        with self._lock:
            self._ratings.setdefault(user_id, []).append(rating)
        logger.debug("Recorded rating user=%s wine=%s rating=%d", user_id, wine.wine_id, rating.rating)
