"""
Feed interfaces.

The engine consumes two read-only feeds:
- a rating source: one user's `Rating` records
- a candidate source: wines eligible for scoring, for an event or the whole catalog

Implementations raise `SourceError` subclasses when a fetch fails. Callers should treat
that as "could not load", which is a different outcome from "loaded, but empty".
"""

from __future__ import annotations

from typing import Protocol

from winematch.domain.models import CandidateScope, Rating, RatingSubmission, WineCandidate


class SourceError(RuntimeError):
    """A feed could not be read (transport error, bad status, malformed payload)."""


class RatingSourceError(SourceError):
    pass


class CandidateSourceError(SourceError):
    pass


class RatingSource(Protocol):
    def get_ratings(self, user_id: str) -> list[Rating]: ...


class CandidateSource(Protocol):
    def get_candidates(
        self,
        *,
        scope: CandidateScope,
        event_id: str | None = None,
        user_id: str | None = None,
        exclude_rated: bool = False,
    ) -> list[WineCandidate]:
        """Return candidates in the feed's natural order.

        When `user_id` is given, wines that user rated come back with `already_rated=True`
        (or are left out entirely when `exclude_rated` is set).
        """
        ...


class RatingWriter(Protocol):
    def record_rating(self, user_id: str, submission: RatingSubmission) -> None: ...
