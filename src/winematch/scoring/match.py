"""
Candidate match scoring.

A candidate's match score is the sum of independent signal points (see
`winematch.features`), clamped to 0..100. Reasons come from the same pass: one string per
signal that fired, strongest signal first. Pure functions, no I/O.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from winematch.config.settings import Settings, get_settings
from winematch.domain.models import TasteProfile, WineCandidate
from winematch.features.cold_start import score_cold_start
from winematch.features.preference_match import (
    score_grape_match,
    score_price_match,
    score_region_match,
    score_style_match,
    score_type_match,
)
from winematch.scoring.composite import SignalResult, clamp_score

SignalScorer = Callable[..., SignalResult]

# Declaration order breaks ties between equal-point reasons.
SIGNAL_SCORERS: tuple[SignalScorer, ...] = (
    score_type_match,
    score_region_match,
    score_style_match,
    score_grape_match,
    score_price_match,
    score_cold_start,
)


@dataclass(frozen=True)
class MatchBreakdown:
    score: int
    reasons: list[str]
    signals: list[SignalResult]

    def points_by_signal(self) -> dict[str, int]:
        return {s.name: s.points for s in self.signals if s.fired}


def score_candidate_signals(
    candidate: WineCandidate, profile: TasteProfile, *, settings: Settings | None = None
) -> MatchBreakdown:
    """Score `candidate` against `profile` and keep every signal's contribution."""
    settings = settings or get_settings()
    signals = [scorer(candidate, profile=profile, settings=settings) for scorer in SIGNAL_SCORERS]

    fired = [s for s in signals if s.fired]
    fired.sort(key=lambda s: s.points, reverse=True)
    reasons = [s.reason for s in fired if s.reason]

    return MatchBreakdown(score=clamp_score(sum(s.points for s in fired)), reasons=reasons, signals=signals)


def score_candidate(
    candidate: WineCandidate, profile: TasteProfile, *, settings: Settings | None = None
) -> tuple[int, list[str]]:
    """Return `(match_score, match_reasons)` for one candidate."""
    breakdown = score_candidate_signals(candidate, profile, settings=settings)
    return breakdown.score, breakdown.reasons
