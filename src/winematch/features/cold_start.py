"""
Cold-start signal.

While a profile is sparse (`total_ratings` below `scoring.cold_start_threshold`), any
candidate whose type the user has never rated gets a small baseline bonus. This keeps a
new user's list from being all zeros. With an empty profile every candidate earns the same
bonus, so ranking falls back to the candidate feed's own order.
"""

from __future__ import annotations

from winematch.config.settings import Settings
from winematch.domain.models import TasteProfile, WineCandidate
from winematch.scoring.composite import SignalResult, find_rank


def score_cold_start(candidate: WineCandidate, *, profile: TasteProfile, settings: Settings) -> SignalResult:
    cfg = settings.scoring
    sparse = profile.total_ratings < cfg.cold_start_threshold
    details = {"sparse_profile": sparse, "total_ratings": profile.total_ratings}
    if not sparse or cfg.cold_start_bonus <= 0:
        return SignalResult(name="cold_start", points=0, details=details)

    # A candidate without a type counts as "never rated".
    if find_rank(profile.preferred_types, candidate.wine_type, key=lambda p: p.wine_type) is not None:
        return SignalResult(name="cold_start", points=0, details=details)

    if candidate.wine_type:
        reason = f"A {candidate.wine_type} wine, new to your palate"
    else:
        reason = "Something new to explore"
    return SignalResult(name="cold_start", points=int(cfg.cold_start_bonus), reason=reason, details=details)
