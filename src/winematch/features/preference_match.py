# src/winematch/features/preference_match.py
"""
Preference match signals (candidate-level).

Each scorer compares one candidate attribute against the matching preference list of a
`TasteProfile` and returns a `SignalResult`:
- type / region / price point: rank-decayed bonus (top preference earns the most),
  looked up in the configured `*_rank_bonus` table
- country: fixed partial bonus when the region misses but the country is one the user
  has enjoyed
- style / grape: fixed points per matching tag, so several matches compound

A signal that does not fire returns zero points and no reason.
"""

from __future__ import annotations

from winematch.config.settings import Settings
from winematch.domain.models import TasteProfile, WineCandidate, match_key
from winematch.scoring.composite import SignalResult, find_rank, rank_bonus


def score_type_match(candidate: WineCandidate, *, profile: TasteProfile, settings: Settings) -> SignalResult:
    rank = find_rank(profile.preferred_types, candidate.wine_type, key=lambda p: p.wine_type)
    points = rank_bonus(settings.scoring.type_rank_bonus, rank)
    details = {"rank": rank}
    if points <= 0:
        return SignalResult(name="type", points=0, details=details)

    label = profile.preferred_types[rank].wine_type
    if rank == 0:
        reason = f"Matches your favorite type ({label})"
    else:
        reason = f"You enjoy {label} wines"
    return SignalResult(name="type", points=points, reason=reason, details=details)


def score_region_match(candidate: WineCandidate, *, profile: TasteProfile, settings: Settings) -> SignalResult:
    """Exact region affinity first; otherwise a smaller country-level bonus."""
    cfg = settings.scoring

    rank = find_rank(profile.preferred_regions, candidate.region, key=lambda p: p.region)
    points = rank_bonus(cfg.region_rank_bonus, rank)
    if points > 0:
        label = profile.preferred_regions[rank].region
        if rank == 0:
            reason = f"From {label}, a region you love"
        else:
            reason = f"From {label}, a region you enjoy"
        return SignalResult(name="region", points=points, reason=reason, details={"rank": rank})

    countries: dict[str, str] = {}
    for p in profile.preferred_regions:
        if p.country:
            countries.setdefault(match_key(p.country), p.country)
    country = countries.get(match_key(candidate.country))
    if country and cfg.country_match_bonus > 0:
        return SignalResult(
            name="country",
            points=int(cfg.country_match_bonus),
            reason=f"From {country}, a country you enjoy",
            details={"rank": rank},
        )

    return SignalResult(name="region", points=0, details={"rank": rank})


def score_style_match(candidate: WineCandidate, *, profile: TasteProfile, settings: Settings) -> SignalResult:
    ranks = [find_rank(profile.preferred_styles, s, key=lambda p: p.style) for s in candidate.style_tags]
    matched = [profile.preferred_styles[r].style for r in ranks if r is not None]
    points = len(matched) * int(settings.scoring.style_match_points)
    if points <= 0:
        return SignalResult(name="style", points=0, details={"matched_styles": matched})

    shown = ", ".join(matched[: settings.scoring.max_reason_items])
    return SignalResult(
        name="style",
        points=points,
        reason=f"Matches your preferred style: {shown}",
        details={"matched_styles": matched},
    )


def score_grape_match(candidate: WineCandidate, *, profile: TasteProfile, settings: Settings) -> SignalResult:
    ranks = [find_rank(profile.preferred_grapes, g, key=lambda p: p.grape) for g in candidate.grape_varieties]
    matched = [profile.preferred_grapes[r].grape for r in ranks if r is not None]
    points = len(matched) * int(settings.scoring.grape_match_points)
    if points <= 0:
        return SignalResult(name="grape", points=0, details={"matched_grapes": matched})

    shown = ", ".join(matched[: settings.scoring.max_reason_items])
    return SignalResult(
        name="grape",
        points=points,
        reason=f"Made with {shown}, a grape you like",
        details={"matched_grapes": matched},
    )


def score_price_match(candidate: WineCandidate, *, profile: TasteProfile, settings: Settings) -> SignalResult:
    rank = find_rank(profile.preferred_price_points, candidate.price_point, key=lambda p: p.price_point)
    points = rank_bonus(settings.scoring.price_rank_bonus, rank)
    if points <= 0:
        return SignalResult(name="price", points=0, details={"rank": rank})
    return SignalResult(
        name="price",
        points=points,
        reason=f"In your usual {profile.preferred_price_points[rank].price_point} price range",
        details={"rank": rank},
    )
