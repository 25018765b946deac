# src/winematch/profile/builder.py
"""
Taste profile builder.

Turns one user's ratings into a `TasteProfile`:
- For each dimension (type, region, style, grape, price point) ratings are grouped by the
  dimension's value and each group gets `count`, `weight` (sum of rating values) and
  `average_rating`.
- Weight is the sum of rating values: one 5-star red (weight 5) outranks two 2-star
  whites (weight 4).
- A rating with several style tags (or grapes) feeds every one of those groups.
- Missing attributes mean "this rating does not contribute to that dimension"; nothing here
  raises on sparse records.

There is no minimum-sample threshold: a single 5-star rating is enough to make a type the
top preference. Ordering does the filtering.

Determinism:
- Ratings are replayed in "first seen" order (earliest `rated_at`, then the
  rating's own content: wine id, attributes, rating), so neither group order nor the kept
  display spelling depends on how the feed happened to sort its rows.
- Groups are sorted by weight desc, then count desc, then first seen (stable sort).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable

from winematch.domain.models import (
    FlavorNote,
    GrapePreference,
    PricePreference,
    Rating,
    RegionPreference,
    StylePreference,
    TasteProfile,
    TypePreference,
    match_key,
)


@dataclass
class _Group:
    label: str
    weight: int = 0
    count: int = 0
    country: str | None = None

    @property
    def average(self) -> float:
        return self.weight / self.count if self.count else 0.0


class _Tally:
    """Groups values case-insensitively, remembering the first-seen spelling and order."""

    def __init__(self) -> None:
        self._groups: dict[str, _Group] = {}

    def add(self, label: str, value: int, *, country: str | None = None) -> None:
        key = match_key(label)
        group = self._groups.get(key)
        if group is None:
            group = self._groups[key] = _Group(label=label)
        group.weight += value
        group.count += 1
        if group.country is None and country:
            group.country = country

    def ranked(self) -> list[_Group]:
        # dicts keep insertion order, so the stable sort leaves ties in first-seen order.
        return sorted(self._groups.values(), key=lambda g: (-g.weight, -g.count))


def _utc_timestamp(dt: datetime) -> float:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.timestamp()


def _replay_key(r: Rating) -> tuple:
    # Undated or same-instant ratings are ordered by their own content, never by feed position.
    texts = [r.wine_type, r.region, r.country, r.price_point]
    tags = [r.style_tags, r.grape_varieties, r.descriptors]
    return (
        r.rated_at is None,
        _utc_timestamp(r.rated_at) if r.rated_at is not None else 0.0,
        r.wine_id,
        tuple(match_key(t) for t in texts),
        tuple(tuple(match_key(t) for t in group) for group in tags),
        -r.rating,
        # Exact spelling last, so the kept display label is stable too.
        tuple(t or "" for t in texts),
        tuple(tuple(group) for group in tags),
        not r.would_buy,
    )


def _in_first_seen_order(ratings: Iterable[Rating]) -> list[Rating]:
    return sorted(ratings, key=_replay_key)


def build_taste_profile(ratings: Iterable[Rating], *, user_id: str | None = None) -> TasteProfile:
    """Aggregate a user's ratings into a `TasteProfile` (empty input -> zeroed profile)."""
    ordered = _in_first_seen_order(ratings)
    if not ordered:
        return TasteProfile(user_id=user_id)

    types = _Tally()
    regions = _Tally()
    styles = _Tally()
    grapes = _Tally()
    prices = _Tally()
    flavors = _Tally()

    for r in ordered:
        if r.wine_type:
            types.add(r.wine_type, r.rating)
        if r.region:
            regions.add(r.region, r.rating, country=r.country)
        for style in r.style_tags:
            styles.add(style, r.rating)
        for grape in r.grape_varieties:
            grapes.add(grape, r.rating)
        if r.price_point:
            prices.add(r.price_point, r.rating)
        for descriptor in r.descriptors:
            # Descriptors are counted, not weighted: they describe the wine, not how much it was liked.
            flavors.add(descriptor, 1)

    total = len(ordered)
    return TasteProfile(
        user_id=user_id,
        total_ratings=total,
        average_rating=sum(r.rating for r in ordered) / total,
        would_buy_rate=sum(1 for r in ordered if r.would_buy) / total,
        preferred_types=[
            TypePreference(wine_type=g.label, weight=g.weight, average_rating=g.average, count=g.count)
            for g in types.ranked()
        ],
        preferred_regions=[
            RegionPreference(
                region=g.label,
                country=g.country,
                weight=g.weight,
                average_rating=g.average,
                count=g.count,
            )
            for g in regions.ranked()
        ],
        preferred_styles=[StylePreference(style=g.label, weight=g.weight, count=g.count) for g in styles.ranked()],
        preferred_grapes=[GrapePreference(grape=g.label, weight=g.weight, count=g.count) for g in grapes.ranked()],
        preferred_price_points=[
            PricePreference(price_point=g.label, weight=g.weight, count=g.count) for g in prices.ranked()
        ],
        flavor_profile=[FlavorNote(descriptor=g.label, count=g.count) for g in flavors.ranked()],
    )
