"""
Domain models (Pydantic).

These types represent the stable "contract" between layers:
- feed records (`Rating`, `WineCandidate`) supplied by the rating/candidate sources
- the derived `TasteProfile`
- explainable scoring output (`WineRecommendation`, `RecommendationResult`)
- API/CLI inputs (`RecommendationRequest`, `RatingSubmission`)

Every optional attribute is an explicit nullable field, so consumers never probe keys
at runtime: "no region" is `region=None`, "no style tags" is `style_tags=[]`.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

CandidateScope = Literal["event", "catalog", "all"]
CandidateOrigin = Literal["event", "catalog"]


def match_key(value: str | None) -> str:
    """Comparison key for free-text attributes ("Bordeaux " == "bordeaux")."""
    return (value or "").strip().lower()


def _clean_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _clean_list(values: Any) -> list[str]:
    """Trim entries, drop blanks and repeats; keep first-occurrence order."""
    if not values:
        return []
    if isinstance(values, str):
        values = [values]
    out: list[str] = []
    seen: set[str] = set()
    for v in values:
        text = _clean_text(v)
        if text is None or match_key(text) in seen:
            continue
        seen.add(match_key(text))
        out.append(text)
    return out


class WineAttributes(BaseModel):
    """Attributes shared by rated wines and candidate wines."""

    wine_type: str | None = None
    region: str | None = None
    country: str | None = None
    style_tags: list[str] = Field(default_factory=list)
    grape_varieties: list[str] = Field(default_factory=list)
    price_point: str | None = None

    @field_validator("wine_type", "region", "country", "price_point", mode="before")
    @classmethod
    def _strip_text(cls, value: Any) -> str | None:
        return _clean_text(value)

    @field_validator("style_tags", "grape_varieties", mode="before")
    @classmethod
    def _normalize_lists(cls, values: Any) -> list[str]:
        return _clean_list(values)


class Rating(WineAttributes):
    """One user's rating of one wine, as read from the rating feed. Never mutated."""

    model_config = ConfigDict(frozen=True)

    wine_id: str
    rating: int = Field(..., ge=1, le=5)
    would_buy: bool = False
    descriptors: list[str] = Field(default_factory=list)
    rated_at: datetime | None = None

    @field_validator("descriptors", mode="before")
    @classmethod
    def _normalize_descriptors(cls, values: Any) -> list[str]:
        return _clean_list(values)


class WineCandidate(WineAttributes):
    """A wine eligible for recommendation."""

    wine_id: str
    wine_name: str | None = None
    producer: str | None = None
    vintage: str | None = None
    image_url: str | None = None
    event_id: str | None = None
    source: CandidateOrigin = "catalog"
    already_rated: bool = False

    @field_validator("wine_name", "producer", "vintage", "image_url", "event_id", mode="before")
    @classmethod
    def _strip_optional(cls, value: Any) -> str | None:
        # Vintages arrive as ints from some feeds and strings ("NV", "2019") from others.
        return _clean_text(value)


class TypePreference(BaseModel):
    wine_type: str
    weight: int = Field(..., ge=0)
    average_rating: float
    count: int = Field(..., ge=1)


class RegionPreference(BaseModel):
    region: str
    country: str | None = None
    weight: int = Field(..., ge=0)
    average_rating: float
    count: int = Field(..., ge=1)


class StylePreference(BaseModel):
    style: str
    weight: int = Field(..., ge=0)
    count: int = Field(..., ge=1)


class GrapePreference(BaseModel):
    grape: str
    weight: int = Field(..., ge=0)
    count: int = Field(..., ge=1)


class PricePreference(BaseModel):
    price_point: str
    weight: int = Field(..., ge=0)
    count: int = Field(..., ge=1)


class FlavorNote(BaseModel):
    descriptor: str
    count: int = Field(..., ge=1)


class TasteProfile(BaseModel):
    """A user's weighted preference summary, rebuilt from their ratings on demand.

    Every preference list is sorted by descending weight, then higher count, then the
    group that was seen first.
    """

    user_id: str | None = None
    total_ratings: int = Field(0, ge=0)
    average_rating: float = 0.0
    would_buy_rate: float = Field(0.0, ge=0, le=1)
    preferred_types: list[TypePreference] = Field(default_factory=list)
    preferred_regions: list[RegionPreference] = Field(default_factory=list)
    preferred_styles: list[StylePreference] = Field(default_factory=list)
    preferred_grapes: list[GrapePreference] = Field(default_factory=list)
    preferred_price_points: list[PricePreference] = Field(default_factory=list)
    flavor_profile: list[FlavorNote] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return self.total_ratings == 0


class WineRecommendation(WineCandidate):
    """A scored candidate: all candidate fields plus the match score and its explanation."""

    match_score: int = Field(..., ge=0, le=100)
    match_reasons: list[str] = Field(default_factory=list)
    signals: dict[str, int] = Field(default_factory=dict)


class RecommendationRequest(BaseModel):
    """API/CLI request payload for a recommendation run."""

    user_id: str = Field(..., min_length=1)
    scope: CandidateScope = "all"
    event_id: str | None = None
    exclude_rated: bool = True
    # Non-positive limits are allowed and yield an empty result.
    limit: int | None = None
    settings_overrides: dict[str, Any] | None = None

    @model_validator(mode="after")
    def _validate_scope(self) -> "RecommendationRequest":
        if self.scope == "event" and not self.event_id:
            raise ValueError("event_id is required when scope is 'event'")
        return self


class RatingSubmission(BaseModel):
    """A new rating recorded through the API."""

    wine_id: str = Field(..., min_length=1)
    rating: int = Field(..., ge=1, le=5)
    would_buy: bool = False
    descriptors: list[str] = Field(default_factory=list)
    rated_at: datetime | None = None

    @field_validator("descriptors", mode="before")
    @classmethod
    def _normalize_descriptors(cls, values: Any) -> list[str]:
        return _clean_list(values)


class RecommendationResult(BaseModel):
    """Top-N recommendations plus the query and the profile they were scored against."""

    generated_at: datetime
    query: RecommendationRequest
    profile: TasteProfile
    results: list[WineRecommendation]
    meta: dict[str, Any] = Field(default_factory=dict)
