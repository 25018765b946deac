# src/winematch/config/settings.py
"""
Application settings (Pydantic).

Settings are loaded from `src/winematch/config/defaults.yaml`, then optionally overridden by:
- environment variables (e.g., `WINEMATCH_LOG_LEVEL`, `SUPABASE_URL`)
- an external YAML file via `WINEMATCH_CONFIG_PATH`

Design rule:
- Scoring knobs (rank-decay tables, per-tag points, cold-start threshold) live in YAML,
  not hard-coded in business logic.
"""

from __future__ import annotations

import os
from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field

from winematch.core.env import load_dotenv_if_present


def _read_package_yaml(filename: str) -> dict[str, Any]:
    """Read a YAML file packaged inside `winematch.config`."""
    text = resources.files("winematch.config").joinpath(filename).read_text(encoding="utf-8")
    data = yaml.safe_load(text) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid YAML root object for {filename}; expected a mapping.")
    return data


def _read_yaml_file(path: str | Path) -> dict[str, Any]:
    """Read a YAML file from disk and return its mapping root."""
    data = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid YAML root object for {path}; expected a mapping.")
    return data


class AppSettings(BaseModel):
    name: str = "WineMatch"
    timezone: str = "UTC"
    http_timeout_seconds: float = 15
    log_level: str = "INFO"


class CatalogSettings(BaseModel):
    wines_path: str = "data/catalogs/wines.json"
    ratings_path: str = "data/catalogs/ratings.json"


class SupabaseSettings(BaseModel):
    url: str | None = None
    anon_key: str | None = None
    catalog_limit: int = Field(100, ge=1)


class SourcesSettings(BaseModel):
    backend: Literal["json", "supabase"] = "json"
    supabase: SupabaseSettings = Field(default_factory=SupabaseSettings)


class CacheSettings(BaseModel):
    enabled: bool = True
    profile_ttl_seconds: int | None = Field(default=60 * 15, ge=0)


class ScoringSettings(BaseModel):
    """Point values for every scoring signal.

    `*_rank_bonus` lists are "points for rank 1, rank 2, ..."; a rank past the end of
    the list earns nothing. Tuning the decay curve means editing one list.
    """

    type_rank_bonus: list[int] = Field(default_factory=lambda: [35, 25, 15, 10, 5])
    region_rank_bonus: list[int] = Field(default_factory=lambda: [25, 18, 12, 8, 4])
    country_match_bonus: int = Field(8, ge=0)
    style_match_points: int = Field(6, ge=0)
    grape_match_points: int = Field(5, ge=0)
    price_rank_bonus: list[int] = Field(default_factory=lambda: [5, 3, 1])
    cold_start_threshold: int = Field(3, ge=0)
    cold_start_bonus: int = Field(5, ge=0)
    min_match_score: int = Field(0, ge=0, le=100)
    max_reason_items: int = Field(2, ge=1)


class RecommendationSettings(BaseModel):
    default_limit: int = Field(10, ge=1)
    max_limit: int = Field(50, ge=1)


class Settings(BaseModel):
    app: AppSettings = Field(default_factory=AppSettings)
    catalog: CatalogSettings = Field(default_factory=CatalogSettings)
    sources: SourcesSettings = Field(default_factory=SourcesSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    scoring: ScoringSettings = Field(default_factory=ScoringSettings)
    recommendations: RecommendationSettings = Field(default_factory=RecommendationSettings)


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    """Overlay selected environment variables onto raw settings payload.

    Note: We intentionally keep this whitelist small to avoid exposing unsafe overrides.
    """
    load_dotenv_if_present()
    data = dict(data)

    log_level = os.getenv("WINEMATCH_LOG_LEVEL")
    if log_level:
        data.setdefault("app", {})["log_level"] = log_level

    backend = os.getenv("WINEMATCH_SOURCES_BACKEND")
    if backend:
        data.setdefault("sources", {})["backend"] = backend

    supabase_url = os.getenv("SUPABASE_URL")
    supabase_key = os.getenv("SUPABASE_ANON_KEY")
    if supabase_url:
        data.setdefault("sources", {}).setdefault("supabase", {})["url"] = supabase_url
    if supabase_key:
        data.setdefault("sources", {}).setdefault("supabase", {})["anon_key"] = supabase_key

    return data


@lru_cache
def get_settings() -> Settings:
    """Load and validate settings (cached)."""
    load_dotenv_if_present()
    config_path = os.getenv("WINEMATCH_CONFIG_PATH")
    raw = _read_yaml_file(config_path) if config_path else _read_package_yaml("defaults.yaml")
    raw = _apply_env_overrides(raw)
    return Settings.model_validate(raw)


@lru_cache
def get_logging_config() -> dict[str, Any]:
    """Load logging configuration (cached)."""
    return _read_package_yaml("logging.yaml")
