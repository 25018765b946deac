"""
Wine catalog + ratings loader.

The offline backend reads two local JSON files (defaults under `data/catalogs/`):
- `wines.json`: an array of wines (event wines carry `source: "event"` and an `event_id`)
- `ratings.json`: an object mapping user id -> array of ratings

Both are validated into typed Pydantic models so the engine can assume a consistent shape.
"""

from __future__ import annotations

import json
from pathlib import Path

from pydantic import TypeAdapter

from winematch.config.settings import Settings
from winematch.core.env import resolve_project_path
from winematch.domain.models import Rating, WineCandidate
from winematch.sources.memory import InMemoryStore

_WINES_ADAPTER = TypeAdapter(list[WineCandidate])
_RATINGS_ADAPTER = TypeAdapter(dict[str, list[Rating]])


def load_wines(path: str | Path) -> list[WineCandidate]:
    """Load and validate a wine catalog JSON file."""
    resolved = resolve_project_path(path)
    payload = json.loads(resolved.read_text(encoding="utf-8"))
    return _WINES_ADAPTER.validate_python(payload)


def load_ratings(path: str | Path) -> dict[str, list[Rating]]:
    """Load and validate a `user_id -> ratings` JSON file; a missing file means no ratings."""
    resolved = resolve_project_path(path)
    if not resolved.exists():
        return {}
    payload = json.loads(resolved.read_text(encoding="utf-8"))
    return _RATINGS_ADAPTER.validate_python(payload)


def load_store(settings: Settings) -> InMemoryStore:
    """Build the in-memory feeds from the configured catalog files."""
    return InMemoryStore(
        wines=load_wines(settings.catalog.wines_path),
        ratings=load_ratings(settings.catalog.ratings_path),
    )
