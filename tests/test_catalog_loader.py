import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from winematch.catalog.loader import load_ratings, load_store, load_wines
from winematch.config.settings import get_settings

DATA_DIR = Path(__file__).resolve().parents[1] / "data" / "catalogs"


def test_sample_catalog_validates():
    wines = load_wines(DATA_DIR / "wines.json")

    assert len(wines) == 10
    assert {w.source for w in wines} == {"event", "catalog"}
    tawny = next(w for w in wines if w.wine_id == "m-004")
    assert tawny.vintage is None
    assert tawny.grape_varieties == []


def test_sample_ratings_validate():
    ratings = load_ratings(DATA_DIR / "ratings.json")

    assert set(ratings) == {"alice", "newcomer"}
    assert [r.rating for r in ratings["alice"]] == [5, 4, 3]
    assert ratings["alice"][0].rated_at is not None
    assert ratings["newcomer"] == []


def test_missing_ratings_file_means_no_ratings(tmp_path):
    assert load_ratings(tmp_path / "nope.json") == {}


def test_invalid_rating_value_fails_loudly(tmp_path):
    path = tmp_path / "ratings.json"
    path.write_text(json.dumps({"u": [{"wine_id": "w", "rating": 7}]}), encoding="utf-8")

    with pytest.raises(ValidationError):
        load_ratings(path)


def test_text_fields_are_trimmed_and_tags_deduplicated(tmp_path):
    path = tmp_path / "wines.json"
    path.write_text(
        json.dumps([{"wine_id": "w1", "wine_type": " red ", "region": "", "style_tags": ["Dry", "dry", " oaky "]}]),
        encoding="utf-8",
    )

    (wine,) = load_wines(path)
    assert wine.wine_type == "red"
    assert wine.region is None
    assert wine.style_tags == ["Dry", "oaky"]


def test_load_store_uses_configured_paths():
    settings = get_settings()
    catalog = settings.catalog.model_copy(
        update={"wines_path": str(DATA_DIR / "wines.json"), "ratings_path": str(DATA_DIR / "ratings.json")}
    )
    store = load_store(settings.model_copy(update={"catalog": catalog}))

    assert len(store.wines) == 10
    assert len(store.get_ratings("alice")) == 3
    assert store.get_ratings("unknown") == []
