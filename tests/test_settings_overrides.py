from __future__ import annotations

import pytest

from winematch.config.overrides import apply_settings_overrides
from winematch.config.settings import get_settings


def test_no_overrides_is_a_no_op():
    settings = get_settings()

    # Fast path: the cached model comes back untouched.
    assert apply_settings_overrides(settings, None) is settings
    assert apply_settings_overrides(settings, {}) is settings


def test_scoring_knobs_can_be_tuned_per_request():
    settings = get_settings()

    out = apply_settings_overrides(settings, {"scoring": {"style_match_points": 9}})

    assert out.scoring.style_match_points == 9
    # Untouched siblings survive the deep merge.
    assert out.scoring.type_rank_bonus == settings.scoring.type_rank_bonus
    # The shared cached settings must not leak across requests.
    assert settings.scoring.style_match_points != 9


def test_default_limit_is_overridable_but_max_limit_is_not():
    settings = get_settings()

    out = apply_settings_overrides(settings, {"recommendations": {"default_limit": 3}})
    assert out.recommendations.default_limit == 3

    with pytest.raises(ValueError, match=r"recommendations\.max_limit"):
        apply_settings_overrides(settings, {"recommendations": {"max_limit": 10_000}})


def test_credentials_cannot_be_overridden():
    settings = get_settings()

    # Credentials and file paths stay server-side only.
    with pytest.raises(ValueError, match=r"disallowed key: 'sources'"):
        apply_settings_overrides(settings, {"sources": {"supabase": {"anon_key": "stolen"}}})

    with pytest.raises(ValueError, match=r"disallowed key: 'catalog'"):
        apply_settings_overrides(settings, {"catalog": {"wines_path": "/etc/passwd"}})


def test_restricted_subtree_must_be_a_mapping():
    settings = get_settings()

    with pytest.raises(ValueError, match=r"settings_overrides key 'recommendations' must be a mapping"):
        apply_settings_overrides(settings, {"recommendations": 1})


def test_invalid_values_are_rejected_by_validation():
    settings = get_settings()

    # pydantic's ValidationError is a ValueError.
    with pytest.raises(ValueError):
        apply_settings_overrides(settings, {"scoring": {"cold_start_threshold": -1}})
