"""
Per-request settings overrides.

A recommendation request may carry `settings_overrides` to tune scoring for that one
run (e.g. an A/B of the style points). Only whitelisted keys are accepted; the merged
result is re-validated so ranges still hold. Credentials, backend choice and catalog
paths are never overridable.
"""

from __future__ import annotations

from typing import Any, Mapping

from winematch.config.settings import Settings

# True: anything below this key may be overridden. A dict: only the listed children.
ALLOWED_SETTINGS_OVERRIDES_TREE: dict[str, Any] = {
    "scoring": True,
    "recommendations": {"default_limit": True},
}


def _deep_merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(value, Mapping) and isinstance(current, Mapping):
            value = _deep_merge(current, value)
        merged[key] = value
    return merged


def _filter_overrides(
    overrides: Mapping[str, Any],
    *,
    allowed_tree: Mapping[str, Any],
    path: tuple[str, ...] = (),
) -> dict[str, Any]:
    """Return `overrides` unchanged if every key is whitelisted; raise ValueError otherwise."""
    out: dict[str, Any] = {}
    for key, value in overrides.items():
        dotted = ".".join((*path, key))
        rule = allowed_tree.get(key)
        if rule is None:
            raise ValueError(f"settings_overrides contains a disallowed key: '{dotted}'")
        if rule is True:
            out[key] = value
        elif isinstance(value, Mapping):
            out[key] = _filter_overrides(value, allowed_tree=rule, path=(*path, key))
        else:
            raise ValueError(f"settings_overrides key '{dotted}' must be a mapping")
    return out


def apply_settings_overrides(settings: Settings, overrides: Mapping[str, Any] | None) -> Settings:
    if not overrides:
        return settings
    safe = _filter_overrides(overrides, allowed_tree=ALLOWED_SETTINGS_OVERRIDES_TREE)
    # Validation errors (pydantic) surface as ValueError, like a disallowed key.
    return Settings.model_validate(_deep_merge(settings.model_dump(mode="python"), safe))
