"""
Small explainability formatting helpers.

Used by the CLI to print compact summaries of recommendation results and profiles.
"""

from __future__ import annotations

from winematch.domain.models import TasteProfile, WineRecommendation


def one_line_summary(rec: WineRecommendation) -> str:
    """Render a compact single-line summary for a scored recommendation."""
    parts = [f"score={rec.match_score}"]
    for name, points in rec.signals.items():
        parts.append(f"{name}=+{points}")
    return " | ".join(parts)


def profile_summary(profile: TasteProfile, *, top: int = 3) -> list[str]:
    """Render the top entries of each preference list, one line per dimension."""
    lines = [
        f"ratings={profile.total_ratings} avg={profile.average_rating:.2f} would_buy={profile.would_buy_rate:.0%}"
    ]
    dims = [
        ("types", [(p.wine_type, p.weight) for p in profile.preferred_types]),
        ("regions", [(p.region, p.weight) for p in profile.preferred_regions]),
        ("styles", [(p.style, p.weight) for p in profile.preferred_styles]),
        ("grapes", [(p.grape, p.weight) for p in profile.preferred_grapes]),
        ("price", [(p.price_point, p.weight) for p in profile.preferred_price_points]),
    ]
    for label, entries in dims:
        if entries:
            lines.append(f"{label}: " + ", ".join(f"{name} (w={weight})" for name, weight in entries[:top]))
    if profile.flavor_profile:
        lines.append("flavors: " + ", ".join(f.descriptor for f in profile.flavor_profile[:top]))
    return lines
