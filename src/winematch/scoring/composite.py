"""
Shared scoring utilities.

This module contains small, reusable helpers used across the signal scorers:
- `clamp_score`: keep a match score within 0..100 for stable UI/output
- `rank_bonus`: look up the points for a 0-based rank in a rank-decay table
- `find_rank`: locate a value in a ranked preference list (case-insensitive)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Sequence, TypeVar

from winematch.domain.models import match_key

T = TypeVar("T")

SignalName = str


def clamp_score(x: float) -> int:
    """Clamp a number into the integer [0, 100] range."""
    return int(max(0, min(100, round(x))))


def rank_bonus(table: Sequence[int], rank: int | None) -> int:
    """Return the bonus for `rank` (0 = top); unranked or past-the-end ranks earn 0."""
    if rank is None or rank < 0 or rank >= len(table):
        return 0
    return max(0, int(table[rank]))


def find_rank(items: Sequence[T], value: str | None, *, key: Callable[[T], str]) -> int | None:
    """Return the index of the first item whose `key` matches `value`, else None."""
    wanted = match_key(value)
    if not wanted:
        return None
    for i, item in enumerate(items):
        if match_key(key(item)) == wanted:
            return i
    return None


@dataclass(frozen=True)
class SignalResult:
    """Points earned by one scoring signal plus its explainability payload.

    `reason` is None when the signal did not fire (zero points).
    """

    name: SignalName
    points: int
    reason: str | None = None
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def fired(self) -> bool:
        return self.points > 0
