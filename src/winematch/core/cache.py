"""
In-memory taste-profile cache.

The engine itself is stateless; this cache is an optional layer for callers (API, CLI)
that want to avoid re-reading a user's ratings on every request:
- Profiles are keyed by user id.
- TTL is enforced on read (None disables expiry).
- `invalidate(user_id)` must be called whenever a new rating is recorded for that user
  (see `winematch.recommender.recommend.record_rating`).
"""

from __future__ import annotations

import contextvars
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Iterator

from winematch.domain.models import TasteProfile


@dataclass(frozen=True)
class CacheEntry:
    """A cached profile plus the time it was built."""

    created_at: float
    profile: TasteProfile


@dataclass
class CacheStats:
    """Per-request cache usage stats (best-effort)."""

    hits: int = 0
    misses: int = 0
    expired: int = 0
    sets: int = 0
    invalidations: int = 0

    def as_dict(self) -> dict[str, int]:
        return {
            "hits": int(self.hits),
            "misses": int(self.misses),
            "expired": int(self.expired),
            "sets": int(self.sets),
            "invalidations": int(self.invalidations),
        }


_cache_stats_var: contextvars.ContextVar[CacheStats | None] = contextvars.ContextVar(
    "winematch_cache_stats", default=None
)


def _stats() -> CacheStats | None:
    return _cache_stats_var.get()


@contextmanager
def record_cache_stats() -> Iterator[CacheStats]:
    """Capture cache stats within the current context (thread/task-safe)."""
    stats = CacheStats()
    token = _cache_stats_var.set(stats)
    try:
        yield stats
    finally:
        _cache_stats_var.reset(token)


class ProfileCache:
    """A thread-safe `user_id -> TasteProfile` cache.

    Every `invalidate(user_id)` bumps that user's generation (and `clear()` bumps a global
    epoch). `get_or_build` only stores a profile if no invalidation happened while it was
    being built, so a rating recorded mid-build is never hidden behind a stale entry.
    """

    def __init__(self, enabled: bool = True, ttl_seconds: int | None = None):
        self._enabled = enabled
        self._ttl_seconds = ttl_seconds
        self._entries: dict[str, CacheEntry] = {}
        self._generations: dict[str, int] = {}
        self._epoch = 0
        self._lock = threading.Lock()

    @property
    def enabled(self) -> bool:
        return self._enabled

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _generation(self, user_id: str) -> tuple[int, int]:
        # Caller holds the lock.
        return self._epoch, self._generations.get(user_id, 0)

    def get(self, user_id: str) -> TasteProfile | None:
        """Return a cached profile if present and not expired; otherwise None."""
        if not self._enabled:
            return None

        with self._lock:
            entry = self._entries.get(user_id)
            if entry is None:
                st = _stats()
                if st:
                    st.misses += 1
                return None

            if self._ttl_seconds is not None and time.monotonic() - entry.created_at > self._ttl_seconds:
                del self._entries[user_id]
                st = _stats()
                if st:
                    st.misses += 1
                    st.expired += 1
                return None

        st = _stats()
        if st:
            st.hits += 1
        return entry.profile

    def set(self, user_id: str, profile: TasteProfile) -> None:
        if not self._enabled:
            return None
        with self._lock:
            self._entries[user_id] = CacheEntry(created_at=time.monotonic(), profile=profile)
        st = _stats()
        if st:
            st.sets += 1

    def invalidate(self, user_id: str) -> bool:
        """Drop the cached profile for `user_id`; returns True if one was present.

        Builds already in flight for this user will not be stored.
        """
        with self._lock:
            removed = self._entries.pop(user_id, None) is not None
            self._generations[user_id] = self._generations.get(user_id, 0) + 1
        st = _stats()
        if st:
            st.invalidations += 1
        return removed

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._epoch += 1

    def get_or_build(self, user_id: str, builder: Callable[[], TasteProfile]) -> TasteProfile:
        """Return the cached profile, or build and store it via `builder`.

        The builder runs outside the lock. If it raises (e.g. the rating feed is down),
        nothing is cached and the error propagates. If the user was invalidated while it
        ran, the fresh result is returned to this caller but not cached.
        """
        cached = self.get(user_id)
        if cached is not None:
            return cached

        with self._lock:
            started = self._generation(user_id)
        profile = builder()
        if not self._enabled:
            return profile

        with self._lock:
            stored = self._generation(user_id) == started
            if stored:
                self._entries[user_id] = CacheEntry(created_at=time.monotonic(), profile=profile)
        st = _stats()
        if st and stored:
            st.sets += 1
        return profile
