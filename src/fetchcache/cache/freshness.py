"""Freshness evaluation for cache entries.

An entry is *fresh* while its age is below the caller-supplied TTL.  Fresh
entries are served without touching the network; stale entries are
revalidated with a conditional GET but never deleted.
"""

from __future__ import annotations

import time
from datetime import timedelta
from typing import Callable, Optional

from fetchcache.exceptions import InvalidUsageError
from fetchcache.models import CacheEntry

Clock = Callable[[], int]
"""A zero-argument callable returning the current time in ms since the epoch."""

UNBOUNDED_TTL = timedelta.max
"""A TTL under which every entry is fresh."""


def now_ms() -> int:
    """Return the current wall-clock time in milliseconds since the epoch."""
    return time.time_ns() // 1_000_000


def is_fresh(entry: CacheEntry, ttl: timedelta, now: Optional[int] = None) -> bool:
    """Return whether *entry* is younger than *ttl*.

    ``timedelta(0)`` makes every entry stale; :data:`UNBOUNDED_TTL` makes
    every entry fresh.

    Args:
        entry: The cache entry to classify.
        ttl: Local freshness window.
        now: Current time in ms since the epoch. Defaults to :func:`now_ms`.
    """
    if ttl >= UNBOUNDED_TTL:
        return True
    if now is None:
        now = now_ms()
    age = timedelta(milliseconds=now - entry.written_at)
    return age < ttl


def ttl_from_seconds(seconds: Optional[float]) -> timedelta:
    """Convert a TTL in seconds into a :class:`~datetime.timedelta`.

    ``None`` means unbounded.

    Raises:
        InvalidUsageError: If *seconds* is negative.
    """
    if seconds is None:
        return UNBOUNDED_TTL
    if seconds < 0:
        raise InvalidUsageError(f"TTL must not be negative, got {seconds}")
    try:
        return timedelta(seconds=seconds)
    except OverflowError:
        return UNBOUNDED_TTL
