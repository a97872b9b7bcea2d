"""
Freshness policy for cached weather records.

Timestamps are integer epoch milliseconds, matching the ``cachedAt`` field
of stored records.
"""

from typing import Optional


def is_fresh(cached_at: Optional[int], now: int, ttl_seconds: int) -> bool:
    """Return True iff a record written at ``cached_at`` is within ``ttl_seconds`` of ``now``.

    Records without a write timestamp are never fresh.
    """
    if cached_at is None:
        return False
    return (now - cached_at) <= ttl_seconds * 1000


def cache_age_seconds(cached_at: Optional[int], now: int) -> Optional[int]:
    """Whole seconds elapsed since ``cached_at``, clamped at zero."""
    if cached_at is None:
        return None
    return max(0, (now - cached_at) // 1000)
