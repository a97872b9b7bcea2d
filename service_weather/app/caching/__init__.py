"""
Weather caching package.

Holds the freshness policy and the record store wrapping the key-value
service. Every store operation is bounded and fail-open: reads degrade to
"no record", writes degrade to a logged no-op.
"""

from .freshness import cache_age_seconds, is_fresh
from .record_store import CacheRecord, WeatherRecordStore, make_cache_key

__all__ = ["CacheRecord", "WeatherRecordStore", "cache_age_seconds", "is_fresh", "make_cache_key"]
