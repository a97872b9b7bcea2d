"""
Value types exchanged by the weather lookup path.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class WeatherObservation:
    """A validated reading returned by an upstream fetcher."""

    temperature: float
    status: str
    duration_ms: int
    raw: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)


@dataclass(frozen=True)
class LookupResult:
    """Response envelope for one weather lookup."""

    city: str
    temperature: Optional[float]
    status: str
    response_time_ms: int
    cache_hit: bool
    stale: bool
    cache_key: str
    cache_age_seconds: Optional[int] = None
    warning: Optional[str] = None
    provider_duration_ms: Optional[int] = None

    def __post_init__(self):
        if self.stale and (not self.cache_hit or self.warning is None):
            raise ValueError("stale results must be cache hits carrying a warning")

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the JSON response body."""
        return {
            "city": self.city,
            "temperature": self.temperature,
            "status": self.status,
            "responseTimeMs": self.response_time_ms,
            "cacheHit": self.cache_hit,
            "stale": self.stale,
            "cacheAgeSeconds": self.cache_age_seconds,
            "warning": self.warning,
            "providerDurationMs": self.provider_duration_ms,
            "cache": {
                "hit": self.cache_hit,
                "stale": self.stale,
                "key": self.cache_key,
            },
        }
