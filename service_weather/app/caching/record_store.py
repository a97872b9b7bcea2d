"""
Fail-open record store for cached weather snapshots.
"""

from __future__ import annotations

import asyncio
import json
import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict, Optional

import redis.asyncio as redis

from shared.logging import get_logger

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


CACHE_KEY_PREFIX = "weather"


def make_cache_key(city: str) -> str:
    """Build the store key for a city. The format is shared with existing deployments."""
    return f"{CACHE_KEY_PREFIX}:{city.lower()}"


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


@dataclass(frozen=True)
class CacheRecord:
    """Weather snapshot for one city as held in the key-value store."""

    temperature: Optional[float]
    status: str
    cached_at: Optional[int]

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the stored JSON shape."""
        return {
            "temperature": self.temperature,
            "status": self.status,
            "cachedAt": self.cached_at,
        }

    @classmethod
    def from_dict(cls, payload: Any) -> "CacheRecord":
        """Rehydrate a record from decoded JSON, raising ValueError when malformed.

        Records written before ``cachedAt`` existed are accepted with no timestamp.
        """
        if not isinstance(payload, dict):
            raise ValueError("cached payload is not an object")

        temperature = payload.get("temperature")
        if temperature is not None and not _is_number(temperature):
            raise ValueError("cached temperature is not a finite number")

        status = payload.get("status", "unknown")
        if not isinstance(status, str):
            raise ValueError("cached status is not a string")

        cached_at = payload.get("cachedAt")
        if cached_at is not None:
            if not _is_number(cached_at):
                raise ValueError("cachedAt is not a finite number")
            cached_at = int(cached_at)

        return cls(
            temperature=float(temperature) if temperature is not None else None,
            status=status,
            cached_at=cached_at,
        )


class WeatherRecordStore:
    """Reads and writes ``CacheRecord`` values with bounded, fail-open store calls.

    Any store error, timeout, or malformed payload reads as "no record"; a
    failed write is logged and dropped. Nothing here raises to the caller.
    """

    def __init__(
        self,
        redis_url: str,
        *,
        retention_seconds: int = 600,
        timeout_seconds: float = 1.0,
        client: Optional[Any] = None,
        metrics: Optional["MetricsCollector"] = None,
    ) -> None:
        self.redis_url = redis_url
        self.retention_seconds = retention_seconds
        self.timeout_seconds = timeout_seconds
        self.metrics = metrics
        self.logger = get_logger("weather.cache_store")
        self._redis = client if client is not None else redis.from_url(
            redis_url,
            encoding="utf-8",
            decode_responses=True,
        )

    async def close(self) -> None:
        """Close Redis connections."""
        try:
            await self._redis.aclose()
        except Exception as exc:  # pragma: no cover - close is best effort
            self.logger.debug("Redis close failed", error=str(exc))

    async def read(self, key: str) -> Optional[CacheRecord]:
        """Return the record stored under ``key``, or None."""
        try:
            value = await asyncio.wait_for(self._redis.get(key), timeout=self.timeout_seconds)
        except asyncio.TimeoutError:
            self.logger.error("Redis read timed out", key=key, timeout_seconds=self.timeout_seconds)
            self._record_error("read")
            return None
        except Exception as exc:
            self.logger.error("Redis read failed", key=key, error=str(exc))
            self._record_error("read")
            return None

        if not value:
            return None

        try:
            if isinstance(value, bytes):
                value = value.decode("utf-8")
            return CacheRecord.from_dict(json.loads(value))
        except (UnicodeDecodeError, json.JSONDecodeError, ValueError, OverflowError) as exc:
            self.logger.warning("Discarding malformed cache payload", key=key, error=str(exc))
            return None

    async def write(self, key: str, record: CacheRecord) -> bool:
        """Persist ``record`` with the retention expiry. Returns False on failure."""
        payload = json.dumps(record.to_dict())
        try:
            await asyncio.wait_for(
                self._redis.set(key, payload, ex=self.retention_seconds),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError:
            self.logger.error("Redis write timed out", key=key, timeout_seconds=self.timeout_seconds)
            self._record_error("write")
            return False
        except Exception as exc:
            self.logger.error("Redis write failed", key=key, error=str(exc))
            self._record_error("write")
            return False
        return True

    async def ping(self) -> bool:
        """Return True when Redis responds to a ping."""
        try:
            return bool(await asyncio.wait_for(self._redis.ping(), timeout=self.timeout_seconds))
        except Exception as exc:
            self.logger.error("Redis health check failed", error=str(exc))
            return False

    def _record_error(self, operation: str) -> None:
        if self.metrics:
            self.metrics.increment_counter("cache_store_errors_total", operation=operation)
