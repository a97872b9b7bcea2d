"""
Cache-aside lookup for current weather by city.
"""

from __future__ import annotations

import asyncio
import math
import time
from typing import TYPE_CHECKING, Callable, Optional, Protocol

from shared.errors import UpstreamError
from shared.logging import get_logger

from service_weather.app.caching import (
    CacheRecord,
    WeatherRecordStore,
    cache_age_seconds,
    is_fresh,
    make_cache_key,
)
from service_weather.app.weather.models import LookupResult, WeatherObservation

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


STALE_WARNING = "Using cached data due to upstream error"


class WeatherFetcher(Protocol):
    """Anything that can fetch a current observation for a city."""

    async def fetch(self, city: str) -> WeatherObservation:
        ...


class WeatherLookupService:
    """Coordinates store reads, upstream fetches and stale fallback for one city.

    Holds no per-request state; every lookup makes at most one store read
    before the upstream call, one upstream attempt, and then either one
    store write (success) or one store read (fallback).
    """

    def __init__(
        self,
        store: WeatherRecordStore,
        fetcher: WeatherFetcher,
        *,
        ttl_seconds: int = 60,
        upstream_timeout_seconds: float = 6.0,
        clock: Callable[[], float] = time.time,
        metrics: Optional["MetricsCollector"] = None,
    ) -> None:
        self.store = store
        self.fetcher = fetcher
        self.ttl_seconds = ttl_seconds
        self.upstream_timeout_seconds = upstream_timeout_seconds
        self.clock = clock
        self.metrics = metrics
        self.logger = get_logger("weather.lookup")

    async def lookup(self, city: str) -> Optional[LookupResult]:
        """
        Resolve current weather for a normalized city name.

        Returns None when the upstream failed and no cached record exists;
        every other failure is absorbed into the returned result.
        """
        start = time.perf_counter()
        cache_key = make_cache_key(city)

        cached = await self.store.read(cache_key)
        now = self._now_ms()
        if cached is not None and is_fresh(cached.cached_at, now, self.ttl_seconds):
            self._record_outcome("fresh_hit")
            return LookupResult(
                city=city,
                temperature=cached.temperature,
                status=cached.status,
                response_time_ms=self._elapsed_ms(start),
                cache_hit=True,
                stale=False,
                cache_key=cache_key,
                cache_age_seconds=cache_age_seconds(cached.cached_at, now),
            )

        try:
            observation = await self._fetch(city)
        except Exception as exc:
            self.logger.error(
                "Upstream fetch failed",
                city=city,
                error=str(exc),
                error_type=type(exc).__name__,
                had_cached_record=cached is not None,
            )
            return await self._fallback(city, cache_key, start)

        record = CacheRecord(
            temperature=observation.temperature,
            status=observation.status,
            cached_at=self._now_ms(),
        )
        await self.store.write(cache_key, record)

        self._record_outcome("fetched")
        return LookupResult(
            city=city,
            temperature=record.temperature,
            status=record.status,
            response_time_ms=self._elapsed_ms(start),
            cache_hit=False,
            stale=False,
            cache_key=cache_key,
            cache_age_seconds=0,
            provider_duration_ms=observation.duration_ms,
        )

    async def _fetch(self, city: str) -> WeatherObservation:
        """Single bounded upstream attempt; the result is validated before use."""
        start = time.perf_counter()
        result = "failure"
        try:
            observation = await asyncio.wait_for(
                self.fetcher.fetch(city),
                timeout=self.upstream_timeout_seconds,
            )
            if not isinstance(observation, WeatherObservation):
                raise UpstreamError("upstream", "fetcher returned an unexpected payload")
            temperature = observation.temperature
            if (
                isinstance(temperature, bool)
                or not isinstance(temperature, (int, float))
                or not math.isfinite(temperature)
            ):
                raise UpstreamError("upstream", "temperature is missing or not a finite number")
            if not observation.status:
                observation = WeatherObservation(
                    temperature=temperature,
                    status="unknown",
                    duration_ms=observation.duration_ms,
                    raw=observation.raw,
                )
            result = "success"
            return observation
        finally:
            if self.metrics:
                self.metrics.observe_histogram(
                    "upstream_fetch_duration_seconds",
                    time.perf_counter() - start,
                    result=result,
                )

    async def _fallback(self, city: str, cache_key: str, start: float) -> Optional[LookupResult]:
        """Serve whatever record the store still holds, fresh or not."""
        cached = await self.store.read(cache_key)
        if cached is None:
            self._record_outcome("unavailable")
            return None

        self.logger.warning("Serving stale weather after upstream failure", city=city, cache_key=cache_key)
        self._record_outcome("stale_fallback")
        return LookupResult(
            city=city,
            temperature=cached.temperature,
            status=cached.status,
            response_time_ms=self._elapsed_ms(start),
            cache_hit=True,
            stale=True,
            cache_key=cache_key,
            cache_age_seconds=cache_age_seconds(cached.cached_at, self._now_ms()),
            warning=STALE_WARNING,
        )

    def _now_ms(self) -> int:
        return round(self.clock() * 1000)

    @staticmethod
    def _elapsed_ms(start: float) -> int:
        return int((time.perf_counter() - start) * 1000)

    def _record_outcome(self, outcome: str) -> None:
        if self.metrics:
            self.metrics.increment_counter("weather_lookups_total", outcome=outcome)
