"""
Unit tests for the cache-aside weather lookup.
"""

import asyncio

import pytest

from shared.errors import UpstreamError
from shared.metrics import MetricsCollector
from service_weather.testing import FakeClock, FakeRedis, StubFetcher
from service_weather.app.caching import WeatherRecordStore
from service_weather.app.weather import STALE_WARNING, WeatherLookupService


class TestWeatherLookupService:
    """Test cases for WeatherLookupService."""

    @pytest.fixture
    def clock(self):
        """Create a controllable clock."""
        return FakeClock()

    @pytest.fixture
    def redis_client(self):
        """Create an in-memory Redis stand-in."""
        return FakeRedis()

    @pytest.fixture
    def fetcher(self):
        """Create a stub upstream fetcher."""
        return StubFetcher(temperature=25.0, status="scattered clouds")

    @pytest.fixture
    def metrics(self):
        """Create a metrics collector with a private registry."""
        return MetricsCollector("weather")

    @pytest.fixture
    def lookup_service(self, redis_client, fetcher, clock, metrics):
        """Create WeatherLookupService instance."""
        store = WeatherRecordStore(
            "redis://localhost:6379/0",
            retention_seconds=600,
            timeout_seconds=0.05,
            client=redis_client,
        )
        return WeatherLookupService(
            store,
            fetcher,
            ttl_seconds=60,
            upstream_timeout_seconds=0.2,
            clock=clock,
            metrics=metrics,
        )

    @pytest.mark.asyncio
    async def test_second_lookup_is_served_from_cache(self, lookup_service, fetcher):
        """Test a miss followed by an immediate hit."""
        first = await lookup_service.lookup("Tokyo")
        second = await lookup_service.lookup("Tokyo")

        assert first.cache_hit is False
        assert first.stale is False
        assert second.cache_hit is True
        assert second.stale is False
        assert second.temperature == 25.0
        assert fetcher.calls == ["Tokyo"]

    @pytest.mark.asyncio
    async def test_fresh_record_never_calls_upstream(self, lookup_service, redis_client, fetcher, clock):
        """Test fresh hits short-circuit before the fetcher."""
        redis_client.put_record("weather:tokyo", 18, "light rain", clock.now_ms() - 59_000)
        fetcher.error = AssertionError("upstream must not be called")

        result = await lookup_service.lookup("Tokyo")

        assert result.cache_hit is True
        assert result.stale is False
        assert result.temperature == 18
        assert result.status == "light rain"
        assert result.cache_age_seconds == 59
        assert result.warning is None
        assert fetcher.calls == []

    @pytest.mark.asyncio
    async def test_miss_writes_record_with_fetch_time(self, lookup_service, redis_client, clock):
        """Test successful fetches are written back with cachedAt."""
        result = await lookup_service.lookup("Hanoi")

        assert result.cache_hit is False
        assert result.provider_duration_ms == 12
        assert redis_client.stored("weather:hanoi") == {
            "temperature": 25.0,
            "status": "scattered clouds",
            "cachedAt": clock.now_ms(),
        }
        assert redis_client.set_calls[0][2] == 600

    @pytest.mark.asyncio
    async def test_stale_record_with_failing_upstream_is_served(self, lookup_service, redis_client, fetcher, clock):
        """Test stale fallback for a record past its TTL."""
        redis_client.put_record("weather:berlin", 30, "clear sky", clock.now_ms() - 90_000)
        fetcher.error = UpstreamError("openweather", "boom")

        result = await lookup_service.lookup("Berlin")

        assert result.cache_hit is True
        assert result.stale is True
        assert result.temperature == 30
        assert result.status == "clear sky"
        assert result.warning == STALE_WARNING
        assert result.cache_age_seconds == 90
        assert redis_client.get_calls == ["weather:berlin", "weather:berlin"]

    @pytest.mark.asyncio
    async def test_stale_record_with_working_upstream_is_overwritten(self, lookup_service, redis_client, fetcher, clock):
        """Test a successful refetch replaces the stale record."""
        redis_client.put_record("weather:berlin", 30, "clear sky", clock.now_ms() - 90_000)
        fetcher.temperature = 12.5
        fetcher.status = "overcast clouds"

        result = await lookup_service.lookup("Berlin")

        assert result.cache_hit is False
        assert result.stale is False
        assert result.temperature == 12.5
        assert redis_client.stored("weather:berlin")["temperature"] == 12.5
        assert redis_client.stored("weather:berlin")["cachedAt"] == clock.now_ms()

    @pytest.mark.asyncio
    async def test_no_record_and_failing_upstream_is_unavailable(self, lookup_service, fetcher, redis_client):
        """Test nothing is fabricated when there is no fallback."""
        fetcher.error = UpstreamError("openweather", "boom")

        assert await lookup_service.lookup("NoCache") is None
        assert redis_client.set_calls == []

    @pytest.mark.asyncio
    async def test_non_numeric_temperature_is_an_upstream_failure(self, lookup_service, fetcher, redis_client):
        """Test malformed upstream data is never cached."""
        fetcher.temperature = "hot"

        assert await lookup_service.lookup("Paris") is None
        assert redis_client.set_calls == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("temperature", [float("nan"), float("inf"), float("-inf")])
    async def test_non_finite_temperature_is_an_upstream_failure(
        self, lookup_service, fetcher, redis_client, clock, temperature
    ):
        """Test non-finite temperatures fall back instead of being cached."""
        redis_client.put_record("weather:paris", 14, "drizzle", clock.now_ms() - 90_000)
        fetcher.temperature = temperature

        result = await lookup_service.lookup("Paris")

        assert result.stale is True
        assert result.temperature == 14
        assert redis_client.set_calls == []

    @pytest.mark.asyncio
    async def test_non_finite_cached_timestamp_is_a_miss(self, lookup_service, redis_client, fetcher):
        """Test an unreadable stored record is refetched and replaced."""
        redis_client.data["weather:tokyo"] = '{"temperature": 1, "status": "x", "cachedAt": Infinity}'

        result = await lookup_service.lookup("Tokyo")

        assert result.cache_hit is False
        assert result.temperature == 25.0
        assert fetcher.calls == ["Tokyo"]
        assert redis_client.stored("weather:tokyo")["temperature"] == 25.0

    @pytest.mark.asyncio
    async def test_store_write_timeout_still_returns_fetched_data(self, lookup_service, redis_client):
        """Test a hung store write never delays or fails the lookup."""
        redis_client.write_delay = 1.0

        result = await asyncio.wait_for(lookup_service.lookup("Hanoi"), timeout=0.5)

        assert result.cache_hit is False
        assert result.temperature == 25.0
        assert "weather:hanoi" not in redis_client.data

    @pytest.mark.asyncio
    async def test_missing_status_defaults_to_unknown(self, lookup_service, fetcher):
        """Test a missing description is not an error."""
        fetcher.status = ""

        result = await lookup_service.lookup("Paris")

        assert result.status == "unknown"

    @pytest.mark.asyncio
    async def test_upstream_timeout_falls_back(self, lookup_service, fetcher, redis_client, clock):
        """Test a hung upstream is bounded and falls back to cache."""
        redis_client.put_record("weather:oslo", -3, "snow", clock.now_ms() - 120_000)
        fetcher.delay = 5.0

        result = await asyncio.wait_for(lookup_service.lookup("Oslo"), timeout=2.0)

        assert result.stale is True
        assert result.temperature == -3

    @pytest.mark.asyncio
    async def test_store_outage_is_invisible(self, lookup_service, redis_client, fetcher):
        """Test store failures neither block nor fail the lookup."""
        redis_client.fail_reads = True
        redis_client.fail_writes = True

        result = await lookup_service.lookup("Lima")

        assert result.cache_hit is False
        assert result.temperature == 25.0
        assert fetcher.calls == ["Lima"]

    @pytest.mark.asyncio
    async def test_store_outage_with_failing_upstream_is_unavailable(self, lookup_service, redis_client, fetcher):
        """Test read failures on both attempts yield unavailable."""
        redis_client.fail_reads = True
        fetcher.error = RuntimeError("network down")

        assert await lookup_service.lookup("Lima") is None

    @pytest.mark.asyncio
    async def test_legacy_record_is_stale(self, lookup_service, redis_client, fetcher):
        """Test records without cachedAt are refetched and may serve as fallback."""
        redis_client.put_record("weather:hue", 27, "haze", None)
        fetcher.error = UpstreamError("openweather", "boom")

        result = await lookup_service.lookup("Hue")

        assert result.stale is True
        assert result.cache_age_seconds is None
        assert fetcher.calls == ["Hue"]

    @pytest.mark.asyncio
    async def test_record_becomes_stale_after_ttl(self, lookup_service, fetcher, clock):
        """Test the freshness window measured from the original fetch."""
        await lookup_service.lookup("Tokyo")
        clock.advance(60)
        assert (await lookup_service.lookup("Tokyo")).cache_hit is True

        clock.advance(1)
        fetcher.error = UpstreamError("openweather", "boom")
        result = await lookup_service.lookup("Tokyo")

        assert result.stale is True
        assert result.cache_age_seconds == 61
        assert fetcher.calls == ["Tokyo", "Tokyo"]

    @pytest.mark.asyncio
    async def test_outcomes_are_counted(self, lookup_service, metrics, fetcher):
        """Test lookup outcome metrics."""
        await lookup_service.lookup("Tokyo")
        await lookup_service.lookup("Tokyo")
        fetcher.error = UpstreamError("openweather", "boom")
        await lookup_service.lookup("Nowhere")

        sample = metrics.registry.get_sample_value
        assert sample("weather_lookups_total", {"outcome": "fetched"}) == 1
        assert sample("weather_lookups_total", {"outcome": "fresh_hit"}) == 1
        assert sample("weather_lookups_total", {"outcome": "unavailable"}) == 1
