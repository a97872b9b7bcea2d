"""
Weather lookup service.
"""

from typing import Any, Dict, Optional

from fastapi import Depends, Query, Request, Response
from fastapi.responses import JSONResponse

from shared.base_service import BaseService
from shared.errors import ServiceUnavailableError
from service_weather.app.caching import WeatherRecordStore
from service_weather.app.cities import load_cities
from service_weather.app.providers import OpenWeatherClient, create_mock_openweather_router
from service_weather.app.ratelimit import RateLimitMiddleware, SlidingWindowRateLimiter
from service_weather.app.validation import validate_city_name
from service_weather.app.weather import WeatherFetcher, WeatherLookupService


class WeatherService(BaseService):
    """Weather lookup service implementation."""

    def __init__(
        self,
        *,
        store: Optional[WeatherRecordStore] = None,
        fetcher: Optional[WeatherFetcher] = None,
        rate_limiter: Optional[SlidingWindowRateLimiter] = None,
        **config_overrides,
    ):
        super().__init__("weather", 3000, **config_overrides)

        if self.config.cache_retention_seconds <= self.config.cache_ttl_seconds:
            self.logger.warning(
                "Cache retention does not exceed freshness TTL; stale fallback is unreachable",
                cache_ttl_seconds=self.config.cache_ttl_seconds,
                cache_retention_seconds=self.config.cache_retention_seconds,
            )

        self.store = store or WeatherRecordStore(
            self.config.redis_url,
            retention_seconds=self.config.cache_retention_seconds,
            timeout_seconds=self.config.store_timeout_seconds,
            metrics=self.metrics,
        )
        self.fetcher = fetcher or OpenWeatherClient(
            self.config.openweather_base_url,
            api_key=self.config.openweather_api_key,
            provider=self.config.openweather_provider,
            mock_base_url=self.config.mock_openweather_base_url or f"http://127.0.0.1:{self.config.port}",
            mock_base_path=self.config.mock_openweather_base_path,
            timeout_seconds=self.config.upstream_timeout_seconds,
        )
        self.lookup_service = WeatherLookupService(
            self.store,
            self.fetcher,
            ttl_seconds=self.config.cache_ttl_seconds,
            upstream_timeout_seconds=self.config.lookup_upstream_timeout_seconds,
            metrics=self.metrics,
        )
        self.rate_limiter = rate_limiter or SlidingWindowRateLimiter(
            self.config.rate_limit_max_requests,
            self.config.rate_limit_window_ms,
            cleanup_threshold=self.config.rate_limit_cleanup_threshold,
        )
        self.rate_limit_middleware = RateLimitMiddleware(
            self.rate_limiter,
            trust_forwarded_headers=self.config.trust_forwarded_headers,
            metrics=self.metrics,
        )

        @self.app.on_event("shutdown")
        async def _shutdown():
            await self.store.close()

        self._setup_weather_routes()
        if self.config.enable_mock_provider:
            self.app.include_router(
                create_mock_openweather_router(self.config.mock_default_delay_ms),
                prefix=self.config.mock_openweather_base_path,
            )

        # Expose service instance via app state for introspection/testing
        self.app.state.weather_service = self

    async def _check_dependencies(self) -> Dict[str, str]:
        return {"redis": "ok" if await self.store.ping() else "error"}

    async def _enforce_rate_limit(self, request: Request, response: Response) -> None:
        rate_result = self.rate_limit_middleware.check_request(request)
        self._set_rate_limit_headers(response, rate_result)

    def _set_rate_limit_headers(self, response: Response, rate_result: Dict[str, Any]) -> None:
        """Propagate rate limiting metadata via standard headers."""
        response.headers["X-RateLimit-Limit"] = str(rate_result["limit"])
        response.headers["X-RateLimit-Remaining"] = str(rate_result["remaining"])

    def _setup_weather_routes(self):
        """Set up weather routes."""

        @self.app.get("/weather", dependencies=[Depends(self._enforce_rate_limit)])
        async def get_weather(city: Optional[str] = Query(default=None)):
            """Current weather for a city, served cache-aside with stale fallback."""
            normalized = validate_city_name(city)
            result = await self.lookup_service.lookup(normalized)
            if result is None:
                raise ServiceUnavailableError()
            return result.to_dict()

        @self.app.get("/api/cities", dependencies=[Depends(self._enforce_rate_limit)])
        async def list_cities():
            """Cities offered by the front-end picker."""
            try:
                cities = load_cities(self.config.cities_file)
            except (OSError, UnicodeDecodeError) as exc:
                self.logger.error("Failed to load cities", path=self.config.cities_file, error=str(exc))
                return JSONResponse(status_code=500, content={"message": "Failed to load cities"})
            return {"cities": cities}


def create_app(**kwargs):
    """Create FastAPI application."""
    service = WeatherService(**kwargs)
    return service.app


if __name__ == "__main__":
    service = WeatherService()
    service.run()
