"""
OpenWeather client for the weather service.
"""

import math
import time
from typing import Any, Dict, Optional

import httpx

from shared.errors import UpstreamError
from shared.logging import get_logger

from service_weather.app.weather.models import WeatherObservation


SERVICE_NAME = "openweather"


def normalize_openweather(data: Any, duration_ms: int) -> WeatherObservation:
    """Validate an OpenWeather current-weather payload.

    A missing description is tolerated and reported as ``"unknown"``; a
    missing, non-numeric or non-finite ``main.temp`` is not.
    """
    if not data or not isinstance(data, dict):
        raise UpstreamError(SERVICE_NAME, "Invalid API response format")

    main = data.get("main")
    temperature = main.get("temp") if isinstance(main, dict) else None
    if (
        isinstance(temperature, bool)
        or not isinstance(temperature, (int, float))
        or not math.isfinite(temperature)
    ):
        raise UpstreamError(SERVICE_NAME, "Invalid temperature data type")

    status = "unknown"
    weather = data.get("weather")
    if isinstance(weather, list) and weather and isinstance(weather[0], dict):
        description = weather[0].get("description")
        if isinstance(description, str) and description:
            status = description

    return WeatherObservation(
        temperature=temperature,
        status=status,
        duration_ms=duration_ms,
        raw=data,
    )


class OpenWeatherClient:
    """Fetches current weather from OpenWeather or the mock provider.

    One attempt per call, bounded by ``timeout_seconds``. Every failure
    surfaces as ``UpstreamError``.
    """

    def __init__(
        self,
        base_url: str,
        *,
        api_key: str = "",
        provider: str = "real",
        mock_base_url: Optional[str] = None,
        mock_base_path: str = "/mock/openweather",
        timeout_seconds: float = 5.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip('/')
        self.api_key = api_key
        self.provider = provider.lower()
        self.mock_base_url = (mock_base_url or "").rstrip('/')
        self.mock_base_path = mock_base_path
        self.timeout_seconds = timeout_seconds
        self._transport = transport
        self.logger = get_logger("weather.openweather")

    async def fetch(self, city: str) -> WeatherObservation:
        """Fetch and validate the current weather for ``city``."""
        if self.provider == "mock":
            url = f"{self.mock_base_url}{self.mock_base_path}/weather"
            params: Dict[str, Any] = {"q": city}
        else:
            url = f"{self.base_url}/weather"
            params = {"q": city, "appid": self.api_key, "units": "metric"}

        start = time.perf_counter()
        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds, transport=self._transport) as client:
                response = await client.get(url, params=params)
        except httpx.TimeoutException as exc:
            raise UpstreamError(SERVICE_NAME, "API request timeout") from exc
        except httpx.HTTPError as exc:
            raise UpstreamError(SERVICE_NAME, f"Request failed: {exc}") from exc

        duration_ms = int((time.perf_counter() - start) * 1000)

        if response.status_code < 200 or response.status_code >= 300:
            self.logger.error(
                "OpenWeather request failed",
                url=url,
                city=city,
                status_code=response.status_code,
                provider=self.provider,
            )
            raise UpstreamError(
                SERVICE_NAME,
                f"Unexpected status {response.status_code}",
                status_code=response.status_code,
            )

        if not response.content:
            raise UpstreamError(SERVICE_NAME, "API returned empty body")

        try:
            data = response.json()
        except ValueError as exc:
            raise UpstreamError(SERVICE_NAME, "API returned a non-JSON body") from exc

        observation = normalize_openweather(data, duration_ms)
        self.logger.debug(
            "OpenWeather observation retrieved",
            city=city,
            provider=self.provider,
            duration_ms=duration_ms,
        )
        return observation
