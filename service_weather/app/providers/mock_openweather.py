"""
Mock OpenWeather provider with injectable delay, status, temperature and failure.
"""

import asyncio
from typing import Any, Optional, Union

from fastapi import APIRouter, Query
from fastapi.responses import JSONResponse

from shared.logging import get_logger


def _parse_temperature(value: Optional[str]) -> Union[float, str]:
    """Numeric strings become floats; anything else is echoed back for malformed-payload drills."""
    if value is None:
        return 30.0
    try:
        return float(value)
    except ValueError:
        return value


def create_mock_openweather_router(default_delay_ms: int = 0) -> APIRouter:
    """Build the mock provider routes, mounted under the configured mock base path."""
    router = APIRouter()
    logger = get_logger("weather.mock_openweather")

    @router.get("/weather")
    async def mock_weather(
        q: str = Query(default=""),
        delay_ms: Optional[int] = Query(default=None, alias="delayMs", ge=0),
        status: str = Query(default="clear sky"),
        temp: Optional[str] = Query(default=None),
        fail: str = Query(default="false"),
    ) -> Any:
        city = q.strip()
        if not city:
            return JSONResponse(status_code=400, content={"message": "Missing q"})

        delay = delay_ms if delay_ms is not None else default_delay_ms
        if delay:
            await asyncio.sleep(delay / 1000)

        if fail == "true":
            logger.info("Mock upstream failure requested", city=city)
            return JSONResponse(status_code=500, content={"message": "Mock upstream failure"})

        return {
            "name": city,
            "main": {"temp": _parse_temperature(temp)},
            "weather": [{"description": status}],
        }

    return router
