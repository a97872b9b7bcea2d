"""
Upstream weather providers.

Contains the OpenWeather HTTP client and the mock provider routes used
for local runs and failure drills. Both speak the OpenWeather current
weather payload shape, so switching providers never touches the lookup
path.
"""

from .openweather import OpenWeatherClient, normalize_openweather
from .mock_openweather import create_mock_openweather_router

__all__ = ["OpenWeatherClient", "create_mock_openweather_router", "normalize_openweather"]
