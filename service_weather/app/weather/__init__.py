"""
Weather lookup layer.
"""

from .lookup import STALE_WARNING, WeatherFetcher, WeatherLookupService
from .models import LookupResult, WeatherObservation

__all__ = ["LookupResult", "STALE_WARNING", "WeatherFetcher", "WeatherLookupService", "WeatherObservation"]
