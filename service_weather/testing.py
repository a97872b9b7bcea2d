"""
Test doubles for the weather lookup service.
"""

import asyncio
import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from service_weather.app.weather.models import WeatherObservation


class FakeClock:
    """Manually advanced clock returning epoch seconds."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    def now_ms(self) -> int:
        return round(self.now * 1000)


class FakeRedis:
    """In-memory stand-in for ``redis.asyncio.Redis`` with failure injection."""

    def __init__(self):
        self.data: Dict[str, str] = {}
        self.expiries: Dict[str, Optional[int]] = {}
        self.get_calls: List[str] = []
        self.set_calls: List[Tuple[str, str, Optional[int]]] = []
        self.fail_reads = False
        self.fail_writes = False
        self.read_delay: float = 0.0
        self.write_delay: float = 0.0
        self.closed = False

    async def get(self, key: str) -> Optional[str]:
        self.get_calls.append(key)
        if self.read_delay:
            await asyncio.sleep(self.read_delay)
        if self.fail_reads:
            raise ConnectionError("redis unavailable")
        return self.data.get(key)

    async def set(self, key: str, value: str, ex: Optional[int] = None) -> bool:
        self.set_calls.append((key, value, ex))
        if self.write_delay:
            await asyncio.sleep(self.write_delay)
        if self.fail_writes:
            raise ConnectionError("redis unavailable")
        self.data[key] = value
        self.expiries[key] = ex
        return True

    async def ping(self) -> bool:
        if self.fail_reads:
            raise ConnectionError("redis unavailable")
        return True

    async def aclose(self) -> None:
        self.closed = True

    def put_record(self, key: str, temperature: Any, status: str, cached_at: Optional[int]) -> None:
        """Seed a stored record as an older deployment or a previous fetch would have."""
        payload: Dict[str, Any] = {"temperature": temperature, "status": status}
        if cached_at is not None:
            payload["cachedAt"] = cached_at
        self.data[key] = json.dumps(payload)

    def stored(self, key: str) -> Optional[Dict[str, Any]]:
        value = self.data.get(key)
        return json.loads(value) if value else None


@dataclass
class StubFetcher:
    """Upstream fetcher returning a canned observation or raising a canned error."""

    temperature: Any = 25.0
    status: str = "clear sky"
    error: Optional[BaseException] = None
    delay: float = 0.0
    calls: List[str] = field(default_factory=list)

    async def fetch(self, city: str) -> WeatherObservation:
        self.calls.append(city)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return WeatherObservation(temperature=self.temperature, status=self.status, duration_ms=12)
