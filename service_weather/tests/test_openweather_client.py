"""
Unit tests for the OpenWeather client.
"""

import httpx
import pytest

from shared.errors import UpstreamError
from service_weather.app.providers import OpenWeatherClient, normalize_openweather


def _client(handler, **kwargs):
    return OpenWeatherClient(
        "https://api.example.test/data/2.5",
        api_key="secret",
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


class TestNormalizeOpenWeather:
    """Test cases for payload validation."""

    def test_valid_payload(self):
        """Test a complete payload."""
        observation = normalize_openweather(
            {"main": {"temp": 31.2}, "weather": [{"description": "few clouds"}]}, 40
        )

        assert observation.temperature == 31.2
        assert observation.status == "few clouds"
        assert observation.duration_ms == 40

    def test_missing_description_defaults_to_unknown(self):
        """Test a payload without weather entries."""
        observation = normalize_openweather({"main": {"temp": 10}}, 5)
        assert observation.status == "unknown"

    @pytest.mark.parametrize("payload", [
        None,
        {},
        [],
        "weather",
        {"weather": [{"description": "sunny"}]},
        {"main": {"temp": "hot"}},
        {"main": {"temp": None}},
        {"main": {"temp": True}},
        {"main": {"temp": float("nan")}},
        {"main": {"temp": float("inf")}},
        {"main": {"temp": float("-inf")}},
        {"main": "warm"},
    ])
    def test_invalid_payloads(self, payload):
        """Test payloads without a finite numeric temperature are rejected."""
        with pytest.raises(UpstreamError):
            normalize_openweather(payload, 1)


class TestOpenWeatherClient:
    """Test cases for OpenWeatherClient."""

    @pytest.mark.asyncio
    async def test_real_provider_request(self):
        """Test query parameters sent to OpenWeather."""
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = request.url
            return httpx.Response(200, json={"main": {"temp": 22}, "weather": [{"description": "mist"}]})

        observation = await _client(handler).fetch("Hanoi")

        assert observation.temperature == 22
        assert observation.status == "mist"
        assert seen["url"].path == "/data/2.5/weather"
        assert seen["url"].params["q"] == "Hanoi"
        assert seen["url"].params["appid"] == "secret"
        assert seen["url"].params["units"] == "metric"

    @pytest.mark.asyncio
    async def test_mock_provider_request(self):
        """Test requests routed to the mock provider."""
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = request.url
            return httpx.Response(200, json={"main": {"temp": 30}, "weather": [{"description": "clear sky"}]})

        client = _client(handler, provider="mock", mock_base_url="http://localhost:3000/")
        await client.fetch("Hue")

        assert str(seen["url"]).startswith("http://localhost:3000/mock/openweather/weather")
        assert "appid" not in seen["url"].params

    @pytest.mark.asyncio
    @pytest.mark.parametrize("response", [
        httpx.Response(500, json={"message": "Mock upstream failure"}),
        httpx.Response(404, json={"message": "city not found"}),
        httpx.Response(200, content=b""),
        httpx.Response(200, content=b"<html>oops</html>"),
        httpx.Response(200, json={"main": {"temp": "hot"}}),
        httpx.Response(200, content=b'{"main": {"temp": NaN}, "weather": [{"description": "x"}]}'),
        httpx.Response(200, content=b'{"main": {"temp": Infinity}}'),
    ])
    async def test_bad_responses_raise(self, response):
        """Test non-2xx, empty, non-JSON and malformed bodies."""
        with pytest.raises(UpstreamError):
            await _client(lambda request: response).fetch("Hanoi")

    @pytest.mark.asyncio
    async def test_transport_errors_raise(self):
        """Test connection failures and timeouts surface as UpstreamError."""
        def refuse(request):
            raise httpx.ConnectError("refused", request=request)

        def hang(request):
            raise httpx.ReadTimeout("slow", request=request)

        with pytest.raises(UpstreamError):
            await _client(refuse).fetch("Hanoi")
        with pytest.raises(UpstreamError, match="timeout"):
            await _client(hang).fetch("Hanoi")
