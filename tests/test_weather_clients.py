"""Tests for OpenWeatherClient with a mocked httpx.AsyncClient."""

from datetime import date
from unittest.mock import AsyncMock

import httpx
import pytest

from weather_search.weather_clients import (
    OpenWeatherClient,
    ResolvedLocation,
    WeatherError,
    snapshot_from_current,
)

from .conftest import CURRENT_PAYLOAD


def _mock_client(json_data, status_code: int = 200) -> httpx.AsyncClient:
    """Create a mock httpx.AsyncClient that returns the given JSON response."""
    mock = AsyncMock(spec=httpx.AsyncClient)
    response = httpx.Response(status_code=status_code, json=json_data, request=httpx.Request("GET", "https://test"))
    mock.get.return_value = response
    return mock


def _owm(http) -> OpenWeatherClient:
    return OpenWeatherClient("k", http_client=http)


class TestGeocode:
    @pytest.mark.asyncio
    async def test_city_uses_direct_geocoding(self):
        http = _mock_client([{"name": "Austin", "state": "Texas", "country": "US", "lat": 30.27, "lon": -97.74}])
        resolved = await _owm(http).geocode("Austin, TX")

        assert resolved == ResolvedLocation(name="Austin", country="US", state="Texas", lat=30.27, lon=-97.74)
        assert http.get.call_args.args[0].endswith("/geo/1.0/direct")
        params = http.get.call_args.kwargs["params"]
        assert params["q"] == "Austin, TX"
        assert params["appid"] == "k"

    @pytest.mark.asyncio
    async def test_zip_defaults_to_us(self):
        http = _mock_client({"name": "New York", "country": "US", "lat": 40.75, "lon": -73.99})
        resolved = await _owm(http).geocode("10001")

        assert resolved.name == "New York"
        assert http.get.call_args.args[0].endswith("/geo/1.0/zip")
        assert http.get.call_args.kwargs["params"]["zip"] == "10001,US"

    @pytest.mark.asyncio
    async def test_coordinates_are_reverse_geocoded(self):
        http = _mock_client([{"name": "Manhattan", "state": "New York", "country": "US"}])
        resolved = await _owm(http).geocode("40.7128, -74.0060")

        assert resolved.name == "Manhattan"
        assert resolved.lat == 40.7128
        assert resolved.lon == -74.006
        assert http.get.call_args.args[0].endswith("/geo/1.0/reverse")

    @pytest.mark.asyncio
    async def test_coordinates_without_match_get_generic_label(self):
        resolved = await _owm(_mock_client([])).geocode("0,0")
        assert resolved.name == "Current Location"

    @pytest.mark.asyncio
    async def test_out_of_range_latitude(self):
        http = _mock_client([])
        with pytest.raises(WeatherError, match="latitude"):
            await _owm(http).geocode("95,10")
        http.get.assert_not_called()

    @pytest.mark.asyncio
    async def test_unknown_place(self):
        with pytest.raises(WeatherError, match="Location not found"):
            await _owm(_mock_client([])).geocode("Xyzzyville")

    @pytest.mark.asyncio
    async def test_bad_api_key(self):
        with pytest.raises(WeatherError, match="API key"):
            await _owm(_mock_client({"cod": 401}, status_code=401)).geocode("Paris")

    @pytest.mark.asyncio
    async def test_transport_error_becomes_weather_error(self):
        http = AsyncMock(spec=httpx.AsyncClient)
        http.get.side_effect = httpx.ConnectError("boom")
        with pytest.raises(WeatherError, match="Unable to reach"):
            await _owm(http).geocode("Paris")


class TestWeatherCalls:
    @pytest.mark.asyncio
    async def test_current_weather_sends_units(self):
        http = _mock_client(CURRENT_PAYLOAD)
        data = await _owm(http).current_weather(48.85, 2.35)

        assert data["name"] == "Paris"
        params = http.get.call_args.kwargs["params"]
        assert params["units"] == "metric"
        assert params["lat"] == 48.85

    @pytest.mark.asyncio
    async def test_forecast_failure(self):
        with pytest.raises(WeatherError, match="Forecast failed"):
            await _owm(_mock_client({}, status_code=500)).forecast_5day_3h(1.0, 2.0)


class TestDateRange:
    @pytest.mark.asyncio
    async def test_returns_not_implemented_with_today_only(self):
        loc = ResolvedLocation(name="Paris", country="FR", state="", lat=48.85, lon=2.35)
        result = await _owm(_mock_client(CURRENT_PAYLOAD)).weather_for_date_range(
            loc, date(2025, 1, 1), date(2025, 1, 7)
        )

        assert result.status == "not_implemented"
        assert result.location == "Paris, FR"
        assert len(result.data) == 1
        assert result.data[0]["temperature"] == 18.4
        assert result.data[0]["description"] == "scattered clouds"

    @pytest.mark.asyncio
    async def test_rejects_reversed_range(self):
        http = _mock_client(CURRENT_PAYLOAD)
        loc = ResolvedLocation(name="Paris", country="FR", state="", lat=48.85, lon=2.35)
        with pytest.raises(WeatherError):
            await _owm(http).weather_for_date_range(loc, date(2025, 1, 7), date(2025, 1, 1))
        http.get.assert_not_called()

    @pytest.mark.asyncio
    async def test_reuses_fetched_current_payload(self):
        http = _mock_client(CURRENT_PAYLOAD)
        loc = ResolvedLocation(name="Paris", country="FR", state="", lat=48.85, lon=2.35)
        result = await _owm(http).weather_for_date_range(
            loc, date(2025, 1, 1), date(2025, 1, 2), current=CURRENT_PAYLOAD
        )

        assert result.data[0]["temperature"] == 18.4
        http.get.assert_not_called()


class TestSnapshotFromCurrent:
    def test_extracts_fields(self):
        assert snapshot_from_current(CURRENT_PAYLOAD) == {
            "temperature": 18.4,
            "feels_like": 17.9,
            "humidity": 62,
            "wind_speed": 3.6,
            "description": "scattered clouds",
            "icon": "03d",
        }

    def test_missing_fields_default(self):
        snap = snapshot_from_current({})
        assert snap["temperature"] == 0.0
        assert snap["wind_speed"] == 0.0
        assert snap["description"] == ""
