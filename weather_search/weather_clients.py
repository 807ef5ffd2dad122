"""
OpenWeather client.

Kept apart from the FastAPI endpoints so the lookup flow (geocode -> fetch)
can be tested with a mocked httpx client and shared by UI and API routes.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, Optional

import httpx

from .forecast import parse_sample
from .schemas import DateRangeResult

logger = logging.getLogger(__name__)

COORDS_RE = re.compile(r"\s*([-+]?\d+(?:\.\d+)?)\s*,\s*([-+]?\d+(?:\.\d+)?)\s*")
ZIP_RE = re.compile(r"(?i)\s*(\d{5})(?:-\d{4})?\s*(?:,\s*([a-z]{2}))?\s*")

RANGE_NOT_SUPPORTED = (
    "Historical date ranges are not available from the weather provider; "
    "only today's conditions are included."
)


@dataclass(frozen=True)
class ResolvedLocation:
    """Minimal resolved location object produced by geocoding."""
    name: str
    country: str
    state: str
    lat: float
    lon: float

    @property
    def label(self) -> str:
        return ", ".join(part for part in (self.name, self.state, self.country) if part)


class WeatherError(RuntimeError):
    """Raised for user-facing weather lookup failures."""
    pass


class OpenWeatherClient:
    """
    OpenWeatherMap wrapper.

    Endpoints used:
    - Geocoding: /geo/1.0/direct, /geo/1.0/zip, /geo/1.0/reverse
    - Current weather: /data/2.5/weather
    - 5-day forecast (3-hour increments): /data/2.5/forecast
    """

    def __init__(
        self,
        api_key: str,
        timeout_s: float = 10.0,
        units: str = "metric",
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = api_key
        self.timeout_s = timeout_s
        self.units = units
        self.base = "https://api.openweathermap.org"
        self._http = http_client

    async def _get(self, path: str, params: Dict[str, Any], what: str) -> Any:
        params = {**params, "appid": self.api_key}
        try:
            if self._http is not None:
                r = await self._http.get(f"{self.base}{path}", params=params)
            else:
                async with httpx.AsyncClient(timeout=self.timeout_s) as client:
                    r = await client.get(f"{self.base}{path}", params=params)
        except httpx.HTTPError as e:
            logger.warning("%s request failed: %s", what, e)
            raise WeatherError(f"Unable to reach the weather service ({what}).") from e

        if r.status_code == 401:
            raise WeatherError("API authentication failed. Please check your API key.")
        if r.status_code == 404:
            raise WeatherError("Location not found. Please check your input and try again.")
        if r.status_code != 200:
            logger.warning("%s failed (%s): %s", what, r.status_code, r.text)
            raise WeatherError(f"{what} failed ({r.status_code}).")
        return r.json()

    async def geocode(self, query: str) -> ResolvedLocation:
        """
        Resolve a user-provided location string into (name/state/country/lat/lon).

        Supported input formats (checked in this order):
        1) Coordinates: "40.7128,-74.0060" (bounds checked, reverse geocoded for a label)
        2) US ZIP code: "10001", "10001-1234" or "10001,US"
        3) Place name: "Austin, TX" or "Paris, FR" (top match wins)
        """
        raw = query.strip().strip("'\"")
        if not raw:
            raise WeatherError("Please enter a location.")

        coord_match = COORDS_RE.fullmatch(raw)
        if coord_match:
            lat = float(coord_match.group(1))
            lon = float(coord_match.group(2))
            return await self.reverse_geocode(lat, lon)

        zip_match = ZIP_RE.fullmatch(raw)
        if zip_match:
            zip5 = zip_match.group(1)
            country = (zip_match.group(2) or "US").upper()
            data = await self._get("/geo/1.0/zip", {"zip": f"{zip5},{country}"}, "ZIP geocoding")
            return ResolvedLocation(
                name=data.get("name", raw),
                # ZIP endpoint does not report a state
                state="",
                country=data.get("country", country),
                lat=float(data["lat"]),
                lon=float(data["lon"]),
            )

        results = await self._get("/geo/1.0/direct", {"q": raw, "limit": 1}, "Geocoding") or []
        if not results:
            raise WeatherError(
                "Location not found. Try a more specific query "
                "(e.g., 'Paris, FR', 'Austin, TX', '10001', or '40.7128,-74.0060')."
            )

        best = results[0]
        return ResolvedLocation(
            name=best.get("name", raw),
            state=best.get("state", ""),
            country=best.get("country", ""),
            lat=float(best["lat"]),
            lon=float(best["lon"]),
        )

    async def reverse_geocode(self, lat: float, lon: float) -> ResolvedLocation:
        """Label a coordinate pair; falls back to "Current Location" when nothing matches."""
        if not (-90.0 <= lat <= 90.0):
            raise WeatherError("Invalid latitude. Must be between -90 and 90.")
        if not (-180.0 <= lon <= 180.0):
            raise WeatherError("Invalid longitude. Must be between -180 and 180.")

        results = await self._get("/geo/1.0/reverse", {"lat": lat, "lon": lon, "limit": 1}, "Reverse geocoding") or []
        if results:
            best = results[0]
            return ResolvedLocation(
                name=best.get("name", "Current Location"),
                state=best.get("state", ""),
                country=best.get("country", ""),
                lat=lat,
                lon=lon,
            )
        return ResolvedLocation(name="Current Location", state="", country="", lat=lat, lon=lon)

    async def current_weather(self, lat: float, lon: float) -> Dict[str, Any]:
        """Retrieves current weather conditions for a lat/lon."""
        return await self._get(
            "/data/2.5/weather", {"lat": lat, "lon": lon, "units": self.units}, "Current weather"
        )

    async def forecast_5day_3h(self, lat: float, lon: float) -> Dict[str, Any]:
        """
        Retrieves the 5-day forecast in 3-hour increments.
        forecast.summarize_forecast() turns it into one card per day.
        """
        return await self._get(
            "/data/2.5/forecast", {"lat": lat, "lon": lon, "units": self.units}, "Forecast"
        )

    async def weather_for_date_range(
        self,
        location: ResolvedLocation,
        start: date,
        end: date,
        current: Optional[Dict[str, Any]] = None,
    ) -> DateRangeResult:
        """
        Date-range lookup.

        The free OpenWeather tier has no historical range endpoint, so this returns
        a "not_implemented" result holding today's conditions only. Pass `current`
        when the /weather payload has already been fetched.
        """
        if end < start:
            raise WeatherError("End date must be on or after start date.")

        if current is None:
            current = await self.current_weather(location.lat, location.lon)
        today = parse_sample(current)
        return DateRangeResult(
            reason=RANGE_NOT_SUPPORTED,
            location=location.label,
            lat=location.lat,
            lon=location.lon,
            start_date=start,
            end_date=end,
            data=[{
                "date": date.today().isoformat(),
                "temperature": today.temperature,
                "description": today.condition,
            }],
        )


def snapshot_from_current(current: Dict[str, Any]) -> Dict[str, Any]:
    """Pick the persisted snapshot fields out of a /weather payload (missing -> 0 / "")."""
    sample = parse_sample(current)
    wind = current.get("wind") or {}
    try:
        wind_speed = float(wind.get("speed") or 0)
    except (TypeError, ValueError):
        wind_speed = 0.0
    return {
        "temperature": sample.temperature,
        "feels_like": sample.feels_like,
        "humidity": sample.humidity,
        "wind_speed": wind_speed,
        "description": sample.condition,
        "icon": sample.icon_id,
    }
