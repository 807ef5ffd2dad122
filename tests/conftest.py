"""Shared fixtures: a throwaway SQLite file, a fake weather client and a TestClient."""

import os
import tempfile
from pathlib import Path

# Settings are read at import time, so these must be in place before weather_search is imported.
os.environ.setdefault("OPENWEATHER_API_KEY", "test-key")
os.environ.setdefault("SQLITE_PATH", str(Path(tempfile.mkdtemp()) / "test.sqlite3"))

import pytest
from fastapi.testclient import TestClient

from weather_search.db import Base, SessionLocal, engine, init_db
from weather_search.main import app, get_weather_client
from weather_search.weather_clients import OpenWeatherClient, ResolvedLocation, WeatherError

CURRENT_PAYLOAD = {
    "coord": {"lat": 48.85, "lon": 2.35},
    "name": "Paris",
    "main": {"temp": 18.4, "feels_like": 17.9, "temp_min": 16.0, "temp_max": 20.1, "humidity": 62},
    "wind": {"speed": 3.6},
    "weather": [{"description": "scattered clouds", "icon": "03d"}],
    "dt": 1736942400,
}

# 2025-01-15 09:00, 12:00 and 2025-01-16 12:00 UTC
FORECAST_PAYLOAD = {
    "list": [
        {"dt": 1736931600, "main": {"temp": 5.0, "temp_min": 4.0, "temp_max": 6.0},
         "weather": [{"description": "mist", "icon": "50d"}]},
        {"dt": 1736942400, "main": {"temp": 8.0, "temp_min": 7.0, "temp_max": 9.5},
         "weather": [{"description": "clear sky", "icon": "01d"}]},
        {"dt": 1737028800, "main": {"temp": 3.0, "temp_min": -1.0, "temp_max": 4.0},
         "weather": [{"description": "light snow", "icon": "13d"}]},
    ]
}


class FakeWeatherClient(OpenWeatherClient):
    """OpenWeatherClient with the network calls replaced by canned payloads."""

    def __init__(self):
        super().__init__("test-key")
        self.fail_with = None
        self.current_fails_with = None

    async def geocode(self, query):
        if self.fail_with:
            raise WeatherError(self.fail_with)
        return ResolvedLocation(name="Paris", country="FR", state="", lat=48.85, lon=2.35)

    async def reverse_geocode(self, lat, lon):
        return ResolvedLocation(name="Paris", country="FR", state="", lat=lat, lon=lon)

    async def current_weather(self, lat, lon):
        if self.current_fails_with:
            raise WeatherError(self.current_fails_with)
        return CURRENT_PAYLOAD

    async def forecast_5day_3h(self, lat, lon):
        return FORECAST_PAYLOAD


@pytest.fixture(autouse=True)
def fresh_tables():
    Base.metadata.drop_all(bind=engine)
    init_db()
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def fake_weather():
    return FakeWeatherClient()


@pytest.fixture
def client(fake_weather):
    app.dependency_overrides[get_weather_client] = lambda: fake_weather
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
