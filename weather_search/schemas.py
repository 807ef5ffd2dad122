"""
Pydantic schemas.

Defines the contract of the REST endpoints (request validation + response shapes).
"""

from pydantic import BaseModel, ConfigDict, Field, model_validator
from datetime import date, datetime
from typing import Any, List, Literal, Optional


class GeoResolved(BaseModel):
    """Normalized location data returned by geocoding."""
    name: str
    country: str = ""
    state: str = ""
    lat: float
    lon: float


class SearchCreate(BaseModel):
    """Payload for saving a looked-up location."""
    location: str = Field(..., min_length=1, max_length=255)
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)


class SearchUpdate(SearchCreate):
    """Updates replace label and coordinates together."""


class SearchOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    location: str
    latitude: float
    longitude: float
    created_at: datetime


class WeatherDataFields(BaseModel):
    """Snapshot values shared by create and update payloads."""
    temperature: float
    feels_like: Optional[float] = None
    humidity: Optional[int] = None
    wind_speed: Optional[float] = None
    description: Optional[str] = None
    icon: Optional[str] = None
    date_start: Optional[date] = None
    date_end: Optional[date] = None

    @model_validator(mode="after")
    def check_range(self):
        if self.date_start and self.date_end and self.date_end < self.date_start:
            raise ValueError("date_end must be on or after date_start")
        return self


class WeatherDataCreate(WeatherDataFields):
    search_id: int


class WeatherDataUpdate(WeatherDataFields):
    pass


class WeatherDataOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    search_id: int
    temperature: float
    feels_like: Optional[float] = None
    humidity: Optional[int] = None
    wind_speed: Optional[float] = None
    description: Optional[str] = None
    icon: Optional[str] = None
    date_start: Optional[str] = None
    date_end: Optional[str] = None
    created_at: datetime


class DateRangeResult(BaseModel):
    """
    Outcome of a date-range lookup.

    The provider has no historical range API on the free tier, so the only
    status we can produce is "not_implemented": `data` then holds today's
    conditions alone and `reason` says why the rest of the range is missing.
    """
    status: Literal["not_implemented"] = "not_implemented"
    reason: str
    location: str
    lat: float
    lon: float
    start_date: date
    end_date: date
    data: List[dict] = []


class WeatherOut(BaseModel):
    """
    Output structure for current + forecast weather calls.
    current is loosely typed (OpenWeather payload shape).
    """
    resolved: GeoResolved
    current: Any
    five_day: List[dict]
