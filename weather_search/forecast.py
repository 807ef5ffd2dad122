"""
Forecast bucketing.

OpenWeather's 5-day forecast is ~40 samples in 3-hour steps. For display we
group them into one bucket per UTC calendar day, pick the sample nearest to
12:00 as the day's representative, and take the day's min/max from the
samples' own temp_min/temp_max fields.

Provider payloads are not trusted: any missing or malformed field falls back to 0 / "".
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

MIDDAY_HOUR = 12


@dataclass(frozen=True)
class WeatherSample:
    """One point-in-time observation or forecast entry (metric units)."""
    timestamp: int
    temperature: float = 0.0
    temperature_min: float = 0.0
    temperature_max: float = 0.0
    feels_like: float = 0.0
    humidity: int = 0
    condition: str = ""
    icon_id: str = ""

    @property
    def moment(self) -> datetime:
        return datetime.fromtimestamp(self.timestamp, tz=timezone.utc)


@dataclass
class DailyBucket:
    calendar_date: str
    samples: List[WeatherSample] = field(default_factory=list)
    representative_sample: Optional[WeatherSample] = None
    temperature_min_of_day: float = 0.0
    temperature_max_of_day: float = 0.0


def _number(value: Any, default: float = 0.0) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    return number if math.isfinite(number) else default


def _timestamp(value: Any) -> int:
    """Unix seconds, or 0 when the value is not a representable instant."""
    seconds = int(_number(value))
    try:
        datetime.fromtimestamp(seconds, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return 0
    return seconds


def _text(value: Any) -> str:
    return str(value) if value is not None else ""


def _mapping(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def parse_sample(item: Dict[str, Any]) -> WeatherSample:
    """
    Build a WeatherSample from a provider forecast/current item.

    Absent, wrongly typed, non-finite or out-of-range fields fall back to 0 / "".
    """
    item = _mapping(item)
    main = _mapping(item.get("main"))
    weather_list = item.get("weather")
    weather = _mapping(weather_list[0]) if isinstance(weather_list, list) and weather_list else {}
    return WeatherSample(
        timestamp=_timestamp(item.get("dt")),
        temperature=_number(main.get("temp")),
        temperature_min=_number(main.get("temp_min")),
        temperature_max=_number(main.get("temp_max")),
        feels_like=_number(main.get("feels_like")),
        humidity=int(_number(main.get("humidity"))),
        condition=_text(weather.get("description")),
        icon_id=_text(weather.get("icon")),
    )


def _midday_distance(sample: WeatherSample) -> int:
    return abs(sample.moment.hour - MIDDAY_HOUR)


def bucket_forecast(samples: Iterable[WeatherSample]) -> Dict[str, DailyBucket]:
    """
    Group samples by UTC calendar date (YYYY-MM-DD).

    Buckets come back in first-seen order. Within a bucket the representative
    is only replaced by a strictly closer sample, so ties keep the earlier one.
    """
    buckets: Dict[str, DailyBucket] = {}

    for sample in samples:
        key = sample.moment.date().isoformat()
        bucket = buckets.get(key)
        if bucket is None:
            buckets[key] = DailyBucket(
                calendar_date=key,
                samples=[sample],
                representative_sample=sample,
                temperature_min_of_day=sample.temperature_min,
                temperature_max_of_day=sample.temperature_max,
            )
            continue

        bucket.samples.append(sample)
        if _midday_distance(sample) < _midday_distance(bucket.representative_sample):
            bucket.representative_sample = sample
        bucket.temperature_min_of_day = min(bucket.temperature_min_of_day, sample.temperature_min)
        bucket.temperature_max_of_day = max(bucket.temperature_max_of_day, sample.temperature_max)

    return buckets


def summarize_forecast(forecast_3h: Dict[str, Any], days: int = 5) -> List[Dict[str, Any]]:
    """Turn a raw /forecast payload into daily cards for the templates and JSON API."""
    samples = [parse_sample(item) for item in forecast_3h.get("list") or []]

    cards: List[Dict[str, Any]] = []
    for key, bucket in list(bucket_forecast(samples).items())[:days]:
        d = bucket.representative_sample.moment.date()
        cards.append({
            "date": key,
            "dow": d.strftime("%a"),  # e.g., "Fri"
            "date_display": d.strftime("%b %d"),  # e.g., "Dec 14"
            "tmin": round(bucket.temperature_min_of_day),
            "tmax": round(bucket.temperature_max_of_day),
            "icon": bucket.representative_sample.icon_id,
            "description": bucket.representative_sample.condition,
        })

    return cards
