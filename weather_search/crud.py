"""
CRUD functions for saved searches and their weather snapshots.

Kept separate from main.py so routing stays readable and the storage rules
(cascade, unknown search ids, export envelopes) are unit-testable.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from . import models
from .schemas import SearchCreate, SearchUpdate, WeatherDataCreate, WeatherDataFields

logger = logging.getLogger(__name__)


class SearchNotFound(LookupError):
    """Raised when a snapshot refers to a search that does not exist."""


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def search_to_dict(model: models.Search) -> Dict[str, Any]:
    """Convert ORM model -> dict for JSON/templates/export."""
    return {
        "id": model.id,
        "location": model.location,
        "latitude": model.latitude,
        "longitude": model.longitude,
        "created_at": _iso(model.created_at),
    }


def weather_data_to_dict(model: models.WeatherData) -> Dict[str, Any]:
    """Convert ORM model -> dict, keys in column order (CSV/Markdown headers follow it)."""
    return {
        "id": model.id,
        "search_id": model.search_id,
        "temperature": model.temperature,
        "feels_like": model.feels_like,
        "humidity": model.humidity,
        "wind_speed": model.wind_speed,
        "description": model.description,
        "icon": model.icon,
        "date_start": model.date_start,
        "date_end": model.date_end,
        "created_at": _iso(model.created_at),
    }


# -------------------------
# Searches
# -------------------------

def create_search(db: Session, payload: SearchCreate) -> models.Search:
    record = models.Search(
        location=payload.location,
        latitude=payload.latitude,
        longitude=payload.longitude,
        created_at=datetime.utcnow(),
    )
    db.add(record)
    db.commit()
    db.refresh(record)
    logger.info("Saved search %s (%s)", record.id, record.location)
    return record


def list_searches(db: Session, limit: int = 100, offset: int = 0) -> List[models.Search]:
    """List searches, newest first."""
    return (
        db.query(models.Search)
        .order_by(models.Search.created_at.desc(), models.Search.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )


def get_search(db: Session, search_id: int) -> models.Search | None:
    return db.query(models.Search).filter(models.Search.id == search_id).first()


def update_search(db: Session, record: models.Search, payload: SearchUpdate) -> models.Search:
    record.location = payload.location
    record.latitude = payload.latitude
    record.longitude = payload.longitude
    db.add(record)
    db.commit()
    db.refresh(record)
    return record


def delete_search(db: Session, record: models.Search) -> None:
    """DELETE search; its snapshots go with it."""
    search_id = record.id
    db.delete(record)
    db.commit()
    logger.info("Deleted search %s", search_id)


# -------------------------
# Weather snapshots
# -------------------------

def _date_str(value) -> Optional[str]:
    return value.isoformat() if value is not None else None


def create_weather_data(db: Session, payload: WeatherDataCreate) -> models.WeatherData:
    if get_search(db, payload.search_id) is None:
        raise SearchNotFound(f"Search {payload.search_id} not found")

    record = models.WeatherData(
        search_id=payload.search_id,
        temperature=payload.temperature,
        feels_like=payload.feels_like,
        humidity=payload.humidity,
        wind_speed=payload.wind_speed,
        description=payload.description,
        icon=payload.icon,
        date_start=_date_str(payload.date_start),
        date_end=_date_str(payload.date_end),
        created_at=datetime.utcnow(),
    )
    db.add(record)
    db.commit()
    db.refresh(record)
    return record


def list_weather_data(db: Session, search_id: int) -> List[models.WeatherData]:
    """Snapshots of one search, newest first."""
    return (
        db.query(models.WeatherData)
        .filter(models.WeatherData.search_id == search_id)
        .order_by(models.WeatherData.created_at.desc(), models.WeatherData.id.desc())
        .all()
    )


def get_weather_data(db: Session, weather_data_id: int) -> models.WeatherData | None:
    return db.query(models.WeatherData).filter(models.WeatherData.id == weather_data_id).first()


def update_weather_data(db: Session, record: models.WeatherData, payload: WeatherDataFields) -> models.WeatherData:
    record.temperature = payload.temperature
    record.feels_like = payload.feels_like
    record.humidity = payload.humidity
    record.wind_speed = payload.wind_speed
    record.description = payload.description
    record.icon = payload.icon
    record.date_start = _date_str(payload.date_start)
    record.date_end = _date_str(payload.date_end)
    db.add(record)
    db.commit()
    db.refresh(record)
    return record


def delete_weather_data(db: Session, record: models.WeatherData) -> None:
    db.delete(record)
    db.commit()


# -------------------------
# Export
# -------------------------

def build_export_envelope(db: Session, search_id: Optional[int] = None) -> Dict[str, Any]:
    """
    Build the export envelope.

    With a search id: {"weatherData": [...]} for that search.
    Without: {"searches": [{...search, "weatherData": [...]}, ...]}.
    """
    if search_id is not None:
        return {"weatherData": [weather_data_to_dict(w) for w in list_weather_data(db, search_id)]}

    searches = []
    ordered = db.query(models.Search).order_by(models.Search.created_at.desc(), models.Search.id.desc())
    for search in ordered.all():
        item = search_to_dict(search)
        item["weatherData"] = [weather_data_to_dict(w) for w in list_weather_data(db, search.id)]
        searches.append(item)
    return {"searches": searches}
