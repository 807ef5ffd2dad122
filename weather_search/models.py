"""
ORM models.

We store:
- every location the user looked up (label + resolved lat/lon)
- weather snapshots saved against a search (one-to-many)
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from sqlalchemy import String, Integer, Float, DateTime, Text, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .db import Base


class Search(Base):
    __tablename__ = "searches"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)

    # What the user typed, or the reverse-geocoded label for device positions
    location: Mapped[str] = mapped_column(String(255), index=True)
    latitude: Mapped[float] = mapped_column(Float)
    longitude: Mapped[float] = mapped_column(Float)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    weather_data: Mapped[List["WeatherData"]] = relationship(
        back_populates="search",
        cascade="all, delete-orphan",
        order_by="WeatherData.id.desc()",
    )


class WeatherData(Base):
    __tablename__ = "weather_data"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    search_id: Mapped[int] = mapped_column(
        ForeignKey("searches.id", ondelete="CASCADE"), index=True
    )

    temperature: Mapped[float] = mapped_column(Float)
    feels_like: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    humidity: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    wind_speed: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    icon: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)

    # Only set for date-range lookups (ISO dates as entered)
    date_start: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    date_end: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    search: Mapped[Search] = relationship(back_populates="weather_data")
