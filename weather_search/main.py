"""
FastAPI entrypoint.

This file focuses on:
- routing
- request/response handling
- wiring together DB + weather client + templates
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import date
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, Request, Depends, HTTPException, Query
from fastapi.responses import HTMLResponse, JSONResponse, Response
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates
from sqlalchemy.orm import Session

from .settings import settings, configure_logging
from .db import get_db, init_db
from . import crud
from .crud import SearchNotFound
from .exporters import export_as, UnsupportedFormat
from .forecast import summarize_forecast
from .schemas import (
    SearchCreate, SearchUpdate, SearchOut,
    WeatherDataCreate, WeatherDataUpdate, WeatherDataOut, WeatherOut,
)
from .weather_clients import OpenWeatherClient, ResolvedLocation, WeatherError, snapshot_from_current

logger = logging.getLogger(__name__)

PACKAGE_DIR = Path(__file__).resolve().parent


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    init_db()
    yield


app = FastAPI(title=settings.app_name, lifespan=lifespan)

app.mount("/static", StaticFiles(directory=PACKAGE_DIR / "static"), name="static")
templates = Jinja2Templates(directory=PACKAGE_DIR / "templates")

# API client (constructed once).
owm = OpenWeatherClient(settings.openweather_api_key, timeout_s=settings.http_timeout_s, units=settings.units)


def get_weather_client() -> OpenWeatherClient:
    return owm


async def fetch_weather(client: OpenWeatherClient, resolved: ResolvedLocation) -> dict:
    """current conditions + raw 3h forecast + daily cards for one location."""
    current = await client.current_weather(resolved.lat, resolved.lon)
    forecast_raw = await client.forecast_5day_3h(resolved.lat, resolved.lon)
    return {
        "resolved": resolved.__dict__,
        "current": current,
        "five_day": summarize_forecast(forecast_raw),
    }


def save_lookup(
    db: Session,
    label: str,
    resolved: ResolvedLocation,
    current: dict,
    date_start: Optional[date] = None,
    date_end: Optional[date] = None,
) -> int:
    """Persist a search and a snapshot of its current conditions; returns the search id."""
    search = crud.create_search(
        db, SearchCreate(location=label, latitude=resolved.lat, longitude=resolved.lon)
    )
    crud.create_weather_data(
        db,
        WeatherDataCreate(
            search_id=search.id,
            date_start=date_start,
            date_end=date_end,
            **snapshot_from_current(current),
        ),
    )
    return search.id


def _parse_date(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise WeatherError(f"Invalid date: {value!r}. Use YYYY-MM-DD.") from None


def _page(request: Request, name: str, context: dict, status_code: int = 200):
    base = {"app_name": settings.app_name, "units": settings.units}
    return templates.TemplateResponse(request, name, {**base, **context}, status_code=status_code)


# -------------------------
# UI routes
# -------------------------

@app.get("/", response_class=HTMLResponse)
async def home(request: Request, db: Session = Depends(get_db)):
    """Landing page with search + geolocation + saved searches + export links."""
    searches = [crud.search_to_dict(s) for s in crud.list_searches(db)]
    return _page(request, "index.html", {"searches": searches})


@app.get("/results", response_class=HTMLResponse)
async def results_page(
    request: Request,
    q: str = Query(..., min_length=1, max_length=255),
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    db: Session = Depends(get_db),
    client: OpenWeatherClient = Depends(get_weather_client),
):
    """
    Server-rendered weather result page.
    - geocode -> lat/lon
    - date range given: show the provider's range limitation
    - otherwise: current weather + 5-day cards, saved to history
    """
    try:
        resolved = await client.geocode(q)
        start, end = _parse_date(start_date), _parse_date(end_date)
        if start and end:
            if end < start:
                raise WeatherError("End date must be on or after start date.")
            current = await client.current_weather(resolved.lat, resolved.lon)
            date_range = await client.weather_for_date_range(resolved, start, end, current=current)
        else:
            weather = await fetch_weather(client, resolved)
    except WeatherError as e:
        return _page(request, "results.html", {"error": str(e), "q": q}, status_code=400)

    if start and end:
        # Saved only once the provider calls succeeded; the snapshot is today's conditions
        search_id = save_lookup(db, q, resolved, current, date_start=start, date_end=end)
        return _page(
            request,
            "results.html",
            {"q": q, "resolved": resolved, "date_range": date_range, "search_id": search_id},
        )

    search_id = save_lookup(db, q, resolved, weather["current"])
    return _page(request, "results.html", {"q": q, "search_id": search_id, **weather})


@app.get("/results/by-coords", response_class=HTMLResponse)
async def results_by_coords_page(
    request: Request,
    lat: float,
    lon: float,
    db: Session = Depends(get_db),
    client: OpenWeatherClient = Depends(get_weather_client),
):
    """Weather for the browser's reported position (Geolocation API)."""
    try:
        resolved = await client.reverse_geocode(lat, lon)
        weather = await fetch_weather(client, resolved)
    except WeatherError as e:
        return _page(request, "results.html", {"error": str(e), "q": f"{lat},{lon}"}, status_code=400)

    search_id = save_lookup(db, resolved.label, resolved, weather["current"])
    return _page(request, "results.html", {"q": resolved.label, "search_id": search_id, **weather})


@app.get("/searches/{search_id}", response_class=HTMLResponse)
async def saved_search_page(
    request: Request,
    search_id: int,
    db: Session = Depends(get_db),
    client: OpenWeatherClient = Depends(get_weather_client),
):
    """Reload a saved search from its stored coordinates (not saved again)."""
    search = crud.get_search(db, search_id)
    if not search:
        raise HTTPException(status_code=404, detail="Search not found")

    resolved = ResolvedLocation(name=search.location, country="", state="", lat=search.latitude, lon=search.longitude)
    try:
        weather = await fetch_weather(client, resolved)
    except WeatherError as e:
        return _page(request, "results.html", {"error": str(e), "q": search.location}, status_code=400)

    history = [crud.weather_data_to_dict(w) for w in crud.list_weather_data(db, search_id)]
    return _page(
        request,
        "results.html",
        {"q": search.location, "search_id": search_id, "history": history, **weather},
    )


# -------------------------
# Weather APIs
# -------------------------

@app.get("/api/weather", response_model=WeatherOut)
async def api_weather(
    q: str = Query(..., min_length=1, max_length=255),
    client: OpenWeatherClient = Depends(get_weather_client),
):
    """Current weather + 5-day forecast for a typed location."""
    try:
        resolved = await client.geocode(q)
        return await fetch_weather(client, resolved)
    except WeatherError as e:
        raise HTTPException(status_code=400, detail=str(e))


@app.get("/api/weather/by-coords", response_model=WeatherOut)
async def api_weather_by_coords(
    lat: float,
    lon: float,
    client: OpenWeatherClient = Depends(get_weather_client),
):
    """Current weather + 5-day forecast for the browser's coordinates."""
    try:
        resolved = await client.reverse_geocode(lat, lon)
        return await fetch_weather(client, resolved)
    except WeatherError as e:
        raise HTTPException(status_code=400, detail=str(e))


@app.get("/api/weather/range")
async def api_weather_range(
    q: str = Query(..., min_length=1, max_length=255),
    start_date: date = Query(...),
    end_date: date = Query(...),
    client: OpenWeatherClient = Depends(get_weather_client),
):
    """Date-range weather; always answered with 501 and today's conditions only."""
    try:
        resolved = await client.geocode(q)
        result = await client.weather_for_date_range(resolved, start_date, end_date)
    except WeatherError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return JSONResponse(status_code=501, content=result.model_dump(mode="json"))


# -------------------------
# Search CRUD APIs
# -------------------------

@app.get("/api/searches", response_model=list[SearchOut])
def api_list_searches(limit: int = 100, offset: int = 0, db: Session = Depends(get_db)):
    return crud.list_searches(db, limit=limit, offset=offset)


@app.post("/api/searches", response_model=SearchOut, status_code=201)
def api_create_search(payload: SearchCreate, db: Session = Depends(get_db)):
    return crud.create_search(db, payload)


@app.get("/api/searches/{search_id}", response_model=SearchOut)
def api_get_search(search_id: int, db: Session = Depends(get_db)):
    search = crud.get_search(db, search_id)
    if not search:
        raise HTTPException(status_code=404, detail="Search not found")
    return search


@app.put("/api/searches/{search_id}", response_model=SearchOut)
def api_update_search(search_id: int, payload: SearchUpdate, db: Session = Depends(get_db)):
    search = crud.get_search(db, search_id)
    if not search:
        raise HTTPException(status_code=404, detail="Search not found")
    return crud.update_search(db, search, payload)


@app.delete("/api/searches/{search_id}")
def api_delete_search(search_id: int, db: Session = Depends(get_db)):
    search = crud.get_search(db, search_id)
    if not search:
        raise HTTPException(status_code=404, detail="Search not found")
    crud.delete_search(db, search)
    return {"message": "Search deleted successfully"}


# -------------------------
# Weather snapshot CRUD APIs
# -------------------------

@app.post("/api/weather-data", response_model=WeatherDataOut, status_code=201)
def api_create_weather_data(payload: WeatherDataCreate, db: Session = Depends(get_db)):
    try:
        return crud.create_weather_data(db, payload)
    except SearchNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))


@app.get("/api/weather-data", response_model=list[WeatherDataOut])
def api_list_weather_data(search_id: int = Query(...), db: Session = Depends(get_db)):
    return crud.list_weather_data(db, search_id)


@app.put("/api/weather-data/{weather_data_id}", response_model=WeatherDataOut)
def api_update_weather_data(weather_data_id: int, payload: WeatherDataUpdate, db: Session = Depends(get_db)):
    record = crud.get_weather_data(db, weather_data_id)
    if not record:
        raise HTTPException(status_code=404, detail="Weather data not found")
    return crud.update_weather_data(db, record, payload)


@app.delete("/api/weather-data/{weather_data_id}")
def api_delete_weather_data(weather_data_id: int, db: Session = Depends(get_db)):
    record = crud.get_weather_data(db, weather_data_id)
    if not record:
        raise HTTPException(status_code=404, detail="Weather data not found")
    crud.delete_weather_data(db, record)
    return {"message": "Weather data deleted successfully"}


# -------------------------
# Export endpoint
# -------------------------

@app.get("/api/export/{fmt}")
def api_export(fmt: str, search_id: Optional[int] = None, db: Session = Depends(get_db)):
    """Export one search's snapshots, or every search, as JSON/XML/CSV/Markdown."""
    envelope = crud.build_export_envelope(db, search_id)
    try:
        result = export_as(envelope, fmt)
    except UnsupportedFormat as e:
        raise HTTPException(status_code=400, detail=str(e))

    logger.info("Export %s (search_id=%s)", fmt, search_id)
    return Response(
        content=result.content,
        media_type=result.media_type,
        headers={"Content-Disposition": f"attachment; filename={result.filename}"},
    )
