"""
Export helpers.

An export envelope is a plain dict in one of two shapes:
- {"weatherData": [snapshot, ...]}                    one search's snapshots
- {"searches": [{...search, "weatherData": [...]}]}   every search

export_as() renders it as JSON, XML, CSV or Markdown and returns the content
together with the media type and download filename for the HTTP layer.
"""

from __future__ import annotations

import csv
import io
import json
import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from typing import Any, Callable, Dict, List

logger = logging.getLogger(__name__)

NO_WEATHER_DATA = "No weather data found"
NO_SEARCHES = "No searches found"
NO_DATA = "No data to export"

ALL_SEARCHES_CSV_HEADER = ["id", "location", "latitude", "longitude", "temperature", "humidity", "description", "date"]


class UnsupportedFormat(ValueError):
    """Raised for an export format we do not render."""


@dataclass(frozen=True)
class ExportResult:
    content: str
    media_type: str
    filename: str


def export_json(envelope: Dict[str, Any]) -> str:
    """Export the envelope as pretty JSON, keys untouched."""
    return json.dumps(envelope, indent=2)


def _singular(tag: str) -> str:
    return tag[:-1] if tag.endswith("s") else tag


def _append_xml(parent: ET.Element, tag: str, value: Any) -> None:
    if isinstance(value, list):
        # No wrapper: each item becomes a sibling named after the singular field
        for item in value:
            _append_xml(parent, _singular(tag), item)
        return

    el = ET.SubElement(parent, tag)
    if isinstance(value, dict):
        for key, child in value.items():
            _append_xml(el, key, child)
    elif value is not None:
        el.text = str(value)


def export_xml(envelope: Dict[str, Any], root_tag: str = "weatherData") -> str:
    """
    Export the envelope as XML, one element per field.

    Null values become an empty element pair (<tag></tag>).
    """
    root = ET.Element(root_tag)
    for key, value in envelope.items():
        _append_xml(root, key, value)

    body = ET.tostring(root, encoding="unicode", short_empty_elements=False)
    return '<?xml version="1.0" encoding="UTF-8"?>' + body


def _csv_cell(value: Any, always_quote: bool = False) -> str:
    if value is None:
        text = ""
    else:
        text = str(value)
    if always_quote or any(ch in text for ch in (",", '"', "\n", "\r")):
        return '"' + text.replace('"', '""') + '"'
    return text


def export_csv(envelope: Dict[str, Any]) -> str:
    """
    Export as CSV.

    Single search: header from the first snapshot's fields, one row per snapshot.
    All searches: fixed header, one row per (search, snapshot); a search with no
    snapshots still gets one row with the weather columns left blank.
    """
    if "weatherData" in envelope:
        weather_data = envelope["weatherData"] or []
        if not weather_data:
            return NO_WEATHER_DATA

        output = io.StringIO()
        fieldnames = list(weather_data[0].keys())
        writer = csv.DictWriter(output, fieldnames=fieldnames, lineterminator="\n", extrasaction="ignore")
        writer.writeheader()
        for row in weather_data:
            writer.writerow(row)
        return output.getvalue().rstrip("\n")

    if "searches" in envelope:
        searches = envelope["searches"] or []
        if not searches:
            return NO_SEARCHES

        lines = [",".join(ALL_SEARCHES_CSV_HEADER)]
        for search in searches:
            head = [
                _csv_cell(search.get("id")),
                _csv_cell(search.get("location"), always_quote=True),
                _csv_cell(search.get("latitude")),
                _csv_cell(search.get("longitude")),
            ]
            weather_data = search.get("weatherData") or []
            if not weather_data:
                lines.append(",".join(head + ["", "", "", ""]))
                continue
            for weather in weather_data:
                lines.append(",".join(head + [
                    _csv_cell(weather.get("temperature")),
                    _csv_cell(weather.get("humidity")),
                    _csv_cell(weather.get("description") or "", always_quote=True),
                    _csv_cell(weather.get("created_at")),
                ]))
        return "\n".join(lines)

    return NO_DATA


def _md_cell(value: Any) -> str:
    if value is None:
        return ""
    return str(value).replace("|", "\\|")


def _md_table(rows: List[Dict[str, Any]]) -> List[str]:
    headers = list(rows[0].keys())
    lines = [
        "| " + " | ".join(headers) + " |",
        "| " + " | ".join(["---"] * len(headers)) + " |",
    ]
    for row in rows:
        lines.append("| " + " | ".join(_md_cell(row.get(h)) for h in headers) + " |")
    return lines


def export_markdown(envelope: Dict[str, Any]) -> str:
    """Export a Markdown report: one table, or one section per saved search."""
    lines = ["# Weather Data Export", ""]

    if "weatherData" in envelope:
        weather_data = envelope["weatherData"] or []
        if not weather_data:
            return "\n".join(lines + [NO_WEATHER_DATA])
        lines += _md_table(weather_data)

    elif "searches" in envelope:
        searches = envelope["searches"] or []
        if not searches:
            return "\n".join(lines + [NO_SEARCHES])

        for search in searches:
            lines += [
                f"## {search.get('location', '')}",
                "",
                f"- **ID**: {search.get('id')}",
                f"- **Coordinates**: {search.get('latitude')}, {search.get('longitude')}",
                f"- **Created At**: {search.get('created_at')}",
                "",
            ]
            weather_data = search.get("weatherData") or []
            if not weather_data:
                lines += ["No weather data available for this location.", ""]
                continue
            lines += ["### Weather Data", ""]
            lines += _md_table(weather_data)
            lines.append("")

    return "\n".join(lines) + "\n"


_FORMATS: Dict[str, tuple[Callable[[Dict[str, Any]], str], str, str]] = {
    "json": (export_json, "application/json", "weather-data.json"),
    "xml": (export_xml, "application/xml", "weather-data.xml"),
    "csv": (export_csv, "text/csv", "weather-data.csv"),
    "markdown": (export_markdown, "text/markdown", "weather-data.md"),
    "md": (export_markdown, "text/markdown", "weather-data.md"),
}


def export_as(envelope: Dict[str, Any], fmt: str) -> ExportResult:
    """Render the envelope in the requested format (case-insensitive)."""
    key = (fmt or "").strip().lower()
    if key not in _FORMATS:
        raise UnsupportedFormat(f"Unsupported export format: {fmt!r}")

    render, media_type, filename = _FORMATS[key]
    content = render(envelope)
    logger.debug("Exported %s (%d chars)", key, len(content))
    return ExportResult(content=content, media_type=media_type, filename=filename)
