"""Locate permit columns and read pre-supplied coordinates."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Mapping

from middle_housing.common.models import Coordinate


@dataclass(frozen=True)
class ColumnMap:
    description: str
    project_name: str
    address: str
    latitude: str | None = None
    longitude: str | None = None


def _find_by_substring(headers: list[str], needle: str, default: str) -> str:
    lowered = needle.lower()
    for header in headers:
        if lowered in header.lower():
            return header
    return default


def _find_by_candidates(headers: list[str], candidates: Iterable[str]) -> str | None:
    by_lower = {}
    for header in headers:
        by_lower.setdefault(header.strip().lower(), header)
    for candidate in candidates:
        found = by_lower.get(str(candidate).lower())
        if found is not None:
            return found
    return None


def locate_columns(headers: Iterable[str], columns_config: dict) -> ColumnMap:
    header_list = list(headers)
    return ColumnMap(
        description=_find_by_substring(
            header_list, columns_config["description"]["match"], columns_config["description"]["default"]
        ),
        project_name=_find_by_substring(
            header_list, columns_config["project_name"]["match"], columns_config["project_name"]["default"]
        ),
        address=_find_by_substring(
            header_list, columns_config["address"]["match"], columns_config["address"]["default"]
        ),
        latitude=_find_by_candidates(header_list, columns_config["latitude"]["candidates"]),
        longitude=_find_by_candidates(header_list, columns_config["longitude"]["candidates"]),
    )


def _safe_float(value: Any) -> float | None:
    if value is None:
        return None
    if isinstance(value, str) and not value.strip():
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _within_bbox(lat: float, lng: float, bbox: dict) -> bool:
    return (
        bbox["min_lat"] <= lat <= bbox["max_lat"]
        and bbox["min_lon"] <= lng <= bbox["max_lon"]
    )


def presupplied_coordinate(row: Mapping[str, str], columns: ColumnMap, bbox: dict) -> Coordinate | None:
    if columns.latitude is None or columns.longitude is None:
        return None
    lat = _safe_float(row.get(columns.latitude))
    lng = _safe_float(row.get(columns.longitude))
    if lat is None or lng is None:
        return None
    if not _within_bbox(lat, lng, bbox):
        return None
    return Coordinate(lat=lat, lng=lng)
