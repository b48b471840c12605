"""CSV export of classified and enriched permits."""

from __future__ import annotations

from pathlib import Path
from typing import Sequence

from middle_housing.common.constants import COORDINATE_HEADERS, DERIVED_HEADERS
from middle_housing.common.fs import write_csv
from middle_housing.common.models import ClassifiedRecord, EnrichedRecord

STATUS_FILTERS = ("all", "yes", "no")


def _classified(record: ClassifiedRecord | EnrichedRecord) -> ClassifiedRecord:
    return record.record if isinstance(record, EnrichedRecord) else record


def filter_records(records: Sequence, *, status: str = "all", housing_type: str | None = None) -> list:
    if status not in STATUS_FILTERS:
        raise ValueError(f"Unknown status filter: {status}")
    out = []
    for record in records:
        classified = _classified(record)
        if status == "yes" and not classified.is_middle_housing:
            continue
        if status == "no" and classified.is_middle_housing:
            continue
        if housing_type and classified.housing_type != housing_type:
            continue
        out.append(record)
    return out


def export_headers(records: Sequence, *, include_coordinates: bool) -> list[str]:
    headers: list[str] = []
    seen: set[str] = set()
    for record in records:
        for key in _classified(record).source:
            if key not in seen:
                seen.add(key)
                headers.append(key)
    derived = list(DERIVED_HEADERS)
    if include_coordinates:
        derived.extend(COORDINATE_HEADERS)
    # A source column that shares a derived name keeps its value and position.
    return headers + [name for name in derived if name not in seen]


def _serialize_row(record: ClassifiedRecord | EnrichedRecord, *, include_coordinates: bool) -> dict:
    classified = _classified(record)
    derived: dict[str, object] = {
        "Is Middle Housing": "Yes" if classified.is_middle_housing else "No",
        "Housing Type": classified.housing_type,
        "Match Reason": classified.notes,
    }
    if include_coordinates:
        coordinate = record.coordinate if isinstance(record, EnrichedRecord) else None
        derived["Latitude"] = "" if coordinate is None else coordinate.lat
        derived["Longitude"] = "" if coordinate is None else coordinate.lng
    out = {key: value for key, value in derived.items() if key not in classified.source}
    out.update(classified.source)
    return out


def export_rows(records: Sequence, *, include_coordinates: bool) -> tuple[list[str], list[dict]]:
    headers = export_headers(records, include_coordinates=include_coordinates)
    rows = [_serialize_row(record, include_coordinates=include_coordinates) for record in records]
    return headers, rows


def write_export_csv(path: Path, records: Sequence, *, include_coordinates: bool) -> Path:
    headers, rows = export_rows(records, include_coordinates=include_coordinates)
    write_csv(path, headers, rows)
    return path
