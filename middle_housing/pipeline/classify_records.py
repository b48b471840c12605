"""Classify raw permit rows into middle housing verdicts."""

from __future__ import annotations

import logging
from typing import Mapping, Sequence

from middle_housing.classify.columns import ColumnMap, locate_columns
from middle_housing.classify.rules import classify_record
from middle_housing.common.errors import NoInputDataError
from middle_housing.common.logging import log_event
from middle_housing.common.models import ClassifiedRecord

LOGGER = logging.getLogger(__name__)


def collect_headers(rows: Sequence[Mapping[str, str]]) -> list[str]:
    headers: list[str] = []
    seen: set[str] = set()
    for row in rows:
        for key in row:
            if key not in seen:
                seen.add(key)
                headers.append(key)
    return headers


def classify_rows(
    rows: Sequence[Mapping[str, str]],
    columns_config: dict,
    *,
    columns: ColumnMap | None = None,
) -> list[ClassifiedRecord]:
    if not rows:
        raise NoInputDataError("No permit records to classify")

    column_map = columns or locate_columns(collect_headers(rows), columns_config)
    records = [
        classify_record(
            row,
            row.get(column_map.description) or "",
            row.get(column_map.project_name) or "",
            row.get(column_map.address) or "",
        )
        for row in rows
    ]

    included = sum(1 for record in records if record.is_middle_housing)
    log_event(
        LOGGER,
        "classification complete",
        stage="classify",
        event="CLASSIFY_END",
        status="ok",
        rows_in=len(rows),
        rows_out=included,
    )
    return records
