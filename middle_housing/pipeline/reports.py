"""Run report aggregation."""

from __future__ import annotations

from collections import Counter
from pathlib import Path
from typing import Sequence

from middle_housing.common.fs import write_json
from middle_housing.common.models import EnrichedRecord


def summarize(records: Sequence) -> dict:
    classified = [record.record if isinstance(record, EnrichedRecord) else record for record in records]
    included = [record for record in classified if record.is_middle_housing]
    by_type = Counter(record.housing_type for record in included)
    summary = {
        "total": len(classified),
        "middle_housing": len(included),
        "excluded": len(classified) - len(included),
        "by_housing_type": dict(sorted(by_type.items())),
    }

    enriched = [record for record in records if isinstance(record, EnrichedRecord)]
    if enriched:
        origins = Counter(record.coordinate_origin for record in enriched if record.coordinate is not None)
        summary["coordinates"] = {
            "with_coordinates": sum(origins.values()),
            "without_coordinates": sum(1 for record in enriched if record.coordinate is None),
            "by_origin": dict(sorted(origins.items())),
        }
    return summary


def write_run_summary(
    data_dir: Path,
    *,
    run_id: str,
    run_date: str,
    command: str,
    summary: dict,
    geocode: dict | None = None,
    status: str = "success",
) -> Path:
    summary_path = data_dir / "out" / "reports" / "run_summary.json"
    payload = {
        "run_id": run_id,
        "run_date": run_date,
        "command": command,
        "status": status,
        "totals": summary,
    }
    if geocode is not None:
        payload["geocode"] = geocode
    write_json(summary_path, payload)
    return summary_path
