import csv
from pathlib import Path

import pytest

from middle_housing.classify.rules import classify_record
from middle_housing.common.models import Coordinate, EnrichedRecord
from middle_housing.pipeline.export import export_headers, export_rows, filter_records, write_export_csv


def _classified(description, **extra):
    row = {"Permit": extra.pop("permit", "P-1"), "Description": description, **extra}
    return classify_record(row, description, "", row.get("Address", ""))


@pytest.fixture
def records():
    return [
        _classified("Construct new detached ADU at rear of lot", permit="P-1"),
        _classified("Demolish existing garage", permit="P-2"),
        _classified("Construct new townhouse", permit="P-3"),
    ]


def test_filter_records_by_status(records):
    assert [r.source["Permit"] for r in filter_records(records, status="yes")] == ["P-1", "P-3"]
    assert [r.source["Permit"] for r in filter_records(records, status="no")] == ["P-2"]
    assert len(filter_records(records)) == 3


def test_filter_records_by_housing_type(records):
    assert [r.source["Permit"] for r in filter_records(records, housing_type="Townhouse")] == ["P-3"]
    assert [r.source["Permit"] for r in filter_records(records, status="no", housing_type="Townhouse")] == []


def test_filter_records_rejects_unknown_status(records):
    with pytest.raises(ValueError):
        filter_records(records, status="maybe")


def test_export_rows_preserve_original_columns_and_append_derived(records):
    headers, rows = export_rows(records, include_coordinates=False)

    assert headers == ["Permit", "Description", "Is Middle Housing", "Housing Type", "Match Reason"]
    assert rows[0]["Description"] == "Construct new detached ADU at rear of lot"
    assert rows[0]["Is Middle Housing"] == "Yes"
    assert rows[0]["Housing Type"] == "DADU"
    assert rows[0]["Match Reason"] == "DADU (New)"
    assert rows[1]["Is Middle Housing"] == "No"
    assert rows[1]["Housing Type"] == "Other/Remodel"
    assert rows[1]["Match Reason"] == "Excluded: Demolition Only"


def test_export_headers_union_keeps_first_seen_order():
    records = [
        classify_record({"A": "1", "Description": "x"}, "x", "", ""),
        classify_record({"Description": "y", "B": "2"}, "y", "", ""),
    ]
    assert export_headers(records, include_coordinates=False)[:3] == ["A", "Description", "B"]


def test_source_column_named_like_derived_column_wins():
    record = classify_record({"Description": "Construct new DADU", "Housing Type": "from source"}, "Construct new DADU", "", "")

    headers, rows = export_rows([record], include_coordinates=False)

    assert headers == ["Description", "Housing Type", "Is Middle Housing", "Match Reason"]
    assert rows[0]["Housing Type"] == "from source"


def test_enriched_export_includes_coordinates(records):
    enriched = [
        EnrichedRecord(record=records[0], coordinate=Coordinate(47.61, -122.33), coordinate_origin="geocoded"),
        EnrichedRecord(record=records[2]),
    ]

    headers, rows = export_rows(enriched, include_coordinates=True)

    assert headers[-2:] == ["Latitude", "Longitude"]
    assert (rows[0]["Latitude"], rows[0]["Longitude"]) == (47.61, -122.33)
    assert (rows[1]["Latitude"], rows[1]["Longitude"]) == ("", "")


def test_write_export_csv_round_trips_values(tmp_path: Path, records):
    out = write_export_csv(tmp_path / "out" / "filtered.csv", records, include_coordinates=False)

    with out.open("r", encoding="utf-8", newline="") as f:
        rows = list(csv.DictReader(f))
    assert [row["Permit"] for row in rows] == ["P-1", "P-2", "P-3"]
    assert rows[2]["Housing Type"] == "Townhouse"
