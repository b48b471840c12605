from pathlib import Path

import pytest

from middle_housing.common.config_loader import load_settings
from middle_housing.common.errors import NoInputDataError
from middle_housing.pipeline.classify_records import classify_rows, collect_headers


@pytest.fixture(scope="module")
def columns_config():
    return load_settings(Path("config"))["columns"]


def test_collect_headers_unions_in_first_seen_order():
    assert collect_headers([{"a": "1", "b": "2"}, {"c": "3", "a": "4"}]) == ["a", "b", "c"]


def test_classify_rows_uses_located_columns(columns_config):
    rows = [
        {"Work Description": "Construct per plans", "Property/Project Name": "Ballard Townhomes", "Site Address": " 1 Main St "},
        {"Work Description": "Demolish existing garage", "Property/Project Name": "", "Site Address": "2 Main St"},
    ]

    records = classify_rows(rows, columns_config)

    assert [record.housing_type for record in records] == ["Townhouse", "Other/Remodel"]
    assert records[0].address == "1 Main St"
    assert records[0].source is not rows[0] and dict(records[0].source) == rows[0]


def test_classify_rows_tolerates_missing_columns(columns_config):
    records = classify_rows([{"Permit": "P-1"}], columns_config)
    assert records[0].is_middle_housing is False
    assert records[0].address is None


def test_classify_rows_rejects_empty_input(columns_config):
    with pytest.raises(NoInputDataError):
        classify_rows([], columns_config)
