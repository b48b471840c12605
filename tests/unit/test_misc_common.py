import json
import logging
from pathlib import Path

from middle_housing.common.fs import read_csv, write_csv
from middle_housing.common.ids import generate_run_id
from middle_housing.common.logging import JsonLineFormatter, RunIdFilter, build_logger, log_event
from middle_housing.common.models import NOT_FOUND, Coordinate, MergeEvent, NotFound
from middle_housing.common.time_utils import parse_run_date


def test_generate_run_id_prefix():
    assert generate_run_id().startswith("run-")


def test_parse_run_date_defaults_and_iso():
    assert parse_run_date("2026-02-17") == "2026-02-17"
    assert len(parse_run_date(None)) == len("2026-02-17")


def test_not_found_is_a_singleton():
    assert NotFound() is NOT_FOUND
    assert repr(NOT_FOUND) == "NOT_FOUND"


def test_coordinate_from_dict_validates_payload():
    assert Coordinate.from_dict({"lat": "47.5", "lng": -122}) == Coordinate(47.5, -122.0)
    assert Coordinate.from_dict({"lat": 47.5}) is None
    assert Coordinate.from_dict(None) is None


def test_merge_event_progress_handles_empty_runs():
    assert MergeEvent(batch_index=0, completed=0, total=0).progress == 1.0
    assert MergeEvent(batch_index=0, completed=1, total=4).progress == 0.25


def test_read_csv_strips_bom_and_fills_short_rows(tmp_path: Path):
    path = tmp_path / "permits.csv"
    path.write_bytes("\ufeffDescription,Address\nConstruct new DADU\n".encode("utf-8"))

    headers, rows = read_csv(path)

    assert headers == ["Description", "Address"]
    assert rows == [{"Description": "Construct new DADU", "Address": ""}]


def test_write_csv_creates_parent_dirs(tmp_path: Path):
    path = tmp_path / "nested" / "out.csv"
    write_csv(path, ["a", "b"], [{"a": 1, "b": 2, "c": 3}])
    assert path.read_text(encoding="utf-8").splitlines() == ["a,b", "1,2"]


def test_json_line_formatter_emits_stable_fields():
    record = logging.LogRecord("middle_housing.test", logging.INFO, __file__, 1, "hello", None, None)
    record.event = "BATCH_END"
    record.batch = 2
    RunIdFilter("run-x").filter(record)

    payload = json.loads(JsonLineFormatter().format(record))

    assert payload["message"] == "hello"
    assert payload["run_id"] == "run-x"
    assert payload["event"] == "BATCH_END"
    assert payload["batch"] == 2
    assert payload["address"] is None


def test_build_logger_writes_run_log_file(tmp_path: Path):
    logger = build_logger("run-log", data_dir=tmp_path, level="INFO")
    log_event(logger.getChild("unit"), "started", event="STAGE_START", status="ok")
    for handler in logger.handlers:
        handler.flush()

    lines = (tmp_path / "run_meta" / "run-log.log.jsonl").read_text(encoding="utf-8").splitlines()
    payload = json.loads(lines[-1])
    assert payload["event"] == "STAGE_START"
    assert payload["run_id"] == "run-log"
    assert payload["logger"] == "middle_housing.unit"
