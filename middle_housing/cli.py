"""CLI entrypoint for the middle housing permit filter."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from middle_housing.classify.columns import locate_columns
from middle_housing.common.config_loader import load_settings
from middle_housing.common.constants import COMMANDS, EXIT_HARD_FAIL, EXIT_PARTIAL, EXIT_SUCCESS
from middle_housing.common.errors import InputError, PipelineError
from middle_housing.common.fs import read_csv
from middle_housing.common.ids import generate_run_id
from middle_housing.common.logging import build_logger, log_event
from middle_housing.common.time_utils import parse_run_date
from middle_housing.geocode.cache import AddressCache, JsonFileStore
from middle_housing.geocode.photon import PhotonGeocoder
from middle_housing.geocode.scheduler import CancelToken, GeocodeScheduler
from middle_housing.pipeline.classify_records import classify_rows, collect_headers
from middle_housing.pipeline.enrich import run_enrichment, seed_records
from middle_housing.pipeline.export import STATUS_FILTERS, filter_records, write_export_csv
from middle_housing.pipeline.reports import summarize, write_run_summary


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("command", choices=list(COMMANDS))
    parser.add_argument("--input", required=True)
    parser.add_argument("--run-date", default=None)
    parser.add_argument("--run-id", default=None)
    parser.add_argument("--config-dir", default="./config")
    parser.add_argument("--overlay-config-dir", default=None)
    parser.add_argument("--data-dir", default="./data")
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARN", "ERROR"])
    parser.add_argument("--filter", dest="status_filter", default=None, choices=list(STATUS_FILTERS))
    parser.add_argument("--housing-type", default=None)
    parser.add_argument(
        "--all-records",
        action="store_true",
        help="geocode excluded permits too, not only middle housing",
    )
    return parser.parse_args(argv)


def _enrich(records, settings: dict, data_dir: Path, logger: logging.Logger, args: argparse.Namespace):
    cache = AddressCache(
        JsonFileStore(data_dir / settings["cache"]["path"]),
        namespace=settings["cache"]["namespace"],
    )
    cache.load()
    columns = locate_columns(collect_headers([record.source for record in records]), settings["columns"])
    seeded = seed_records(records, cache, columns=columns, bbox=settings["coordinates"]["bbox_wgs84"])

    geocoder = PhotonGeocoder.from_config(settings["geocoder"])
    scheduler = GeocodeScheduler.from_config(settings["scheduler"], geocoder, cache)
    only_middle_housing = bool(settings["scheduler"]["only_middle_housing"]) and not args.all_records
    token = CancelToken()

    current = seeded
    stats = {"total": 0, "completed": 0, "not_found": 0, "cancelled": False}
    updates = run_enrichment(seeded, scheduler, token, only_middle_housing=only_middle_housing)
    try:
        for update in updates:
            current = update.records
            stats["total"] = update.event.total
            stats["completed"] = update.event.completed
            stats["not_found"] += len(update.event.not_found)
            log_event(
                logger,
                f"geocoding {update.progress:.0%}",
                stage="enrich",
                event="PROGRESS",
                status="ok",
                completed=update.event.completed,
                total=update.event.total,
            )
    except KeyboardInterrupt:
        token.cancel()
        stats["cancelled"] = True
        log_event(logger, "geocoding cancelled", stage="enrich", event="CANCELLED", status="cancelled")
    finally:
        updates.close()
        geocoder.close()
    return current, stats


def run_command(args: argparse.Namespace) -> int:
    run_id = args.run_id or generate_run_id()
    run_date = parse_run_date(args.run_date)
    config_dir = Path(args.config_dir)
    overlay_config_dir = Path(args.overlay_config_dir) if args.overlay_config_dir else None
    data_dir = Path(args.data_dir)

    logger = build_logger(run_id, data_dir=data_dir, level=args.log_level)
    settings = load_settings(config_dir, overlay_config_dir=overlay_config_dir)

    log_event(logger, "stage start", stage=args.command, event="STAGE_START", status="ok")
    input_path = Path(args.input)
    if not input_path.exists():
        raise InputError(f"Missing CSV input: {input_path}")
    _headers, rows = read_csv(input_path)
    records = classify_rows(rows, settings["columns"])

    exit_code = EXIT_SUCCESS
    geocode_stats = None
    if args.command == "enrich":
        exported, geocode_stats = _enrich(records, settings, data_dir, logger, args)
        output_name = settings["output"]["enriched_filename"]
        include_coordinates = True
        if geocode_stats["cancelled"] or geocode_stats["not_found"]:
            exit_code = EXIT_PARTIAL
    else:
        exported = records
        output_name = settings["output"]["classified_filename"]
        include_coordinates = False

    status_filter = args.status_filter or ("yes" if args.command == "enrich" and not args.all_records else "all")
    selected = filter_records(exported, status=status_filter, housing_type=args.housing_type)
    out_path = write_export_csv(data_dir / "out" / output_name, selected, include_coordinates=include_coordinates)

    write_run_summary(
        data_dir,
        run_id=run_id,
        run_date=run_date,
        command=args.command,
        summary=summarize(exported),
        geocode=geocode_stats,
        status="partial" if exit_code == EXIT_PARTIAL else "success",
    )
    log_event(
        logger,
        f"stage end, wrote {out_path}",
        stage=args.command,
        event="STAGE_END",
        status="ok",
        rows_in=len(rows),
        rows_out=len(selected),
    )
    return exit_code


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv or sys.argv[1:])
    try:
        return run_command(args)
    except PipelineError as exc:
        logging.getLogger("middle_housing").error(
            str(exc), extra={"event": "STAGE_FAIL", "status": "error", "error_code": exc.error_code}
        )
        return EXIT_HARD_FAIL
    except Exception:
        logging.getLogger("middle_housing").exception(
            "unexpected failure", extra={"event": "STAGE_FAIL", "status": "error", "error_code": "UNEXPECTED_ERROR"}
        )
        return EXIT_HARD_FAIL


if __name__ == "__main__":
    raise SystemExit(main())
