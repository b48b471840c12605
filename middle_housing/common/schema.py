"""Minimal strict schemas for YAML config validation."""

from __future__ import annotations

from middle_housing.common.errors import ConfigError


def _assert_required_keys(obj: dict, required: set[str], ctx: str) -> None:
    if not isinstance(obj, dict):
        raise ConfigError(f"Expected a mapping for {ctx}")
    missing = required - set(obj)
    if missing:
        missing_str = ", ".join(sorted(missing))
        raise ConfigError(f"Missing keys in {ctx}: {missing_str}")


def _assert_no_unknown_keys(obj: dict, known: set[str], ctx: str, allow_unknown: bool) -> None:
    if allow_unknown:
        return
    unknown = set(obj) - known
    if unknown:
        unknown_str = ", ".join(sorted(unknown))
        raise ConfigError(f"Unknown keys in {ctx}: {unknown_str}")


def _assert_positive(value: object, ctx: str, *, allow_zero: bool = False) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"{ctx} must be a number")
    if value < 0 or (value == 0 and not allow_zero):
        raise ConfigError(f"{ctx} must be {'>= 0' if allow_zero else '> 0'}")


def validate_settings_config(cfg: dict, *, allow_unknown: bool = False) -> dict:
    top_required = {"columns", "coordinates", "geocoder", "scheduler", "cache", "output"}
    _assert_required_keys(cfg, top_required, "settings")
    _assert_no_unknown_keys(cfg, top_required, "settings", allow_unknown)

    columns = cfg["columns"]
    _assert_required_keys(columns, {"description", "project_name", "address", "latitude", "longitude"}, "columns")
    for name in ("description", "project_name", "address"):
        _assert_required_keys(columns[name], {"match", "default"}, f"columns.{name}")
    for name in ("latitude", "longitude"):
        _assert_required_keys(columns[name], {"candidates"}, f"columns.{name}")
        if not isinstance(columns[name]["candidates"], list) or not columns[name]["candidates"]:
            raise ConfigError(f"columns.{name}.candidates must be a non-empty list")

    _assert_required_keys(cfg["coordinates"], {"bbox_wgs84"}, "coordinates")
    bbox = cfg["coordinates"]["bbox_wgs84"]
    _assert_required_keys(bbox, {"min_lat", "max_lat", "min_lon", "max_lon"}, "coordinates.bbox_wgs84")
    if bbox["min_lat"] > bbox["max_lat"] or bbox["min_lon"] > bbox["max_lon"]:
        raise ConfigError("coordinates.bbox_wgs84 has inverted bounds")

    geocoder = cfg["geocoder"]
    _assert_required_keys(
        geocoder,
        {"endpoint", "city_suffix", "city_token", "rate_per_sec", "timeout", "max_attempts"},
        "geocoder",
    )
    _assert_required_keys(geocoder["timeout"], {"connect", "read"}, "geocoder.timeout")
    _assert_positive(geocoder["rate_per_sec"], "geocoder.rate_per_sec")
    _assert_positive(geocoder["timeout"]["connect"], "geocoder.timeout.connect")
    _assert_positive(geocoder["timeout"]["read"], "geocoder.timeout.read")
    _assert_positive(geocoder["max_attempts"], "geocoder.max_attempts")

    scheduler = cfg["scheduler"]
    _assert_required_keys(
        scheduler,
        {"batch_size", "batch_delay_seconds", "min_address_length", "only_middle_housing"},
        "scheduler",
    )
    _assert_positive(scheduler["batch_size"], "scheduler.batch_size")
    _assert_positive(scheduler["batch_delay_seconds"], "scheduler.batch_delay_seconds", allow_zero=True)
    _assert_positive(scheduler["min_address_length"], "scheduler.min_address_length", allow_zero=True)

    _assert_required_keys(cfg["cache"], {"path", "namespace"}, "cache")
    _assert_required_keys(cfg["output"], {"classified_filename", "enriched_filename"}, "output")

    return cfg
