"""Application constants."""

USER_AGENT = "middle-housing-filter/1.0 (+permit research; contact: configured-email)"
COMMANDS = ("classify", "enrich")
EXIT_SUCCESS = 0
EXIT_PARTIAL = 10
EXIT_HARD_FAIL = 20
CACHE_NAMESPACE = "middle_housing_geocode_cache"
OTHER_REMODEL = "Other/Remodel"
DERIVED_HEADERS = ("Is Middle Housing", "Housing Type", "Match Reason")
COORDINATE_HEADERS = ("Latitude", "Longitude")
JSON_LOG_FIELDS = (
    "timestamp",
    "run_id",
    "stage",
    "event",
    "status",
    "address",
    "batch",
    "completed",
    "total",
    "duration_ms",
    "rows_in",
    "rows_out",
    "error_code",
    "message",
)
