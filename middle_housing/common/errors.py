"""Domain errors and failure typing."""


class PipelineError(Exception):
    """Base class for pipeline failures."""

    error_code = "PIPELINE_ERROR"


class ConfigError(PipelineError):
    """Raised for invalid or missing configuration."""

    error_code = "CONFIG_ERROR"


class InputError(PipelineError):
    """Raised when permit input cannot be used at all."""

    error_code = "INPUT_ERROR"


class NoInputDataError(InputError):
    """Raised when there are no permit records to classify."""

    error_code = "NO_INPUT_DATA"


class StageError(PipelineError):
    """Raised for stage failures that should halt in strict mode."""

    error_code = "STAGE_ERROR"


class CacheStoreError(PipelineError):
    """Raised by cache stores when persisted state cannot be read or written."""

    error_code = "CACHE_STORE_ERROR"
