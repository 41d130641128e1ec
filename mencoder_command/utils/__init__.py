"""Utility functions and helpers."""

from mencoder_command.utils.errors import (
    BinaryNotFoundError,
    ConfigurationError,
    MediaInspectionError,
    MetadataRewriteError,
    ProcessExecutionError,
    ProcessTimeoutError,
    RunCancelledError,
    StreamError,
    TranscoderError,
)
from mencoder_command.utils.helpers import (
    IS_WINDOWS,
    format_duration,
    format_size,
    is_file_target,
    parse_time_to_seconds,
    seconds_to_timemark,
)
from mencoder_command.utils.logger import get_logger, setup_logger

__all__ = [
    # Errors
    "BinaryNotFoundError",
    "ConfigurationError",
    "MediaInspectionError",
    "MetadataRewriteError",
    "ProcessExecutionError",
    "ProcessTimeoutError",
    "RunCancelledError",
    "StreamError",
    "TranscoderError",
    # Helpers
    "IS_WINDOWS",
    "format_duration",
    "format_size",
    "is_file_target",
    "parse_time_to_seconds",
    "seconds_to_timemark",
    # Logging
    "get_logger",
    "setup_logger",
]
