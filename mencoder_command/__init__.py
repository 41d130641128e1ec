"""
MEncoder command runner

Builds mencoder invocations and supervises them asynchronously, reporting
progress, codec information and a single terminal result per run.
"""

__version__ = "0.1.0"

from mencoder_command.command import MencoderCommand, RunPhase
from mencoder_command.config import RunnerConfig
from mencoder_command.models import CodecData, PipeOptions, ProgressInfo, RunResult
from mencoder_command.utils import (
    BinaryNotFoundError,
    ConfigurationError,
    MetadataRewriteError,
    ProcessExecutionError,
    ProcessTimeoutError,
    RunCancelledError,
    StreamError,
    TranscoderError,
    get_logger,
    setup_logger,
)

__all__ = [
    "__version__",
    # Command
    "MencoderCommand",
    "RunPhase",
    "RunnerConfig",
    # Models
    "CodecData",
    "PipeOptions",
    "ProgressInfo",
    "RunResult",
    # Utils
    "BinaryNotFoundError",
    "ConfigurationError",
    "MetadataRewriteError",
    "ProcessExecutionError",
    "ProcessTimeoutError",
    "RunCancelledError",
    "StreamError",
    "TranscoderError",
    "get_logger",
    "setup_logger",
]
