"""Process execution and output interpretation."""

from mencoder_command.executor.arguments import (
    STDIN_PLACEHOLDER,
    STDOUT_PLACEHOLDER,
    build_arguments,
    make_filter_string,
    make_filter_strings,
)
from mencoder_command.executor.metadata import MetadataRewriter
from mencoder_command.executor.output import (
    ProgressScanner,
    extract_error,
    parse_progress_line,
    scan_codec_data,
)
from mencoder_command.executor.supervisor import (
    CompletionState,
    ProcessSupervisor,
    SpawnOptions,
    StreamCapture,
    resolve_signal,
    send_signal,
)

__all__ = [
    # Arguments
    "STDIN_PLACEHOLDER",
    "STDOUT_PLACEHOLDER",
    "build_arguments",
    "make_filter_string",
    "make_filter_strings",
    # Output interpretation
    "ProgressScanner",
    "extract_error",
    "parse_progress_line",
    "scan_codec_data",
    # Supervision
    "CompletionState",
    "ProcessSupervisor",
    "SpawnOptions",
    "StreamCapture",
    "resolve_signal",
    "send_signal",
    # Post-processing
    "MetadataRewriter",
]
