"""Data models for mencoder-command."""

from mencoder_command.models.capabilities import (
    CodecInfo,
    EncoderInfo,
    FilterInfo,
    FormatSupport,
    StreamType,
)
from mencoder_command.models.command import (
    CommandSnapshot,
    FilterSpec,
    InputSpec,
    OutputSpec,
    PipeOptions,
)
from mencoder_command.models.events import CodecData, ProgressInfo, RunResult
from mencoder_command.models.media import FormatInfo, MediaInfo, StreamInfo

__all__ = [
    # Command models
    "CommandSnapshot",
    "FilterSpec",
    "InputSpec",
    "OutputSpec",
    "PipeOptions",
    # Event models
    "CodecData",
    "ProgressInfo",
    "RunResult",
    # Media models
    "FormatInfo",
    "MediaInfo",
    "StreamInfo",
    # Capability models
    "CodecInfo",
    "EncoderInfo",
    "FilterInfo",
    "FormatSupport",
    "StreamType",
]
