"""
Descriptor records for the transcoder's capability catalogs.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class StreamType(str, Enum):
    """Kind of stream a codec, encoder or filter works on."""

    AUDIO = "audio"
    VIDEO = "video"
    SUBTITLE = "subtitle"
    NONE = "none"


@dataclass(frozen=True)
class CodecInfo:
    """A codec listed by `-codecs`."""

    type: StreamType
    description: str
    can_decode: bool = False
    can_encode: bool = False
    # avconv-style flags
    draw_horiz_band: Optional[bool] = None
    direct_rendering: Optional[bool] = None
    weird_frame_truncation: Optional[bool] = None
    # ffmpeg-style flags
    intra_frame_only: Optional[bool] = None
    is_lossy: Optional[bool] = None
    is_lossless: Optional[bool] = None


@dataclass(frozen=True)
class EncoderInfo:
    """An encoder listed by `-encoders`."""

    type: StreamType
    description: str
    frame_mt: bool = False
    slice_mt: bool = False
    experimental: bool = False
    draw_horiz_band: bool = False
    direct_rendering: bool = False


@dataclass(frozen=True)
class FormatSupport:
    """A container format listed by `-formats`."""

    description: str
    can_demux: bool = False
    can_mux: bool = False


@dataclass(frozen=True)
class FilterInfo:
    """A filter listed by `-filters`."""

    description: str
    input: StreamType
    multiple_inputs: bool
    output: StreamType
    multiple_outputs: bool
