"""
Data models for media file information.

This module contains dataclasses for the metadata read by the probe before a
run; the duration drives progress percentages.
"""

from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass
class FormatInfo:
    """Information about media container format."""

    format_name: str
    format_long_name: str
    duration: float
    size: int
    bitrate: int
    tags: dict[str, str] = field(default_factory=dict)


@dataclass
class StreamInfo:
    """Information about a single stream of the input."""

    index: int
    codec_type: str
    codec: str
    codec_long: str = ""
    width: Optional[int] = None
    height: Optional[int] = None
    channels: Optional[int] = None
    sample_rate: Optional[int] = None
    bitrate: int = 0
    duration: float = 0.0


@dataclass
class MediaInfo:
    """Complete information about a probed input."""

    format: FormatInfo
    streams: list[StreamInfo] = field(default_factory=list)
    raw: dict[str, Any] = field(default_factory=dict)

    @property
    def duration(self) -> float:
        """Duration in seconds, 0.0 when unknown."""
        return self.format.duration

    @property
    def video_streams(self) -> list[StreamInfo]:
        return [s for s in self.streams if s.codec_type == "video"]

    @property
    def audio_streams(self) -> list[StreamInfo]:
        return [s for s in self.streams if s.codec_type == "audio"]
