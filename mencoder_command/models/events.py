"""
Event payloads emitted by a running command.
"""

from dataclasses import dataclass, field
from typing import Optional


@dataclass
class ProgressInfo:
    """Progress reported by the transcoder."""

    frames: int
    current_fps: float
    current_kbps: float
    target_size: int  # kilobytes written so far
    timemark: str
    percent: Optional[float] = None  # only set when the input duration is known


@dataclass
class CodecData:
    """Input codec summary printed once by the transcoder."""

    format: str = ""
    duration: str = ""
    audio: str = ""
    audio_details: list[str] = field(default_factory=list)
    video: str = ""
    video_details: list[str] = field(default_factory=list)


@dataclass
class RunResult:
    """Outcome of a successful run."""

    args: list[str]
    stdout: Optional[str] = None  # None when stdout was piped to a stream output
    stderr: Optional[str] = None
