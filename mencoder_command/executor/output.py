"""
Interpretation of transcoder output.

The scanners here are pure functions of the accumulated stdout/stderr text and
a small amount of caller-owned state. They never block and never perform I/O.
"""

import re
from typing import Optional

from mencoder_command.models import CodecData, ProgressInfo
from mencoder_command.utils import parse_time_to_seconds, seconds_to_timemark

LINE_BREAK_PATTERN = re.compile(r"\r\n|\r|\n")

# MEncoder status line, e.g.
# Pos:  12.3s    308f (10%) 45.67fps Trem:   1min  12mb  A-V:0.012 [1234:128]
MENCODER_STATUS_PATTERN = re.compile(
    r"^Pos:\s*(?P<pos>\d+(?:\.\d+)?)s\s+(?P<frames>\d+)f\s*\(\s*\d+%\)\s+"
    r"(?P<fps>\d+(?:\.\d+)?)fps\s+Trem:\s*\d+min\s+(?P<size>\d+)mb"
    r"(?:\s+A-V:\s*-?\d+(?:\.\d+)?)?"
    r"(?:\s+\[(?P<video_kbps>\d+):(?P<audio_kbps>\d+)\])?"
)

# ffmpeg-style key=value progress lines ("frame=  150 fps= 30 ... time=00:00:05.00 ...")
KEY_VALUE_SPACING_PATTERN = re.compile(r"=\s+")
NUMBER_PATTERN = re.compile(r"-?\d+(?:\.\d+)?")

INPUT_FORMAT_PATTERN = re.compile(r"Input #\d+, ([^ ]+),")
MENCODER_FORMAT_PATTERN = re.compile(r"^(\S+) file format detected\.", re.MULTILINE)
DURATION_PATTERN = re.compile(r"Duration: ([^,]+)")
AUDIO_PATTERN = re.compile(r"Audio: (.*)")
VIDEO_PATTERN = re.compile(r"Video: (.*)")
MENCODER_VIDEO_PATTERN = re.compile(r"^VIDEO:\s+\[([^\]]+)\]\s*(.*)$", re.MULTILINE)
MENCODER_AUDIO_PATTERN = re.compile(r"^AUDIO:\s+(.*)$", re.MULTILINE)
MENCODER_AUDIO_CODEC_PATTERN = re.compile(r"^Selected audio codec: \[([^\]]+)\]", re.MULTILINE)
BANNER_COMPLETE_PATTERN = re.compile(
    r"Press (\[q\]|ctrl-c) to stop|Stream mapping:|Output #\d+|Starting playback\.\.\."
)

ERROR_PATTERNS = [
    re.compile(r"^\s*(\[[^\]]+\]\s*)?Error\b.*$", re.MULTILINE),
    re.compile(r"^.*\bFATAL\b.*$", re.MULTILINE | re.IGNORECASE),
    re.compile(r"^.*Cannot open file.*$", re.MULTILINE),
    re.compile(r"^.*Failed to open.*$", re.MULTILINE),
    re.compile(r"^.*No such file or directory.*$", re.MULTILINE),
    re.compile(r"^.*Permission denied.*$", re.MULTILINE),
    re.compile(r"^.*Unknown encoder.*$", re.MULTILINE | re.IGNORECASE),
    re.compile(r"^.*Invalid data found.*$", re.MULTILINE),
    re.compile(r"^.*Codec .* is not supported.*$", re.MULTILINE),
    re.compile(r"^\s*Exiting\.\.\..*$", re.MULTILINE),
]

UNKNOWN_ERROR = "Unknown error"


def _to_float(value: Optional[str]) -> float:
    if not value:
        return 0.0
    match = NUMBER_PATTERN.search(value)
    return float(match.group()) if match else 0.0


def _percent(timemark: str, duration: float) -> Optional[float]:
    if not duration or duration <= 0:
        return None
    percent = parse_time_to_seconds(timemark) / duration * 100
    return min(100.0, max(0.0, percent))


def parse_key_value_progress(line: str) -> Optional[dict[str, str]]:
    """Split an ffmpeg-style progress line into its key=value fields."""
    line = KEY_VALUE_SPACING_PATTERN.sub("=", line).strip()
    if not line.startswith("frame="):
        return None

    fields: dict[str, str] = {}
    for part in line.split():
        key, sep, value = part.partition("=")
        if sep:
            fields[key] = value
    return fields


def parse_progress_line(line: str, duration: float = 0.0) -> Optional[ProgressInfo]:
    """
    Parse a single progress line.

    Args:
        line: One line of transcoder output
        duration: Input duration in seconds (0 = unknown)

    Returns:
        ProgressInfo, or None if the line carries no progress marker
    """
    match = MENCODER_STATUS_PATTERN.match(line.strip())
    if match:
        timemark = seconds_to_timemark(float(match.group("pos")))
        kbps = _to_float(match.group("video_kbps")) + _to_float(match.group("audio_kbps"))
        return ProgressInfo(
            frames=int(match.group("frames")),
            current_fps=float(match.group("fps")),
            current_kbps=kbps,
            target_size=int(match.group("size")) * 1024,
            timemark=timemark,
            percent=_percent(timemark, duration),
        )

    fields = parse_key_value_progress(line)
    if fields is None:
        return None

    timemark = fields.get("time", "")
    return ProgressInfo(
        frames=int(_to_float(fields.get("frame"))),
        current_fps=_to_float(fields.get("fps")),
        current_kbps=_to_float(fields.get("bitrate")),
        target_size=int(_to_float(fields.get("size") or fields.get("Lsize"))),
        timemark=timemark,
        percent=_percent(timemark, duration),
    )


class ProgressScanner:
    """
    Incremental progress matcher over an append-only stdout buffer.

    Only complete lines past the cursor are parsed, so each marker line is
    reported exactly once no matter how often the growing buffer is rescanned.
    """

    def __init__(self) -> None:
        self.cursor = 0

    def scan(self, accumulated: str, duration: float = 0.0) -> list[ProgressInfo]:
        """
        Parse progress lines that arrived since the previous scan.

        Args:
            accumulated: Entire stdout text received so far
            duration: Input duration in seconds (0 = unknown)

        Returns:
            Newly found progress events, in order
        """
        if len(accumulated) < self.cursor:
            # Not the buffer we were tracking
            self.cursor = 0

        pending = accumulated[self.cursor :]
        last_break = max(pending.rfind("\n"), pending.rfind("\r"))
        if last_break < 0:
            return []

        complete = pending[: last_break + 1]
        self.cursor += last_break + 1

        events = []
        for line in LINE_BREAK_PATTERN.split(complete):
            if not line.strip():
                continue
            progress = parse_progress_line(line, duration)
            if progress is not None:
                events.append(progress)
        return events


def scan_codec_data(accumulated: str) -> Optional[CodecData]:
    """
    Look for the input codec banner in accumulated stderr.

    Args:
        accumulated: Entire stderr text received so far

    Returns:
        CodecData once the banner is complete, None before that
    """
    if not BANNER_COMPLETE_PATTERN.search(accumulated):
        return None

    data = CodecData()

    format_match = INPUT_FORMAT_PATTERN.search(accumulated) or MENCODER_FORMAT_PATTERN.search(
        accumulated
    )
    if format_match:
        data.format = format_match.group(1)

    duration_match = DURATION_PATTERN.search(accumulated)
    if duration_match:
        data.duration = duration_match.group(1).strip()

    audio_match = AUDIO_PATTERN.search(accumulated)
    if audio_match:
        details = audio_match.group(1).strip().split(", ")
        data.audio = details[0]
        data.audio_details = details
    else:
        mencoder_audio = MENCODER_AUDIO_PATTERN.search(accumulated)
        if mencoder_audio:
            data.audio_details = mencoder_audio.group(1).strip().split(", ")
            codec_match = MENCODER_AUDIO_CODEC_PATTERN.search(accumulated)
            data.audio = codec_match.group(1) if codec_match else data.audio_details[0]

    video_match = VIDEO_PATTERN.search(accumulated)
    if video_match:
        details = video_match.group(1).strip().split(", ")
        data.video = details[0]
        data.video_details = details
    else:
        mencoder_video = MENCODER_VIDEO_PATTERN.search(accumulated)
        if mencoder_video:
            data.video = mencoder_video.group(1)
            data.video_details = re.split(r"\s{2,}", mencoder_video.group(2).strip())

    return data


def extract_error(stderr: Optional[str]) -> str:
    """
    Extract the most specific diagnostic from stderr.

    Args:
        stderr: Complete stderr output

    Returns:
        The first fatal-looking line, else the whole stderr, else "Unknown error"
    """
    if not stderr or not stderr.strip():
        return UNKNOWN_ERROR

    for line in stderr.splitlines():
        if any(pattern.search(line) for pattern in ERROR_PATTERNS):
            return line.strip()

    return stderr.strip()
