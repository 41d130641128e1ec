"""
Media inspection using FFprobe.

This module reads the container metadata of a command input before a run;
the duration it reports drives progress percentages.
"""

import json
import os
from pathlib import Path
from typing import Optional

from ..executor.supervisor import ProcessSupervisor, SpawnOptions
from ..models import FormatInfo, MediaInfo, StreamInfo
from ..tools import BinaryKind, BinaryLocator
from ..utils import MediaInspectionError, TranscoderError, get_logger

logger = get_logger(__name__)


def _to_int(value: object, default: int = 0) -> int:
    try:
        return int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return default


def _to_float(value: object, default: float = 0.0) -> float:
    try:
        return float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return default


class MediaInspector:
    """
    Inspects media inputs using FFprobe.

    Extracts the container format (name, duration, size, bitrate, tags) and a
    summary of each stream.
    """

    def __init__(self, locator: Optional[BinaryLocator] = None):
        """
        Initialize media inspector.

        Args:
            locator: Executable resolver used to find ffprobe
        """
        self._supervisor = ProcessSupervisor(locator, BinaryKind.FFPROBE)

    async def inspect(self, source: str | os.PathLike) -> MediaInfo:
        """
        Inspect a media file or URI.

        Args:
            source: Path or URI of the input

        Returns:
            MediaInfo object

        Raises:
            MediaInspectionError: If the file is missing or inspection fails
        """
        source = os.fspath(source)
        if "://" not in source and not Path(source).exists():
            raise MediaInspectionError(f"File not found: {source}")

        logger.debug(f"Inspecting media input: {source}")

        probe_data = await self._run_ffprobe(source)
        media_info = self.parse(probe_data)

        logger.debug(
            f"Inspected {source}: {media_info.format.format_name}, "
            f"{media_info.duration:.2f}s, {len(media_info.streams)} streams"
        )
        return media_info

    async def _run_ffprobe(self, source: str) -> dict:
        """
        Run ffprobe and return parsed JSON output.

        Raises:
            MediaInspectionError: If ffprobe fails or prints invalid JSON
        """
        args = ["-v", "quiet", "-print_format", "json", "-show_format", "-show_streams", source]

        try:
            stdout, _ = await self._supervisor.supervise(
                args, SpawnOptions(capture_stdout=True, capture_stderr=True)
            )
        except TranscoderError as e:
            raise MediaInspectionError(f"FFprobe execution failed: {e}") from e

        try:
            return json.loads(stdout or "{}")
        except json.JSONDecodeError as e:
            raise MediaInspectionError(f"Failed to parse FFprobe output: {e}") from e

    def parse(self, probe_data: dict) -> MediaInfo:
        """
        Build MediaInfo from ffprobe JSON.

        Args:
            probe_data: FFprobe JSON output

        Returns:
            MediaInfo object
        """
        format_data = probe_data.get("format", {})
        format_info = FormatInfo(
            format_name=format_data.get("format_name", ""),
            format_long_name=format_data.get("format_long_name", ""),
            duration=_to_float(format_data.get("duration")),
            size=_to_int(format_data.get("size")),
            bitrate=_to_int(format_data.get("bit_rate")),
            tags=dict(format_data.get("tags", {})),
        )

        streams = []
        for stream in probe_data.get("streams", []):
            streams.append(
                StreamInfo(
                    index=_to_int(stream.get("index")),
                    codec_type=stream.get("codec_type", "").lower(),
                    codec=stream.get("codec_name", "unknown"),
                    codec_long=stream.get("codec_long_name", ""),
                    width=stream.get("width"),
                    height=stream.get("height"),
                    channels=stream.get("channels"),
                    sample_rate=_to_int(stream.get("sample_rate")) or None,
                    bitrate=_to_int(stream.get("bit_rate")),
                    duration=_to_float(stream.get("duration")),
                )
            )

        return MediaInfo(format=format_info, streams=streams, raw=probe_data)
