"""
Capability catalogs of the transcoder binary.

The binary is run once per catalog kind with an introspection flag
(-codecs, -encoders, -formats, -filters); its self-description is parsed into
immutable mappings that are cached for the lifetime of the process.
"""

import asyncio
import re
from dataclasses import replace
from types import MappingProxyType
from typing import Callable, Mapping, Optional

from ..executor.supervisor import ProcessSupervisor, SpawnOptions
from ..models import CodecInfo, EncoderInfo, FilterInfo, FormatSupport, StreamType
from ..tools import BinaryKind, BinaryLocator
from ..utils import get_logger

logger = get_logger(__name__)

AV_CODEC_PATTERN = re.compile(r"^\s*([D ])([E ])([VAS])([S ])([D ])([T ]) ([^ ]+) +(.*)$")
FF_CODEC_PATTERN = re.compile(r"^\s*([D.])([E.])([VAS])([I.])([L.])([S.]) ([^ ]+) +(.*)$")
FF_ENCODERS_PATTERN = re.compile(r"\(encoders:([^)]+)\)")
FF_DECODERS_PATTERN = re.compile(r"\(decoders:([^)]+)\)")
ENCODERS_PATTERN = re.compile(r"^\s*([VAS.])([F.])([S.])([X.])([B.])([D.]) ([^ ]+) +(.*)$")
FORMAT_PATTERN = re.compile(r"^\s*([D ])([E ]) ([^ ]+) +(.*)$")
FILTER_PATTERN = re.compile(r"^(?: [T.][S.][C.] )?([^ ]+) +(AA?|VV?|\|)->(AA?|VV?|\|) +(.*)$")
LINE_BREAK_PATTERN = re.compile(r"\r\n|\r|\n")

STREAM_TYPES = {"V": StreamType.VIDEO, "A": StreamType.AUDIO, "S": StreamType.SUBTITLE}
FILTER_IO_TYPES = {"A": StreamType.AUDIO, "V": StreamType.VIDEO, "|": StreamType.NONE}

# Process-wide catalog cache, written at most once per kind
_catalog_cache: dict[str, Mapping] = {}
_inflight: dict[str, asyncio.Task] = {}


def reset_capability_cache() -> None:
    """Drop cached catalogs (used by tests)."""
    _catalog_cache.clear()
    _inflight.clear()


def parse_filters(output: str) -> dict[str, FilterInfo]:
    """Parse `-filters` output."""
    filters = {}
    for line in output.split("\n"):
        match = FILTER_PATTERN.match(line)
        if match:
            filters[match.group(1)] = FilterInfo(
                description=match.group(4),
                input=FILTER_IO_TYPES[match.group(2)[0]],
                multiple_inputs=len(match.group(2)) > 1,
                output=FILTER_IO_TYPES[match.group(3)[0]],
                multiple_outputs=len(match.group(3)) > 1,
            )
    return filters


def _split_names(pattern: re.Pattern, description: str) -> list[str]:
    match = pattern.search(description)
    return match.group(1).split() if match else []


def parse_codecs(output: str) -> dict[str, CodecInfo]:
    """
    Parse `-codecs` output.

    Understands both the avconv and the ffmpeg table layouts; ffmpeg's
    "(encoders: ...)" and "(decoders: ...)" aliases get their own entries.
    """
    codecs: dict[str, CodecInfo] = {}

    for line in LINE_BREAK_PATTERN.split(output):
        match = AV_CODEC_PATTERN.match(line)
        if match and match.group(7) != "=":
            codecs[match.group(7)] = CodecInfo(
                type=STREAM_TYPES[match.group(3)],
                description=match.group(8),
                can_decode=match.group(1) == "D",
                can_encode=match.group(2) == "E",
                draw_horiz_band=match.group(4) == "S",
                direct_rendering=match.group(5) == "D",
                weird_frame_truncation=match.group(6) == "T",
            )

        match = FF_CODEC_PATTERN.match(line)
        if match and match.group(7) != "=":
            codec = CodecInfo(
                type=STREAM_TYPES[match.group(3)],
                description=match.group(8),
                can_decode=match.group(1) == "D",
                can_encode=match.group(2) == "E",
                intra_frame_only=match.group(4) == "I",
                is_lossy=match.group(5) == "L",
                is_lossless=match.group(6) == "S",
            )
            codecs[match.group(7)] = codec

            encoders = _split_names(FF_ENCODERS_PATTERN, codec.description)
            decoders = _split_names(FF_DECODERS_PATTERN, codec.description)
            coder = replace(codec, can_decode=False, can_encode=False)

            for name in encoders:
                codecs[name] = replace(coder, can_encode=True)

            for name in decoders:
                if name in codecs:
                    codecs[name] = replace(codecs[name], can_decode=True)
                else:
                    codecs[name] = replace(coder, can_decode=True)

    return codecs


def parse_encoders(output: str) -> dict[str, EncoderInfo]:
    """Parse `-encoders` output."""
    encoders = {}
    for line in LINE_BREAK_PATTERN.split(output):
        match = ENCODERS_PATTERN.match(line)
        if match and match.group(7) != "=" and match.group(1) in STREAM_TYPES:
            encoders[match.group(7)] = EncoderInfo(
                type=STREAM_TYPES[match.group(1)],
                description=match.group(8),
                frame_mt=match.group(2) == "F",
                slice_mt=match.group(3) == "S",
                experimental=match.group(4) == "X",
                draw_horiz_band=match.group(5) == "B",
                direct_rendering=match.group(6) == "D",
            )
    return encoders


def parse_formats(output: str) -> dict[str, FormatSupport]:
    """Parse `-formats` output; "mov,mp4,m4a" rows yield one entry per name."""
    formats: dict[str, FormatSupport] = {}
    for line in LINE_BREAK_PATTERN.split(output):
        match = FORMAT_PATTERN.match(line)
        if not match:
            continue
        for name in match.group(3).split(","):
            current = formats.get(name) or FormatSupport(description=match.group(4))
            formats[name] = replace(
                current,
                can_demux=current.can_demux or match.group(1) == "D",
                can_mux=current.can_mux or match.group(2) == "E",
            )
    return formats


class CapabilityCatalog:
    """
    Queries the transcoder for its codecs, encoders, formats and filters.

    Each catalog kind is fetched at most once per process; concurrent first
    callers share one underlying invocation.
    """

    def __init__(self, locator: Optional[BinaryLocator] = None):
        """
        Initialize catalog.

        Args:
            locator: Executable resolver
        """
        self._supervisor = ProcessSupervisor(locator, BinaryKind.MENCODER)

    async def available_filters(self) -> Mapping[str, FilterInfo]:
        """Filters with their input/output types."""
        return await self._load("filters", "-filters", parse_filters)

    async def available_codecs(self) -> Mapping[str, CodecInfo]:
        """Codecs with their decode/encode support."""
        return await self._load("codecs", "-codecs", parse_codecs)

    async def available_encoders(self) -> Mapping[str, EncoderInfo]:
        """Encoders with their threading and experimental flags."""
        return await self._load("encoders", "-encoders", parse_encoders)

    async def available_formats(self) -> Mapping[str, FormatSupport]:
        """Container formats with their mux/demux support."""
        return await self._load("formats", "-formats", parse_formats)

    async def _load(self, kind: str, flag: str, parser: Callable[[str], dict]) -> Mapping:
        cached = _catalog_cache.get(kind)
        if cached is not None:
            logger.debug(f"Using cached {kind} catalog")
            return cached

        loop = asyncio.get_running_loop()
        task = _inflight.get(kind)
        if task is None or task.get_loop() is not loop:
            task = loop.create_task(self._query(kind, flag, parser))
            _inflight[kind] = task

        # Shielded so one cancelled caller does not cancel the shared query
        return await asyncio.shield(task)

    async def _query(self, kind: str, flag: str, parser: Callable[[str], dict]) -> Mapping:
        try:
            stdout, _ = await self._supervisor.supervise([flag], SpawnOptions(capture_stdout=True))
            catalog = MappingProxyType(parser(stdout or ""))
            _catalog_cache[kind] = catalog
            logger.debug(f"Found {len(catalog)} {kind}")
            return catalog
        finally:
            if _inflight.get(kind) is asyncio.current_task():
                del _inflight[kind]
