"""
Argument assembly for mencoder invocations.

Turns a CommandSnapshot into the exact ordered token list handed to the
process supervisor. No I/O, no state.
"""

import os
import re
from typing import Any, Iterable, Mapping

from mencoder_command.models import CommandSnapshot, FilterSpec, InputSpec, OutputSpec
from mencoder_command.utils import ConfigurationError

# Locators used when an input or output is a live stream
STDIN_PLACEHOLDER = "-"
STDOUT_PLACEHOLDER = "-"

FILTER_ESCAPE_PATTERN = re.compile(r"[,]")


def _escape_filter_value(value: Any) -> str:
    text = str(value)
    if FILTER_ESCAPE_PATTERN.search(text):
        return f"'{text}'"
    return text


def _format_pads(pads: Any) -> str:
    if pads is None:
        return ""
    if isinstance(pads, str):
        return f"[{pads}]"
    if isinstance(pads, (list, tuple)):
        return "".join(f"[{pad}]" for pad in pads)
    raise ConfigurationError(f"Invalid filter pads: {pads!r}")


def make_filter_string(spec: FilterSpec) -> str:
    """
    Render a single filter description.

    Args:
        spec: Either a ready-made filter string or a mapping with a "filter"
              name and optional "options", "inputs" and "outputs"

    Returns:
        Filter string (e.g., "scale=640:480")

    Raises:
        ConfigurationError: If the description is malformed
    """
    if isinstance(spec, str):
        return spec

    if not isinstance(spec, Mapping):
        raise ConfigurationError(f"Invalid filter description: {spec!r}")

    name = spec.get("filter")
    if not name or not isinstance(name, str):
        raise ConfigurationError(f"Filter description without a filter name: {dict(spec)!r}")

    filter_string = _format_pads(spec.get("inputs")) + name

    options = spec.get("options")
    if options is not None and options != "":
        if isinstance(options, (str, int, float)):
            filter_string += f"={options}"
        elif isinstance(options, (list, tuple)):
            filter_string += "=" + ":".join(_escape_filter_value(o) for o in options)
        elif isinstance(options, Mapping):
            filter_string += "=" + ":".join(
                f"{key}={_escape_filter_value(value)}" for key, value in options.items()
            )
        else:
            raise ConfigurationError(f"Invalid options for filter '{name}': {options!r}")

    return filter_string + _format_pads(spec.get("outputs"))


def make_filter_strings(specs: Iterable[FilterSpec]) -> list[str]:
    """Render a filter chain, preserving order."""
    return [make_filter_string(spec) for spec in specs]


def input_arguments(spec: InputSpec) -> list[str]:
    """Input options followed by the input locator."""
    source = os.fspath(spec.source) if spec.is_file else STDIN_PLACEHOLDER
    return [*spec.options, source]


def output_arguments(spec: OutputSpec) -> list[str]:
    """Codec options, filter chains, output options and the output locator."""
    args = list(spec.audio)

    audio_filters = make_filter_strings(spec.audio_filters)
    if audio_filters:
        args.extend(["-af", ",".join(audio_filters)])

    args.extend(spec.video)

    video_filters = make_filter_strings(spec.video_filters) + make_filter_strings(
        spec.size_filters
    )
    if video_filters:
        args.extend(["-vf", ",".join(video_filters)])

    args.extend(spec.options)

    if spec.is_file:
        args.extend(["-o", os.fspath(spec.target)])
    elif spec.is_stream:
        args.extend(["-o", STDOUT_PLACEHOLDER])

    return args


def build_arguments(snapshot: CommandSnapshot) -> list[str]:
    """
    Build the argument list for a command snapshot.

    Order: per-input options and locators, global options, complex filters,
    then per-output codec options, filters, options and locator.

    Args:
        snapshot: Frozen command configuration

    Returns:
        Argument list (without the binary itself)

    Raises:
        ConfigurationError: If a filter description cannot be rendered
    """
    args: list[str] = []

    for spec in snapshot.inputs:
        args.extend(input_arguments(spec))

    args.extend(snapshot.global_options)

    complex_filters = make_filter_strings(snapshot.complex_filters)
    if complex_filters:
        args.extend(["-filter_complex", ";".join(complex_filters)])

    for spec in snapshot.outputs:
        args.extend(output_arguments(spec))

    return args
