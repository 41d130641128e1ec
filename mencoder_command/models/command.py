"""
Data models for command configuration.

A MencoderCommand is mutable while it is being configured; each run reads a
frozen CommandSnapshot built from these dataclasses.
"""

from dataclasses import dataclass, field, replace
from typing import Any, Mapping, Optional, Union

from mencoder_command.utils.helpers import is_file_target

# A filter is either a ready-made string or {"filter": name, "options": ...}
FilterSpec = Union[str, Mapping[str, Any]]


@dataclass(frozen=True)
class PipeOptions:
    """How subprocess stdout is piped into a stream output."""

    end: bool = True  # close the destination when stdout reaches EOF


@dataclass(frozen=True)
class InputSpec:
    """A single command input."""

    source: Any
    options: tuple[str, ...] = ()

    @property
    def is_file(self) -> bool:
        """Whether the source is a path/URI rather than a live stream."""
        return is_file_target(self.source)

    @property
    def is_stream(self) -> bool:
        return not self.is_file


@dataclass(frozen=True)
class OutputSpec:
    """A single command output with its codec options and filter chains."""

    target: Any = None
    audio: tuple[str, ...] = ()
    audio_filters: tuple[FilterSpec, ...] = ()
    video: tuple[str, ...] = ()
    video_filters: tuple[FilterSpec, ...] = ()
    size_filters: tuple[FilterSpec, ...] = ()
    options: tuple[str, ...] = ()
    flvmeta: bool = False
    pipe_options: PipeOptions = field(default_factory=PipeOptions)

    @property
    def has_target(self) -> bool:
        return self.target is not None

    @property
    def is_file(self) -> bool:
        """Whether the target is a file path."""
        return self.has_target and is_file_target(self.target)

    @property
    def is_stream(self) -> bool:
        return self.has_target and not self.is_file

    def without_flvmeta(self) -> "OutputSpec":
        return replace(self, flvmeta=False)


@dataclass(frozen=True)
class CommandSnapshot:
    """Immutable view of a command's configuration, consumed by one run."""

    inputs: tuple[InputSpec, ...] = ()
    outputs: tuple[OutputSpec, ...] = ()
    global_options: tuple[str, ...] = ()
    complex_filters: tuple[FilterSpec, ...] = ()
    niceness: int = 0
    timeout: Optional[float] = None

    @property
    def has_output_target(self) -> bool:
        """Whether at least one output has a target set."""
        return any(output.has_target for output in self.outputs)

    @property
    def stream_input(self) -> Optional[InputSpec]:
        return next((i for i in self.inputs if i.is_stream), None)

    @property
    def stream_output(self) -> Optional[OutputSpec]:
        return next((o for o in self.outputs if o.is_stream), None)

    @property
    def flvmeta_outputs(self) -> list[OutputSpec]:
        """Outputs requesting a post-run metadata rewrite."""
        return [output for output in self.outputs if output.flvmeta]
