"""
Chainable configuration of a mencoder command.

Every builder call mutates the command and returns it; a run reads a frozen
CommandSnapshot so that later changes never affect a run in progress.
"""

import asyncio
import re
from dataclasses import replace
from typing import Any, Callable, Iterable, Optional, Union

from mencoder_command.command.events import PROGRESS, VALID_EVENTS
from mencoder_command.config import RunnerConfig
from mencoder_command.models import CommandSnapshot, FilterSpec, InputSpec, OutputSpec, PipeOptions
from mencoder_command.tools import BinaryKind, BinaryLocator
from mencoder_command.utils import ConfigurationError, get_logger, is_file_target

SIZE_PATTERN = re.compile(r"^(\d+|\?)x(\d+|\?)$")

# Scale dimension computed from the other one, keeping the original aspect
KEEP_ASPECT = -3

Option = Union[str, Iterable[str]]


def split_options(options: Iterable[Option]) -> tuple[str, ...]:
    """
    Flatten option arguments into tokens.

    A single "-flag value" string becomes two tokens; lists are flattened.
    """
    tokens: list[str] = []
    for option in options:
        if isinstance(option, str):
            if option.startswith("-") and " " in option:
                tokens.extend(option.split(" ", 1))
            else:
                tokens.append(option)
        else:
            tokens.extend(str(token) for token in option)
    return tuple(tokens)


def _is_readable(source: Any) -> bool:
    return isinstance(source, asyncio.StreamReader) or hasattr(source, "read") or hasattr(
        source, "__aiter__"
    )


def _is_writable(target: Any) -> bool:
    return hasattr(target, "write")


class CommandBuilder:
    """
    Inputs, outputs, options and listeners of a command.

    Calls that configure codecs, filters or output options apply to the most
    recently added output; input options apply to the most recent input.
    """

    def __init__(
        self,
        niceness: Optional[int] = None,
        timeout: Optional[float] = None,
        config: Optional[RunnerConfig] = None,
        logger: Any = None,
    ):
        """
        Initialize command.

        Args:
            niceness: Process niceness, ignored on Windows (default from config)
            timeout: Processing timeout in seconds (default from config)
            config: Runner configuration
            logger: Logger receiving the command's warnings
        """
        self.config = config or RunnerConfig.create_default()
        self.niceness = self.config.process.niceness if niceness is None else niceness
        self.timeout = self.config.process.timeout if timeout is None else timeout
        self.logger = logger or get_logger(__name__)
        self.locator = BinaryLocator(self.config.binaries)

        self._inputs: list[InputSpec] = []
        self._outputs: list[OutputSpec] = [OutputSpec()]
        self._global: list[str] = []
        self._complex_filters: list[FilterSpec] = []
        self._listeners: dict[str, list[tuple[Callable, bool]]] = {}

    # Inputs

    def input(self, source: Any) -> "CommandBuilder":
        """
        Add an input.

        Args:
            source: Path/URI, or a readable stream (asyncio.StreamReader,
                    object with read(), or async iterable of bytes)

        Raises:
            ConfigurationError: If the source is invalid or a second stream
        """
        if not is_file_target(source):
            if not _is_readable(source):
                raise ConfigurationError("Invalid input")
            if any(spec.is_stream for spec in self._inputs):
                raise ConfigurationError("Only one input stream is supported")

        self._inputs.append(InputSpec(source=source))
        return self

    add_input = input

    def input_options(self, *options: Option) -> "CommandBuilder":
        """Add options for the last input."""
        if not self._inputs:
            raise ConfigurationError("No input specified")

        current = self._inputs[-1]
        self._inputs[-1] = replace(current, options=current.options + split_options(options))
        return self

    # Outputs

    def output(
        self, target: Any, pipe_options: Optional[PipeOptions] = None
    ) -> "CommandBuilder":
        """
        Add an output.

        Options set before the first output() call apply to it.

        Args:
            target: Output path, or a writable stream
            pipe_options: How stdout is piped into a stream target

        Raises:
            ConfigurationError: If the target is invalid or a second stream
        """
        if target is None:
            raise ConfigurationError("Invalid output")

        if not is_file_target(target):
            if not _is_writable(target):
                raise ConfigurationError("Invalid output")
            if any(spec.is_stream for spec in self._outputs):
                raise ConfigurationError("Only one output stream is supported")

        pipe_options = pipe_options or PipeOptions()
        current = self._outputs[-1]
        if current.has_target:
            self._outputs.append(OutputSpec(target=target, pipe_options=pipe_options))
        else:
            self._outputs[-1] = replace(current, target=target, pipe_options=pipe_options)
        return self

    def _update_output(self, **changes: Any) -> "CommandBuilder":
        self._outputs[-1] = replace(self._outputs[-1], **changes)
        return self

    def audio_codec(self, codec: str) -> "CommandBuilder":
        """Set the audio codec (-oac) of the current output."""
        return self._update_output(audio=self._outputs[-1].audio + ("-oac", codec))

    def video_codec(self, codec: str) -> "CommandBuilder":
        """Set the video codec (-ovc) of the current output."""
        return self._update_output(video=self._outputs[-1].video + ("-ovc", codec))

    def format(self, fmt: str) -> "CommandBuilder":
        """Set the container format (-of) of the current output."""
        return self._update_output(options=self._outputs[-1].options + ("-of", fmt))

    def audio_options(self, *options: Option) -> "CommandBuilder":
        return self._update_output(audio=self._outputs[-1].audio + split_options(options))

    def video_options(self, *options: Option) -> "CommandBuilder":
        return self._update_output(video=self._outputs[-1].video + split_options(options))

    def output_options(self, *options: Option) -> "CommandBuilder":
        return self._update_output(options=self._outputs[-1].options + split_options(options))

    def audio_filters(self, *filters: FilterSpec) -> "CommandBuilder":
        return self._update_output(audio_filters=self._outputs[-1].audio_filters + filters)

    def video_filters(self, *filters: FilterSpec) -> "CommandBuilder":
        return self._update_output(video_filters=self._outputs[-1].video_filters + filters)

    def size(self, size: str) -> "CommandBuilder":
        """
        Set the output frame size.

        Args:
            size: "WxH"; either dimension may be "?" to keep the aspect ratio

        Raises:
            ConfigurationError: If the size is malformed
        """
        match = SIZE_PATTERN.match(size.strip())
        if not match or match.groups() == ("?", "?"):
            raise ConfigurationError(f"Invalid size specified: {size}")

        width, height = (KEEP_ASPECT if dim == "?" else int(dim) for dim in match.groups())
        return self._update_output(
            size_filters=({"filter": "scale", "options": [width, height]},)
        )

    def flvmeta(self) -> "CommandBuilder":
        """Rewrite FLV metadata of the current output once the run succeeds."""
        return self._update_output(flvmeta=True)

    # Global settings

    def global_options(self, *options: Option) -> "CommandBuilder":
        self._global.extend(split_options(options))
        return self

    def complex_filter(self, *filters: FilterSpec) -> "CommandBuilder":
        self._complex_filters.extend(filters)
        return self

    def set_timeout(self, timeout: Optional[float]) -> "CommandBuilder":
        """Set the processing timeout in seconds (None disables it)."""
        self.timeout = timeout
        return self

    def set_mencoder_path(self, path: str) -> "CommandBuilder":
        BinaryLocator.set_path(BinaryKind.MENCODER, path)
        return self

    def set_ffprobe_path(self, path: str) -> "CommandBuilder":
        BinaryLocator.set_path(BinaryKind.FFPROBE, path)
        return self

    def set_flvtool_path(self, path: str) -> "CommandBuilder":
        BinaryLocator.set_path(BinaryKind.FLVTOOL, path)
        return self

    def snapshot(self) -> CommandSnapshot:
        """Freeze the current configuration."""
        return CommandSnapshot(
            inputs=tuple(self._inputs),
            outputs=tuple(self._outputs),
            global_options=tuple(self._global),
            complex_filters=tuple(self._complex_filters),
            niceness=self.niceness,
            timeout=self.timeout,
        )

    # Listeners

    def on(self, event: str, callback: Callable) -> "CommandBuilder":
        """Register a listener for an event."""
        return self._add_listener(event, callback, once=False)

    def once(self, event: str, callback: Callable) -> "CommandBuilder":
        """Register a listener that is removed after its first call."""
        return self._add_listener(event, callback, once=True)

    def off(self, event: str, callback: Callable) -> "CommandBuilder":
        """Remove a listener; unknown listeners are ignored."""
        listeners = self._listeners.get(event, [])
        for entry in listeners:
            if entry[0] == callback:
                listeners.remove(entry)
                break
        return self

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(event, []))

    def emit(self, event: str, *args: Any) -> bool:
        """
        Call the listeners of an event.

        A failing listener is logged and never interrupts the others.

        Returns:
            True if the event had listeners
        """
        listeners = list(self._listeners.get(event, []))
        for entry in listeners:
            callback, once = entry
            if once and entry in self._listeners[event]:
                self._listeners[event].remove(entry)
            try:
                callback(*args)
            except Exception as e:
                self.logger.warning(f"{event} listener failed: {e}")
        return bool(listeners)

    def _add_listener(self, event: str, callback: Callable, once: bool) -> "CommandBuilder":
        if event not in VALID_EVENTS:
            raise ConfigurationError(f"Unknown event: {event}")
        self._listeners.setdefault(event, []).append((callback, once))
        if event == PROGRESS:
            self._progress_listener_added()
        return self

    def _progress_listener_added(self) -> None:
        """Hook for running commands; nothing to do while idle."""
