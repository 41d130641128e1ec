"""
Command lifecycle: prepare, spawn, pipe, interpret, finalize.

A run moves through IDLE -> PREPARING -> RUNNING -> FINALIZING and ends in
COMPLETED or FAILED. Exactly one terminal event (end or error) is emitted per
run, whichever of exit, stream failure or timeout happens first.
"""

import asyncio
import inspect
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, AsyncIterator, Mapping, Optional

from mencoder_command.capabilities import CapabilityCatalog
from mencoder_command.command.builder import CommandBuilder
from mencoder_command.command.events import CODEC_DATA, END, ERROR, PROGRESS, START
from mencoder_command.config.models import MAX_NICENESS, MIN_NICENESS
from mencoder_command.executor import (
    MetadataRewriter,
    ProcessSupervisor,
    ProgressScanner,
    SpawnOptions,
    build_arguments,
    extract_error,
    scan_codec_data,
    send_signal,
)
from mencoder_command.executor.supervisor import CHUNK_SIZE, SignalSpec
from mencoder_command.inspector import MediaInspector
from mencoder_command.models import (
    CodecInfo,
    CommandSnapshot,
    EncoderInfo,
    FilterInfo,
    FormatSupport,
    InputSpec,
    MediaInfo,
    OutputSpec,
    RunResult,
)
from mencoder_command.tools import BinaryKind
from mencoder_command.utils import (
    IS_WINDOWS,
    ConfigurationError,
    MediaInspectionError,
    ProcessExecutionError,
    ProcessTimeoutError,
    RunCancelledError,
    StreamError,
    TranscoderError,
)


class RunPhase(str, Enum):
    """Lifecycle phase of a run."""

    IDLE = "idle"
    PREPARING = "preparing"
    RUNNING = "running"
    FINALIZING = "finalizing"
    COMPLETED = "completed"
    FAILED = "failed"


ACTIVE_PHASES = frozenset([RunPhase.PREPARING, RunPhase.RUNNING, RunPhase.FINALIZING])

# How often a plain writable destination is checked for closure
CLOSE_POLL_INTERVAL = 0.05


@dataclass
class RunState:
    """Mutable state of a single run."""

    phase: RunPhase = RunPhase.IDLE
    process: Optional[asyncio.subprocess.Process] = None
    stdout: Optional[str] = None
    stderr: Optional[str] = None
    ended: bool = False
    error: Optional[BaseException] = None
    codec_data_sent: bool = False
    scanner: ProgressScanner = field(default_factory=ProgressScanner)
    media_info: Optional[MediaInfo] = None
    probe_started: bool = False
    timer: Optional[asyncio.TimerHandle] = None
    close_timer: Optional[asyncio.TimerHandle] = None
    output_closed: bool = False  # destination closed by someone else
    output_done: bool = False  # stdout fully copied, destination closed by us
    tasks: list[asyncio.Task] = field(default_factory=list)
    output_task: Optional[asyncio.Task] = None

    @property
    def active(self) -> bool:
        return self.phase in ACTIVE_PHASES

    @property
    def duration(self) -> float:
        return self.media_info.duration if self.media_info is not None else 0.0


async def _read_chunks(source: Any) -> AsyncIterator[bytes]:
    """Yield chunks from a StreamReader, a reader object or an async iterable."""
    if hasattr(source, "read"):
        is_async = isinstance(source, asyncio.StreamReader) or inspect.iscoroutinefunction(
            source.read
        )
        while True:
            if is_async:
                data = await source.read(CHUNK_SIZE)
            else:
                data = await asyncio.to_thread(source.read, CHUNK_SIZE)
            if not data:
                return
            yield data
    else:
        async for data in source:
            yield data


def _is_closed(target: Any) -> bool:
    if hasattr(target, "is_closing"):
        return target.is_closing()
    return bool(getattr(target, "closed", False))


async def _write(target: Any, data: bytes) -> None:
    result = target.write(data)
    if inspect.isawaitable(result):
        await result
    if isinstance(target, asyncio.StreamWriter):
        await target.drain()


async def _close(target: Any) -> None:
    close = getattr(target, "close", None)
    if close is None:
        return
    result = close()
    if inspect.isawaitable(result):
        await result


class MencoderCommand(CommandBuilder):
    """
    A mencoder invocation with its lifecycle.

    Example:
        >>> command = MencoderCommand(timeout=600)
        >>> command.input("in.avi").video_codec("lavc").audio_codec("mp3lame")
        >>> command.output("out.avi").on("progress", print)
        >>> result = await command.run()
    """

    def __init__(self, *args: Any, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self._supervisor = ProcessSupervisor(self.locator, BinaryKind.MENCODER)
        self._rewriter = MetadataRewriter(self.locator)
        self._inspector = MediaInspector(self.locator)
        self._catalog = CapabilityCatalog(self.locator)
        self._state: Optional[RunState] = None
        self._background: set[asyncio.Task] = set()

    @property
    def state(self) -> Optional[RunState]:
        """State of the current or last run."""
        return self._state

    @property
    def process(self) -> Optional[asyncio.subprocess.Process]:
        """Running mencoder process, if any."""
        return self._state.process if self._state is not None else None

    async def run(self) -> RunResult:
        """
        Run the command to completion.

        Returns:
            RunResult with the argument list and captured output

        Raises:
            ConfigurationError: If no output is set, the command is already
                running or its filters are malformed
            BinaryNotFoundError: If mencoder or flvmeta/flvtool2 is missing
            ProcessExecutionError: If mencoder fails (StreamError for piping
                failures, MetadataRewriteError for metadata updates)
            ProcessTimeoutError: If the run exceeds its timeout

        Cancelling the awaiting task kills mencoder, emits an error event
        carrying RunCancelledError and re-raises the cancellation.
        """
        snapshot = self.snapshot()
        if not snapshot.has_output_target:
            raise ConfigurationError("No output specified")
        if self._state is not None and self._state.active:
            raise ConfigurationError("Command is already running")

        state = RunState(phase=RunPhase.PREPARING)
        self._state = state

        try:
            snapshot, args = await self._prepare(snapshot, state)
        except TranscoderError as e:
            self._finish(state, e)
            raise
        except asyncio.CancelledError:
            self._finish(state, RunCancelledError("Run was cancelled"))
            raise

        stream_input = snapshot.stream_input
        stream_output = snapshot.stream_output
        options = SpawnOptions(
            niceness=snapshot.niceness,
            capture_stdout=stream_output is None,
            capture_stderr=True,
            pipe_stdin=stream_input is not None,
            pipe_stdout=stream_output is not None,
        )

        def on_start(process: asyncio.subprocess.Process) -> None:
            self._on_start(state, snapshot, args, process)

        def on_stdout(chunk: str, accumulated: str) -> None:
            state.stdout = accumulated
            if self.listener_count(PROGRESS):
                for progress in state.scanner.scan(accumulated, state.duration):
                    self.emit(PROGRESS, progress)

        def on_stderr(chunk: str, accumulated: str) -> None:
            state.stderr = accumulated
            if not state.codec_data_sent and self.listener_count(CODEC_DATA):
                codec_data = scan_codec_data(accumulated)
                if codec_data is not None:
                    state.codec_data_sent = True
                    self.emit(CODEC_DATA, codec_data)

        error: Optional[BaseException] = None
        stdout = stderr = None
        try:
            stdout, stderr = await self._supervisor.supervise(
                args, options, on_start=on_start, on_stdout=on_stdout, on_stderr=on_stderr
            )
        except ProcessExecutionError as e:
            error, stdout, stderr = e, e.stdout, e.stderr
        except Exception as e:
            error, stdout, stderr = e, state.stdout, state.stderr
        except asyncio.CancelledError:
            self._terminate(state)
            await self._cleanup(state, drain_output=False)
            self._finish(state, RunCancelledError("Run was cancelled"), state.stdout, state.stderr)
            raise
        finally:
            state.process = None

        state.phase = RunPhase.FINALIZING
        await self._cleanup(state, drain_output=error is None)

        if isinstance(error, ProcessExecutionError) and error.exited_with_code:
            error = error.with_message(f"{error}: {extract_error(stderr)}")

        if error is None and snapshot.flvmeta_outputs:
            try:
                await self._rewriter.rewrite_all(snapshot.flvmeta_outputs)
            except ProcessExecutionError as e:
                error = e

        self._finish(state, error, stdout, stderr)
        if state.error is not None:
            raise state.error

        return RunResult(args=args, stdout=stdout, stderr=stderr)

    async def _prepare(
        self, snapshot: CommandSnapshot, state: RunState
    ) -> tuple[CommandSnapshot, list[str]]:
        outputs = []
        for output in snapshot.outputs:
            if output.flvmeta and not output.is_file:
                self.logger.warning("Updating flv metadata is only supported for files")
                output = output.without_flvmeta()
            outputs.append(output)
        snapshot = replace(snapshot, outputs=tuple(outputs))

        if snapshot.flvmeta_outputs:
            self._rewriter.ensure_available()

        if self.listener_count(PROGRESS):
            state.probe_started = True
            await self._read_metadata(state)

        return snapshot, build_arguments(snapshot)

    def _on_start(
        self,
        state: RunState,
        snapshot: CommandSnapshot,
        args: list[str],
        process: asyncio.subprocess.Process,
    ) -> None:
        state.process = process
        state.phase = RunPhase.RUNNING
        self.emit(START, list(args))

        stream_input = snapshot.stream_input
        if stream_input is not None:
            state.tasks.append(asyncio.create_task(self._pump_input(state, stream_input, process)))

        if snapshot.timeout:
            state.timer = asyncio.get_running_loop().call_later(
                snapshot.timeout, self._on_timeout, state, snapshot.timeout
            )

        stream_output = snapshot.stream_output
        if stream_output is not None:
            state.output_task = asyncio.create_task(
                self._pump_output(state, stream_output, process)
            )
            state.tasks.append(
                asyncio.create_task(self._watch_output(state, stream_output.target, process))
            )

    def _on_timeout(self, state: RunState, timeout: float) -> None:
        self._finish(
            state,
            ProcessTimeoutError(f"Process ran into a timeout ({timeout:g}s)", timeout=timeout),
            state.stdout,
            state.stderr,
        )
        self._terminate(state)

    def _on_output_closed(self, state: RunState) -> None:
        self._finish(state, StreamError("Output stream closed"))
        self._terminate(state)

    def _terminate(self, state: RunState) -> None:
        if state.process is not None:
            send_signal(state.process, self.config.process.kill_signal)

    async def _pump_input(
        self, state: RunState, spec: InputSpec, process: asyncio.subprocess.Process
    ) -> None:
        stdin = process.stdin
        chunks = _read_chunks(spec.source).__aiter__()
        try:
            while True:
                try:
                    data = await chunks.__anext__()
                except StopAsyncIteration:
                    break
                except Exception as e:
                    self._finish(state, StreamError(f"Input stream error: {e}"))
                    self._terminate(state)
                    return

                try:
                    stdin.write(data)
                    await stdin.drain()
                except (BrokenPipeError, ConnectionResetError) as e:
                    # mencoder stopped reading and reports the failure itself
                    self.logger.debug(f"mencoder stdin closed: {e}")
                    return
        finally:
            await chunks.aclose()
            if not stdin.is_closing():
                stdin.close()

    async def _pump_output(
        self, state: RunState, spec: OutputSpec, process: asyncio.subprocess.Process
    ) -> None:
        target = spec.target
        detached = False

        while True:
            try:
                data = await process.stdout.read(CHUNK_SIZE)
            except OSError as e:
                self.logger.debug(f"Error reading mencoder stdout: {e}")
                break
            if not data:
                break
            # Keep draining stdout once the destination is gone so mencoder can exit
            if detached:
                continue

            if state.output_closed or _is_closed(target):
                detached = True
                self._output_closed(state)
                continue

            try:
                await _write(target, data)
            except Exception as e:
                detached = True
                self.logger.debug("Output stream error, killing mencoder process")
                self._finish(state, StreamError(f"Output stream error: {e}"))
                self._terminate(state)

        if detached or state.output_closed:
            return
        state.output_done = True
        if spec.pipe_options.end:
            await _close(target)

    async def _watch_output(
        self, state: RunState, target: Any, process: asyncio.subprocess.Process
    ) -> None:
        """Notice a destination closing while mencoder writes nothing."""
        if isinstance(target, asyncio.StreamWriter):
            try:
                await target.wait_closed()
            except Exception as e:
                self.logger.debug(f"Output stream failed: {e}")
        else:
            while not _is_closed(target):
                if state.output_done or process.returncode is not None:
                    return
                await asyncio.sleep(CLOSE_POLL_INTERVAL)

        if not state.output_done:
            self._output_closed(state)

    def _output_closed(self, state: RunState) -> None:
        if state.output_closed or state.ended:
            return
        state.output_closed = True
        self.logger.debug("Output stream closed, scheduling kill for mencoder process")
        state.close_timer = asyncio.get_running_loop().call_later(
            self.config.process.output_close_grace, self._on_output_closed, state
        )

    async def _cleanup(self, state: RunState, drain_output: bool) -> None:
        if state.timer is not None:
            state.timer.cancel()
            state.timer = None

        if state.output_task is not None:
            if drain_output:
                await state.output_task
            else:
                state.output_task.cancel()

        if state.close_timer is not None:
            state.close_timer.cancel()
            state.close_timer = None

        for task in state.tasks:
            if not task.done():
                task.cancel()
        state.tasks.clear()

    def _finish(
        self,
        state: RunState,
        error: Optional[BaseException],
        stdout: Optional[str] = None,
        stderr: Optional[str] = None,
    ) -> bool:
        """
        Emit the terminal event of a run, once.

        Returns:
            True if this call emitted the event
        """
        if state.ended:
            return False

        state.ended = True
        state.error = error
        state.phase = RunPhase.FAILED if error is not None else RunPhase.COMPLETED

        if error is not None:
            self.logger.debug(f"mencoder run failed: {error}")
            self.emit(ERROR, error, stdout, stderr)
        else:
            self.emit(END, stdout, stderr)
        return True

    # Input metadata

    async def _read_metadata(self, state: RunState) -> None:
        try:
            state.media_info = await self.probe()
        except TranscoderError as e:
            self.logger.debug(f"Could not read input metadata: {e}")

    def _progress_listener_added(self) -> None:
        state = self._state
        if state is None or not state.active or state.probe_started:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return

        state.probe_started = True
        self._spawn_background(loop.create_task(self._read_metadata(state)))

    def _spawn_background(self, task: asyncio.Task) -> None:
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def probe(self, index: int = 0) -> MediaInfo:
        """
        Read metadata of an input with ffprobe.

        Args:
            index: Input index

        Raises:
            MediaInspectionError: If there is no such file input or probing fails
        """
        if not 0 <= index < len(self._inputs):
            raise MediaInspectionError(f"No input at index {index}")

        spec = self._inputs[index]
        if not spec.is_file:
            raise MediaInspectionError("Cannot probe a stream input")

        return await self._inspector.inspect(spec.source)

    # Priority and signals

    def renice(self, niceness: int = 0) -> "MencoderCommand":
        """
        Renice current and future mencoder processes.

        Ignored on Windows.

        Args:
            niceness: Between -20 (highest priority) and 20 (lowest priority)
        """
        if IS_WINDOWS:
            return self

        niceness = int(niceness or 0)
        if niceness < MIN_NICENESS or niceness > MAX_NICENESS:
            self.logger.warning(
                f"Invalid niceness value: {niceness}, must be between "
                f"{MIN_NICENESS} and {MAX_NICENESS}"
            )

        niceness = min(MAX_NICENESS, max(MIN_NICENESS, niceness))
        self.niceness = niceness

        process = self.process
        if process is not None and process.returncode is None:
            self._spawn_background(
                asyncio.get_running_loop().create_task(self._renice_process(process.pid, niceness))
            )
        return self

    async def _renice_process(self, pid: int, niceness: int) -> None:
        try:
            renice = await asyncio.create_subprocess_exec(
                "renice",
                str(niceness),
                "-p",
                str(pid),
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL,
            )
        except OSError as e:
            self.logger.warning(f"Could not renice process {pid}: {e}")
            return

        returncode = await renice.wait()
        if returncode < 0:
            self.logger.warning(
                f"Could not renice process {pid}: renice was killed by signal {-returncode}"
            )
        elif returncode:
            self.logger.warning(f"Could not renice process {pid}: renice exited with {returncode}")
        else:
            self.logger.info(f"Successfully reniced process {pid} to {niceness} niceness")

    def kill(self, signal: SignalSpec = None) -> "MencoderCommand":
        """
        Send a signal to the running mencoder process.

        Args:
            signal: Signal name, number or enum (default from config, SIGKILL)
        """
        process = self.process
        if process is None:
            self.logger.warning("No running mencoder process, cannot send signal")
            return self

        send_signal(process, signal or self.config.process.kill_signal)
        return self

    # Capabilities

    async def available_filters(self) -> Mapping[str, FilterInfo]:
        return await self._catalog.available_filters()

    async def available_codecs(self) -> Mapping[str, CodecInfo]:
        return await self._catalog.available_codecs()

    async def available_encoders(self) -> Mapping[str, EncoderInfo]:
        return await self._catalog.available_encoders()

    async def available_formats(self) -> Mapping[str, FormatSupport]:
        return await self._catalog.available_formats()
