"""
Async process supervision.

This module spawns the transcoder (or any auxiliary binary), wires its
standard streams according to a capture policy and reconciles process exit
and stream closure into a single completion.
"""

import asyncio
import codecs
import signal
from dataclasses import dataclass
from typing import Callable, Iterable, Optional, Sequence, Union

from mencoder_command.tools.paths import BinaryKind, BinaryLocator
from mencoder_command.utils import IS_WINDOWS, ProcessExecutionError, get_logger

logger = get_logger(__name__)

CHUNK_SIZE = 64 * 1024

# Signals a supervised process must deliver before completion fires
EXIT = "exit"
STDOUT = "stdout"
STDERR = "stderr"

SignalSpec = Union[str, int, signal.Signals, None]
StartCallback = Callable[[asyncio.subprocess.Process], None]
ChunkCallback = Callable[[str, str], None]


@dataclass(frozen=True)
class SpawnOptions:
    """How a supervised process is spawned and which streams are captured."""

    niceness: int = 0  # ignored on Windows
    capture_stdout: bool = False
    capture_stderr: bool = False
    pipe_stdin: bool = False
    pipe_stdout: bool = False  # leave stdout readable for the caller without capturing it


class CompletionState:
    """
    Single-fire completion across independently finishing signals.

    Each signal source marks its flag; the completion fires once every flag is
    set, or immediately on abort(). Later marks and aborts are ignored.
    """

    def __init__(self, signals: Iterable[str]):
        """
        Initialize completion state.

        Args:
            signals: Names of the signals that must all be observed
        """
        self._pending = set(signals)
        self._error: Optional[BaseException] = None
        self._done: asyncio.Future = asyncio.get_running_loop().create_future()

    @property
    def pending(self) -> frozenset[str]:
        """Signals not observed yet."""
        return frozenset(self._pending)

    @property
    def fired(self) -> bool:
        return self._done.done()

    def mark(self, name: str, error: Optional[BaseException] = None) -> None:
        """
        Record that a signal has been observed.

        Args:
            name: Signal name
            error: Error carried by the signal; the first one wins
        """
        if error is not None and self._error is None:
            self._error = error
        self._pending.discard(name)
        if not self._pending:
            self._fire(self._error)

    def abort(self, error: BaseException) -> None:
        """Fire immediately with an error, without waiting for other signals."""
        self._fire(error)

    def _fire(self, error: Optional[BaseException]) -> None:
        if self._done.done():
            return
        self._done.set_result(error)

    async def wait(self) -> Optional[BaseException]:
        """Wait for completion; returns the error, if any."""
        return await self._done


class StreamCapture:
    """Accumulates a process stream as text, decoding chunks incrementally."""

    def __init__(self, encoding: str = "utf-8"):
        self.text = ""
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")

    def feed(self, data: bytes, final: bool = False) -> str:
        """Append raw bytes; returns the newly decoded text."""
        chunk = self._decoder.decode(data, final=final)
        self.text += chunk
        return chunk


def resolve_signal(sig: SignalSpec) -> Optional[signal.Signals]:
    """
    Normalize a signal given by name, number or enum.

    Returns None for SIGKILL on platforms without it (use Process.kill()).

    Raises:
        ValueError: If the signal is unknown
    """
    if sig is None:
        return None
    if isinstance(sig, signal.Signals):
        return sig
    if isinstance(sig, int):
        return signal.Signals(sig)

    name = sig.upper()
    if not name.startswith("SIG"):
        name = f"SIG{name}"
    try:
        return signal.Signals[name]
    except KeyError:
        if name == "SIGKILL":
            return None
        raise ValueError(f"Unknown signal: {sig}")


def send_signal(process: asyncio.subprocess.Process, sig: SignalSpec = "SIGKILL") -> bool:
    """
    Send a signal to a process that may already have exited.

    Returns:
        True if the signal was delivered
    """
    if process.returncode is not None:
        return False

    resolved = resolve_signal(sig)
    try:
        if resolved is None:
            process.kill()
        else:
            process.send_signal(resolved)
    except ProcessLookupError:
        return False
    return True


def signal_name(returncode: int) -> str:
    """Name of the signal behind a negative asyncio return code."""
    try:
        return signal.Signals(-returncode).name
    except ValueError:
        return str(-returncode)


class ProcessSupervisor:
    """
    Spawns and supervises one binary.

    Completion waits for the process exit plus the closure of every captured
    stream, whatever order the platform delivers them in.
    """

    def __init__(
        self,
        locator: Optional[BinaryLocator] = None,
        kind: BinaryKind = BinaryKind.MENCODER,
    ):
        """
        Initialize supervisor.

        Args:
            locator: Executable resolver (default lookup rules when None)
            kind: Which executable this supervisor runs
        """
        self.locator = locator or BinaryLocator()
        self.kind = BinaryKind(kind)

    def build_command(self, binary: str, args: Sequence[str], niceness: int = 0) -> list[str]:
        """
        Build the full command line, wrapping it with `nice` when needed.

        Args:
            binary: Resolved executable path
            args: Arguments for the executable
            niceness: Requested niceness (0 = unchanged)

        Returns:
            Command line as list
        """
        if niceness and not IS_WINDOWS:
            return ["nice", "-n", str(niceness), binary, *args]
        return [binary, *args]

    async def supervise(
        self,
        args: Sequence[str],
        options: Optional[SpawnOptions] = None,
        on_start: Optional[StartCallback] = None,
        on_stdout: Optional[ChunkCallback] = None,
        on_stderr: Optional[ChunkCallback] = None,
    ) -> tuple[Optional[str], Optional[str]]:
        """
        Run the binary to completion.

        Args:
            args: Arguments for the binary
            options: Spawn and capture options
            on_start: Called synchronously with the process right after spawning
            on_stdout: Called per captured stdout chunk as (chunk, accumulated)
            on_stderr: Called per captured stderr chunk as (chunk, accumulated)

        Returns:
            Tuple of (stdout, stderr); each is None unless captured

        Raises:
            BinaryNotFoundError: If the binary cannot be found
            ProcessExecutionError: If spawning fails, the process exits with a
                non-zero code or is killed by a signal
        """
        options = options or SpawnOptions()
        binary = self.locator.require(self.kind)
        command = self.build_command(binary, args, options.niceness)

        logger.info(f"Running {self.kind.value}: {' '.join(command[:4])}...")
        logger.debug(f"Full command: {' '.join(command)}")

        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdin=asyncio.subprocess.PIPE if options.pipe_stdin else asyncio.subprocess.DEVNULL,
                stdout=(
                    asyncio.subprocess.PIPE
                    if options.capture_stdout or options.pipe_stdout
                    else asyncio.subprocess.DEVNULL
                ),
                stderr=(
                    asyncio.subprocess.PIPE if options.capture_stderr else asyncio.subprocess.DEVNULL
                ),
            )
        except OSError as e:
            raise ProcessExecutionError(
                f"Failed to spawn {self.kind.value}: {e}", command=command
            ) from e

        signals = [EXIT]
        stdout = StreamCapture() if options.capture_stdout else None
        stderr = StreamCapture() if options.capture_stderr else None
        if stdout is not None:
            signals.append(STDOUT)
        if stderr is not None:
            signals.append(STDERR)

        completion = CompletionState(signals)
        tasks = [asyncio.create_task(self._watch_exit(process, command, completion))]
        if stdout is not None:
            tasks.append(
                asyncio.create_task(
                    self._pump(process.stdout, STDOUT, stdout, on_stdout, completion)
                )
            )
        if stderr is not None:
            tasks.append(
                asyncio.create_task(
                    self._pump(process.stderr, STDERR, stderr, on_stderr, completion)
                )
            )

        try:
            if on_start is not None:
                try:
                    on_start(process)
                except Exception as e:
                    logger.error(f"Start handler failed, killing {self.kind.value}: {e}")
                    send_signal(process)
                    completion.abort(e)

            error = await completion.wait()
        except asyncio.CancelledError:
            logger.debug(f"Supervision cancelled, killing {self.kind.value}")
            send_signal(process)
            raise
        finally:
            # Reap the child while the stream pumps keep draining its pipes
            await tasks[0]
            for task in tasks[1:]:
                if not task.done():
                    task.cancel()

        stdout_text = stdout.text if stdout is not None else None
        stderr_text = stderr.text if stderr is not None else None

        if error is not None:
            if isinstance(error, ProcessExecutionError):
                error.stdout = stdout_text
                error.stderr = stderr_text
            raise error

        logger.debug(f"{self.kind.value} completed successfully")
        return stdout_text, stderr_text

    async def _watch_exit(
        self,
        process: asyncio.subprocess.Process,
        command: list[str],
        completion: CompletionState,
    ) -> None:
        returncode = await process.wait()

        error = None
        if returncode < 0:
            error = ProcessExecutionError(
                f"{self.kind.value} was killed with signal {signal_name(returncode)}",
                command=command,
                signal=signal_name(returncode),
            )
        elif returncode != 0:
            error = ProcessExecutionError(
                f"{self.kind.value} exited with code {returncode}",
                command=command,
                exit_code=returncode,
            )

        completion.mark(EXIT, error)

    async def _pump(
        self,
        stream: Optional[asyncio.StreamReader],
        name: str,
        capture: StreamCapture,
        callback: Optional[ChunkCallback],
        completion: CompletionState,
    ) -> None:
        try:
            while stream is not None:
                data = await stream.read(CHUNK_SIZE)
                chunk = capture.feed(data, final=not data)
                if chunk and callback is not None:
                    try:
                        callback(chunk, capture.text)
                    except Exception as e:
                        logger.warning(f"{name} handler failed: {e}")
                if not data:
                    break
        except OSError as e:
            logger.warning(f"Error reading {self.kind.value} {name}: {e}")
        finally:
            completion.mark(name)
