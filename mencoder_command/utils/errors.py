"""
Custom exceptions for mencoder-command.

This module defines the exception hierarchy used throughout the application.
Every failure of a run is reported through exactly one of these types.
"""

import copy
from typing import Optional


class TranscoderError(Exception):
    """Base exception for all mencoder-command errors."""

    pass


class ConfigurationError(TranscoderError):
    """Command or configuration is invalid; detected before any spawn."""

    pass


class BinaryNotFoundError(TranscoderError):
    """A required executable could not be located."""

    def __init__(self, message: str, binary: Optional[str] = None):
        """
        Initialize binary resolution error.

        Args:
            message: Error message
            binary: Kind of binary that was looked up (e.g. "mencoder")
        """
        super().__init__(message)
        self.binary = binary


class MediaInspectionError(TranscoderError):
    """Failed to inspect media file."""

    pass


class ProcessExecutionError(TranscoderError):
    """Supervised process failed to spawn, exited non-zero or was signalled."""

    def __init__(
        self,
        message: str,
        command: list[str] | None = None,
        exit_code: Optional[int] = None,
        signal: Optional[str] = None,
        stdout: Optional[str] = None,
        stderr: Optional[str] = None,
    ):
        """
        Initialize process error with execution details.

        Args:
            message: Error message
            command: Command line that failed
            exit_code: Non-zero exit code, if the process exited normally
            signal: Name of the terminating signal, if any
            stdout: Captured standard output
            stderr: Captured standard error
        """
        super().__init__(message)
        self.command = command
        self.exit_code = exit_code
        self.signal = signal
        self.stdout = stdout
        self.stderr = stderr

    @property
    def exited_with_code(self) -> bool:
        """True when the process exited on its own with a non-zero code."""
        return self.exit_code is not None and self.exit_code != 0

    def with_message(self, message: str) -> "ProcessExecutionError":
        """Return a copy of this error carrying a new message."""
        error = copy.copy(self)
        error.args = (message,)
        return error


class StreamError(ProcessExecutionError):
    """Input source or output destination failed while piping."""

    pass


class MetadataRewriteError(ProcessExecutionError):
    """Post-run metadata rewriting failed on an output file."""

    def __init__(self, message: str, target: Optional[str] = None, **kwargs):
        """
        Initialize metadata rewrite error.

        Args:
            message: Error message
            target: Output file the rewriter was run on
            **kwargs: Process details forwarded to ProcessExecutionError
        """
        super().__init__(message, **kwargs)
        self.target = target


class ProcessTimeoutError(TranscoderError):
    """Process exceeded timeout threshold."""

    def __init__(self, message: str, timeout: float):
        """
        Initialize timeout error.

        Args:
            message: Error message
            timeout: Timeout value in seconds
        """
        super().__init__(message)
        self.timeout = timeout


class RunCancelledError(TranscoderError):
    """The task awaiting a run was cancelled; the process was killed."""

    pass
