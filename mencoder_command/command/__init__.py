"""Command configuration and lifecycle."""

from mencoder_command.command.builder import CommandBuilder, split_options
from mencoder_command.command.events import (
    CODEC_DATA,
    END,
    ERROR,
    PROGRESS,
    START,
    TERMINAL_EVENTS,
    VALID_EVENTS,
)
from mencoder_command.command.runner import MencoderCommand, RunPhase, RunState

__all__ = [
    # Builder
    "CommandBuilder",
    "split_options",
    # Lifecycle
    "MencoderCommand",
    "RunPhase",
    "RunState",
    # Events
    "CODEC_DATA",
    "END",
    "ERROR",
    "PROGRESS",
    "START",
    "TERMINAL_EVENTS",
    "VALID_EVENTS",
]
