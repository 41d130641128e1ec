"""
Configuration models using Pydantic.

This module defines the configuration structure for mencoder-command.
"""

import signal
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, field_validator

MIN_NICENESS = -20
MAX_NICENESS = 20


class BinaryConfig(BaseModel):
    """Explicit executable paths; unset entries are looked up at run time."""

    mencoder: Optional[str] = Field(default=None, description="Path to the mencoder binary")
    ffprobe: Optional[str] = Field(default=None, description="Path to the ffprobe binary")
    flvtool: Optional[str] = Field(
        default=None, description="Path to the flvmeta or flvtool2 binary"
    )


class ProcessConfig(BaseModel):
    """Defaults applied to every supervised process."""

    niceness: int = Field(
        default=0,
        ge=MIN_NICENESS,
        le=MAX_NICENESS,
        description="Process niceness, -20 (highest priority) to 20 (lowest)",
    )
    timeout: Optional[float] = Field(
        default=None, gt=0, description="Processing timeout in seconds (None = no timeout)"
    )
    output_close_grace: float = Field(
        default=0.02,
        ge=0,
        le=5,
        description="Delay before killing the process after its output stream closes",
    )
    kill_signal: str = Field(default="SIGKILL", description="Signal sent by kill()")

    @field_validator("kill_signal")
    @classmethod
    def validate_kill_signal(cls, v: str) -> str:
        """Validate signal name."""
        name = v.upper()
        if not name.startswith("SIG"):
            name = f"SIG{name}"
        if not hasattr(signal, name):
            raise ValueError(f"unknown signal: {v}")
        return name


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", description="Log level")
    file: Optional[Path] = Field(default=None, description="Optional log file")

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"level must be one of {valid_levels}")
        return v.upper()


class RunnerConfig(BaseModel):
    """Main configuration."""

    binaries: BinaryConfig = Field(default_factory=BinaryConfig)
    process: ProcessConfig = Field(default_factory=ProcessConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def create_default(cls) -> "RunnerConfig":
        """Create configuration with default values."""
        return cls()
