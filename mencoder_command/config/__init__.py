"""Configuration management for mencoder-command."""

from mencoder_command.config.manager import (
    ConfigManager,
    get_config_manager,
)
from mencoder_command.config.models import (
    MAX_NICENESS,
    MIN_NICENESS,
    BinaryConfig,
    LoggingConfig,
    ProcessConfig,
    RunnerConfig,
)

__all__ = [
    # Manager
    "ConfigManager",
    "get_config_manager",
    # Models
    "BinaryConfig",
    "LoggingConfig",
    "ProcessConfig",
    "RunnerConfig",
    "MAX_NICENESS",
    "MIN_NICENESS",
]
