"""
Loading and saving of the runner configuration.

Configuration is read from the first YAML file found in SEARCH_PATHS unless
an explicit path is given; without any file the defaults apply.
"""

from pathlib import Path
from typing import Optional

import yaml
from pydantic import ValidationError

from mencoder_command.config.models import RunnerConfig
from mencoder_command.utils import ConfigurationError, get_logger

logger = get_logger(__name__)

SEARCH_PATHS = [
    Path.home() / ".mencoder-command.yaml",
    Path.home() / ".config" / "mencoder-command" / "config.yaml",
    Path.cwd() / ".mencoder-command.yaml",
]


class ConfigManager:
    """Reads and writes RunnerConfig YAML files."""

    def __init__(self, config_path: Optional[Path] = None):
        """
        Initialize configuration manager.

        Args:
            config_path: Explicit configuration file; skips the search paths
        """
        self.config_path = config_path
        self._config: Optional[RunnerConfig] = None

    @property
    def config(self) -> RunnerConfig:
        """Configuration, loaded on first access."""
        if self._config is None:
            self._config = self.load()
        return self._config

    def load(self) -> RunnerConfig:
        """
        Load the configuration.

        Raises:
            ConfigurationError: If the explicit file is missing or any file is invalid
        """
        if self.config_path is not None:
            if not self.config_path.exists():
                raise ConfigurationError(f"Configuration file not found: {self.config_path}")
            return self._read(self.config_path)

        path = next((p for p in SEARCH_PATHS if p.exists()), None)
        if path is None:
            logger.debug("No configuration file found, using defaults")
            return RunnerConfig.create_default()

        logger.info(f"Loading configuration from {path}")
        return self._read(path)

    def _read(self, path: Path) -> RunnerConfig:
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in configuration file: {e}")
        except OSError as e:
            raise ConfigurationError(f"Failed to read configuration: {e}")

        if data is None:
            raise ConfigurationError(f"Configuration file is empty: {path}")

        try:
            return RunnerConfig(**data)
        except (TypeError, ValidationError) as e:
            raise ConfigurationError(f"Failed to load configuration: {e}")

    def save(self, path: Optional[Path] = None, config: Optional[RunnerConfig] = None) -> Path:
        """
        Write a configuration as YAML.

        Args:
            path: Target file (default: the explicit path, else the first search path)
            config: Configuration to write (default: the current one)

        Returns:
            Path that was written

        Raises:
            ConfigurationError: If the file cannot be written
        """
        target = path or self.config_path or SEARCH_PATHS[0]
        data = (config or self.config).model_dump(mode="json")

        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            with open(target, "w", encoding="utf-8") as f:
                yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False, indent=2)
        except OSError as e:
            raise ConfigurationError(f"Failed to save configuration: {e}")

        logger.info(f"Configuration saved to {target}")
        return target


_config_manager: Optional[ConfigManager] = None


def get_config_manager(config_path: Optional[Path] = None) -> ConfigManager:
    """Process-wide manager; replaced when a different explicit path is given."""
    global _config_manager

    if _config_manager is None or (config_path and _config_manager.config_path != config_path):
        _config_manager = ConfigManager(config_path)

    return _config_manager
