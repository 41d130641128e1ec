"""
Tests for configuration system.
"""

import tempfile
from pathlib import Path

import pytest
from pydantic import ValidationError

from mencoder_command.config import ConfigManager, ProcessConfig, RunnerConfig
from mencoder_command.config.models import LoggingConfig
from mencoder_command.utils import ConfigurationError


class TestRunnerConfig:
    """Test RunnerConfig model."""

    def test_create_default(self):
        """Test creating default configuration."""
        config = RunnerConfig.create_default()

        assert config.binaries.mencoder is None
        assert config.binaries.ffprobe is None
        assert config.process.niceness == 0
        assert config.process.timeout is None
        assert config.process.output_close_grace == 0.02
        assert config.process.kill_signal == "SIGKILL"
        assert config.logging.level == "INFO"

    def test_nested_dict(self):
        """Test building configuration from plain dictionaries."""
        config = RunnerConfig(
            binaries={"mencoder": "/opt/mencoder"},
            process={"niceness": 5, "timeout": 30},
        )

        assert config.binaries.mencoder == "/opt/mencoder"
        assert config.process.niceness == 5
        assert config.process.timeout == 30.0


class TestProcessConfig:
    """Test ProcessConfig validation."""

    @pytest.mark.parametrize("niceness", [-21, 21])
    def test_niceness_bounds(self, niceness):
        """Test niceness outside -20..20 is rejected."""
        with pytest.raises(ValidationError):
            ProcessConfig(niceness=niceness)

    def test_non_positive_timeout(self):
        """Test timeouts must be positive."""
        with pytest.raises(ValidationError):
            ProcessConfig(timeout=0)

    @pytest.mark.parametrize("value", ["term", "SIGTERM", "Term"])
    def test_kill_signal_normalized(self, value):
        """Test signal names are normalized."""
        assert ProcessConfig(kill_signal=value).kill_signal == "SIGTERM"

    def test_unknown_kill_signal(self):
        """Test unknown signal names are rejected."""
        with pytest.raises(ValidationError, match="unknown signal"):
            ProcessConfig(kill_signal="SIGNOPE")


class TestLoggingConfig:
    """Test LoggingConfig validation."""

    def test_level_normalized(self):
        """Test log levels are upper-cased."""
        assert LoggingConfig(level="debug").level == "DEBUG"

    def test_invalid_level(self):
        """Test invalid log levels."""
        with pytest.raises(ValidationError):
            LoggingConfig(level="verbose")


class TestConfigManager:
    """Test ConfigManager."""

    def test_save_and_load(self):
        """Test saving and loading configuration."""
        with tempfile.TemporaryDirectory() as tmpdir:
            config_path = Path(tmpdir) / "config.yaml"

            config = RunnerConfig(process={"niceness": 10, "kill_signal": "SIGTERM"})
            manager = ConfigManager(config_path)
            manager.save(config=config)

            assert config_path.exists()

            loaded = ConfigManager(config_path).load()
            assert loaded.process.niceness == 10
            assert loaded.process.kill_signal == "SIGTERM"

    def test_config_property_caches(self, tmp_path):
        """Test the config property loads the file once."""
        config_path = tmp_path / "config.yaml"
        config_path.write_text("process:\n  niceness: 3\n")
        manager = ConfigManager(config_path)

        assert manager.config.process.niceness == 3
        config_path.write_text("process:\n  niceness: 7\n")
        assert manager.config.process.niceness == 3
        assert manager.load().process.niceness == 7

    def test_defaults_without_files(self, tmp_path, monkeypatch):
        """Test defaults apply when no search path exists."""
        monkeypatch.setattr(
            "mencoder_command.config.manager.SEARCH_PATHS", [tmp_path / "missing.yaml"]
        )
        assert ConfigManager().load() == RunnerConfig.create_default()

    def test_save_returns_path(self, tmp_path):
        """Test save() creates parent directories and reports the file."""
        target = tmp_path / "nested" / "config.yaml"
        assert ConfigManager().save(target, RunnerConfig.create_default()) == target
        assert target.exists()

    def test_missing_file(self, tmp_path):
        """Test an explicit path that does not exist."""
        manager = ConfigManager(tmp_path / "missing.yaml")

        with pytest.raises(ConfigurationError, match="not found"):
            manager.load()

    def test_invalid_yaml(self, tmp_path):
        """Test malformed YAML."""
        config_path = tmp_path / "config.yaml"
        config_path.write_text("process: [unclosed\n")

        with pytest.raises(ConfigurationError, match="Invalid YAML"):
            ConfigManager(config_path).load()

    def test_empty_file(self, tmp_path):
        """Test empty configuration files."""
        config_path = tmp_path / "config.yaml"
        config_path.write_text("")

        with pytest.raises(ConfigurationError, match="empty"):
            ConfigManager(config_path).load()

    def test_invalid_values(self, tmp_path):
        """Test validation errors are reported as configuration errors."""
        config_path = tmp_path / "config.yaml"
        config_path.write_text("process:\n  niceness: 99\n")

        with pytest.raises(ConfigurationError, match="Failed to load configuration"):
            ConfigManager(config_path).load()
