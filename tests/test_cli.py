"""
Tests for the command-line interface.
"""

import pytest
from typer.testing import CliRunner

from mencoder_command import __version__
from mencoder_command.cli.main import app
from mencoder_command.utils import IS_WINDOWS

posix_only = pytest.mark.skipif(IS_WINDOWS, reason="requires POSIX processes")

runner = CliRunner()


@pytest.fixture(autouse=True)
def fresh_config_manager(monkeypatch):
    """Do not share the global configuration manager between tests."""
    monkeypatch.setattr("mencoder_command.config.manager._config_manager", None)


@pytest.fixture
def config_file(tmp_path, fake_binary):
    """Configuration pointing at a fake mencoder."""

    def make(body: str):
        path = tmp_path / "config.yaml"
        path.write_text(f"binaries:\n  mencoder: {fake_binary(body)}\n")
        return path

    return make


class TestCli:
    """Test CLI commands."""

    def test_version(self):
        """Test version output."""
        result = runner.invoke(app, ["version"])

        assert result.exit_code == 0
        assert __version__ in result.output

    def test_config_init(self, tmp_path):
        """Test writing a default configuration file."""
        output = tmp_path / "config.yaml"
        result = runner.invoke(app, ["config", "init", "--output", str(output)])

        assert result.exit_code == 0
        assert "kill_signal: SIGKILL" in output.read_text()

    def test_config_unknown_action(self):
        """Test unknown config actions."""
        result = runner.invoke(app, ["config", "drop"])
        assert result.exit_code == 1

    @posix_only
    def test_formats(self, config_file):
        """Test listing formats from the transcoder."""
        path = config_file("print(' DE flv             FLV (Flash Video)')\n")

        result = runner.invoke(app, ["formats", "--config", str(path)])

        assert result.exit_code == 0
        assert "flv" in result.output
        assert "1 entries" in result.output

    @posix_only
    def test_query_failure(self, config_file):
        """Test transcoder failures exit non-zero."""
        path = config_file("sys.exit(1)\n")

        result = runner.invoke(app, ["codecs", "--config", str(path)])

        assert result.exit_code == 1
        assert "Error" in result.output

    @posix_only
    def test_run(self, config_file, tmp_path):
        """Test a transcode run writes its output."""
        source = tmp_path / "in.avi"
        source.write_bytes(b"data")
        target = tmp_path / "out.avi"
        path = config_file(
            "out = sys.argv[sys.argv.index('-o') + 1]\n"
            "open(out, 'wb').write(b'encoded')\n"
        )

        result = runner.invoke(
            app, ["run", str(source), str(target), "--ovc", "copy", "--config", str(path)]
        )

        assert result.exit_code == 0, result.output
        assert target.read_bytes() == b"encoded"
