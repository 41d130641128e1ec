"""
Shared fixtures.

Subprocess tests replace mencoder, ffprobe and flvtool with small Python
scripts so that the whole supervision path runs against real processes.
"""

import sys
import textwrap

import pytest

from mencoder_command.capabilities import reset_capability_cache
from mencoder_command.tools import forget_paths


@pytest.fixture(autouse=True)
def clean_caches():
    """Reset process-wide executable and capability caches around each test."""
    forget_paths()
    reset_capability_cache()
    yield
    forget_paths()
    reset_capability_cache()


@pytest.fixture
def fake_binary(tmp_path):
    """Factory writing an executable Python script; returns its path."""

    def make(body: str, name: str = "mencoder") -> str:
        path = tmp_path / name
        path.write_text(
            f"#!{sys.executable}\nimport os, sys, time\n" + textwrap.dedent(body),
            encoding="utf-8",
        )
        path.chmod(0o755)
        return str(path)

    return make
