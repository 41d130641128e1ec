"""
Executable discovery for mencoder, ffprobe and flvmeta/flvtool2.

Lookups are cached for the lifetime of the process; forget_paths() clears
the cache (used by tests).
"""

import os
import shutil
from enum import Enum
from pathlib import Path
from typing import Optional

from mencoder_command.config import BinaryConfig
from mencoder_command.utils import IS_WINDOWS, BinaryNotFoundError, get_logger

logger = get_logger(__name__)


class BinaryKind(str, Enum):
    """Executables the runner may need."""

    MENCODER = "mencoder"
    FFPROBE = "ffprobe"
    FLVTOOL = "flvtool"


# Process-wide cache, empty string means "looked up, not found"
_path_cache: dict[BinaryKind, str] = {}


def forget_paths() -> None:
    """Forget cached and explicitly set executable paths."""
    _path_cache.clear()
    logger.debug("Executable path cache cleared")


def _existing_env_path(variable: str) -> str:
    value = os.environ.get(variable)
    if value and os.path.exists(value):
        return value
    if value:
        logger.debug(f"Ignoring {variable}={value}: file does not exist")
    return ""


def _which(name: str) -> str:
    return shutil.which(name) or ""


class BinaryLocator:
    """
    Resolves executable paths.

    Lookup order per kind:
    - mencoder: MENCODER_PATH, then PATH
    - ffprobe: FFPROBE_PATH, then PATH, then next to the mencoder binary
    - flvtool: FLVMETA_PATH, FLVTOOL2_PATH, flvmeta on PATH, flvtool2 on PATH

    Paths from the configuration (or set_path()) take precedence.
    """

    def __init__(self, overrides: Optional[BinaryConfig] = None):
        """
        Initialize locator.

        Args:
            overrides: Configured executable paths
        """
        self.overrides = overrides or BinaryConfig()

    @staticmethod
    def set_path(kind: BinaryKind | str, path: str) -> None:
        """Manually define an executable path for every command in this process."""
        _path_cache[BinaryKind(kind)] = path

    def resolve(self, kind: BinaryKind | str) -> str:
        """
        Resolve an executable path.

        Args:
            kind: Executable to look up

        Returns:
            Path to the executable, or "" if it cannot be found
        """
        kind = BinaryKind(kind)

        override = getattr(self.overrides, kind.value)
        if override:
            return override

        if kind in _path_cache:
            return _path_cache[kind]

        if kind == BinaryKind.MENCODER:
            path = self._find_mencoder()
        elif kind == BinaryKind.FFPROBE:
            path = self._find_ffprobe()
        else:
            path = self._find_flvtool()

        if path:
            logger.debug(f"Resolved {kind.value} to {path}")
        else:
            logger.debug(f"Could not find {kind.value}")

        _path_cache[kind] = path
        return path

    def require(self, kind: BinaryKind | str) -> str:
        """
        Resolve an executable path or fail.

        Raises:
            BinaryNotFoundError: If the executable cannot be found
        """
        kind = BinaryKind(kind)
        path = self.resolve(kind)
        if not path:
            raise BinaryNotFoundError(f"Cannot find {kind.value}", binary=kind.value)
        return path

    def _find_mencoder(self) -> str:
        return _existing_env_path("MENCODER_PATH") or _which("mencoder")

    def _find_ffprobe(self) -> str:
        path = _existing_env_path("FFPROBE_PATH") or _which("ffprobe")
        if path:
            return path

        mencoder = self.resolve(BinaryKind.MENCODER)
        if mencoder:
            candidate = Path(mencoder).parent / ("ffprobe.exe" if IS_WINDOWS else "ffprobe")
            if candidate.exists():
                return str(candidate)
        return ""

    def _find_flvtool(self) -> str:
        return (
            _existing_env_path("FLVMETA_PATH")
            or _existing_env_path("FLVTOOL2_PATH")
            or _which("flvmeta")
            or _which("flvtool2")
        )
