"""
Post-run FLV metadata rewriting with flvmeta/flvtool2.
"""

import asyncio
import os
from typing import Optional, Sequence

from mencoder_command.executor.supervisor import ProcessSupervisor, SpawnOptions
from mencoder_command.models import OutputSpec
from mencoder_command.tools.paths import BinaryKind, BinaryLocator
from mencoder_command.utils import MetadataRewriteError, ProcessExecutionError, get_logger

logger = get_logger(__name__)


class MetadataRewriter:
    """Runs `flvtool -U <file>` on finished output files."""

    def __init__(self, locator: Optional[BinaryLocator] = None):
        """
        Initialize rewriter.

        Args:
            locator: Executable resolver
        """
        self._supervisor = ProcessSupervisor(locator, BinaryKind.FLVTOOL)

    def ensure_available(self) -> str:
        """
        Resolve the rewriter binary ahead of a run.

        Raises:
            BinaryNotFoundError: If neither flvmeta nor flvtool2 can be found
        """
        return self._supervisor.locator.require(BinaryKind.FLVTOOL)

    async def rewrite(self, target: str) -> None:
        """
        Update metadata of a single output file.

        Args:
            target: Output file path

        Raises:
            MetadataRewriteError: If the rewriter fails to spawn or exits non-zero
        """
        try:
            await self._supervisor.supervise(["-U", target], SpawnOptions(capture_stderr=True))
        except ProcessExecutionError as e:
            raise MetadataRewriteError(
                f"{e} when running on {target}",
                target=target,
                command=e.command,
                exit_code=e.exit_code,
                signal=e.signal,
                stderr=e.stderr,
            ) from e

        logger.debug(f"Updated metadata of {target}")

    async def rewrite_all(self, outputs: Sequence[OutputSpec]) -> None:
        """
        Rewrite every output concurrently and wait for all of them.

        Raises:
            MetadataRewriteError: First failure, in output order
        """
        results = await asyncio.gather(
            *(self.rewrite(os.fspath(output.target)) for output in outputs),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, BaseException):
                raise result
