"""
Tests for FLV metadata rewriting.
"""

import asyncio
from unittest.mock import patch

import pytest

from mencoder_command.config import BinaryConfig
from mencoder_command.executor import MetadataRewriter
from mencoder_command.models import OutputSpec
from mencoder_command.tools import BinaryLocator
from mencoder_command.utils import IS_WINDOWS, BinaryNotFoundError, MetadataRewriteError

posix_only = pytest.mark.skipif(IS_WINDOWS, reason="requires POSIX processes")


def make_rewriter(flvtool: str) -> MetadataRewriter:
    return MetadataRewriter(BinaryLocator(BinaryConfig(flvtool=flvtool)))


class TestMetadataRewriter:
    """Test rewriting output files."""

    def test_ensure_available_missing(self):
        """Test a missing rewriter binary is reported up front."""
        with patch("mencoder_command.tools.paths.shutil.which", return_value=None):
            with pytest.raises(BinaryNotFoundError, match="flvtool"):
                MetadataRewriter().ensure_available()

    @posix_only
    @pytest.mark.asyncio
    async def test_rewrite_invocation(self, fake_binary, tmp_path):
        """Test the rewriter is called with -U and the target."""
        log = tmp_path / "args.log"
        flvtool = fake_binary(
            f"open({str(log)!r}, 'w').write(' '.join(sys.argv[1:]))\n", name="flvmeta"
        )

        await make_rewriter(flvtool).rewrite("/videos/out.flv")

        assert log.read_text() == "-U /videos/out.flv"

    @posix_only
    @pytest.mark.asyncio
    async def test_rewrite_failure(self, fake_binary):
        """Test failures name the output file."""
        flvtool = fake_binary("sys.stderr.write('corrupt')\nsys.exit(2)\n", name="flvmeta")

        with pytest.raises(MetadataRewriteError, match="when running on /videos/out.flv") as exc_info:
            await make_rewriter(flvtool).rewrite("/videos/out.flv")

        assert exc_info.value.target == "/videos/out.flv"
        assert exc_info.value.exit_code == 2
        assert exc_info.value.stderr == "corrupt"

    @pytest.mark.asyncio
    async def test_rewrite_all_reports_first_output(self):
        """Test the first failing output wins even if a later one fails sooner."""
        rewriter = MetadataRewriter()
        done = []

        async def fake_rewrite(target):
            if target == "a.flv":
                await asyncio.sleep(0.05)
                raise MetadataRewriteError("a failed", target=target)
            if target == "b.flv":
                raise MetadataRewriteError("b failed", target=target)
            done.append(target)

        outputs = [OutputSpec(target=name) for name in ("a.flv", "b.flv", "c.flv")]

        with patch.object(rewriter, "rewrite", side_effect=fake_rewrite):
            with pytest.raises(MetadataRewriteError, match="a failed"):
                await rewriter.rewrite_all(outputs)

        assert done == ["c.flv"]

    @pytest.mark.asyncio
    async def test_rewrite_all_success(self):
        """Test every output is rewritten."""
        rewriter = MetadataRewriter()
        seen = []

        async def fake_rewrite(target):
            seen.append(target)

        with patch.object(rewriter, "rewrite", side_effect=fake_rewrite):
            await rewriter.rewrite_all([OutputSpec(target="a.flv"), OutputSpec(target="b.flv")])

        assert sorted(seen) == ["a.flv", "b.flv"]
