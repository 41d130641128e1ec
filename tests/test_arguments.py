"""
Tests for argument assembly.
"""

import io
from pathlib import Path

import pytest

from mencoder_command.command import MencoderCommand
from mencoder_command.executor import build_arguments, make_filter_string
from mencoder_command.models import CommandSnapshot, InputSpec, OutputSpec
from mencoder_command.utils import ConfigurationError


class TestMakeFilterString:
    """Test filter rendering."""

    def test_plain_string(self):
        """Test string filters are passed through."""
        assert make_filter_string("crop=100:100") == "crop=100:100"

    def test_list_options(self):
        """Test positional options are joined with colons."""
        assert make_filter_string({"filter": "scale", "options": [640, 480]}) == "scale=640:480"

    def test_mapping_options(self):
        """Test named options, with commas quoted."""
        spec = {"filter": "drawtext", "options": {"text": "a,b", "x": 10}}
        assert make_filter_string(spec) == "drawtext=text='a,b':x=10"

    def test_pads(self):
        """Test input and output pads."""
        spec = {"filter": "overlay", "inputs": ["0:v", "1:v"], "outputs": "out"}
        assert make_filter_string(spec) == "[0:v][1:v]overlay[out]"

    def test_missing_filter_name(self):
        """Test mapping without a filter name."""
        with pytest.raises(ConfigurationError, match="without a filter name"):
            make_filter_string({"options": "1"})

    def test_invalid_options(self):
        """Test unsupported option types."""
        with pytest.raises(ConfigurationError, match="Invalid options"):
            make_filter_string({"filter": "scale", "options": {1, 2}})


class TestBuildArguments:
    """Test full argument lists."""

    def test_token_order(self):
        """Test inputs, globals, then per-output codec, filter and locator tokens."""
        command = MencoderCommand()
        command.input("in.avi").input_options("-ss 10")
        command.global_options("-quiet")
        command.video_codec("lavc").audio_codec("mp3lame")
        command.video_filters("crop=100:100").size("640x480").audio_filters("volume=5")
        command.format("avi")
        command.output("out.avi")

        assert build_arguments(command.snapshot()) == [
            "-ss",
            "10",
            "in.avi",
            "-quiet",
            "-oac",
            "mp3lame",
            "-af",
            "volume=5",
            "-ovc",
            "lavc",
            "-vf",
            "crop=100:100,scale=640:480",
            "-of",
            "avi",
            "-o",
            "out.avi",
        ]

    def test_path_input(self):
        """Test PathLike inputs and outputs."""
        snapshot = CommandSnapshot(
            inputs=(InputSpec(source=Path("in.avi")),),
            outputs=(OutputSpec(target=Path("out.avi")),),
        )
        assert build_arguments(snapshot) == ["in.avi", "-o", "out.avi"]

    def test_stream_placeholders(self):
        """Test stream input and output placeholders."""
        snapshot = CommandSnapshot(
            inputs=(InputSpec(source=io.BytesIO(b"data")),),
            outputs=(OutputSpec(target=io.BytesIO()),),
        )
        assert build_arguments(snapshot) == ["-", "-o", "-"]

    def test_output_without_target(self):
        """Test outputs without a target have no locator."""
        snapshot = CommandSnapshot(outputs=(OutputSpec(video=("-ovc", "copy")),))
        assert build_arguments(snapshot) == ["-ovc", "copy"]

    def test_complex_filters(self):
        """Test complex filters are joined with semicolons."""
        command = MencoderCommand().input("a.avi").output("b.avi")
        command.complex_filter("[0:v]split[a][b]", {"filter": "hflip", "inputs": "a"})

        args = build_arguments(command.snapshot())
        index = args.index("-filter_complex")
        assert args[index + 1] == "[0:v]split[a][b];[a]hflip"

    def test_multiple_outputs(self):
        """Test options apply to the output they were set on."""
        command = MencoderCommand().input("in.avi")
        command.video_codec("copy").output("a.avi")
        command.output("b.avi").video_codec("lavc")

        assert build_arguments(command.snapshot()) == [
            "in.avi",
            "-ovc",
            "copy",
            "-o",
            "a.avi",
            "-ovc",
            "lavc",
            "-o",
            "b.avi",
        ]

    def test_snapshot_is_independent(self):
        """Test later configuration does not change an existing snapshot."""
        command = MencoderCommand().input("in.avi").output("out.avi")
        snapshot = command.snapshot()
        command.video_codec("lavc")

        assert build_arguments(snapshot) == ["in.avi", "-o", "out.avi"]

    def test_bad_filter_fails(self):
        """Test malformed filters are reported as configuration errors."""
        command = MencoderCommand().input("in.avi").output("out.avi")
        command.video_filters({"options": "x"})

        with pytest.raises(ConfigurationError):
            build_arguments(command.snapshot())
