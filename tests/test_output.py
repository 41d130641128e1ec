"""
Tests for progress, codec banner and error interpretation.
"""

import pytest

from mencoder_command.executor import (
    ProgressScanner,
    extract_error,
    parse_progress_line,
    scan_codec_data,
)

MENCODER_LINE = "Pos:  60.0s   1500f (50%) 25.00fps Trem:   1min  12mb  A-V:0.012 [1200:128]"
FFMPEG_LINE = "frame=  150 fps= 30 q=-1.0 size=    1024kB time=00:00:05.00 bitrate=1677.7kbits/s"

FFMPEG_BANNER = """\
Input #0, avi, from 'in.avi':
  Duration: 00:02:00.00, start: 0.000000, bitrate: 5000 kb/s
    Stream #0:0: Video: mpeg4, yuv420p, 640x480, 25 fps
    Stream #0:1: Audio: mp3, 44100 Hz, stereo, s16p, 128 kb/s
Stream mapping:
"""

MENCODER_BANNER = """\
AVI file format detected.
VIDEO:  [XVID]  640x480  24bpp  25.000 fps  1200.0 kbps (146.5 kbyte/s)
Selected audio codec: [mpg123]
AUDIO: 44100 Hz, 2 ch, s16le, 128.0 kbit/9.07% (ratio: 16000->176400)
Starting playback...
"""


class TestParseProgressLine:
    """Test single-line progress parsing."""

    def test_mencoder_status_line(self):
        """Test MEncoder Pos: status lines."""
        progress = parse_progress_line(MENCODER_LINE, duration=120)

        assert progress is not None
        assert progress.frames == 1500
        assert progress.current_fps == 25.0
        assert progress.current_kbps == 1328.0
        assert progress.target_size == 12 * 1024
        assert progress.timemark == "00:01:00.00"
        assert progress.percent == pytest.approx(50.0)

    def test_key_value_line(self):
        """Test ffmpeg-style key=value lines."""
        progress = parse_progress_line(FFMPEG_LINE, duration=10)

        assert progress is not None
        assert progress.frames == 150
        assert progress.current_fps == 30.0
        assert progress.current_kbps == pytest.approx(1677.7)
        assert progress.target_size == 1024
        assert progress.timemark == "00:00:05.00"
        assert progress.percent == pytest.approx(50.0)

    @pytest.mark.parametrize("duration", [0, -1])
    def test_unknown_duration(self, duration):
        """Test no percent without a known duration."""
        progress = parse_progress_line(MENCODER_LINE, duration=duration)
        assert progress is not None
        assert progress.percent is None

    def test_percent_is_clamped(self):
        """Test timemarks past the duration report 100%."""
        progress = parse_progress_line(MENCODER_LINE, duration=30)
        assert progress.percent == 100.0

    def test_other_lines(self):
        """Test non-progress lines are ignored."""
        assert parse_progress_line("Opening video decoder: [ffmpeg]") is None


class TestProgressScanner:
    """Test incremental scanning."""

    def test_each_line_reported_once(self):
        """Test rescanning a growing buffer never repeats events."""
        scanner = ProgressScanner()
        buffer = ""
        events = []

        for chunk in ["Pos:  1.0s   25f (1%) 25.00fps Trem: 1min 1mb\r", "Pos:  2.0s", ""]:
            buffer += chunk
            events.extend(scanner.scan(buffer))
            events.extend(scanner.scan(buffer))

        assert len(events) == 1

        buffer += "   50f (2%) 25.00fps Trem: 1min 1mb\r"
        events.extend(scanner.scan(buffer))
        assert [event.frames for event in events] == [25, 50]

    def test_incomplete_line_waits(self):
        """Test a line without terminator is not parsed yet."""
        scanner = ProgressScanner()
        assert scanner.scan(MENCODER_LINE) == []
        assert len(scanner.scan(MENCODER_LINE + "\n")) == 1

    def test_mixed_output(self):
        """Test progress lines among other output."""
        scanner = ProgressScanner()
        text = f"MEncoder 1.4\n{MENCODER_LINE}\rWriting index...\n{FFMPEG_LINE}\n"
        assert len(scanner.scan(text, duration=120)) == 2

    def test_new_buffer_resets_cursor(self):
        """Test a shorter buffer restarts the scan."""
        scanner = ProgressScanner()
        scanner.scan(f"{MENCODER_LINE}\n{MENCODER_LINE}\n")
        assert len(scanner.scan(f"{FFMPEG_LINE}\n")) == 1


class TestScanCodecData:
    """Test codec banner detection."""

    def test_incomplete_banner(self):
        """Test nothing is reported before the banner ends."""
        assert scan_codec_data(FFMPEG_BANNER.replace("Stream mapping:\n", "")) is None

    def test_ffmpeg_banner(self):
        """Test ffmpeg-style input banners."""
        data = scan_codec_data(FFMPEG_BANNER)

        assert data is not None
        assert data.format == "avi"
        assert data.duration == "00:02:00.00"
        assert data.video == "mpeg4"
        assert data.video_details == ["mpeg4", "yuv420p", "640x480", "25 fps"]
        assert data.audio == "mp3"
        assert data.audio_details[1] == "44100 Hz"

    def test_mencoder_banner(self):
        """Test MEncoder playback banners."""
        data = scan_codec_data(MENCODER_BANNER)

        assert data is not None
        assert data.format == "AVI"
        assert data.video == "XVID"
        assert data.video_details[0] == "640x480"
        assert data.audio == "mpg123"
        assert data.audio_details[0] == "44100 Hz"


class TestExtractError:
    """Test diagnostic extraction."""

    def test_known_error_line(self):
        """Test fatal lines win over the rest of stderr."""
        stderr = "MEncoder 1.4\nFile not found: 'in.avi'\nCannot open file/device.\nExiting...\n"
        assert extract_error(stderr) == "Cannot open file/device."

    def test_error_prefix(self):
        """Test tool-emitted Error lines."""
        stderr = "Opening...\nError while opening codec\n"
        assert extract_error(stderr) == "Error while opening codec"

    def test_earliest_line_wins(self):
        """Test the first fatal line is reported whichever pattern it matches."""
        stderr = "Opening...\nPermission denied: out.avi\nError while opening codec\n"
        assert extract_error(stderr) == "Permission denied: out.avi"

    def test_fallback_to_stderr(self):
        """Test unknown diagnostics fall back to the whole stderr."""
        assert extract_error("  something odd happened  \n") == "something odd happened"

    @pytest.mark.parametrize("stderr", [None, "", "  \n"])
    def test_empty_stderr(self, stderr):
        """Test empty stderr."""
        assert extract_error(stderr) == "Unknown error"
