"""
Unit tests for src/timeline/probe.py

Duration parsing is tested directly on canned ffmpeg output; probe_output
tests mock subprocess.run.
"""
import subprocess
from unittest.mock import MagicMock, patch

import pytest

from src.timeline.probe import ProbeError, parse_duration_ms, probe_duration_ms, probe_output
from tests.conftest import ffmpeg_header


@pytest.mark.unit
class TestParseDuration:
    def test_minutes_and_fractional_seconds(self):
        assert parse_duration_ms(ffmpeg_header("00:02:03.50")) == 123500

    def test_hours(self):
        assert parse_duration_ms(ffmpeg_header("01:00:00.00")) == 3_600_000

    def test_sub_second_clip(self):
        assert parse_duration_ms(ffmpeg_header("00:00:00.04")) == 40

    def test_rounds_half_away_from_zero_after_scaling(self):
        assert parse_duration_ms("Duration: 00:00:02.0005,") == 2001
        assert parse_duration_ms("Duration: 00:00:02.0004,") == 2000

    def test_no_float_truncation(self):
        # 0.29 * 1000 is 289.99999999999994 in binary floating point
        assert parse_duration_ms("Duration: 00:00:00.29,") == 290

    def test_missing_duration_raises(self):
        with pytest.raises(ProbeError) as exc_info:
            parse_duration_ms("clip.mp3: Invalid data found when processing input", "clip.mp3")
        assert exc_info.value.clip_path == "clip.mp3"
        assert "Invalid data found" in exc_info.value.diagnostics

    def test_duration_na_is_not_a_match(self):
        with pytest.raises(ProbeError):
            parse_duration_ms("  Duration: N/A, bitrate: N/A")

    def test_empty_output_raises(self):
        with pytest.raises(ProbeError):
            parse_duration_ms("")


@pytest.mark.unit
class TestProbeOutput:
    @patch("src.utils.ffmpeg.subprocess.run")
    def test_nonzero_exit_still_returns_text(self, mock_run):
        mock_run.return_value = MagicMock(returncode=1, stdout=ffmpeg_header("00:00:05.00"))
        assert "Duration: 00:00:05.00" in probe_output("clip.mp3")

    @patch("src.utils.ffmpeg.subprocess.run")
    def test_merges_stderr_into_stdout(self, mock_run):
        mock_run.return_value = MagicMock(returncode=1, stdout="")
        probe_output("clip.mp3")
        assert mock_run.call_args.kwargs["stderr"] == subprocess.STDOUT

    @patch("src.utils.ffmpeg.subprocess.run")
    def test_command_shape(self, mock_run):
        mock_run.return_value = MagicMock(returncode=1, stdout="")
        probe_output("C:\\audio\\intro.mp3", ffmpeg_bin="/opt/ffmpeg")
        cmd = mock_run.call_args[0][0]
        assert cmd[0] == "/opt/ffmpeg"
        assert cmd[cmd.index("-i") + 1] == "C:/audio/intro.mp3"

    @patch("src.utils.ffmpeg.subprocess.run", side_effect=FileNotFoundError("ffmpeg"))
    def test_missing_binary_raises_probe_error(self, mock_run):
        with pytest.raises(ProbeError, match="not found"):
            probe_output("clip.mp3")

    @patch("src.utils.ffmpeg.subprocess.run")
    def test_timeout_raises_probe_error(self, mock_run):
        mock_run.side_effect = subprocess.TimeoutExpired(cmd="ffmpeg", timeout=1, output=b"partial")
        with pytest.raises(ProbeError) as exc_info:
            probe_output("clip.mp3", timeout=1)
        assert exc_info.value.diagnostics == "partial"


@pytest.mark.unit
class TestProbeDuration:
    @patch("src.utils.ffmpeg.subprocess.run")
    def test_success_path(self, mock_run):
        mock_run.return_value = MagicMock(returncode=0, stdout=ffmpeg_header("00:00:03.50"))
        assert probe_duration_ms("clip.mp3") == 3500

    @patch("src.utils.ffmpeg.subprocess.run")
    def test_error_exit_with_duration(self, mock_run):
        mock_run.return_value = MagicMock(returncode=1, stdout=ffmpeg_header("00:00:07.25"))
        assert probe_duration_ms("clip.mp3") == 7250

    @patch("src.utils.ffmpeg.subprocess.run")
    def test_error_exit_without_duration(self, mock_run):
        mock_run.return_value = MagicMock(returncode=1, stdout="clip.mp3: No such file or directory\n")
        with pytest.raises(ProbeError) as exc_info:
            probe_duration_ms("clip.mp3")
        assert "No such file or directory" in str(exc_info.value)
