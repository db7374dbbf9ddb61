"""
Clip duration probe.

Runs `ffmpeg -i <clip>` with no output file. ffmpeg exits non-zero in that
case ("At least one output file must be specified") but still prints the input
header, so the exit status is ignored and only the text is inspected.
"""
from __future__ import annotations

import re
import subprocess
from decimal import ROUND_HALF_UP, Decimal

import structlog

from src.utils.ffmpeg import FFmpegError, decode_output, run_ffmpeg, to_posix

log = structlog.get_logger(__name__)

DURATION_RE = re.compile(r"Duration: (\d+):(\d+):(\d+\.\d+)")


class ProbeError(FFmpegError):
    """Duration could not be determined for a clip."""

    def __init__(self, clip_path: str, reason: str, diagnostics: str = ""):
        super().__init__(f"Could not probe duration of {clip_path}: {reason}", diagnostics)
        self.clip_path = clip_path


def probe_output(clip_path: str, ffmpeg_bin: str = "ffmpeg", timeout: float | None = 60) -> str:
    """
    Return ffmpeg's combined diagnostic output for one clip.

    Success and failure exits are normalized to the same text. Only a missing
    binary or a timeout is an error here.
    """
    path = to_posix(clip_path)
    try:
        result = run_ffmpeg(
            ["-hide_banner", "-i", path],
            ffmpeg_bin=ffmpeg_bin,
            timeout=timeout,
            merge_output=True,
        )
    except FileNotFoundError as exc:
        raise ProbeError(clip_path, f"ffmpeg not found ({ffmpeg_bin})", str(exc)) from exc
    except subprocess.TimeoutExpired as exc:
        raise ProbeError(clip_path, f"ffmpeg timed out after {timeout}s", decode_output(exc.output)) from exc
    return result.stdout or ""


def parse_duration_ms(text: str, clip_path: str = "<unknown>") -> int:
    """
    Extract `Duration: H:MM:SS.ss` from ffmpeg output as integer milliseconds.
    Pure function, no I/O.

    Seconds are scaled to milliseconds before rounding half away from zero,
    so 2.0005s becomes 2001ms rather than being truncated.
    """
    match = DURATION_RE.search(text or "")
    if match is None:
        raise ProbeError(clip_path, "no 'Duration:' found in ffmpeg output", text or "")
    hours, minutes, seconds = match.groups()
    millis = (Decimal(seconds) * 1000).quantize(Decimal(1), rounding=ROUND_HALF_UP)
    return int(hours) * 3_600_000 + int(minutes) * 60_000 + int(millis)


def probe_duration_ms(clip_path: str, ffmpeg_bin: str = "ffmpeg", timeout: float | None = 60) -> int:
    """Probe one clip and return its duration in milliseconds. Raises ProbeError."""
    text = probe_output(clip_path, ffmpeg_bin=ffmpeg_bin, timeout=timeout)
    duration_ms = parse_duration_ms(text, clip_path)
    log.debug("probe.duration", path=clip_path, duration_ms=duration_ms)
    return duration_ms
