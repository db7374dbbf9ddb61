"""
Thin wrapper around the ffmpeg binary.

Every invocation goes through run_ffmpeg() so failures are reported the same
way: an FFmpegError subclass carrying the tool's own diagnostic text.
"""
from __future__ import annotations

import subprocess
from typing import Sequence

import structlog

log = structlog.get_logger(__name__)

DIAGNOSTIC_LOG_CHARS = 500


class FFmpegError(RuntimeError):
    """Base error for a failed ffmpeg invocation. `diagnostics` holds its full output."""

    def __init__(self, message: str, diagnostics: str = ""):
        super().__init__(message if not diagnostics else f"{message}\n{diagnostics}")
        self.diagnostics = diagnostics


def run_ffmpeg(
    args: Sequence[str],
    ffmpeg_bin: str = "ffmpeg",
    timeout: float | None = 600,
    merge_output: bool = False,
) -> subprocess.CompletedProcess:
    """
    Run ffmpeg with `args` and return the completed process with text output.

    With merge_output=True stderr is folded into stdout, which is how the
    diagnostic header is read when probing.

    Raises FileNotFoundError if the binary is missing and
    subprocess.TimeoutExpired on timeout; callers wrap these in their own
    FFmpegError subclass.
    """
    cmd = [ffmpeg_bin, *args]
    log.debug("ffmpeg.run", cmd=cmd)
    return subprocess.run(
        cmd,
        stdout=subprocess.PIPE,
        stderr=subprocess.STDOUT if merge_output else subprocess.PIPE,
        timeout=timeout,
        encoding="utf-8",
        errors="replace",
    )


def to_posix(path: str) -> str:
    """Normalize Windows path separators to forward slashes."""
    return str(path).replace("\\", "/")


def decode_output(output) -> str:
    """Text of a captured stream that may be None, bytes or str (TimeoutExpired carries bytes)."""
    if output is None:
        return ""
    if isinstance(output, bytes):
        return output.decode("utf-8", errors="replace")
    return output
