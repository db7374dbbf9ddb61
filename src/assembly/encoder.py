"""
FFmpeg-based audio concatenation and transcoding.

Design principles:
  - The primary track is a stream copy (no re-encode) through the concat demuxer
  - The secondary rendition is transcoded from the primary track, never from sources
  - Never loads audio samples into Python memory
  - Failures raise with ffmpeg's own stderr attached
"""
from __future__ import annotations

import subprocess
from pathlib import Path
from typing import Iterable

import structlog

from src.utils.ffmpeg import DIAGNOSTIC_LOG_CHARS, FFmpegError, decode_output, run_ffmpeg, to_posix

log = structlog.get_logger(__name__)


class ConcatError(FFmpegError):
    """The lossless merge of the timeline failed."""


class TranscodeError(FFmpegError):
    """Transcoding the merged track into the secondary codec failed."""


def build_concat_manifest(clip_paths: Iterable[str]) -> str:
    """
    Render a concat-demuxer list: one `file '<path>'` line per clip, in order.

    Backslashes become forward slashes; single quotes inside a path are
    escaped as '\\'' (close quote, escaped quote, reopen).
    """
    lines = []
    for clip in clip_paths:
        safe_path = to_posix(clip).replace("'", "'\\''")
        lines.append(f"file '{safe_path}'")
    return "\n".join(lines)


def write_concat_manifest(clip_paths: Iterable[str], manifest_path: str | Path) -> Path:
    manifest = Path(manifest_path)
    manifest.write_text(build_concat_manifest(clip_paths), encoding="utf-8")
    log.debug("encoder.manifest_written", path=str(manifest))
    return manifest


def concat_clips(
    manifest_path: str | Path,
    output_path: str | Path,
    ffmpeg_bin: str = "ffmpeg",
    timeout: float | None = 600,
) -> Path:
    """
    Merge every clip listed in the manifest into `output_path` with stream copy.

    All clips must share codec parameters (guaranteed when they were authored
    with the same encoder settings).

    Raises:
        ConcatError on non-zero exit, timeout, or missing ffmpeg. The manifest
        and any partial output are left in place for inspection.
    """
    args = [
        "-loglevel", "error", "-y",
        "-f", "concat",
        "-safe", "0",
        "-i", str(manifest_path),
        "-c", "copy",
        str(output_path),
    ]
    try:
        result = run_ffmpeg(args, ffmpeg_bin=ffmpeg_bin, timeout=timeout)
    except FileNotFoundError as exc:
        raise ConcatError(f"ffmpeg not found ({ffmpeg_bin})", str(exc)) from exc
    except subprocess.TimeoutExpired as exc:
        raise ConcatError(f"ffmpeg concat timed out after {timeout}s", decode_output(exc.stderr)) from exc

    if result.returncode != 0:
        stderr = result.stderr or ""
        log.error(
            "encoder.concat_failed",
            returncode=result.returncode,
            error=stderr[:DIAGNOSTIC_LOG_CHARS],
            manifest=str(manifest_path),
        )
        raise ConcatError(f"ffmpeg concat exited with status {result.returncode}", stderr)

    log.info("encoder.concat_complete", output=str(output_path), size_kb=_size_kb(output_path))
    return Path(output_path)


def transcode(
    input_path: str | Path,
    output_path: str | Path,
    codec: str = "libvorbis",
    ffmpeg_bin: str = "ffmpeg",
    timeout: float | None = 600,
) -> Path:
    """
    Re-encode the merged track's audio into `codec`.

    Raises:
        TranscodeError on non-zero exit, timeout, or missing ffmpeg.
    """
    args = [
        "-loglevel", "error", "-y",
        "-i", str(input_path),
        "-c:a", codec,
        str(output_path),
    ]
    try:
        result = run_ffmpeg(args, ffmpeg_bin=ffmpeg_bin, timeout=timeout)
    except FileNotFoundError as exc:
        raise TranscodeError(f"ffmpeg not found ({ffmpeg_bin})", str(exc)) from exc
    except subprocess.TimeoutExpired as exc:
        raise TranscodeError(f"ffmpeg transcode timed out after {timeout}s", decode_output(exc.stderr)) from exc

    if result.returncode != 0:
        stderr = result.stderr or ""
        log.error(
            "encoder.transcode_failed",
            returncode=result.returncode,
            codec=codec,
            error=stderr[:DIAGNOSTIC_LOG_CHARS],
        )
        raise TranscodeError(
            f"ffmpeg transcode to {codec} exited with status {result.returncode}", stderr
        )

    log.info("encoder.transcode_complete", output=str(output_path), codec=codec, size_kb=_size_kb(output_path))
    return Path(output_path)


# ── Internal helpers ───────────────────────────────────────────────────────

def _size_kb(path: str | Path) -> float:
    try:
        return round(Path(path).stat().st_size / 1024, 1)
    except OSError:
        return 0.0
