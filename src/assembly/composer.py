"""
Audio composer: orchestrates manifest → concatenation → transcode for one run.

Responsibilities:
  - Ensure the working (and, for builds, published) directories exist
  - Write the concat manifest in timeline order
  - Merge the clips into the primary track in the working directory
  - Transcode the secondary rendition when requested
  - Remove the manifest after a successful run
"""
from __future__ import annotations

import time
from typing import Optional, Sequence

import structlog

from src.assembly.encoder import concat_clips, transcode, write_concat_manifest
from src.config import CompositorConfig
from src.timeline.models import CompositionOutput, Mode, OutputType
from src.timeline.registry import Timeline

log = structlog.get_logger(__name__)


class AudioComposer:
    """
    Composes the merged track (and optional rendition) for one timeline snapshot.

    Artifacts are always written to the working directory; relocating them is
    the publisher's job.
    """

    def __init__(self, config: CompositorConfig):
        self.config = config

    def compose(self, clip_paths: Sequence[str], total_duration_ms: int = 0) -> Optional[CompositionOutput]:
        """
        Run one composition over `clip_paths` (timeline order).

        Returns:
            CompositionOutput, or None when there is nothing to compose.

        Raises:
            ConcatError / TranscodeError. On ConcatError the manifest and any
            partial primary artifact are left behind.
        """
        cfg = self.config
        if not clip_paths:
            log.debug("composer.no_clips", mode=cfg.mode.value)
            return None

        cfg.working_dir.mkdir(parents=True, exist_ok=True)
        if cfg.mode is Mode.BUILD:
            cfg.published_dir.mkdir(parents=True, exist_ok=True)

        log.info(
            "composer.start",
            mode=cfg.mode.value,
            clip_count=len(clip_paths),
            total_duration_ms=total_duration_ms,
            output_types=[ot.value for ot in cfg.output_types],
        )
        t0 = time.monotonic()

        manifest = write_concat_manifest(clip_paths, cfg.manifest_path)

        primary = cfg.working_path(OutputType.PRIMARY)
        concat_clips(
            manifest, primary,
            ffmpeg_bin=cfg.ffmpeg_path,
            timeout=cfg.ffmpeg_timeout_sec,
        )

        artifacts = {}
        if cfg.requests(OutputType.PRIMARY):
            artifacts[OutputType.PRIMARY] = primary

        if cfg.requests(OutputType.SECONDARY):
            secondary = cfg.working_path(OutputType.SECONDARY)
            transcode(
                primary, secondary,
                codec=cfg.secondary_codec,
                ffmpeg_bin=cfg.ffmpeg_path,
                timeout=cfg.ffmpeg_timeout_sec,
            )
            artifacts[OutputType.SECONDARY] = secondary

        self._remove_manifest()

        log.info(
            "composer.complete",
            mode=cfg.mode.value,
            artifacts={ot.value: str(p) for ot, p in artifacts.items()},
            elapsed_sec=round(time.monotonic() - t0, 2),
        )
        return CompositionOutput(
            working_dir=cfg.working_dir,
            artifacts=artifacts,
            clip_count=len(clip_paths),
            total_duration_ms=total_duration_ms,
        )

    def _remove_manifest(self) -> None:
        try:
            self.config.manifest_path.unlink(missing_ok=True)
        except OSError as exc:
            log.warning("composer.manifest_cleanup_failed", path=str(self.config.manifest_path), error=str(exc))


def compose(clip_paths: Sequence[str], config: CompositorConfig, total_duration_ms: int = 0) -> Optional[CompositionOutput]:
    return AudioComposer(config).compose(clip_paths, total_duration_ms)


def compose_timeline(timeline: Timeline, config: CompositorConfig) -> Optional[CompositionOutput]:
    """Compose the current contents of `timeline`."""
    return compose(timeline.paths(), config, timeline.total_duration_ms)
