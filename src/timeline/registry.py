"""
Timeline registry: the ordered set of discovered clips and their offsets.

Clips keep discovery order forever. Each clip's start offset is the sum of the
durations registered before it, fixed at registration and never recomputed.
Re-discovering a clip returns its existing record unchanged.
"""
from __future__ import annotations

import os
from typing import Callable, Iterator, Optional

import structlog

from src.config import CompositorConfig
from src.timeline.models import Clip, ClipMetadata
from src.timeline.probe import probe_duration_ms

log = structlog.get_logger(__name__)

Prober = Callable[[str, CompositorConfig], int]


def _ffmpeg_prober(path: str, config: CompositorConfig) -> int:
    return probe_duration_ms(
        path, ffmpeg_bin=config.ffmpeg_path, timeout=config.ffmpeg_timeout_sec
    )


class Timeline:
    """
    In-memory clip registry for one plugin instance.

    Not thread-safe; mutate from the event loop only and hand worker threads
    a paths() snapshot.
    """

    def __init__(self, prober: Prober = _ffmpeg_prober):
        self._prober = prober
        self._clips: list[Clip] = []
        self._index: dict[str, int] = {}
        self._total_ms = 0

    def register(self, identity: str, config: CompositorConfig) -> ClipMetadata:
        """
        Register a discovered clip and return its metadata record.

        Output paths reflect `config` as passed in (mode-dependent URLs).
        Raises ProbeError without touching the registry if probing fails.
        """
        existing = self.get(identity)
        if existing is not None:
            log.debug("timeline.clip_rediscovered", identity=identity, start_ms=existing.start_offset_ms)
            return self._metadata(existing, config)

        duration_ms = self._prober(identity, config)

        clip = Clip(
            identity=identity,
            display_name=os.path.basename(identity.replace("\\", "/")),
            duration_ms=duration_ms,
            start_offset_ms=self._total_ms,
        )
        self._index[identity] = len(self._clips)
        self._clips.append(clip)
        self._total_ms += duration_ms

        log.info(
            "timeline.clip_registered",
            filename=clip.display_name,
            index=len(self._clips) - 1,
            start_ms=clip.start_offset_ms,
            duration_ms=clip.duration_ms,
        )
        return self._metadata(clip, config)

    def get(self, identity: str) -> Optional[Clip]:
        idx = self._index.get(identity)
        return None if idx is None else self._clips[idx]

    def metadata(self, config: CompositorConfig) -> list[ClipMetadata]:
        return [self._metadata(c, config) for c in self._clips]

    def paths(self) -> list[str]:
        """Snapshot of clip identities in timeline order."""
        return [c.identity for c in self._clips]

    @property
    def clips(self) -> list[Clip]:
        return list(self._clips)

    @property
    def total_duration_ms(self) -> int:
        return self._total_ms

    def __len__(self) -> int:
        return len(self._clips)

    def __iter__(self) -> Iterator[Clip]:
        return iter(list(self._clips))

    def __contains__(self, identity: object) -> bool:
        return identity in self._index

    @staticmethod
    def _metadata(clip: Clip, config: CompositorConfig) -> ClipMetadata:
        return ClipMetadata(
            output_paths=config.output_urls(),
            filename=clip.display_name,
            start_time=clip.start_offset_ms,
            duration=clip.duration_ms,
        )
