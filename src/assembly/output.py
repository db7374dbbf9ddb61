"""
Output manager: moves finished artifacts from the working dir to the published dir.

Ensures:
  - Move, not copy: the working artifact is gone after a successful publish
  - Output path convention: {published_dir}/{filename}{extension}
  - Repeat calls are no-ops once the working artifact has been moved
  - The published directory is NOT created here; composition already did it
"""
from __future__ import annotations

import shutil
from pathlib import Path
from typing import Optional

import structlog

from src.config import CompositorConfig
from src.timeline.models import CompositionOutput, Mode, OutputType

log = structlog.get_logger(__name__)


def publish(output: Optional[CompositionOutput], config: CompositorConfig) -> dict[OutputType, Path]:
    """
    Relocate each requested artifact from the working to the published directory.

    Returns:
        Mapping of output type to published path, for artifacts moved by this call.

    Raises:
        OSError from the filesystem (missing published dir, permissions, ...).
    """
    if config.mode is not Mode.BUILD:
        log.debug("output.skip_publish", mode=config.mode.value)
        return {}
    if output is None:
        log.debug("output.nothing_to_publish")
        return {}

    published: dict[OutputType, Path] = {}
    for output_type in config.output_types:
        source = config.working_path(output_type)
        if not source.exists():
            log.debug("output.source_missing", output_type=output_type.value, path=str(source))
            continue

        dest = config.published_path(output_type)
        shutil.move(str(source), str(dest))
        size_kb = round(dest.stat().st_size / 1024, 1)
        log.info(
            "output.published",
            output_type=output_type.value,
            path=str(dest),
            size_kb=size_kb,
        )
        published[output_type] = dest

    return published
