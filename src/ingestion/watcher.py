"""
Clip directory watcher.

Polls a source directory for audio clips matching the configured pattern and
hands each new one to `on_new_file(path)`. Stands in for a host bundler's
module discovery when running the standalone dev server.

Stability check: a file is only reported after its size hasn't changed for
stable_time_sec, so half-written exports are never probed.
"""
from __future__ import annotations

import asyncio
import re
import time
from pathlib import Path
from typing import Callable

import structlog

log = structlog.get_logger(__name__)


class ClipWatcher:
    """
    Polls a directory and calls `on_new_file(path)` for each new stable clip.

    Within one poll, files are visited in sorted path order so discovery
    order (and therefore timeline order) is deterministic.
    """

    def __init__(
        self,
        watch_path: str | Path,
        on_new_file: Callable[[str], None],
        file_pattern: str = r"\.mp3$",
        poll_interval_sec: float = 1.0,
        stable_time_sec: float = 0.5,
    ):
        self.watch_path = Path(watch_path)
        self.on_new_file = on_new_file
        self.pattern = re.compile(file_pattern)
        self.poll_interval = poll_interval_sec
        self.stable_time = stable_time_sec
        self._seen: set[str] = set()
        self._pending: dict[str, tuple[int, float]] = {}  # path -> (size, first_seen_ts)

    async def run_forever(self) -> None:
        """Poll until cancelled. Run as a task on the session's event loop."""
        log.info("watcher.started", watch_path=str(self.watch_path))
        try:
            while True:
                try:
                    self._poll()
                except OSError as exc:
                    log.error("watcher.poll_error", error=str(exc))
                await asyncio.sleep(self.poll_interval)
        finally:
            log.info("watcher.stopped", watch_path=str(self.watch_path))

    def _poll(self) -> None:
        if not self.watch_path.exists():
            log.warning("watcher.path_missing", path=str(self.watch_path))
            return

        now = time.monotonic()
        candidates = sorted(
            p for p in self.watch_path.rglob("*")
            if p.is_file() and self.pattern.search(str(p))
        )
        for entry in candidates:
            path_str = str(entry.resolve())
            if path_str in self._seen:
                continue

            try:
                current_size = entry.stat().st_size
            except OSError:
                continue  # File disappeared

            if path_str not in self._pending:
                self._pending[path_str] = (current_size, now)
                log.debug("watcher.detected", path=path_str, size_bytes=current_size)
                continue

            prev_size, first_seen = self._pending[path_str]

            if current_size != prev_size:
                # Still growing, reset timer
                self._pending[path_str] = (current_size, now)
                continue

            if now - first_seen >= self.stable_time:
                log.info("watcher.stable_file", path=path_str, size_bytes=current_size)
                self._seen.add(path_str)
                del self._pending[path_str]
                try:
                    self.on_new_file(path_str)
                except Exception as exc:
                    log.error("watcher.submit_error", path=path_str, error=str(exc))
                    self._seen.discard(path_str)  # Allow retry on next poll
