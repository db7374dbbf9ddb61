"""
Dev session controller: debounced re-composition during interactive sessions.

Every clip registration re-arms a quiet-period timer. When it fires, the
timeline is re-composed into the working directory if its clip count changed
since the last run. Only one composition may be in flight; a fire that lands
during a run is queued (at most one) and replayed once the run finishes.
"""
from __future__ import annotations

import asyncio
from typing import Callable, Optional, Sequence

import structlog

from src.assembly.composer import compose
from src.assembly.encoder import ConcatError, TranscodeError
from src.config import CompositorConfig
from src.dev.debounce import DebounceTimer
from src.timeline.models import CompositionOutput, Mode
from src.timeline.registry import Timeline

log = structlog.get_logger(__name__)

Composer = Callable[[Sequence[str], CompositorConfig, int], Optional[CompositionOutput]]


class DevSessionController:

    def __init__(
        self,
        timeline: Timeline,
        config: CompositorConfig,
        quiet_period_sec: float = 0.5,
        composer: Composer = compose,
    ):
        self.timeline = timeline
        self.config = config
        self.last_known_clip_count = 0
        self.compositions_run = 0
        self.last_output: Optional[CompositionOutput] = None
        self._composer = composer
        self._timer = DebounceTimer(quiet_period_sec, self._on_quiet)
        self._in_flight = False
        self._rerun_requested = False
        self._task: Optional[asyncio.Task] = None

    @property
    def composing(self) -> bool:
        return self._in_flight

    def notify_clip_registered(self) -> None:
        """(Re)arm the quiet-period timer after a clip registration."""
        if self.config.mode is not Mode.INTERACTIVE:
            return
        try:
            self._timer.arm()
        except RuntimeError:
            log.warning("dev_session.no_event_loop", clip_count=len(self.timeline))

    async def wait_idle(self) -> None:
        """Wait for any in-flight composition, including a queued re-run."""
        while self._task is not None and not self._task.done():
            await self._task

    def close(self) -> None:
        self._timer.cancel()
        self._rerun_requested = False

    def _on_quiet(self) -> None:
        if self._in_flight:
            log.debug("dev_session.rerun_queued")
            self._rerun_requested = True
            return
        self._task = asyncio.ensure_future(self._recompose())

    async def _recompose(self) -> None:
        count = len(self.timeline)
        if count == self.last_known_clip_count:
            log.debug("dev_session.unchanged", clip_count=count)
            return
        if self.config.mode is not Mode.INTERACTIVE:
            return

        self._in_flight = True
        self.last_known_clip_count = count
        paths = self.timeline.paths()
        total_ms = self.timeline.total_duration_ms
        log.info("dev_session.recompose", clip_count=count, total_duration_ms=total_ms)
        try:
            output = await asyncio.to_thread(self._composer, paths, self.config, total_ms)
        except (ConcatError, TranscodeError) as exc:
            log.error(
                "dev_session.compose_failed",
                error_type=type(exc).__name__,
                error=str(exc),
                clip_count=count,
            )
        except Exception:
            log.exception("dev_session.compose_failed", clip_count=count)
        else:
            self.compositions_run += 1
            if output is not None:
                self.last_output = output
            log.info("dev_session.compose_complete", clip_count=count, runs=self.compositions_run)
        finally:
            self._in_flight = False
            if self._rerun_requested:
                self._rerun_requested = False
                self._timer.arm()
