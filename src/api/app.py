"""
FastAPI application factory for the standalone interactive session.

The lifespan resolves an interactive-mode plugin, starts the clip watcher
feeding plugin.transform(), and tears both down on shutdown. Merged artifacts
are served from the working directory by ArtifactMiddleware.
"""
from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager, suppress
from pathlib import Path
from typing import Optional

import structlog
from fastapi import FastAPI

from src.api.routes.timeline import router as timeline_router
from src.config import PluginOptions, watch_enabled
from src.ingestion.watcher import ClipWatcher
from src.plugin import AudioTimelinePlugin

log = structlog.get_logger(__name__)


def create_app(options: Optional[PluginOptions] = None) -> FastAPI:
    from src.config import config as cfg

    plugin = AudioTimelinePlugin(options)
    plugin.config_resolved(root=cfg.AUDIO_PROJECT_ROOT, base=cfg.AUDIO_BASE_PATH, command="serve")

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        source_dir = Path(cfg.AUDIO_SOURCE_DIR).resolve()
        watcher_task = None
        if watch_enabled():
            watcher = ClipWatcher(
                source_dir,
                on_new_file=lambda path: plugin.transform(None, path),
                file_pattern=plugin.config.file_pattern,
                poll_interval_sec=float(cfg.WATCH_POLL_INTERVAL_SEC),
                stable_time_sec=float(cfg.WATCH_STABLE_TIME_SEC),
            )
            watcher_task = asyncio.create_task(watcher.run_forever())
        log.info("api.startup", source_dir=str(source_dir), working_dir=str(plugin.config.working_dir))
        yield
        if watcher_task is not None:
            watcher_task.cancel()
            with suppress(asyncio.CancelledError):
                await watcher_task
        plugin.close()
        if plugin.session is not None:
            await plugin.session.wait_idle()
        log.info("api.shutdown")

    app = FastAPI(
        title="Audio Timeline Dev Server",
        description="Serves the merged audio track and per-clip timing metadata",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.plugin = plugin
    plugin.configure_server(app)

    app.include_router(timeline_router, prefix="/timeline", tags=["timeline"])

    @app.get("/health", tags=["ops"])
    async def health():
        """Liveness probe. Returns 200 while the session is running."""
        return {"status": "ok", "clips": len(plugin.timeline)}

    return app
