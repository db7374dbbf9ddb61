"""
Host hook adapter.

The host pipeline (bundler, dev server, or the standalone app in src/api)
drives the compositor through these hooks, in this order:

    config_resolved(root, base, command)   once, before any discovery
    transform(code, module_id)             per discovered module
    build_end() / write_bundle()           build mode, after discovery
    configure_server(app)                  interactive mode, before serving
    close()                                on shutdown

Quick start:
    plugin = AudioTimelinePlugin(PluginOptions(output_types=["primary"]))
    plugin.config_resolved(root="/srv/site", command="build")
"""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import structlog

from src.api.middleware import ArtifactMiddleware
from src.assembly.composer import compose_timeline
from src.assembly.output import publish
from src.config import CompositorConfig, PluginOptions, mode_for_command, resolve_config
from src.dev.session import DevSessionController
from src.timeline.models import CompositionOutput, Mode, OutputType
from src.timeline.probe import ProbeError
from src.timeline.registry import Timeline
from src.utils.ffmpeg import DIAGNOSTIC_LOG_CHARS

log = structlog.get_logger(__name__)

PLUGIN_NAME = "audio-timeline"
EMPTY_MODULE = "export default {};"


@dataclass
class TransformResult:
    code: str
    map: Optional[str] = None


class AudioTimelinePlugin:
    name = PLUGIN_NAME

    def __init__(self, options: Optional[PluginOptions] = None, timeline: Optional[Timeline] = None):
        self.options = options if options is not None else PluginOptions()
        self.timeline = timeline if timeline is not None else Timeline()
        self._config: Optional[CompositorConfig] = None
        self.session: Optional[DevSessionController] = None
        self.last_output: Optional[CompositionOutput] = None

    @property
    def config(self) -> CompositorConfig:
        if self._config is None:
            raise RuntimeError("config_resolved() must be called before using the plugin")
        return self._config

    # ── Hooks ───────────────────────────────────────────────────────────────

    def config_resolved(self, root: str | Path, base: str = "/", command: str = "build") -> CompositorConfig:
        mode = mode_for_command(command)
        # Stop the previous session timer before replacing it
        self.close()
        self.session = None
        self._config = resolve_config(self.options, root=root, base=base, mode=mode)
        if mode is Mode.INTERACTIVE:
            self.session = DevSessionController(
                self.timeline, self._config, quiet_period_sec=self._config.debounce_sec
            )
        log.info(
            "plugin.config_resolved",
            root=str(self._config.root),
            base=self._config.base,
            mode=mode.value,
            working_dir=str(self._config.working_dir),
            published_dir=str(self._config.published_dir),
        )
        return self._config

    def transform(self, code: Optional[str], module_id: str) -> Optional[TransformResult]:
        """
        Replace a matching audio module with its timeline metadata.

        Returns None for modules that don't match the clip pattern. A clip
        whose duration can't be probed gets an empty payload and stays off
        the timeline.
        """
        cfg = self.config
        if not cfg.matches(module_id):
            return None

        try:
            metadata = self.timeline.register(module_id, cfg)
        except ProbeError as exc:
            log.error(
                "plugin.probe_failed",
                clip=module_id,
                error=str(exc).splitlines()[0],
                diagnostics=exc.diagnostics[-DIAGNOSTIC_LOG_CHARS:],
            )
            return TransformResult(code=EMPTY_MODULE)

        if self.session is not None:
            self.session.notify_clip_registered()
        return TransformResult(code=f"export default {metadata.to_module_payload()};")

    def build_end(self, error: Optional[BaseException] = None) -> Optional[CompositionOutput]:
        """Compose the full timeline at the end of a build. Failures propagate."""
        cfg = self.config
        if cfg.mode is not Mode.BUILD:
            return None
        if error is not None:
            log.warning("plugin.build_errored_skip_compose", error=str(error))
            return None
        self.last_output = compose_timeline(self.timeline, cfg)
        return self.last_output

    def write_bundle(self) -> dict[OutputType, Path]:
        return publish(self.last_output, self.config)

    def configure_server(self, app) -> None:
        """Register the artifact middleware on a Starlette/FastAPI app."""
        app.add_middleware(ArtifactMiddleware, get_config=lambda: self._config)
        log.info(
            "plugin.serving_artifacts",
            urls=[self.config.working_url(ot) for ot in self.config.output_types],
        )

    def close(self) -> None:
        if self.session is not None:
            self.session.close()
