"""
Serve working-directory artifacts during an interactive session.

GET <working URL for an output type>   Stream the artifact (404 until it exists).
Anything else is passed through to the wrapped app untouched.
"""
from __future__ import annotations

from typing import Callable, Optional

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import FileResponse, PlainTextResponse

from src.config import CompositorConfig
from src.timeline.models import ArtifactRef

log = structlog.get_logger(__name__)


def match_artifact(request_path: str, config: CompositorConfig) -> Optional[ArtifactRef]:
    """Map a request path to the working artifact it names, if any. Pure function."""
    for output_type in config.output_types:
        if request_path == config.working_url(output_type):
            return ArtifactRef(
                output_type=output_type,
                path=config.working_path(output_type),
                content_type=output_type.content_type,
            )
    return None


class ArtifactMiddleware(BaseHTTPMiddleware):
    """
    `get_config` is called once per request so the session can swap in a new
    resolved config without re-registering the middleware.
    """

    def __init__(self, app, get_config: Callable[[], Optional[CompositorConfig]]):
        super().__init__(app)
        self._get_config = get_config

    async def dispatch(self, request: Request, call_next):
        cfg = self._get_config()
        ref = match_artifact(request.url.path, cfg) if cfg is not None else None
        if ref is None:
            return await call_next(request)

        if not ref.path.exists():
            log.debug("artifact.not_found", path=str(ref.path))
            return PlainTextResponse("File not found", status_code=404)

        log.debug("artifact.served", output_type=ref.output_type.value, path=str(ref.path))
        return FileResponse(ref.path, media_type=ref.content_type)
