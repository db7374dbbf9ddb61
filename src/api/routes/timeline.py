"""
Timeline metadata for the running dev session.

GET /timeline              Metadata records for every registered clip, in order.
GET /timeline/{filename}   Metadata record for one clip by basename.
"""
from __future__ import annotations

import structlog
from fastapi import APIRouter, HTTPException, Request

log = structlog.get_logger(__name__)
router = APIRouter()


def _plugin(request: Request):
    plugin = getattr(request.app.state, "plugin", None)
    if plugin is None:
        raise HTTPException(503, "Audio timeline session not started")
    return plugin


@router.get("")
@router.get("/", include_in_schema=False)
def list_timeline(request: Request):
    plugin = _plugin(request)
    return {
        "clip_count": len(plugin.timeline),
        "total_duration_ms": plugin.timeline.total_duration_ms,
        "clips": [m.to_payload() for m in plugin.timeline.metadata(plugin.config)],
    }


@router.get("/{filename}")
def get_clip(filename: str, request: Request):
    plugin = _plugin(request)
    for metadata in plugin.timeline.metadata(plugin.config):
        if metadata.filename == filename:
            return metadata.to_payload()
    raise HTTPException(404, f"Clip not on timeline: {filename}")
