from __future__ import annotations

import os

from fastapi import APIRouter, Request

from look_replicator.config import deployment_environment

router = APIRouter()


def _get_commit_sha() -> str | None:
    for key in (
        # Railway
        "RAILWAY_GIT_COMMIT_SHA",
        "RAILWAY_GIT_COMMIT",
        # Common CI providers
        "GITHUB_SHA",
        # Generic fallbacks
        "COMMIT_SHA",
        "GIT_SHA",
    ):
        value = os.getenv(key)
        if value:
            return value
    return None


@router.get("/healthz")
def healthz(request: Request):
    config = request.app.state.engine_config
    return {
        "ok": True,
        "service": "pivota-look-replicator",
        "commit_sha": _get_commit_sha(),
        "environment": deployment_environment(),
        "engine": config.summary(),
        "kb_loaded": [f"{market}:{'starter' if starter else 'canonical'}" for market, starter in request.app.state.kb_cache.loaded_keys()],
    }
