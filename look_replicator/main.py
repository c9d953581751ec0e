from __future__ import annotations

import logging
import os
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from look_replicator.config import EngineConfig
from look_replicator.kb.loader import DEFAULT_KB_CACHE, TechniqueKBCache
from look_replicator.llm.provider import LlmProvider
from look_replicator.routes.health import router as health_router
from look_replicator.routes.v1 import router as v1_router

SUPPORTED_MARKETS = ("US", "JP")


def _parse_cors_origins(raw: Optional[str]) -> list[str]:
    if not raw:
        return ["*"]
    parts = [p.strip() for p in raw.split(",")]
    return [p for p in parts if p]


def _setup_logging() -> None:
    level = (os.getenv("LOG_LEVEL") or "INFO").upper()
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def create_app(
    *,
    config: Optional[EngineConfig] = None,
    kb_cache: Optional[TechniqueKBCache] = None,
    provider: Optional[LlmProvider] = None,
) -> FastAPI:
    _setup_logging()
    app = FastAPI(title="Pivota Look Replicator", version="0.1.0")

    engine_config = config or EngineConfig.from_env()
    cache = kb_cache or DEFAULT_KB_CACHE
    # Load every market up front so broken content fails at startup.
    for market in SUPPORTED_MARKETS:
        cache.get(market, include_starter=engine_config.enable_starter_kb)

    app.state.engine_config = engine_config
    app.state.kb_cache = cache
    app.state.llm_provider = provider

    origins = _parse_cors_origins(os.getenv("CORS_ORIGINS"))
    allow_all = "*" in origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if allow_all else origins,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
        max_age=86400,
    )

    app.include_router(health_router)
    app.include_router(v1_router, prefix="/v1")

    return app


app = create_app()
