from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import APIRouter, Header, Request

from look_replicator.personalization.pipeline import personalize_look
from look_replicator.schemas import RuleContext

logger = logging.getLogger("pivota-look-replicator.v1")

router = APIRouter()


@router.post("/look-replicate/adjustments")
async def look_replicate_adjustments(
    body: RuleContext,
    request: Request,
    accept_language: Optional[str] = Header(default=None, alias="Accept-Language"),
    x_aurora_lang: Optional[str] = Header(default=None, alias="X-Aurora-Lang"),
) -> dict[str, Any]:
    updates: dict[str, Any] = {}
    if accept_language and not body.accept_language:
        updates["accept_language"] = accept_language
    if x_aurora_lang and not body.app_language:
        updates["app_language"] = x_aurora_lang
    ctx = body.model_copy(update=updates) if updates else body

    config = request.app.state.engine_config
    kb = request.app.state.kb_cache.get(ctx.market, include_starter=config.enable_starter_kb)
    result = await personalize_look(ctx, config=config, kb=kb, provider=request.app.state.llm_provider)
    if result.warnings:
        logger.info("look_replicate_warnings market=%s count=%d first=%s", ctx.market, len(result.warnings), result.warnings[0])
    return result.model_dump(by_alias=True, mode="json")
