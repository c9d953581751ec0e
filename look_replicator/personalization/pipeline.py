from __future__ import annotations

import logging
from typing import Optional

from look_replicator.config import EngineConfig
from look_replicator.kb.loader import TechniqueKB
from look_replicator.llm.provider import LlmProvider
from look_replicator.personalization.rephrase import rephrase_adjustments, render_adjustment_from_skeleton
from look_replicator.personalization.render import render_skeletons_from_kb
from look_replicator.personalization.run_rules import run_adjustment_rules
from look_replicator.schemas import PersonalizationResult, RuleContext

logger = logging.getLogger("pivota-look-replicator.pipeline")


async def personalize_look(
    ctx: RuleContext,
    *,
    config: EngineConfig,
    kb: TechniqueKB,
    provider: Optional[LlmProvider] = None,
    prompt_override: Optional[str] = None,
) -> PersonalizationResult:
    if kb.market != ctx.market:
        raise ValueError(f"KB market {kb.market} does not match request market {ctx.market}")

    drafts = run_adjustment_rules(ctx, config=config)
    rendered = render_skeletons_from_kb(drafts, kb, ctx, config=config)
    rephrased = await rephrase_adjustments(
        market=ctx.market,
        locale=ctx.locale,
        skeletons=rendered.skeletons,
        provider=provider,
        prompt_override=prompt_override,
    )

    canonical_ids = {id(s) for s in rendered.skeletons}
    extended = [render_adjustment_from_skeleton(s) for s in rendered.all_skeletons if id(s) not in canonical_ids]

    used_fallback = rendered.used_fallback or rephrased.used_fallback
    logger.info(
        "personalize_look market=%s mode=%s rules=%s extended=%d used_fallback=%s",
        ctx.market,
        ctx.preference_mode,
        ",".join(s.rule_id for s in rendered.skeletons),
        len(extended),
        used_fallback,
    )
    return PersonalizationResult(
        adjustments=list(rephrased.adjustments),
        extended_adjustments=extended,
        skeletons=rendered.all_skeletons,
        warnings=[*rendered.warnings, *rephrased.warnings],
        used_fallback=used_fallback,
    )
