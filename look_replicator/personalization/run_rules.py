from __future__ import annotations

import logging
from typing import Mapping, Optional, Sequence

from look_replicator.config import ACTIVITY_SLOT_AREAS, EngineConfig
from look_replicator.personalization.rules import (
    ADJUSTMENT_RULES,
    FALLBACK_RULES,
    AdjustmentRule,
    build_activity_skeleton,
)
from look_replicator.schemas import CANONICAL_AREAS, EXTENDED_AREAS, ImpactArea, RuleContext, SkeletonDraft

logger = logging.getLogger("pivota-look-replicator.rules")


def select_rule_for_area(
    ctx: RuleContext,
    area: ImpactArea,
    *,
    rules: Sequence[AdjustmentRule] = ADJUSTMENT_RULES,
    fallback_rules: Mapping[str, AdjustmentRule] = FALLBACK_RULES,
) -> Optional[SkeletonDraft]:
    matched = [rule for rule in rules if rule.impact_area == area and rule.matches(ctx)]
    if not matched:
        fallback = fallback_rules.get(area)
        return fallback.build(ctx) if fallback is not None else None

    built = [(rule, rule.build(ctx)) for rule in matched]
    if ctx.preference_mode == "ease":
        _, chosen = min(built, key=lambda pair: (pair[0].difficulty, pair[0].rule_id))
    else:
        _, chosen = min(built, key=lambda pair: (-pair[1].severity, pair[1].rule_id))

    if len(built) > 1:
        logger.debug(
            "rule_selected area=%s mode=%s rule=%s candidates=%s",
            area,
            ctx.preference_mode,
            chosen.rule_id,
            ",".join(rule.rule_id for rule, _ in built),
        )
    return chosen


def run_adjustment_rules(
    ctx: RuleContext,
    *,
    config: EngineConfig,
    rules: Sequence[AdjustmentRule] = ADJUSTMENT_RULES,
    fallback_rules: Mapping[str, AdjustmentRule] = FALLBACK_RULES,
) -> list[SkeletonDraft]:
    drafts: list[SkeletonDraft] = []
    for area in CANONICAL_AREAS:
        draft = select_rule_for_area(ctx, area, rules=rules, fallback_rules=fallback_rules)
        if draft is None:
            raise ValueError(f"No fallback rule configured for canonical area {area}")
        drafts.append(draft)

    if config.enable_extended_areas:
        for area in EXTENDED_AREAS:
            draft = select_rule_for_area(ctx, area, rules=rules, fallback_rules={})
            if draft is not None:
                drafts.append(draft)

    for area in ACTIVITY_SLOT_AREAS:
        if not config.activity_slot_enabled(area):
            continue
        if area in EXTENDED_AREAS and not config.enable_extended_areas:
            continue
        activity = build_activity_skeleton(ctx, area)
        if activity is not None:
            drafts.append(activity)

    logger.debug("adjustment_rules_done rules=%s", ",".join(d.rule_id for d in drafts))
    return drafts
