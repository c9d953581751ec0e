from __future__ import annotations

from dataclasses import dataclass, field
import logging
import re
from typing import Iterable, Optional, Sequence

from look_replicator.config import EngineConfig
from look_replicator.kb.conditions import explain_triggers
from look_replicator.kb.language import ResolvedCard, resolve_technique_card_for_language
from look_replicator.kb.loader import TechniqueKB
from look_replicator.kb.selection import select_best_technique_id
from look_replicator.schemas import (
    CANONICAL_AREAS,
    ImpactArea,
    RenderedSkeleton,
    RuleContext,
    SkeletonDraft,
    TechniqueCard,
    TechniqueRef,
)

logger = logging.getLogger("pivota-look-replicator.render")

_PLACEHOLDER_RE = re.compile(r"\{\{\s*([a-zA-Z0-9_]+)\s*\}\}")
_ZH_CARD_RE = re.compile(r"-zh$", re.IGNORECASE)

DEFAULT_VARIABLES: dict[str, dict[str, str]] = {
    "eye": {"linerAngleHint": "angle slightly more horizontal"},
}

FALLBACK_STEPS: dict[str, list[str]] = {
    "base": ["Apply a thin base layer.", "Spot-correct only where needed.", "Set only where needed."],
    "eye": ["Start liner from the outer third.", "Keep the line thin.", "Keep the wing short."],
    "lip": ["Match the reference finish.", "Stay in a close shade family.", "Blot lightly to adjust intensity."],
    "prep": ["Prep skin.", "Moisturize as needed.", "Use primer only if it helps longevity."],
    "contour": ["Keep contour soft and light.", "Blend thoroughly.", "Avoid harsh lines."],
    "brow": ["Map brow shape lightly.", "Fill with hair-like strokes.", "Brush through for softness."],
    "blush": ["Apply a soft diffuse blush.", "Blend edges.", "Build gradually."],
}
_GENERIC_FALLBACK_STEPS = ["Use light, blendable steps.", "Blend thoroughly.", "Keep it subtle."]


@dataclass(frozen=True)
class RenderResult:
    skeletons: tuple[RenderedSkeleton, RenderedSkeleton, RenderedSkeleton]
    all_skeletons: list[RenderedSkeleton] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    used_fallback: bool = False


def unique_strings(items: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    out: list[str] = []
    for item in items:
        s = str(item or "").strip()
        if s and s not in seen:
            seen.add(s)
            out.append(s)
    return out


def render_template_step(step: str, variables: dict[str, str]) -> str:
    return _PLACEHOLDER_RE.sub(lambda m: variables.get(m.group(1), ""), step or "")


def fallback_steps_for_area(area: ImpactArea) -> list[str]:
    return list(FALLBACK_STEPS.get(area, _GENERIC_FALLBACK_STEPS))


def normalize_role_hint(hint: str) -> Optional[str]:
    s = re.sub(r"[^a-z0-9]+", "_", (hint or "").strip().lower()).strip("_")
    return s or None


def _resolve(card_id: str, kb: TechniqueKB, ctx: RuleContext) -> ResolvedCard:
    return resolve_technique_card_for_language(card_id, kb, **ctx.language_signals())


def _working_ids(draft: SkeletonDraft, kb: TechniqueKB, ctx: RuleContext, config: EngineConfig) -> list[str]:
    ids = list(draft.do_action_ids)
    if draft.do_action_selection != "choose_one" or not ids:
        return ids
    if not config.enable_trigger_matching:
        return ids[:1]

    candidates: list[TechniqueCard] = []
    declared_for: dict[str, str] = {}
    for declared in ids:
        resolved = _resolve(declared, kb, ctx)
        if resolved.card is None or resolved.card.id in declared_for:
            continue
        candidates.append(resolved.card)
        declared_for[resolved.card.id] = declared

    match_ctx = ctx.match_context()
    result = select_best_technique_id(context=match_ctx, candidates=candidates, fallback_id=ids[0])
    selected = declared_for.get(result.selected_id, result.selected_id)

    if config.trigger_match_debug:
        logger.info(
            "trigger_match area=%s rule=%s selected=%s ranked=%s",
            draft.impact_area,
            draft.rule_id,
            selected,
            result.ranked,
        )
        for card in candidates:
            logger.info("trigger_match_explain card=%s detail=%s", card.id, explain_triggers(match_ctx, card.triggers))
    elif not result.matched:
        logger.debug(
            "trigger_match_none area=%s rule=%s fallback=%s", draft.impact_area, draft.rule_id, ids[0]
        )
    return [selected]


def _localized_rationale(cards: Sequence[TechniqueCard]) -> Optional[tuple[list[str], list[str]]]:
    because: list[str] = []
    why: list[str] = []
    for card in cards:
        lines = unique_strings(card.rationale_template)
        if not lines:
            continue
        if len(lines) == 1:
            because.extend(lines)
            why.extend(lines)
        else:
            because.extend(lines[:-1])
            why.append(lines[-1])
    because = unique_strings(because)
    why = unique_strings(why)
    if not because or not why:
        return None
    return because, why


def _render_one(
    draft: SkeletonDraft,
    kb: TechniqueKB,
    ctx: RuleContext,
    config: EngineConfig,
    warnings: list[str],
) -> tuple[RenderedSkeleton, bool]:
    area = draft.impact_area
    variables = dict(DEFAULT_VARIABLES.get(area, {}))
    steps: list[str] = []
    refs: list[TechniqueRef] = []
    tags: list[str] = list(draft.tags or [])
    localized_cards: list[TechniqueCard] = []
    used_fallback = False

    for card_id in _working_ids(draft, kb, ctx, config):
        resolved = _resolve(card_id, kb, ctx)
        card = resolved.card
        if card is None:
            warnings.append(f"Missing technique card: {card_id} (area={area}). Tried: {', '.join(resolved.tried_ids)}")
            used_fallback = True
            continue
        if resolved.used_fallback_language:
            warnings.append(
                f"Technique language fallback for {card_id}: missing {resolved.inferred_language}, used {card.id}."
            )
        if card.market != ctx.market:
            warnings.append(f"Technique card {card_id} market mismatch (expected {ctx.market}, got {card.market}).")
            used_fallback = True
            continue
        if card.area != area:
            warnings.append(f"Technique card {card_id} area mismatch (expected {area}, got {card.area}).")
            used_fallback = True
            continue

        refs.append(TechniqueRef(id=card.id, area=card.area))
        card_vars = {**variables, **(card.action_template.variables or {})}
        steps.extend(s for s in (render_template_step(step, card_vars) for step in card.action_template.steps) if s)
        for hint in card.product_role_hints or []:
            role = normalize_role_hint(hint)
            if role:
                tags.append(f"role:{role}")
        if (
            resolved.inferred_language == "zh"
            and not resolved.used_fallback_language
            and _ZH_CARD_RE.search(card.id)
        ):
            localized_cards.append(card)

    do_actions = unique_strings(steps)
    if not do_actions:
        warnings.append(f"No rendered doActions for {area}: using safe fallback steps.")
        used_fallback = True
        do_actions = fallback_steps_for_area(area)

    payload = draft.model_dump()
    localized = _localized_rationale(localized_cards)
    if localized is not None:
        payload["because_facts"], payload["why_mechanism"] = localized

    tag_list = unique_strings(tags)
    payload.update(
        do_actions=do_actions,
        technique_refs=refs or None,
        tags=tag_list or None,
    )
    return RenderedSkeleton.model_validate(payload), used_fallback


def render_skeletons_from_kb(
    drafts: Sequence[SkeletonDraft],
    kb: TechniqueKB,
    ctx: RuleContext,
    *,
    config: EngineConfig,
) -> RenderResult:
    warnings: list[str] = []
    used_fallback = False
    rendered: list[RenderedSkeleton] = []
    for draft in drafts:
        skeleton, fell_back = _render_one(draft, kb, ctx, config, warnings)
        used_fallback = used_fallback or fell_back
        rendered.append(skeleton)

    canonical: dict[str, RenderedSkeleton] = {}
    for skeleton in rendered:
        if skeleton.impact_area in CANONICAL_AREAS and not skeleton.is_activity:
            canonical.setdefault(skeleton.impact_area, skeleton)
    missing = [area for area in CANONICAL_AREAS if area not in canonical]
    if missing:
        raise ValueError(f"render_skeletons_from_kb requires one skeleton per canonical area; missing {missing}")

    if used_fallback:
        logger.info("render_fallback market=%s warnings=%d", ctx.market, len(warnings))
    return RenderResult(
        skeletons=(canonical["base"], canonical["eye"], canonical["lip"]),
        all_skeletons=rendered,
        warnings=warnings,
        used_fallback=used_fallback,
    )
