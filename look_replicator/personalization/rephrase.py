from __future__ import annotations

from dataclasses import dataclass, field
from functools import lru_cache
import json
import logging
from pathlib import Path
import re
from typing import Optional, Sequence

from look_replicator.llm.provider import LlmError, LlmProvider, create_provider_from_env
from look_replicator.personalization.rules import RULE_TITLES
from look_replicator.schemas import (
    CANONICAL_AREAS,
    ImpactArea,
    Market,
    RenderedAdjustment,
    RenderedSkeleton,
    RephraseOutput,
)

logger = logging.getLogger("pivota-look-replicator.rephrase")

PROMPTS_DIR = Path(__file__).resolve().parents[1] / "prompts"

_IDENTITY_RE = re.compile(
    r"\b(looks? like|resembl\w*|celebrit\w*|famous|actors?|actress(?:es)?|singers?|models?|idols?|influencers?)\b",
    re.IGNORECASE,
)
_IDENTITY_CJK = ("明星", "名人", "网红", "长得像", "有名人", "芸能人", "セレブ", "そっくり", "似ている", "似てる")
_NUMBER_RE = re.compile(r"[0-9]+(?:\.[0-9]+)?")
_CLAUSE_SPLIT_RE = re.compile(r"[.!?;\n]+")
_TOKEN_STRIP = ".,:;!?\"'()[]"

FORBIDDEN_TRAIT_TOKENS = (
    "hooded",
    "downturned",
    "upturned",
    "monolid",
    "thin lips",
    "oily skin",
    "dry skin",
    "pores",
    "wrinkles",
    "acne",
    "undertone",
    "warm",
    "cool",
    "skin type",
    "round face",
    "square face",
    "oval face",
    "heart-shaped",
    "long face",
    "face shape",
)

CONNECTIVE_VERBS = frozenset({"and", "then", "also", "try", "aim", "keep", "use", "add", "apply", "blend", "press"})


@dataclass(frozen=True)
class ValidationOutcome:
    ok: bool
    reason: Optional[str] = None


@dataclass(frozen=True)
class RephraseResult:
    adjustments: tuple[RenderedAdjustment, RenderedAdjustment, RenderedAdjustment]
    warnings: list[str] = field(default_factory=list)
    used_fallback: bool = False


def _is_cjk_locale(locale: Optional[str]) -> bool:
    s = (locale or "").strip().lower()
    return s.startswith(("zh", "ja", "cn"))


@lru_cache(maxsize=8)
def _read_prompt(name: str) -> str:
    return (PROMPTS_DIR / name).read_text(encoding="utf-8")


def load_prompt(market: Market, locale: str) -> str:
    lowered = (locale or "").strip().lower()
    if lowered.startswith(("zh", "cn")):
        return _read_prompt("adjustments_rephrase_zh.txt")
    if market == "JP":
        return _read_prompt("adjustments_rephrase_ja.txt")
    return _read_prompt("adjustments_rephrase_en.txt")


def _normalize_text(s: str) -> str:
    return re.sub(r"\s+", " ", s or "").strip()


def ensure_period(s: str) -> str:
    t = _normalize_text(s)
    if not t:
        return t
    return t if t[-1] in ".!?。！？" else f"{t}."


def human_title_for_rule(rule_id: str, impact_area: ImpactArea) -> str:
    return RULE_TITLES.get(rule_id) or f"{impact_area.capitalize()} adjustment"


def render_adjustment_from_skeleton(skeleton: RenderedSkeleton) -> RenderedAdjustment:
    return RenderedAdjustment(
        impact_area=skeleton.impact_area,
        rule_id=skeleton.rule_id,
        title=human_title_for_rule(skeleton.rule_id, skeleton.impact_area),
        because=ensure_period(" ".join(skeleton.because_facts)),
        do_=ensure_period(" ".join(skeleton.do_actions)),
        why=ensure_period(" ".join(skeleton.why_mechanism)),
        confidence=skeleton.confidence,
        evidence=list(skeleton.evidence_keys),
        technique_refs=skeleton.technique_refs,
    )


def _serialize_skeletons(skeletons: Sequence[RenderedSkeleton]) -> str:
    return json.dumps([s.model_dump(by_alias=True, mode="json") for s in skeletons], ensure_ascii=False)


def contains_identity_language(text: str) -> bool:
    if _IDENTITY_RE.search(text):
        return True
    return any(marker in text for marker in _IDENTITY_CJK)


def _first_token(text: str) -> str:
    parts = text.strip().split()
    return parts[0].strip(_TOKEN_STRIP).lower() if parts else ""


def _allowed_verbs_by_area(skeletons: Sequence[RenderedSkeleton]) -> dict[str, set[str]]:
    out: dict[str, set[str]] = {}
    for skeleton in skeletons:
        verbs = out.setdefault(skeleton.impact_area, set())
        for step in skeleton.do_actions:
            verb = _first_token(step)
            if verb:
                verbs.add(verb)
    return out


def _do_verbs(text: str) -> set[str]:
    return {v for v in (_first_token(piece) for piece in _CLAUSE_SPLIT_RE.split(text or "")) if v}


def _new_trait(output_text: str, allowed_text: str) -> Optional[str]:
    lowered_out = output_text.lower()
    lowered_allowed = allowed_text.lower()
    for token in FORBIDDEN_TRAIT_TOKENS:
        if token in lowered_out and token not in lowered_allowed:
            return token
    return None


def validate_no_new_facts_or_identity(
    skeletons: Sequence[RenderedSkeleton],
    adjustments: Sequence[RenderedAdjustment],
    locale: Optional[str] = None,
) -> ValidationOutcome:
    allowed_text = _serialize_skeletons(skeletons)
    allowed_numbers = set(_NUMBER_RE.findall(allowed_text))
    allowed_verbs = _allowed_verbs_by_area(skeletons)
    skip_verb_check = _is_cjk_locale(locale)
    by_area = {s.impact_area: s for s in skeletons}

    for adj in adjustments:
        skeleton = by_area.get(adj.impact_area)
        if skeleton is None:
            return ValidationOutcome(False, f"unknown_area:{adj.impact_area}")

        blob = "\n".join((adj.title, adj.because, adj.do_, adj.why))
        if contains_identity_language(blob):
            return ValidationOutcome(False, "identity_language")
        if any(n not in allowed_numbers for n in _NUMBER_RE.findall(blob)):
            return ValidationOutcome(False, "new_numeric_claim")
        trait = _new_trait(blob, allowed_text)
        if trait:
            return ValidationOutcome(False, f"new_trait:{trait}")
        if not skip_verb_check:
            permitted = allowed_verbs.get(adj.impact_area, set()) | CONNECTIVE_VERBS
            if not _do_verbs(adj.do_) <= permitted:
                return ValidationOutcome(False, "new_action_verb")

        if adj.rule_id != skeleton.rule_id:
            return ValidationOutcome(False, "ruleId_mismatch")
        if not adj.evidence:
            return ValidationOutcome(False, "missing_evidence")
        if not set(adj.evidence) <= set(skeleton.evidence_keys):
            return ValidationOutcome(False, "evidence_not_subset")

    return ValidationOutcome(True)


def _canonical(skeletons: Sequence[RenderedSkeleton]) -> list[RenderedSkeleton]:
    by_area = {}
    for skeleton in skeletons:
        if skeleton.impact_area in CANONICAL_AREAS and not skeleton.is_activity:
            by_area.setdefault(skeleton.impact_area, skeleton)
    missing = [area for area in CANONICAL_AREAS if area not in by_area]
    if missing:
        raise ValueError(f"rephrase_adjustments requires base, eye and lip skeletons; missing {missing}")
    return [by_area[area] for area in CANONICAL_AREAS]


def _exact_areas(items: Sequence[RenderedAdjustment]) -> tuple[Optional[list[RenderedAdjustment]], list[str]]:
    by_area: dict[str, RenderedAdjustment] = {}
    for item in items:
        by_area.setdefault(item.impact_area, item)
    missing = [area for area in CANONICAL_AREAS if area not in by_area]
    if missing:
        return None, missing
    return [by_area[area] for area in CANONICAL_AREAS], []


def build_prompt(template: str, *, market: Market, locale: str, skeletons: Sequence[RenderedSkeleton]) -> str:
    payload = {
        "market": market,
        "locale": locale,
        "skeletons": [s.model_dump(by_alias=True, mode="json", exclude_none=True) for s in skeletons],
    }
    return f"{template}\n\nINPUT_JSON:\n{json.dumps(payload, indent=2, ensure_ascii=False)}"


async def rephrase_adjustments(
    *,
    market: Market,
    locale: str,
    skeletons: Sequence[RenderedSkeleton],
    provider: Optional[LlmProvider] = None,
    prompt_override: Optional[str] = None,
) -> RephraseResult:
    locale = (locale or "en").strip() or "en"
    canonical = _canonical(skeletons)
    warnings: list[str] = []

    def _fallback() -> RephraseResult:
        rendered = [render_adjustment_from_skeleton(s) for s in canonical]
        return RephraseResult(adjustments=(rendered[0], rendered[1], rendered[2]), warnings=warnings, used_fallback=True)

    if provider is None:
        try:
            provider = create_provider_from_env()
        except LlmError as exc:
            logger.info("rephrase_provider_unavailable code=%s", exc.code)
            warnings.append("LLM config missing: using deterministic adjustment renderer.")
            return _fallback()

    prompt = build_prompt(
        prompt_override or load_prompt(market, locale),
        market=market,
        locale=locale,
        skeletons=canonical,
    )

    try:
        parsed = await provider.analyze_text_to_json(prompt=prompt, schema=RephraseOutput)
    except LlmError as exc:
        logger.warning("rephrase_llm_failed code=%s err=%s", exc.code, exc.message[:220])
        warnings.append(f"LLM failed ({exc.code}): {exc.message[:220]}")
        return _fallback()
    except Exception as exc:
        logger.warning("rephrase_llm_failed err=%r", exc)
        warnings.append("LLM failed: using deterministic adjustment renderer.")
        return _fallback()

    ordered, missing = _exact_areas(parsed.adjustments)
    if ordered is None:
        outcome = ValidationOutcome(False, f"missing_area:{','.join(missing)}")
    else:
        outcome = validate_no_new_facts_or_identity(canonical, ordered, locale)

    if not outcome.ok or ordered is None:
        logger.warning("rephrase_rejected market=%s locale=%s reason=%s", market, locale, outcome.reason)
        warnings.append(f"LLM output rejected ({outcome.reason}): using deterministic adjustment renderer.")
        return _fallback()

    logger.info("rephrase_accepted market=%s locale=%s", market, locale)
    # Only wording comes from the model; confidence and technique refs stay the skeleton's.
    accepted = [
        RenderedAdjustment(
            impact_area=skeleton.impact_area,
            rule_id=skeleton.rule_id,
            title=adj.title,
            because=adj.because,
            do_=adj.do_,
            why=adj.why,
            confidence=skeleton.confidence,
            evidence=list(adj.evidence),
            technique_refs=skeleton.technique_refs,
        )
        for skeleton, adj in zip(canonical, ordered)
    ]
    return RephraseResult(adjustments=(accepted[0], accepted[1], accepted[2]), warnings=warnings, used_fallback=False)
