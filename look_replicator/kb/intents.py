from __future__ import annotations

from typing import Optional

from look_replicator.schemas import ImpactArea, Market, RuleContext

# Candidate technique pools for per-area "activity" picks. Ids are declared
# without a language suffix; the resolver picks -en/-zh at render time.
ACTIVITY_POOLS: dict[Market, dict[ImpactArea, tuple[str, ...]]] = {
    "US": {
        "eye": (
            "US_eye_liner_winged_western_01",
            "US_eye_liner_smudged_soft_01",
            "US_eye_liner_straight_tight_01",
        ),
        "base": (
            "US_base_glow_targeted_01",
            "US_base_matte_soft_focus_01",
            "US_base_satin_skin_01",
        ),
        "lip": (
            "US_lip_gloss_center_01",
            "US_lip_blurred_soft_01",
            "US_lip_satin_defined_01",
        ),
        "prep": (
            "T_STARTER_PREP_PRIMER_FIRST",
            "T_STARTER_PREP_HYDRATE_FIRST",
            "T_STARTER_PREP_MINIMAL",
        ),
        "contour": (
            "T_STARTER_CONTOUR_SCULPT",
            "T_STARTER_CONTOUR_SOFT_HORIZONTAL",
            "T_STARTER_CONTOUR_MINIMAL",
        ),
    },
    "JP": {
        "eye": (
            "JP_eye_liner_tareme_soft_01",
            "JP_eye_liner_straight_tight_01",
            "JP_eye_liner_winged_short_01",
        ),
        "base": (
            "JP_base_tsuya_glow_01",
            "JP_base_semi_matte_01",
        ),
        "lip": (
            "JP_lip_gradient_center_01",
            "JP_lip_blurred_soft_01",
        ),
        "prep": (
            "TJP_STARTER_PREP_PRIMER_FIRST",
            "TJP_STARTER_PREP_HYDRATE_FIRST",
        ),
    },
}

ACTIVITY_RULE_IDS: dict[ImpactArea, str] = {
    "eye": "EYE_LINER_ACTIVITY_PICK",
    "base": "BASE_FINISH_ACTIVITY_PICK",
    "lip": "LIP_FINISH_ACTIVITY_PICK",
    "prep": "PREP_ACTIVITY_PICK",
    "contour": "CONTOUR_ACTIVITY_PICK",
}


def _contains_any(text: Optional[str], needles: tuple[str, ...]) -> bool:
    s = (text or "").lower()
    return any(n in s for n in needles)


def _eye_keyword(ctx: RuleContext) -> Optional[str]:
    liner = ctx.look_spec.breakdown.eye.liner_direction
    direction = liner.direction if liner else "unknown"
    if direction == "up":
        return "winged"
    if direction == "down":
        return "smudged" if ctx.market == "US" else "tareme"
    if direction == "straight":
        return "straight"
    return None


def _base_keyword(ctx: RuleContext) -> Optional[str]:
    finish = ctx.look_spec.breakdown.base.finish
    if _contains_any(finish, ("dewy", "glow", "radiant")):
        return "glow"
    if _contains_any(finish, ("matte", "velvet")):
        return "matte"
    if _contains_any(finish, ("satin", "natural")):
        return "satin"
    return None


def _lip_keyword(ctx: RuleContext) -> Optional[str]:
    lip = ctx.look_spec.breakdown.lip
    if _contains_any(lip.finish, ("gloss",)):
        return "gloss" if ctx.market == "US" else "gradient"
    if _contains_any(lip.intent, ("soft", "blur", "diffused")) or _contains_any(lip.finish, ("matte",)):
        return "blurred"
    if _contains_any(lip.finish, ("satin",)):
        return "satin"
    return None


def _prep_keyword(ctx: RuleContext) -> Optional[str]:
    signals = ctx.user_signals
    if signals.needs_oil_control:
        return "primer_first"
    if signals.needs_hydration:
        return "hydrate_first"
    if signals.prefers_minimal:
        return "minimal"
    return None


def _contour_keyword(ctx: RuleContext) -> Optional[str]:
    profile = ctx.user_face_profile
    shape = (profile.categorical.face_shape if profile else None) or ""
    shape = shape.strip().lower()
    if shape in {"round", "square"}:
        return "sculpt"
    if shape in {"long", "oblong", "rectangle"}:
        return "soft_horizontal"
    if ctx.user_signals.prefers_minimal:
        return "minimal"
    return None


_KEYWORDS = {
    "eye": _eye_keyword,
    "base": _base_keyword,
    "lip": _lip_keyword,
    "prep": _prep_keyword,
    "contour": _contour_keyword,
}


def activity_pool(market: Market, area: ImpactArea) -> tuple[str, ...]:
    return ACTIVITY_POOLS.get(market, {}).get(area, ())


def order_activity_pool(ctx: RuleContext, area: ImpactArea) -> list[str]:
    pool = list(activity_pool(ctx.market, area))
    pick = _KEYWORDS.get(area)
    keyword = pick(ctx) if pick else None
    if not keyword:
        return pool
    preferred = [pid for pid in pool if keyword in pid.lower()]
    return preferred + [pid for pid in pool if pid not in preferred]
