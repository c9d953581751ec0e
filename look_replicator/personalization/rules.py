from __future__ import annotations

from dataclasses import dataclass
import math
from typing import Callable, Optional

from look_replicator.kb.intents import ACTIVITY_RULE_IDS, order_activity_pool
from look_replicator.schemas import (
    CanonicalArea,
    Confidence,
    DiffField,
    DoActionSelection,
    ImpactArea,
    RuleContext,
    SkeletonDraft,
    TopDelta,
)

MIN_QUALITY_SCORE = 70.0


@dataclass(frozen=True)
class AdjustmentRule:
    rule_id: str
    impact_area: ImpactArea
    difficulty: float  # 0 (easiest) .. 1 (hardest)
    matches: Callable[[RuleContext], bool]
    build: Callable[[RuleContext], SkeletonDraft]


def clamp01(value: Optional[float]) -> float:
    if value is None or not math.isfinite(value):
        return 0.0
    return max(0.0, min(1.0, float(value)))


def base_confidence(ctx: RuleContext) -> Confidence:
    profiles = (ctx.user_face_profile, ctx.ref_face_profile)
    for profile in profiles:
        if profile is None or not profile.quality.valid:
            return "low"
        if profile.quality.score is not None and profile.quality.score < MIN_QUALITY_SCORE:
            return "low"
    return "medium"


def find_top_delta(ctx: RuleContext, key_suffix: str) -> Optional[TopDelta]:
    report = ctx.similarity_report
    if report is None:
        return None
    return next((d for d in report.top_deltas if d.key.endswith(key_suffix)), None)


def look_diff_field(ctx: RuleContext, area: str, name: str) -> Optional[DiffField]:
    report = ctx.similarity_report
    diff = report.look_diff if report else None
    section = getattr(diff, area, None) if diff else None
    return getattr(section, name, None) if section else None


def _needs_change(ctx: RuleContext, area: str, name: str) -> bool:
    field = look_diff_field(ctx, area, name)
    return bool(field and field.needs_change)


def _contains_any(text: Optional[str], needles: tuple[str, ...]) -> bool:
    s = (text or "").lower()
    return any(n.lower() in s for n in needles)


def _is_ease(ctx: RuleContext) -> bool:
    return ctx.preference_mode == "ease"


def _skeleton(
    ctx: RuleContext,
    *,
    area: ImpactArea,
    rule_id: str,
    severity: float,
    because: list[str],
    do_ids: list[str],
    why: list[str],
    evidence: list[str],
    safety: Optional[list[str]] = None,
    tags: Optional[list[str]] = None,
    selection: DoActionSelection = "sequence",
) -> SkeletonDraft:
    return SkeletonDraft(
        market=ctx.market,
        impact_area=area,
        rule_id=rule_id,
        severity=clamp01(severity),
        confidence=base_confidence(ctx),
        because_facts=because,
        do_action_selection=selection,
        do_action_ids=do_ids,
        why_mechanism=why,
        evidence_keys=evidence,
        safety_notes=safety,
        tags=tags,
    )


# === EYE ===


def _eye_tilt_diff(ctx: RuleContext) -> Optional[float]:
    user, ref = ctx.user_face_profile, ctx.ref_face_profile
    if user is None or ref is None:
        return None
    a, b = user.geometry.eye_tilt_deg, ref.geometry.eye_tilt_deg
    if a is None or b is None:
        return None
    return abs(a - b)


def _liner_direction_adapt_matches(ctx: RuleContext) -> bool:
    if ctx.user_face_profile is None or ctx.ref_face_profile is None:
        return False
    top = find_top_delta(ctx, "geometry.eyeTiltDeg")
    if top is not None:
        severity = top.severity or 0.0
    else:
        diff = _eye_tilt_diff(ctx)
        severity = clamp01(diff / 10) if diff is not None else 0.0
    return severity >= 0.35


def _build_liner_direction_adapt(ctx: RuleContext) -> SkeletonDraft:
    top = find_top_delta(ctx, "geometry.eyeTiltDeg")
    diff = _eye_tilt_diff(ctx)
    if top is not None:
        severity = top.severity or 0.6
    elif diff is not None:
        severity = diff / 10
    else:
        severity = 0.6
    if _is_ease(ctx):
        do_ids = ["T_EYE_LINER_OUTER_THIRD_START", "T_EYE_LINER_THIN_LINE", "T_EYE_WING_SHORTEN"]
    else:
        do_ids = [
            "T_EYE_LINER_OUTER_THIRD_START",
            "T_EYE_WING_SHORTEN",
            "T_EYE_WING_ANGLE_MORE_HORIZONTAL",
            "T_EYE_FILL_GAP_LASHLINE",
        ]
    evidence = ["userFaceProfile.geometry.eyeTiltDeg", "refFaceProfile.geometry.eyeTiltDeg"]
    if top is not None and top.evidence:
        evidence.append("similarityReport.topDeltas[*].evidence")
    evidence.append("lookSpec.breakdown.eye.intent")
    return _skeleton(
        ctx,
        area="eye",
        rule_id="EYE_LINER_DIRECTION_ADAPT",
        severity=severity,
        because=[
            "The reference eye look relies on liner direction/wing control.",
            "Eye tilt differs between user and reference, so wing angle needs adjustment.",
        ],
        do_ids=do_ids,
        why=[
            "A slightly more horizontal, shorter wing reduces emphasis on tilt differences while preserving the reference mood."
        ],
        evidence=evidence,
        safety=["Avoid thick liner across the full lid; thickness can overwhelm the eye area."],
        tags=["liner", "wing"],
    )


def _tightline_matches(ctx: RuleContext) -> bool:
    user = ctx.user_face_profile
    if user is None or user.geometry.eye_openness_ratio is None:
        return False
    eye = ctx.look_spec.breakdown.eye
    wants_liner = _contains_any(eye.intent, ("liner", "wing", "cat")) or _contains_any(eye.finish, ("sharp", "defined"))
    return wants_liner and user.geometry.eye_openness_ratio <= 0.32


def _build_tightline(ctx: RuleContext) -> SkeletonDraft:
    user = ctx.user_face_profile
    openness = user.geometry.eye_openness_ratio if user and user.geometry.eye_openness_ratio is not None else 0.3
    if _is_ease(ctx):
        do_ids = ["T_EYE_TIGHTLINE_UPPER_LASHLINE", "T_EYE_SMUDGE_OUTER_CORNER", "T_EYE_LINER_THIN_LINE"]
    else:
        do_ids = [
            "T_EYE_TIGHTLINE_UPPER_LASHLINE",
            "T_EYE_SMUDGE_OUTER_CORNER",
            "T_EYE_FILL_GAP_LASHLINE",
            "T_EYE_LINER_THIN_LINE",
        ]
    return _skeleton(
        ctx,
        area="eye",
        rule_id="EYE_TIGHTLINE_AND_SMUDGE",
        severity=(0.35 - openness) / 0.15,
        because=[
            "The lid space is limited, so thick liner can take over the eye area.",
            "The reference calls for noticeable eye emphasis.",
        ],
        do_ids=do_ids,
        why=[
            "Tightlining keeps definition at the lash line without consuming lid space; smudging adds emphasis with less heaviness."
        ],
        evidence=["userFaceProfile.geometry.eyeOpennessRatio", "lookSpec.breakdown.eye.intent"],
        safety=["If your eyes are sensitive, skip waterline and tightline just at the lashes."],
        tags=["tightline", "smudge"],
    )


def _liner_retarget_matches(ctx: RuleContext) -> bool:
    return _needs_change(ctx, "eye", "liner_direction")


def _build_liner_retarget(ctx: RuleContext) -> SkeletonDraft:
    field = look_diff_field(ctx, "eye", "liner_direction")
    liner = ctx.look_spec.breakdown.eye.liner_direction
    target = (field.target if field and field.target else None) or (liner.direction if liner else "unknown")
    if target == "down":
        do_ids = ["T_EYE_LINER_THIN_LINE", "T_EYE_SMUDGE_OUTER_CORNER", "T_EYE_WING_SHORTEN"]
    elif target == "straight":
        do_ids = ["T_EYE_LINER_OUTER_THIRD_START", "T_EYE_WING_ANGLE_MORE_HORIZONTAL", "T_EYE_LINER_THIN_LINE"]
    else:
        do_ids = ["T_EYE_LINER_OUTER_THIRD_START", "T_EYE_WING_SHORTEN", "T_EYE_FILL_GAP_LASHLINE"]
    return _skeleton(
        ctx,
        area="eye",
        rule_id="EYE_LINER_DIRECTION_RETARGET",
        severity=0.5,
        because=[
            "Your current liner direction differs from the reference liner direction.",
            "Liner direction carries most of the reference eye mood.",
        ],
        do_ids=do_ids,
        why=["Re-aiming the outer end of the line changes the eye direction more than changing its thickness."],
        evidence=[
            "similarityReport.lookDiff.eye.linerDirection",
            "lookSpec.breakdown.eye.linerDirection.direction",
        ],
        safety=["Build the line in short strokes; extending a line is easier than removing it."],
        tags=["liner", "direction"],
    )


# === BASE ===


def _target_glow_matches(ctx: RuleContext) -> bool:
    return _contains_any(ctx.look_spec.breakdown.base.finish, ("dewy", "glow", "radiant"))


def _build_target_glow(ctx: RuleContext) -> SkeletonDraft:
    if _is_ease(ctx):
        do_ids = ["T_BASE_HYDRATE_PREP", "T_BASE_THIN_LAYER", "T_BASE_TARGET_GLOW_HIGHLIGHTS", "T_BASE_SET_TZONE_LIGHT"]
    else:
        do_ids = [
            "T_BASE_HYDRATE_PREP",
            "T_BASE_THIN_LAYER",
            "T_BASE_SPOT_CONCEAL_ONLY",
            "T_BASE_TARGET_GLOW_HIGHLIGHTS",
            "T_BASE_SET_TZONE_LIGHT",
        ]
    return _skeleton(
        ctx,
        area="base",
        rule_id="BASE_THIN_LAYERS_TARGET_GLOW",
        severity=0.6,
        because=[
            "The reference base finish is dewy/radiant.",
            "A thin base keeps texture controlled while still allowing glow.",
        ],
        do_ids=do_ids,
        why=["Targeting glow keeps the finish aligned with the reference without amplifying texture everywhere."],
        evidence=["lookSpec.breakdown.base.finish", "lookSpec.breakdown.base.intent"],
        safety=["Avoid heavy powder over glow areas; it can flatten the intended finish."],
        tags=["dewy", "thin-layers"],
    )


def _build_coverage_matches(ctx: RuleContext) -> bool:
    return _contains_any(ctx.look_spec.breakdown.base.coverage, ("full", "high", "medium-full"))


def _build_build_coverage(ctx: RuleContext) -> SkeletonDraft:
    return _skeleton(
        ctx,
        area="base",
        rule_id="BASE_BUILD_COVERAGE_SPOT",
        severity=0.7,
        because=[
            "The reference base coverage is higher.",
            "Building coverage in thin passes reduces caking while still matching the reference.",
        ],
        do_ids=[
            "T_BASE_BUILD_COVERAGE_THIN_PASSES",
            "T_BASE_SPOT_CONCEAL_ONLY",
            "T_BASE_SET_TZONE_LIGHT",
            "T_BASE_MIST_MELT",
        ],
        why=["Thin passes reduce buildup while letting you reach the desired coverage level."],
        evidence=["lookSpec.breakdown.base.coverage", "lookSpec.breakdown.base.finish"],
        safety=["If the base starts to look heavy, stop layering and spot-correct instead."],
        tags=["coverage"],
    )


def _matte_set_matches(ctx: RuleContext) -> bool:
    return _contains_any(ctx.look_spec.breakdown.base.finish, ("matte", "velvet"))


def _build_matte_set(ctx: RuleContext) -> SkeletonDraft:
    do_ids = ["T_BASE_THIN_LAYER", "T_BASE_SPOT_CONCEAL_ONLY", "T_BASE_SET_TZONE_LIGHT"]
    if not _is_ease(ctx):
        do_ids.append("T_BASE_MIST_MELT")
    return _skeleton(
        ctx,
        area="base",
        rule_id="BASE_MATTE_TARGETED_SET",
        severity=0.5,
        because=[
            "The reference base finish is matte.",
            "Setting only where shine shows keeps a matte finish from looking flat.",
        ],
        do_ids=do_ids,
        why=["Targeted setting controls shine where it appears while the rest of the base stays skin-like."],
        evidence=["lookSpec.breakdown.base.finish", "lookSpec.breakdown.base.coverage"],
        safety=["Avoid packing powder over dry patches; press a thin layer instead."],
        tags=["matte", "targeted-set"],
    )


# === LIP ===


def _gloss_center_matches(ctx: RuleContext) -> bool:
    if not _contains_any(ctx.look_spec.breakdown.lip.finish, ("gloss", "glossy")):
        return False
    user = ctx.user_face_profile
    if user is None:
        return True
    ratio = user.geometry.lip_fullness_ratio
    return (ratio is not None and ratio <= 0.32) or (user.categorical.lip_type or "") == "thin"


def _build_gloss_center(ctx: RuleContext) -> SkeletonDraft:
    user = ctx.user_face_profile
    ratio = user.geometry.lip_fullness_ratio if user and user.geometry.lip_fullness_ratio is not None else 0.3
    evidence = ["lookSpec.breakdown.lip.finish"]
    if user is not None:
        evidence.append("userFaceProfile.geometry.lipFullnessRatio")
    return _skeleton(
        ctx,
        area="lip",
        rule_id="LIP_GLOSS_CENTER_GRADIENT",
        severity=(0.35 - ratio) / 0.15,
        because=[
            "The reference lip finish is glossy.",
            "A center-focused gloss effect is a safe way to match finish and enhance shape without over-lining.",
        ],
        do_ids=["T_LIP_SOFT_EDGE", "T_LIP_GLOSS_CENTER", "T_LIP_SHADE_CLOSE_FAMILY"],
        why=["Center gloss increases dimension and keeps the glossy finish aligned with the reference."],
        evidence=evidence,
        safety=["Avoid heavy over-lining; keep changes subtle to stay faithful to the reference."],
        tags=["gloss"],
    )


def _soft_edge_matches(ctx: RuleContext) -> bool:
    lip = ctx.look_spec.breakdown.lip
    return _contains_any(lip.intent, ("soft", "blur", "diffused")) or _contains_any(lip.finish, ("satin", "matte"))


def _build_soft_edge(ctx: RuleContext) -> SkeletonDraft:
    return _skeleton(
        ctx,
        area="lip",
        rule_id="LIP_SOFT_EDGE_BLUR",
        severity=0.45,
        because=[
            "The reference lip reads softer/diffused.",
            "A blurred edge stays within the reference vibe without requiring exact lip shape.",
        ],
        do_ids=["T_LIP_BLUR_EDGE", "T_LIP_CENTER_STRONGER", "T_LIP_MATCH_FINISH"],
        why=["Soft edges reduce shape sensitivity and keep the lip mood consistent with the reference."],
        evidence=["lookSpec.breakdown.lip.intent", "lookSpec.breakdown.lip.finish"],
        safety=["If unsure on shade, stay within a close shade family rather than jumping to a different hue."],
        tags=["soft-edge"],
    )


# === EXTENDED ===


def _always(ctx: RuleContext) -> bool:
    return True


def _build_prep_safe_minimal(ctx: RuleContext) -> SkeletonDraft:
    return _skeleton(
        ctx,
        area="prep",
        rule_id="PREP_SAFE_MINIMAL",
        severity=0.2,
        because=["A simple prep keeps every later layer thinner and easier to blend."],
        do_ids=["T_PREP_HYDRATE_LIGHT", "T_PREP_PRIMER_TARGETED"],
        why=["Smooth skin texture under the base reduces how much product is needed to match the reference."],
        evidence=["lookSpec.breakdown.prep.intent", "lookSpec.breakdown.base.finish"],
        tags=["safe-minimal"],
    )


def _build_brow_safe_minimal(ctx: RuleContext) -> SkeletonDraft:
    return _skeleton(
        ctx,
        area="brow",
        rule_id="BROW_SAFE_MINIMAL",
        severity=0.2,
        because=["Brows frame the eye look, so keep their shape close to your natural line."],
        do_ids=["T_BROW_MAP_LIGHT", "T_BROW_HAIR_STROKES", "T_BROW_BRUSH_SET"],
        why=["Light, hair-like fill keeps the brow supportive without competing with the eye focus."],
        evidence=["lookSpec.breakdown.brow.intent"],
        tags=["safe-minimal"],
    )


def _contour_matches(ctx: RuleContext) -> bool:
    return _needs_change(ctx, "contour", "intent")


def _build_contour_soft_sculpt(ctx: RuleContext) -> SkeletonDraft:
    do_ids = ["T_CONTOUR_SOFT_SCULPT", "T_CONTOUR_BLEND_UP"]
    if not _is_ease(ctx):
        do_ids.append("T_CONTOUR_HORIZONTAL_SOFT")
    return _skeleton(
        ctx,
        area="contour",
        rule_id="CONTOUR_SOFT_SCULPT",
        severity=0.5,
        because=["The reference contour intent differs from your current contour."],
        do_ids=do_ids,
        why=["Soft, well-blended contour shifts the face structure toward the reference without visible lines."],
        evidence=["similarityReport.lookDiff.contour.intent", "lookSpec.breakdown.contour.intent"],
        safety=["Keep contour a shade or two from your skin; harsh contour reads as a stripe."],
        tags=["contour"],
    )


def _blush_matches(ctx: RuleContext) -> bool:
    return _needs_change(ctx, "blush", "intent")


def _build_blush_placement(ctx: RuleContext) -> SkeletonDraft:
    return _skeleton(
        ctx,
        area="blush",
        rule_id="BLUSH_PLACEMENT_ADAPT",
        severity=0.45,
        because=["The reference blush placement differs from your current blush."],
        do_ids=["T_BLUSH_PLACEMENT_MATCH", "T_BLUSH_DIFFUSE_EDGES", "T_BLUSH_BUILD_GRADUAL"],
        why=["Blush placement changes the overall mood more than blush shade does."],
        evidence=["similarityReport.lookDiff.blush.intent", "lookSpec.breakdown.blush.intent"],
        tags=["blush"],
    )


ADJUSTMENT_RULES: tuple[AdjustmentRule, ...] = (
    AdjustmentRule("EYE_LINER_DIRECTION_ADAPT", "eye", 0.4, _liner_direction_adapt_matches, _build_liner_direction_adapt),
    AdjustmentRule("EYE_TIGHTLINE_AND_SMUDGE", "eye", 0.3, _tightline_matches, _build_tightline),
    AdjustmentRule("EYE_LINER_DIRECTION_RETARGET", "eye", 0.35, _liner_retarget_matches, _build_liner_retarget),
    AdjustmentRule("BASE_THIN_LAYERS_TARGET_GLOW", "base", 0.2, _target_glow_matches, _build_target_glow),
    AdjustmentRule("BASE_BUILD_COVERAGE_SPOT", "base", 0.3, _build_coverage_matches, _build_build_coverage),
    AdjustmentRule("BASE_MATTE_TARGETED_SET", "base", 0.25, _matte_set_matches, _build_matte_set),
    AdjustmentRule("LIP_GLOSS_CENTER_GRADIENT", "lip", 0.2, _gloss_center_matches, _build_gloss_center),
    AdjustmentRule("LIP_SOFT_EDGE_BLUR", "lip", 0.3, _soft_edge_matches, _build_soft_edge),
    AdjustmentRule("PREP_SAFE_MINIMAL", "prep", 0.1, _always, _build_prep_safe_minimal),
    AdjustmentRule("BROW_SAFE_MINIMAL", "brow", 0.1, _always, _build_brow_safe_minimal),
    AdjustmentRule("CONTOUR_SOFT_SCULPT", "contour", 0.3, _contour_matches, _build_contour_soft_sculpt),
    AdjustmentRule("BLUSH_PLACEMENT_ADAPT", "blush", 0.2, _blush_matches, _build_blush_placement),
)


# === FALLBACKS ===


def _build_base_fallback(ctx: RuleContext) -> SkeletonDraft:
    return _skeleton(
        ctx,
        area="base",
        rule_id="BASE_FALLBACK_THIN_LAYER",
        severity=0.2,
        because=["A thin base is the safest path to preserve texture and match the reference finish."],
        do_ids=["T_BASE_THIN_LAYER", "T_BASE_SPOT_CONCEAL_ONLY", "T_BASE_SET_TZONE_LIGHT"],
        why=["Thin layers are more forgiving and keep the finish closer to the reference."],
        evidence=["lookSpec.breakdown.base.finish"],
        tags=["fallback"],
    )


def _build_eye_fallback(ctx: RuleContext) -> SkeletonDraft:
    return _skeleton(
        ctx,
        area="eye",
        rule_id="EYE_FALLBACK_SAFE_CONTROL",
        severity=0.2,
        because=["Liner direction strongly affects the eye emphasis, so keep control and stay subtle."],
        do_ids=["T_EYE_LINER_OUTER_THIRD_START", "T_EYE_LINER_THIN_LINE", "T_EYE_WING_SHORTEN"],
        why=["A thin, short wing is forgiving and still aligns with many reference looks."],
        evidence=["lookSpec.breakdown.eye.intent"],
        tags=["fallback"],
    )


def _build_lip_fallback(ctx: RuleContext) -> SkeletonDraft:
    return _skeleton(
        ctx,
        area="lip",
        rule_id="LIP_FALLBACK_FINISH_FOCUS",
        severity=0.2,
        because=["Lip finish (gloss/satin/matte) is the most reliable match when details are uncertain."],
        do_ids=["T_LIP_MATCH_FINISH", "T_LIP_SHADE_CLOSE_FAMILY", "T_LIP_BLOT_ADJUST"],
        why=["Finish carries the lip mood more reliably than precise shape tweaks."],
        evidence=["lookSpec.breakdown.lip.finish"],
        tags=["fallback"],
    )


FALLBACK_RULES: dict[CanonicalArea, AdjustmentRule] = {
    "base": AdjustmentRule("BASE_FALLBACK_THIN_LAYER", "base", 0.1, _always, _build_base_fallback),
    "eye": AdjustmentRule("EYE_FALLBACK_SAFE_CONTROL", "eye", 0.1, _always, _build_eye_fallback),
    "lip": AdjustmentRule("LIP_FALLBACK_FINISH_FOCUS", "lip", 0.1, _always, _build_lip_fallback),
}


# === ACTIVITY PICKS ===

_ACTIVITY_COPY: dict[ImpactArea, tuple[list[str], list[str], list[str]]] = {
    "eye": (
        ["The reference eye look is defined by where the liner is placed."],
        ["One liner technique matched to the reference direction keeps the eye routine focused."],
        ["lookSpec.breakdown.eye.linerDirection.direction", "lookSpec.breakdown.eye.intent"],
    ),
    "base": (
        ["The reference base finish sets the overall skin mood."],
        ["A single base technique matched to the finish keeps the routine short and repeatable."],
        ["lookSpec.breakdown.base.finish", "lookSpec.breakdown.base.coverage"],
    ),
    "lip": (
        ["The reference lip finish carries the lip mood."],
        ["One finish-matched lip technique is easier to repeat than several small tweaks."],
        ["lookSpec.breakdown.lip.finish", "lookSpec.breakdown.lip.intent"],
    ),
    "prep": (
        ["Prep decides how the base sits and how long it lasts."],
        ["Prep matched to your declared skin needs keeps later layers thin."],
        ["userSignals", "lookSpec.breakdown.base.finish"],
    ),
    "contour": (
        ["Contour placement depends on the overall face shape category."],
        ["Placing contour by face shape keeps structure changes soft and believable."],
        ["userFaceProfile.categorical.faceShape", "lookSpec.breakdown.contour.intent"],
    ),
}


def build_activity_skeleton(ctx: RuleContext, area: ImpactArea) -> Optional[SkeletonDraft]:
    rule_id = ACTIVITY_RULE_IDS.get(area)
    copy = _ACTIVITY_COPY.get(area)
    pool = order_activity_pool(ctx, area)
    if not rule_id or not copy or not pool:
        return None
    because, why, evidence = copy
    return _skeleton(
        ctx,
        area=area,
        rule_id=rule_id,
        severity=0.3,
        because=list(because),
        do_ids=pool,
        why=list(why),
        evidence=list(evidence),
        tags=["activity", f"activity:{area}"],
        selection="choose_one",
    )


RULE_TITLES: dict[str, str] = {
    # EYE
    "EYE_LINER_DIRECTION_ADAPT": "Adapt liner direction",
    "EYE_TIGHTLINE_AND_SMUDGE": "Keep liner thin + smudged",
    "EYE_LINER_DIRECTION_RETARGET": "Re-aim liner direction",
    "EYE_FALLBACK_SAFE_CONTROL": "Control liner safely",
    "EYE_LINER_ACTIVITY_PICK": "Pick one liner technique",
    # BASE
    "BASE_THIN_LAYERS_TARGET_GLOW": "Keep base thin + targeted glow",
    "BASE_BUILD_COVERAGE_SPOT": "Build coverage in thin passes",
    "BASE_MATTE_TARGETED_SET": "Set matte only where needed",
    "BASE_FALLBACK_THIN_LAYER": "Keep base thin",
    "BASE_FINISH_ACTIVITY_PICK": "Pick one base technique",
    # LIP
    "LIP_GLOSS_CENTER_GRADIENT": "Add gloss focus at center",
    "LIP_SOFT_EDGE_BLUR": "Soften lip edge",
    "LIP_FALLBACK_FINISH_FOCUS": "Match lip finish",
    "LIP_FINISH_ACTIVITY_PICK": "Pick one lip technique",
    # EXTENDED
    "PREP_SAFE_MINIMAL": "Keep prep simple",
    "PREP_ACTIVITY_PICK": "Pick one prep technique",
    "BROW_SAFE_MINIMAL": "Keep brows natural",
    "CONTOUR_SOFT_SCULPT": "Soft sculpt contour",
    "CONTOUR_ACTIVITY_PICK": "Pick one contour technique",
    "BLUSH_PLACEMENT_ADAPT": "Adapt blush placement",
}
