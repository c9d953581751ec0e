from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

SCHEMA_VERSION = "v0"

ImpactArea = Literal["prep", "base", "contour", "brow", "eye", "blush", "lip"]
CanonicalArea = Literal["base", "eye", "lip"]
Market = Literal["US", "JP"]
PreferenceMode = Literal["structure", "vibe", "ease"]
Confidence = Literal["high", "medium", "low"]
Language = Literal["en", "zh"]
DoActionSelection = Literal["sequence", "choose_one"]
ConditionOp = Literal["lt", "lte", "gt", "gte", "eq", "neq", "in", "between", "exists"]

CANONICAL_AREAS: tuple[CanonicalArea, ...] = ("base", "eye", "lip")
EXTENDED_AREAS: tuple[ImpactArea, ...] = ("prep", "contour", "brow", "blush")


class _CamelModel(BaseModel):
    model_config = ConfigDict(extra="ignore", alias_generator=to_camel, populate_by_name=True)


class _StrictCamelModel(BaseModel):
    model_config = ConfigDict(extra="forbid", alias_generator=to_camel, populate_by_name=True)


# --- Technique cards -------------------------------------------------------


class Condition(_StrictCamelModel):
    key: str = Field(min_length=1)
    op: ConditionOp
    value: Any = None
    min_: Optional[float] = Field(default=None, alias="min")
    max_: Optional[float] = Field(default=None, alias="max")


class TriggerSet(_StrictCamelModel):
    all: Optional[list[Condition]] = None
    any: Optional[list[Condition]] = None
    none: Optional[list[Condition]] = None


class ActionTemplate(_StrictCamelModel):
    title: str = Field(min_length=1)
    steps: list[str] = Field(min_length=1)
    variables: Optional[dict[str, str]] = None


class TechniqueCard(_StrictCamelModel):
    model_config = ConfigDict(extra="forbid", alias_generator=to_camel, populate_by_name=True, frozen=True)

    schema_version: Literal["v0"] = SCHEMA_VERSION
    market: Market
    id: str = Field(min_length=1)
    area: ImpactArea
    difficulty: Literal["easy", "medium", "hard"]
    triggers: TriggerSet = Field(default_factory=TriggerSet)
    action_template: ActionTemplate
    rationale_template: list[str] = Field(min_length=1)
    product_role_hints: Optional[list[str]] = None
    safety_notes: Optional[list[str]] = None
    tags: Optional[list[str]] = None
    source_id: Optional[str] = None


# --- Opaque upstream inputs ------------------------------------------------


class LookSpecArea(_CamelModel):
    intent: str = "unknown"
    finish: str = "unknown"
    coverage: str = "unknown"
    key_notes: list[str] = Field(default_factory=list)
    evidence: list[str] = Field(default_factory=list)


class LinerDirection(_CamelModel):
    direction: Literal["down", "straight", "up", "unknown"] = "unknown"


class LookSpecEye(LookSpecArea):
    liner_direction: Optional[LinerDirection] = None


class LookSpecBreakdown(_CamelModel):
    base: LookSpecArea = Field(default_factory=LookSpecArea)
    eye: LookSpecEye = Field(default_factory=LookSpecEye)
    lip: LookSpecArea = Field(default_factory=LookSpecArea)
    prep: Optional[LookSpecArea] = None
    contour: Optional[LookSpecArea] = None
    brow: Optional[LookSpecArea] = None
    blush: Optional[LookSpecArea] = None


class LookSpec(_CamelModel):
    schema_version: str = SCHEMA_VERSION
    market: Market = "US"
    locale: str = "en"
    look_title: Optional[str] = None
    style_tags: list[str] = Field(default_factory=list)
    breakdown: LookSpecBreakdown
    warnings: list[str] = Field(default_factory=list)


class FaceQuality(_CamelModel):
    valid: bool = False
    score: Optional[float] = None


class FaceGeometry(_CamelModel):
    eye_tilt_deg: Optional[float] = None
    eye_openness_ratio: Optional[float] = None
    lip_fullness_ratio: Optional[float] = None
    face_width_to_height_ratio: Optional[float] = None
    jaw_to_cheek_ratio: Optional[float] = None
    brow_arch_ratio: Optional[float] = None


class FaceCategorical(_CamelModel):
    face_shape: Optional[str] = None
    eye_type: Optional[str] = None
    lip_type: Optional[str] = None


class FaceProfile(_CamelModel):
    quality: FaceQuality = Field(default_factory=FaceQuality)
    geometry: FaceGeometry = Field(default_factory=FaceGeometry)
    categorical: FaceCategorical = Field(default_factory=FaceCategorical)


class TopDelta(_CamelModel):
    key: str
    user_value: Any = None
    ref_value: Any = None
    severity: float = Field(default=0.0, ge=0.0, le=1.0)
    explanation_key: Optional[str] = None
    evidence: list[str] = Field(default_factory=list)


class DiffField(_CamelModel):
    user: Optional[str] = None
    target: Optional[str] = None
    needs_change: bool = False


class EyeLookDiff(_CamelModel):
    liner_direction: Optional[DiffField] = None


class IntentLookDiff(_CamelModel):
    intent: Optional[DiffField] = None


class BaseLookDiff(_CamelModel):
    finish: Optional[DiffField] = None
    coverage: Optional[DiffField] = None


class LipLookDiff(_CamelModel):
    finish: Optional[DiffField] = None


class LookDiff(_CamelModel):
    prep: Optional[IntentLookDiff] = None
    base: Optional[BaseLookDiff] = None
    contour: Optional[IntentLookDiff] = None
    brow: Optional[IntentLookDiff] = None
    eye: Optional[EyeLookDiff] = None
    blush: Optional[IntentLookDiff] = None
    lip: Optional[LipLookDiff] = None


class SimilarityReport(_CamelModel):
    preference_mode: Optional[str] = None
    confidence: Optional[str] = None
    fit_score: Optional[float] = None
    top_deltas: list[TopDelta] = Field(default_factory=list)
    look_diff: Optional[LookDiff] = None


class UserSignals(_CamelModel):
    needs_oil_control: bool = False
    needs_hydration: bool = False
    sensitive_eyes: bool = False
    prefers_minimal: bool = False


def _dump(model: Optional[BaseModel]) -> Optional[dict[str, Any]]:
    if model is None:
        return None
    return model.model_dump(by_alias=True, mode="json")


class RuleContext(_CamelModel):
    market: Market = "US"
    locale: str = "en"
    preference_mode: PreferenceMode = "structure"
    look_spec: LookSpec
    user_face_profile: Optional[FaceProfile] = None
    ref_face_profile: Optional[FaceProfile] = None
    similarity_report: Optional[SimilarityReport] = None
    user_signals: UserSignals = Field(default_factory=UserSignals)
    accept_language: Optional[str] = None
    app_language: Optional[str] = None
    user_language: Optional[str] = None

    def match_context(self) -> dict[str, Any]:
        return {
            "lookSpec": _dump(self.look_spec),
            "userFaceProfile": _dump(self.user_face_profile),
            "refFaceProfile": _dump(self.ref_face_profile),
            "similarityReport": _dump(self.similarity_report),
            "preferenceMode": self.preference_mode,
        }

    def language_signals(self) -> dict[str, Optional[str]]:
        return {
            "locale": self.locale,
            "accept_language": self.accept_language,
            "app_language": self.app_language,
            "user_language": self.user_language,
        }


# --- Skeletons & adjustments ----------------------------------------------


class TechniqueRef(_StrictCamelModel):
    id: str = Field(min_length=1)
    area: ImpactArea


class SkeletonDraft(_StrictCamelModel):
    model_config = ConfigDict(extra="forbid", alias_generator=to_camel, populate_by_name=True, frozen=True)

    schema_version: Literal["v0"] = SCHEMA_VERSION
    market: Market
    impact_area: ImpactArea
    rule_id: str = Field(min_length=1)
    severity: float = Field(ge=0.0, le=1.0)
    confidence: Confidence
    because_facts: list[str] = Field(min_length=1)
    do_action_selection: DoActionSelection = "sequence"
    do_action_ids: list[str] = Field(default_factory=list)
    why_mechanism: list[str] = Field(min_length=1)
    evidence_keys: list[str] = Field(min_length=1)
    safety_notes: Optional[list[str]] = None
    tags: Optional[list[str]] = None

    @model_validator(mode="after")
    def _choose_one_requires_candidates(self) -> "SkeletonDraft":
        if self.do_action_selection == "choose_one" and not self.do_action_ids:
            raise ValueError("doActionIds must be non-empty when doActionSelection=choose_one")
        return self

    @property
    def is_activity(self) -> bool:
        return "activity" in (self.tags or [])


class RenderedSkeleton(SkeletonDraft):
    do_actions: list[str] = Field(min_length=1)
    technique_refs: Optional[list[TechniqueRef]] = None


class RenderedAdjustment(_StrictCamelModel):
    impact_area: ImpactArea
    rule_id: str = Field(min_length=1)
    title: str = Field(min_length=1)
    because: str = Field(min_length=1)
    do_: str = Field(min_length=1, alias="do")
    why: str = Field(min_length=1)
    confidence: Confidence
    evidence: list[str] = Field(min_length=1)
    technique_refs: Optional[list[TechniqueRef]] = None


class RephrasedAdjustment(RenderedAdjustment):
    impact_area: CanonicalArea


class RephraseOutput(_StrictCamelModel):
    adjustments: list[RephrasedAdjustment] = Field(min_length=3, max_length=3)


class PersonalizationResult(_CamelModel):
    adjustments: list[RenderedAdjustment]
    extended_adjustments: list[RenderedAdjustment] = Field(default_factory=list)
    skeletons: list[RenderedSkeleton] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    used_fallback: bool = False
