from __future__ import annotations

import os
from pathlib import Path
import sys
import unittest
from unittest.mock import patch

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from look_replicator.config import EngineConfig
from look_replicator.kb.loader import TechniqueKBCache
from look_replicator.personalization.pipeline import personalize_look
from look_replicator.personalization.rephrase import render_adjustment_from_skeleton
from look_replicator.schemas import RuleContext


def _ctx(**overrides) -> RuleContext:
    payload = {
        "market": "US",
        "locale": "en",
        "preferenceMode": "structure",
        "lookSpec": {
            "lookTitle": "Soft glam",
            "breakdown": {
                "base": {"intent": "fresh", "finish": "matte", "coverage": "full"},
                "eye": {"intent": "cat liner", "finish": "sharp", "linerDirection": {"direction": "up"}},
                "lip": {"intent": "soft blurred", "finish": "matte"},
                "contour": {"intent": "sculpted"},
            },
        },
        "userFaceProfile": {
            "quality": {"valid": True, "score": 91},
            "geometry": {"eyeTiltDeg": 3.0, "eyeOpennessRatio": 0.3, "lipFullnessRatio": 0.4},
            "categorical": {"faceShape": "oblong"},
        },
        "refFaceProfile": {"quality": {"valid": True, "score": 85}, "geometry": {"eyeTiltDeg": 9.0}},
        "similarityReport": {
            "topDeltas": [{"key": "geometry.eyeTiltDeg", "severity": 0.55, "evidence": ["eye tilt"]}],
            "lookDiff": {"contour": {"intent": {"user": "none", "target": "sculpted", "needsChange": True}}},
        },
    }
    payload.update(overrides)
    return RuleContext.model_validate(payload)


class RejectingProvider:
    async def analyze_text_to_json(self, *, prompt, schema):
        payload = {
            "adjustments": [
                {
                    "impactArea": area,
                    "ruleId": "WRONG",
                    "title": "Copy the celebrity look",
                    "because": "It is what a famous singer wears.",
                    "do": "Apply it.",
                    "why": "Because.",
                    "confidence": "low",
                    "evidence": ["lookSpec.breakdown.base.finish"],
                }
                for area in ("base", "eye", "lip")
            ]
        }
        return schema.model_validate(payload)


class TestPersonalizeLook(unittest.IsolatedAsyncioTestCase):
    @classmethod
    def setUpClass(cls) -> None:
        cls.cache = TechniqueKBCache()

    async def _run(self, ctx: RuleContext, config: EngineConfig, provider=None):
        kb = self.cache.get(ctx.market, include_starter=config.enable_starter_kb)
        with patch.dict(os.environ, {}, clear=True):
            return await personalize_look(ctx, config=config, kb=kb, provider=provider)

    async def test_exactly_three_adjustments_for_every_mode(self) -> None:
        for mode in ("structure", "vibe", "ease"):
            result = await self._run(_ctx(preferenceMode=mode), EngineConfig())
            self.assertEqual([a.impact_area for a in result.adjustments], ["base", "eye", "lip"], mode)
            self.assertTrue(result.used_fallback)
            self.assertIn("LLM config missing: using deterministic adjustment renderer.", result.warnings)
            for adjustment, skeleton in zip(result.adjustments, result.skeletons[:3]):
                self.assertTrue(set(adjustment.evidence) <= set(skeleton.evidence_keys))
                self.assertEqual(adjustment.rule_id, skeleton.rule_id)

    async def test_mode_changes_rule_choice(self) -> None:
        structure = await self._run(_ctx(), EngineConfig())
        ease = await self._run(_ctx(preferenceMode="ease"), EngineConfig())
        self.assertEqual(structure.adjustments[0].rule_id, "BASE_BUILD_COVERAGE_SPOT")
        self.assertEqual(ease.adjustments[0].rule_id, "BASE_MATTE_TARGETED_SET")
        self.assertEqual(structure.adjustments[1].rule_id, "EYE_LINER_DIRECTION_ADAPT")
        self.assertEqual(ease.adjustments[1].rule_id, "EYE_TIGHTLINE_AND_SMUDGE")

    async def test_rejected_llm_output_matches_deterministic_render(self) -> None:
        result = await self._run(_ctx(), EngineConfig(), provider=RejectingProvider())
        expected = [render_adjustment_from_skeleton(s) for s in result.skeletons[:3]]
        self.assertEqual(result.adjustments, expected)
        self.assertTrue(any(w.startswith("LLM output rejected (identity_language)") for w in result.warnings))

    async def test_extended_and_activity_adjustments(self) -> None:
        config = EngineConfig(
            enable_extended_areas=True,
            activity_slots=frozenset({"eye", "contour"}),
            enable_trigger_matching=True,
        )
        result = await self._run(_ctx(), config)

        self.assertEqual(len(result.adjustments), 3)
        extended_rules = [a.rule_id for a in result.extended_adjustments]
        self.assertEqual(
            extended_rules,
            ["PREP_SAFE_MINIMAL", "CONTOUR_SOFT_SCULPT", "BROW_SAFE_MINIMAL", "EYE_LINER_ACTIVITY_PICK", "CONTOUR_ACTIVITY_PICK"],
        )
        contour_pick = next(s for s in result.skeletons if s.rule_id == "CONTOUR_ACTIVITY_PICK")
        self.assertEqual([ref.id for ref in contour_pick.technique_refs], ["T_STARTER_CONTOUR_SOFT_HORIZONTAL-en"])

    async def test_jp_market_uses_jp_cards(self) -> None:
        result = await self._run(_ctx(market="JP", locale="ja-JP"), EngineConfig())
        base = result.skeletons[0]
        self.assertEqual(base.market, "JP")
        self.assertEqual(base.technique_refs[0].id, "T_BASE_BUILD_COVERAGE_THIN_PASSES")
        self.assertEqual(base.do_actions[0], "薄く重ねてカバー力を上げ、毎回なじませる。")

    async def test_market_mismatch_raises(self) -> None:
        kb = self.cache.get("JP", include_starter=False)
        with self.assertRaises(ValueError):
            await personalize_look(_ctx(), config=EngineConfig(), kb=kb, provider=RejectingProvider())


if __name__ == "__main__":
    unittest.main()
