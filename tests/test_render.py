from __future__ import annotations

import logging
from pathlib import Path
import sys
import unittest

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from look_replicator.config import EngineConfig
from look_replicator.kb.loader import TechniqueKB, load_technique_kb
from look_replicator.personalization.render import (
    FALLBACK_STEPS,
    render_skeletons_from_kb,
    render_template_step,
)
from look_replicator.personalization.run_rules import run_adjustment_rules
from look_replicator.schemas import RuleContext, SkeletonDraft, TechniqueCard


def _ctx(**overrides) -> RuleContext:
    payload = {
        "market": "US",
        "locale": "en",
        "preferenceMode": "structure",
        "lookSpec": {
            "breakdown": {
                "base": {"finish": "dewy"},
                "eye": {"intent": "liner", "linerDirection": {"direction": "up"}},
                "lip": {"finish": "gloss"},
            }
        },
        "userFaceProfile": {
            "quality": {"valid": True, "score": 90},
            "geometry": {"eyeTiltDeg": 1.0, "eyeOpennessRatio": 0.4, "lipFullnessRatio": 0.25},
        },
        "refFaceProfile": {"quality": {"valid": True, "score": 90}, "geometry": {"eyeTiltDeg": 7.0}},
    }
    payload.update(overrides)
    return RuleContext.model_validate(payload)


def _draft(area: str, ids: list[str], *, selection: str = "sequence", rule_id: str | None = None, **extra) -> SkeletonDraft:
    return SkeletonDraft(
        market=extra.pop("market", "US"),
        impact_area=area,
        rule_id=rule_id or f"{area.upper()}_TEST_RULE",
        severity=0.5,
        confidence="medium",
        because_facts=["Rule fact."],
        do_action_selection=selection,
        do_action_ids=ids,
        why_mechanism=["Rule mechanism."],
        evidence_keys=[f"lookSpec.breakdown.{area}.finish"],
        **extra,
    )


def _card(card_id: str, area: str, steps: list[str], *, market: str = "US", triggers: dict | None = None) -> TechniqueCard:
    return TechniqueCard.model_validate(
        {
            "market": market,
            "id": card_id,
            "area": area,
            "difficulty": "easy",
            "triggers": triggers or {},
            "actionTemplate": {"title": card_id, "steps": steps},
            "rationaleTemplate": ["Card rationale."],
        }
    )


class TestRenderWithShippedKB(unittest.TestCase):
    def setUp(self) -> None:
        self.kb = load_technique_kb("US", include_starter=True)

    def test_sequence_fans_out_every_card(self) -> None:
        ctx = _ctx()
        drafts = run_adjustment_rules(ctx, config=EngineConfig())
        result = render_skeletons_from_kb(drafts, self.kb, ctx, config=EngineConfig())

        self.assertEqual(result.warnings, [])
        self.assertFalse(result.used_fallback)
        base, eye, lip = result.skeletons
        self.assertEqual((base.impact_area, eye.impact_area, lip.impact_area), ("base", "eye", "lip"))
        self.assertEqual(base.rule_id, "BASE_THIN_LAYERS_TARGET_GLOW")
        self.assertEqual(base.do_actions[0], "Hydrate skin with a light moisturizer before base.")
        self.assertEqual(len(base.technique_refs), len(drafts[0].do_action_ids))
        self.assertTrue(all(ref.id.endswith("-en") for ref in base.technique_refs))
        self.assertIn("role:moisturizer", base.tags)
        self.assertEqual(base.because_facts, drafts[0].because_facts)

    def test_placeholders_use_area_defaults(self) -> None:
        ctx = _ctx()
        drafts = run_adjustment_rules(ctx, config=EngineConfig())
        eye = render_skeletons_from_kb(drafts, self.kb, ctx, config=EngineConfig()).skeletons[1]
        self.assertEqual(eye.rule_id, "EYE_LINER_DIRECTION_ADAPT")
        self.assertIn("Draw the wing and angle slightly more horizontal.", eye.do_actions)
        self.assertFalse(any("{{" in step for step in eye.do_actions))

    def test_zh_locale_localizes_steps_and_rationale(self) -> None:
        ctx = _ctx(locale="zh-CN")
        drafts = run_adjustment_rules(ctx, config=EngineConfig())
        result = render_skeletons_from_kb(drafts, self.kb, ctx, config=EngineConfig())
        base = result.skeletons[0]

        self.assertEqual(result.warnings, [])
        self.assertTrue(all(ref.id.endswith("-zh") for ref in base.technique_refs))
        self.assertEqual(base.do_actions[0], "上底妆前先用轻薄的保湿产品打底。")
        self.assertEqual(base.because_facts[0], "皮肤水润时，薄底妆更容易服帖而不卡纹。")
        self.assertEqual(base.why_mechanism[0], "妆前准备决定了光泽感能有多自然。")
        self.assertEqual(result.skeletons[1].do_actions[0], "从上睫毛根部的外三分之一处开始画眼线。")
        self.assertIn("画眼尾时角度稍微放平一些。", result.skeletons[1].do_actions)

    def test_activity_skeleton_kept_out_of_canonical_three(self) -> None:
        ctx = _ctx()
        config = EngineConfig(activity_slots=frozenset({"eye"}))
        result = render_skeletons_from_kb(run_adjustment_rules(ctx, config=config), self.kb, ctx, config=config)
        self.assertEqual(result.skeletons[1].rule_id, "EYE_LINER_DIRECTION_ADAPT")
        activity = [s for s in result.all_skeletons if s.is_activity]
        self.assertEqual(len(activity), 1)
        self.assertEqual([ref.id for ref in activity[0].technique_refs], ["US_eye_liner_winged_western_01-en"])

    def test_trigger_matching_picks_activity_card_for_look(self) -> None:
        ctx = _ctx(lookSpec={"breakdown": {"base": {"finish": "matte"}, "lip": {"finish": "satin"}}})
        config = EngineConfig(activity_slots=frozenset({"base", "lip"}), enable_trigger_matching=True)
        result = render_skeletons_from_kb(run_adjustment_rules(ctx, config=config), self.kb, ctx, config=config)
        picks = {s.impact_area: s.technique_refs[0].id for s in result.all_skeletons if s.is_activity}
        self.assertEqual(picks, {"base": "US_base_matte_soft_focus_01-en", "lip": "US_lip_satin_defined_01-en"})

    def test_starter_overlay_off_uses_safe_steps(self) -> None:
        kb = load_technique_kb("US", include_starter=False)
        ctx = _ctx()
        config = EngineConfig(enable_starter_kb=False, enable_extended_areas=True, activity_slots=frozenset({"prep"}))
        result = render_skeletons_from_kb(run_adjustment_rules(ctx, config=config), kb, ctx, config=config)
        prep_pick = next(s for s in result.all_skeletons if s.rule_id == "PREP_ACTIVITY_PICK")
        self.assertTrue(result.used_fallback)
        self.assertEqual(prep_pick.do_actions, FALLBACK_STEPS["prep"])
        self.assertTrue(any(w.startswith("Missing technique card: T_STARTER_PREP_") for w in result.warnings))


class TestRenderWithCustomKB(unittest.TestCase):
    def setUp(self) -> None:
        self.kb = TechniqueKB.from_cards(
            "US",
            [
                _card("T_BASE_OK", "base", ["Apply a thin base."]),
                _card("T_EYE_OK", "eye", ["Keep the line thin."]),
                _card(
                    "cardA",
                    "lip",
                    ["Gloss the center."],
                    triggers={"all": [{"key": "lookSpec.breakdown.lip.finish", "op": "eq", "value": "gloss"}]},
                ),
                _card(
                    "cardB",
                    "lip",
                    ["Match the finish."],
                    triggers={"any": [{"key": "lookSpec.breakdown.lip.finish", "op": "exists"}]},
                ),
                _card("T_WRONG_MARKET", "eye", ["Draw a wing."], market="JP"),
                _card("T_LIP_CARD", "lip", ["Blot the lips."]),
            ],
        )
        self.ctx = _ctx()

    def _render(self, lip: SkeletonDraft, *, eye: SkeletonDraft | None = None, config: EngineConfig | None = None):
        drafts = [_draft("base", ["T_BASE_OK"]), eye or _draft("eye", ["T_EYE_OK"]), lip]
        return render_skeletons_from_kb(drafts, self.kb, self.ctx, config=config or EngineConfig())

    def test_choose_one_without_matching_takes_first_id(self) -> None:
        result = self._render(_draft("lip", ["cardB", "cardA"], selection="choose_one"))
        self.assertEqual(result.skeletons[2].do_actions, ["Match the finish."])

    def test_choose_one_with_matching_takes_most_specific(self) -> None:
        config = EngineConfig(enable_trigger_matching=True)
        result = self._render(_draft("lip", ["cardB", "cardA"], selection="choose_one"), config=config)
        lip = result.skeletons[2]
        self.assertEqual(lip.do_actions, ["Gloss the center."])
        self.assertEqual([ref.id for ref in lip.technique_refs], ["cardA"])

    def test_choose_one_with_no_match_uses_first_id(self) -> None:
        self.ctx = _ctx(lookSpec={"breakdown": {}})
        config = EngineConfig(enable_trigger_matching=True)
        result = self._render(_draft("lip", ["cardA", "T_LIP_CARD"], selection="choose_one"), config=config)
        # T_LIP_CARD has no triggers, so it matches even when cardA does not.
        self.assertEqual(result.skeletons[2].do_actions, ["Blot the lips."])

    def test_trigger_match_debug_logs_explanations(self) -> None:
        config = EngineConfig(enable_trigger_matching=True, trigger_match_debug=True)
        with self.assertLogs("pivota-look-replicator.render", level=logging.INFO) as logs:
            self._render(_draft("lip", ["cardB", "cardA"], selection="choose_one"), config=config)
        self.assertTrue(any("trigger_match area=lip" in line and "selected=cardA" in line for line in logs.output))
        self.assertTrue(any("trigger_match_explain card=cardB" in line for line in logs.output))

    def test_missing_card_warns_and_falls_back(self) -> None:
        result = self._render(_draft("lip", ["T_NOPE"]))
        lip = result.skeletons[2]
        self.assertTrue(result.used_fallback)
        self.assertEqual(lip.do_actions, FALLBACK_STEPS["lip"])
        self.assertIsNone(lip.technique_refs)
        self.assertIn("Missing technique card: T_NOPE (area=lip). Tried: T_NOPE-en, T_NOPE-zh, T_NOPE", result.warnings)
        self.assertIn("No rendered doActions for lip: using safe fallback steps.", result.warnings)

    def test_partial_miss_keeps_resolved_steps(self) -> None:
        result = self._render(_draft("lip", ["T_NOPE", "T_LIP_CARD"]))
        self.assertEqual(result.skeletons[2].do_actions, ["Blot the lips."])
        self.assertTrue(result.used_fallback)
        self.assertEqual(len(result.warnings), 1)

    def test_market_and_area_mismatch_are_skipped(self) -> None:
        eye = _draft("eye", ["T_WRONG_MARKET", "T_LIP_CARD", "T_EYE_OK"])
        result = self._render(_draft("lip", ["T_LIP_CARD"]), eye=eye)
        self.assertEqual(result.skeletons[1].do_actions, ["Keep the line thin."])
        self.assertIn("Technique card T_WRONG_MARKET market mismatch (expected US, got JP).", result.warnings)
        self.assertIn("Technique card T_LIP_CARD area mismatch (expected eye, got lip).", result.warnings)
        self.assertTrue(result.used_fallback)

    def test_duplicate_steps_are_collapsed(self) -> None:
        result = self._render(_draft("lip", ["T_LIP_CARD", "T_LIP_CARD"]))
        self.assertEqual(result.skeletons[2].do_actions, ["Blot the lips."])

    def test_missing_canonical_area_raises(self) -> None:
        drafts = [_draft("base", ["T_BASE_OK"]), _draft("eye", ["T_EYE_OK"])]
        with self.assertRaises(ValueError):
            render_skeletons_from_kb(drafts, self.kb, self.ctx, config=EngineConfig())


class TestRenderTemplateStep(unittest.TestCase):
    def test_unknown_placeholders_render_empty(self) -> None:
        self.assertEqual(render_template_step("Angle {{ hint }} now", {"hint": "flatter"}), "Angle flatter now")
        self.assertEqual(render_template_step("Angle {{missing}}", {}), "Angle ")


if __name__ == "__main__":
    unittest.main()
