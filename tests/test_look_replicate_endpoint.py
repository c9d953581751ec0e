from __future__ import annotations

import json
from pathlib import Path
import sys
import unittest

from fastapi.testclient import TestClient

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from look_replicator.config import EngineConfig
from look_replicator.kb.loader import TechniqueKBCache
from look_replicator.llm.provider import LLM_REQUEST_FAILED, LlmError
from look_replicator.main import create_app
from look_replicator.personalization.rephrase import render_adjustment_from_skeleton
from look_replicator.schemas import RenderedSkeleton


class EchoProvider:
    """Returns the deterministic copy with a friendlier title, so validation passes."""

    def __init__(self) -> None:
        self.calls = 0

    async def analyze_text_to_json(self, *, prompt, schema):
        self.calls += 1
        payload = json.loads(prompt.split("INPUT_JSON:\n", 1)[1])
        adjustments = []
        for raw in payload["skeletons"]:
            skeleton = RenderedSkeleton.model_validate(raw)
            item = render_adjustment_from_skeleton(skeleton).model_dump(by_alias=True, mode="json")
            item["title"] = f"Quick {skeleton.impact_area} tweak"
            adjustments.append(item)
        return schema.model_validate({"adjustments": adjustments})


class FailingProvider:
    async def analyze_text_to_json(self, *, prompt, schema):
        raise LlmError(LLM_REQUEST_FAILED, "status=502 body=bad gateway")


BODY = {
    "market": "US",
    "locale": "en-US",
    "preferenceMode": "structure",
    "lookSpec": {
        "breakdown": {
            "base": {"finish": "dewy"},
            "eye": {"intent": "liner", "linerDirection": {"direction": "straight"}},
            "lip": {"finish": "gloss"},
        }
    },
}


class TestLookReplicateEndpoint(unittest.TestCase):
    def _client(self, provider=None, config: EngineConfig | None = None) -> TestClient:
        app = create_app(config=config or EngineConfig(), kb_cache=TechniqueKBCache(), provider=provider)
        return TestClient(app)

    def test_accepted_rephrase(self) -> None:
        provider = EchoProvider()
        with self._client(provider) as client:
            res = client.post("/v1/look-replicate/adjustments", json=BODY)

        self.assertEqual(res.status_code, 200)
        data = res.json()
        self.assertEqual(provider.calls, 1)
        self.assertFalse(data["usedFallback"])
        self.assertEqual(data["warnings"], [])
        self.assertEqual([a["impactArea"] for a in data["adjustments"]], ["base", "eye", "lip"])
        self.assertEqual(data["adjustments"][0]["title"], "Quick base tweak")
        self.assertIn("do", data["adjustments"][0])
        self.assertEqual(data["extendedAdjustments"], [])
        self.assertEqual(data["skeletons"][0]["techniqueRefs"][0]["id"], "T_BASE_HYDRATE_PREP-en")

    def test_llm_failure_returns_deterministic_copy(self) -> None:
        with self._client(FailingProvider()) as client:
            res = client.post("/v1/look-replicate/adjustments", json=BODY)

        self.assertEqual(res.status_code, 200)
        data = res.json()
        self.assertTrue(data["usedFallback"])
        self.assertEqual(data["warnings"], ["LLM failed (LLM_REQUEST_FAILED): status=502 body=bad gateway"])
        self.assertEqual(data["adjustments"][2]["ruleId"], "LIP_GLOSS_CENTER_GRADIENT")
        self.assertEqual(data["adjustments"][2]["title"], "Add gloss focus at center")

    def test_accept_language_header_routes_to_zh_cards(self) -> None:
        body = dict(BODY, locale="fr-FR")
        with self._client(FailingProvider()) as client:
            res = client.post(
                "/v1/look-replicate/adjustments",
                json=body,
                headers={"Accept-Language": "zh-CN,zh;q=0.9,en;q=0.5"},
            )

        self.assertEqual(res.status_code, 200)
        refs = res.json()["skeletons"][0]["techniqueRefs"]
        self.assertTrue(all(ref["id"].endswith("-zh") for ref in refs))

    def test_app_language_header(self) -> None:
        with self._client(FailingProvider()) as client:
            res = client.post(
                "/v1/look-replicate/adjustments", json=dict(BODY, locale=""), headers={"X-Aurora-Lang": "zh"}
            )
        self.assertEqual(res.json()["skeletons"][1]["techniqueRefs"][0]["id"], "T_EYE_LINER_OUTER_THIRD_START-zh")

    def test_extended_areas_flag(self) -> None:
        with self._client(FailingProvider(), EngineConfig(enable_extended_areas=True)) as client:
            res = client.post("/v1/look-replicate/adjustments", json=BODY)
        rules = [a["ruleId"] for a in res.json()["extendedAdjustments"]]
        self.assertEqual(rules, ["PREP_SAFE_MINIMAL", "BROW_SAFE_MINIMAL"])

    def test_invalid_body_is_rejected(self) -> None:
        with self._client() as client:
            missing_look = client.post("/v1/look-replicate/adjustments", json={"market": "US"})
            bad_market = client.post("/v1/look-replicate/adjustments", json=dict(BODY, market="FR"))
            bad_mode = client.post("/v1/look-replicate/adjustments", json=dict(BODY, preferenceMode="bold"))

        self.assertEqual(missing_look.status_code, 422)
        self.assertEqual(bad_market.status_code, 422)
        self.assertEqual(bad_mode.status_code, 422)


class TestHealthz(unittest.TestCase):
    def test_healthz_reports_engine_and_kb(self) -> None:
        config = EngineConfig(enable_starter_kb=False, activity_slots=frozenset({"lip", "eye"}))
        app = create_app(config=config, kb_cache=TechniqueKBCache())
        with TestClient(app) as client:
            res = client.get("/healthz")

        self.assertEqual(res.status_code, 200)
        data = res.json()
        self.assertTrue(data["ok"])
        self.assertEqual(data["service"], "pivota-look-replicator")
        self.assertEqual(data["engine"]["activity_slots"], ["eye", "lip"])
        self.assertFalse(data["engine"]["enable_starter_kb"])
        self.assertEqual(data["kb_loaded"], ["JP:canonical", "US:canonical"])


if __name__ == "__main__":
    unittest.main()
