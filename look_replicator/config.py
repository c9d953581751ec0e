from __future__ import annotations

import os
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from look_replicator.schemas import ImpactArea

_TRUTHY = {"1", "true", "yes", "y"}
_FALSY = {"0", "false", "no", "n"}

ACTIVITY_SLOT_AREAS: tuple[ImpactArea, ...] = ("eye", "base", "lip", "prep", "contour")


def _env_flag(name: str, default: bool = False) -> bool:
    raw = (os.getenv(name) or "").strip().lower()
    if raw in _TRUTHY:
        return True
    if raw in _FALSY:
        return False
    return default


def deployment_environment() -> Optional[str]:
    for key in ("APP_ENV", "RAILWAY_ENVIRONMENT_NAME", "ENVIRONMENT"):
        value = (os.getenv(key) or "").strip()
        if value:
            return value
    return None


def is_production_mode() -> bool:
    return (deployment_environment() or "").lower() in {"production", "prod"}


class EngineConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    enable_starter_kb: bool = True
    enable_extended_areas: bool = False
    activity_slots: frozenset[ImpactArea] = Field(default_factory=frozenset)
    enable_trigger_matching: bool = False
    trigger_match_debug: bool = False

    @classmethod
    def from_env(cls) -> "EngineConfig":
        slots = frozenset(
            area for area in ACTIVITY_SLOT_AREAS if _env_flag(f"LAYER2_ENABLE_{area.upper()}_ACTIVITY_SLOT")
        )
        return cls(
            enable_starter_kb=_env_flag("ENABLE_STARTER_KB", default=not is_production_mode()),
            enable_extended_areas=_env_flag("LAYER2_ENABLE_EXTENDED_AREAS"),
            activity_slots=slots,
            enable_trigger_matching=_env_flag("LAYER2_ENABLE_TRIGGER_MATCHING"),
            trigger_match_debug=_env_flag("LAYER2_TRIGGER_MATCH_DEBUG"),
        )

    def activity_slot_enabled(self, area: ImpactArea) -> bool:
        return area in self.activity_slots

    def summary(self) -> dict[str, object]:
        return {
            "enable_starter_kb": self.enable_starter_kb,
            "enable_extended_areas": self.enable_extended_areas,
            "activity_slots": sorted(self.activity_slots),
            "enable_trigger_matching": self.enable_trigger_matching,
            "trigger_match_debug": self.trigger_match_debug,
        }
