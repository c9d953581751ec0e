from __future__ import annotations

from dataclasses import dataclass, field
import re
from typing import Any, Optional, Sequence

from look_replicator.kb.loader import TechniqueKB, strip_language_suffix
from look_replicator.schemas import Condition, Language, TechniqueCard

_ZH_TAGS = {"zh", "cn", "chs", "cht", "zh_hans", "zh_hant"}
_EN_TAGS = {"en"}


def _language_from_tag(raw: Optional[str]) -> Optional[Language]:
    tag = (raw or "").strip().lower().replace("_", "-")
    if not tag:
        return None
    primary = tag.split("-", 1)[0]
    if primary in _ZH_TAGS or tag.replace("-", "_") in _ZH_TAGS:
        return "zh"
    if primary in _EN_TAGS:
        return "en"
    return None


def parse_accept_language(header: Optional[str]) -> list[str]:
    entries: list[tuple[float, int, str]] = []
    for idx, part in enumerate((header or "").split(",")):
        pieces = [p.strip() for p in part.split(";")]
        tag = pieces[0]
        if not tag or tag == "*":
            continue
        q = 1.0
        for param in pieces[1:]:
            if param.lower().startswith("q="):
                try:
                    q = float(param[2:])
                except ValueError:
                    q = 0.0
        if q <= 0:
            continue
        entries.append((-q, idx, tag))
    return [tag for _, _, tag in sorted(entries)]


def infer_language(
    *,
    user_language: Optional[str] = None,
    app_language: Optional[str] = None,
    locale: Optional[str] = None,
    accept_language: Optional[str] = None,
) -> Language:
    for signal in (user_language, app_language, locale):
        lang = _language_from_tag(signal)
        if lang:
            return lang
    for tag in parse_accept_language(accept_language):
        lang = _language_from_tag(tag)
        if lang:
            return lang
    return "en"


def candidate_ids_for(card_id: str, language: Language) -> list[str]:
    base = strip_language_suffix(card_id)
    lowered = card_id.lower()
    if lowered.endswith("-zh"):
        if language == "en":
            return [f"{base}-en", card_id, base]
        return [card_id, f"{base}-en", base]
    if lowered.endswith("-en"):
        if language == "zh":
            return [f"{base}-zh", card_id, base]
        return [card_id, base]
    if language == "zh":
        return [f"{base}-zh", f"{base}-en", base]
    return [f"{base}-en", f"{base}-zh", base]


def _language_condition_passes(language: Language, cond: Condition) -> bool:
    if cond.op == "exists":
        return bool(language)
    if cond.op == "eq":
        return cond.value == language
    if cond.op == "neq":
        return cond.value != language
    if cond.op == "in":
        values: Any = cond.value if isinstance(cond.value, (list, tuple)) else []
        return language in values
    return False


def card_allows_language(card: TechniqueCard, language: Language) -> bool:
    def _mode_conds(conds: Optional[Sequence[Condition]]) -> list[Condition]:
        return [c for c in conds or () if c.key == "preferenceMode"]

    all_ = _mode_conds(card.triggers.all)
    any_ = _mode_conds(card.triggers.any)
    none_ = _mode_conds(card.triggers.none)
    if not (all_ or any_ or none_):
        return True
    if all_ and not all(_language_condition_passes(language, c) for c in all_):
        return False
    if any_ and not any(_language_condition_passes(language, c) for c in any_):
        return False
    if none_ and any(_language_condition_passes(language, c) for c in none_):
        return False
    return True


@dataclass(frozen=True)
class ResolvedCard:
    inferred_language: Language
    used_fallback_language: bool
    resolved_id: Optional[str]
    tried_ids: list[str] = field(default_factory=list)
    card: Optional[TechniqueCard] = None


_EN_SUFFIX = re.compile(r"-en$", re.IGNORECASE)
_ZH_SUFFIX = re.compile(r"-zh$", re.IGNORECASE)


def resolve_technique_card_for_language(
    card_id: str,
    kb: TechniqueKB,
    *,
    locale: Optional[str] = None,
    accept_language: Optional[str] = None,
    app_language: Optional[str] = None,
    user_language: Optional[str] = None,
) -> ResolvedCard:
    language = infer_language(
        user_language=user_language,
        app_language=app_language,
        locale=locale,
        accept_language=accept_language,
    )
    tried = candidate_ids_for(card_id, language)
    candidates = [kb.by_id[cid] for cid in tried if cid in kb.by_id]

    primary = next((c for c in candidates if card_allows_language(c, language)), None)
    if primary is not None:
        crossed = (language == "zh" and bool(_EN_SUFFIX.search(primary.id))) or (
            language == "en" and bool(_ZH_SUFFIX.search(primary.id))
        )
        return ResolvedCard(language, crossed, primary.id, tried, primary)

    if language == "zh":
        fallback = next((c for c in candidates if card_allows_language(c, "en")), None)
        if fallback is not None:
            return ResolvedCard(language, True, fallback.id, tried, fallback)

    return ResolvedCard(language, False, None, tried, None)
