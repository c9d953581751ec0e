from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from look_replicator.kb.conditions import MatchContext, evaluate_triggers
from look_replicator.schemas import TechniqueCard


def technique_specificity_score(card: TechniqueCard) -> int:
    triggers = card.triggers
    return 2 * len(triggers.all or []) + len(triggers.any or []) + len(triggers.none or [])


def rank_matched_technique_ids(context: MatchContext, cards: Iterable[TechniqueCard]) -> list[tuple[str, int]]:
    ranked = [
        (card.id, technique_specificity_score(card)) for card in cards if evaluate_triggers(context, card.triggers)
    ]
    # Ties resolve by ascending id, not by declaration order.
    ranked.sort(key=lambda item: (-item[1], item[0]))
    return ranked


@dataclass(frozen=True)
class SelectionResult:
    selected_id: str
    ranked: list[tuple[str, int]] = field(default_factory=list)

    @property
    def matched(self) -> bool:
        return bool(self.ranked)


def select_best_technique_id(
    *,
    context: MatchContext,
    candidates: Iterable[TechniqueCard],
    fallback_id: str,
) -> SelectionResult:
    ranked = rank_matched_technique_ids(context, candidates)
    if not ranked:
        return SelectionResult(selected_id=fallback_id, ranked=[])
    return SelectionResult(selected_id=ranked[0][0], ranked=ranked)
