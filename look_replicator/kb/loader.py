from __future__ import annotations

from dataclasses import dataclass, field
import json
import logging
from pathlib import Path
import re
from typing import Iterable, Iterator, Mapping, Optional, Union

from pydantic import ValidationError

from look_replicator.schemas import Market, TechniqueCard

logger = logging.getLogger("pivota-look-replicator.kb")

DEFAULT_DATA_ROOT = Path(__file__).resolve().parent / "data"

_LANG_SUFFIX_RE = re.compile(r"-(en|zh)$", re.IGNORECASE)


class TechniqueKBError(RuntimeError):
    def __init__(self, message: str, *, market: str, path: Optional[Union[str, Path]] = None) -> None:
        super().__init__(message)
        self.market = market
        self.path = str(path) if path is not None else None


@dataclass(frozen=True)
class TechniqueKB:
    market: Market
    include_starter: bool
    by_id: Mapping[str, TechniqueCard]
    cards: tuple[TechniqueCard, ...] = field(default_factory=tuple)
    starter_ids: frozenset[str] = field(default_factory=frozenset)

    @classmethod
    def from_cards(cls, market: Market, cards: Iterable[TechniqueCard]) -> "TechniqueKB":
        ordered = tuple(cards)
        by_id: dict[str, TechniqueCard] = {}
        for card in ordered:
            if card.id in by_id:
                raise TechniqueKBError(f"Duplicate technique id {card.id}", market=market)
            by_id[card.id] = card
        return cls(market=market, include_starter=False, by_id=by_id, cards=ordered)

    def get(self, card_id: str) -> Optional[TechniqueCard]:
        return self.by_id.get(card_id)

    def __contains__(self, card_id: object) -> bool:
        return card_id in self.by_id

    def __len__(self) -> int:
        return len(self.cards)


def _iter_card_files(directory: Path) -> Iterator[Path]:
    yield from sorted(p for p in directory.rglob("*.json") if p.is_file())


def _read_cards(directory: Path, market: Market) -> Iterator[tuple[Path, TechniqueCard]]:
    for path in _iter_card_files(directory):
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise TechniqueKBError(f"Failed to read technique card file {path}: {exc}", market=market, path=path) from exc

        items = raw if isinstance(raw, list) else [raw]
        for idx, item in enumerate(items):
            try:
                card = TechniqueCard.model_validate(item)
            except ValidationError as exc:
                raise TechniqueKBError(
                    f"Invalid technique card at {path}[{idx}]: {exc.error_count()} error(s)\n{exc}",
                    market=market,
                    path=path,
                ) from exc
            if card.market != market:
                raise TechniqueKBError(
                    f"Technique card {card.id} in {path} declares market={card.market}, expected {market}",
                    market=market,
                    path=path,
                )
            yield path, card


def load_technique_kb(
    market: Market,
    *,
    include_starter: bool,
    data_root: Optional[Union[str, Path]] = None,
) -> TechniqueKB:
    root = Path(data_root) if data_root is not None else DEFAULT_DATA_ROOT
    market_dir = root / market.lower()
    canonical_dir = market_dir / "techniques"
    if not canonical_dir.is_dir():
        raise TechniqueKBError(f"Missing technique directory {canonical_dir}", market=market, path=canonical_dir)

    by_id: dict[str, TechniqueCard] = {}
    ordered: list[TechniqueCard] = []
    for path, card in _read_cards(canonical_dir, market):
        if card.id in by_id:
            raise TechniqueKBError(f"Duplicate technique id {card.id} in {path}", market=market, path=path)
        by_id[card.id] = card
        ordered.append(card)
    canonical_count = len(ordered)

    starter_ids: set[str] = set()
    starter_dir = market_dir / "starter"
    if include_starter and starter_dir.is_dir():
        seen: set[str] = set()
        for path, card in _read_cards(starter_dir, market):
            if card.id in seen:
                raise TechniqueKBError(f"Duplicate starter technique id {card.id} in {path}", market=market, path=path)
            seen.add(card.id)
            if card.id in by_id:
                logger.debug("technique_kb_starter_shadowed market=%s id=%s", market, card.id)
                continue
            by_id[card.id] = card
            ordered.append(card)
            starter_ids.add(card.id)

    logger.info(
        "technique_kb_loaded market=%s include_starter=%s canonical=%d starter=%d",
        market,
        include_starter,
        canonical_count,
        len(starter_ids),
    )
    return TechniqueKB(
        market=market,
        include_starter=include_starter,
        by_id=by_id,
        cards=tuple(ordered),
        starter_ids=frozenset(starter_ids),
    )


class TechniqueKBCache:
    """Per-(market, include_starter) KB handle, loaded on first use and never invalidated."""

    def __init__(self, *, data_root: Optional[Union[str, Path]] = None) -> None:
        self._data_root = data_root
        self._entries: dict[tuple[str, bool], TechniqueKB] = {}

    def get(self, market: Market, *, include_starter: bool) -> TechniqueKB:
        key = (market, bool(include_starter))
        kb = self._entries.get(key)
        if kb is None:
            kb = load_technique_kb(market, include_starter=bool(include_starter), data_root=self._data_root)
            self._entries[key] = kb
        return kb

    def loaded_keys(self) -> list[tuple[str, bool]]:
        return sorted(self._entries)


def strip_language_suffix(card_id: str) -> str:
    return _LANG_SUFFIX_RE.sub("", card_id or "")


def check_bilingual_pairs(kb: TechniqueKB) -> list[str]:
    unpaired: list[str] = []
    for card_id in kb.by_id:
        match = _LANG_SUFFIX_RE.search(card_id)
        if not match:
            continue
        other = "zh" if match.group(1).lower() == "en" else "en"
        if f"{strip_language_suffix(card_id)}-{other}" not in kb.by_id:
            unpaired.append(card_id)
    return sorted(unpaired)


DEFAULT_KB_CACHE = TechniqueKBCache()
