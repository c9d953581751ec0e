from __future__ import annotations

import math
from typing import Any, Iterable, Mapping, Optional, Sequence, Union

from look_replicator.schemas import Condition, TechniqueCard, TriggerSet

MatchContext = Mapping[str, Any]
ConditionLike = Union[Condition, Mapping[str, Any]]
TriggerSetLike = Union[TriggerSet, Mapping[str, Any], None]

CONTEXT_ROOTS = ("userFaceProfile", "refFaceProfile", "similarityReport", "lookSpec")
DEFAULT_PREFERENCE_MODE = "structure"


def _get_by_path(root: Any, path: str) -> Any:
    cur = root
    for part in (p.strip() for p in path.split(".")):
        if not part:
            continue
        if cur is None:
            return None
        if isinstance(cur, Mapping):
            cur = cur.get(part)
        elif isinstance(cur, (list, tuple)):
            if not part.isdigit() or int(part) >= len(cur):
                return None
            cur = cur[int(part)]
        else:
            cur = getattr(cur, part, None)
    return cur


def resolve_key(context: MatchContext, key: str) -> Any:
    if key == "preferenceMode":
        return str(context.get("preferenceMode") or DEFAULT_PREFERENCE_MODE)
    for root in CONTEXT_ROOTS:
        prefix = f"{root}."
        if key.startswith(prefix):
            return _get_by_path(context.get(root), key[len(prefix) :])
    return None


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _as_number(value: Any) -> Optional[float]:
    if _is_number(value):
        n = float(value)
    elif isinstance(value, str) and value.strip():
        try:
            n = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return n if math.isfinite(n) else None


def _finite(value: Any) -> Optional[float]:
    if not _is_number(value):
        return None
    n = float(value)
    return n if math.isfinite(n) else None


def strict_equal(a: Any, b: Any) -> bool:
    # No cross-type coercion: True != 1 and "1" != 1.
    if a is None or b is None:
        return a is None and b is None
    if isinstance(a, bool) or isinstance(b, bool):
        return isinstance(a, bool) and isinstance(b, bool) and a == b
    if _is_number(a) and _is_number(b):
        return a == b
    if isinstance(a, str) and isinstance(b, str):
        return a == b
    return a is b


def _condition_fields(condition: ConditionLike) -> tuple[str, str, Any, Any, Any]:
    if isinstance(condition, Condition):
        return condition.key, condition.op, condition.value, condition.min_, condition.max_
    return (
        str(condition.get("key") or ""),
        str(condition.get("op") or ""),
        condition.get("value"),
        condition.get("min"),
        condition.get("max"),
    )


def evaluate_condition(context: MatchContext, condition: ConditionLike) -> bool:
    key, op, value, lo, hi = _condition_fields(condition)
    got = resolve_key(context, key)

    if op == "exists":
        return got is not None
    if op in {"lt", "lte", "gt", "gte"}:
        n = _as_number(got)
        v = _as_number(value)
        if n is None or v is None:
            return False
        if op == "lt":
            return n < v
        if op == "lte":
            return n <= v
        if op == "gt":
            return n > v
        return n >= v
    if op == "between":
        n = _as_number(got)
        lo_n = _finite(lo)
        hi_n = _finite(hi)
        if n is None or lo_n is None or hi_n is None:
            return False
        return lo_n <= n <= hi_n
    if op == "eq":
        return strict_equal(got, value)
    if op == "neq":
        return not strict_equal(got, value)
    if op == "in":
        allowed = value if isinstance(value, (list, tuple)) else []
        if isinstance(got, (list, tuple)):
            return any(strict_equal(item, a) for item in got for a in allowed)
        return any(strict_equal(got, a) for a in allowed)
    return False


def _clauses(triggers: TriggerSetLike) -> tuple[Sequence[ConditionLike], Sequence[ConditionLike], Sequence[ConditionLike]]:
    if triggers is None:
        return (), (), ()
    if isinstance(triggers, TriggerSet):
        return triggers.all or (), triggers.any or (), triggers.none or ()
    return triggers.get("all") or (), triggers.get("any") or (), triggers.get("none") or ()


def evaluate_triggers(context: MatchContext, triggers: TriggerSetLike) -> bool:
    all_, any_, none_ = _clauses(triggers)
    if all_ and not all(evaluate_condition(context, c) for c in all_):
        return False
    if any_ and not any(evaluate_condition(context, c) for c in any_):
        return False
    if none_ and any(evaluate_condition(context, c) for c in none_):
        return False
    return True


def match_techniques(context: MatchContext, cards: Iterable[TechniqueCard]) -> list[TechniqueCard]:
    return [card for card in cards if evaluate_triggers(context, card.triggers)]


def explain_triggers(context: MatchContext, triggers: TriggerSetLike) -> dict[str, Any]:
    all_, any_, none_ = _clauses(triggers)

    def _rows(conds: Sequence[ConditionLike]) -> list[dict[str, Any]]:
        rows = []
        for cond in conds:
            key, op, value, _, _ = _condition_fields(cond)
            rows.append(
                {
                    "key": key,
                    "op": op,
                    "value": value,
                    "resolved": resolve_key(context, key),
                    "passed": evaluate_condition(context, cond),
                }
            )
        return rows

    all_rows = _rows(all_)
    any_rows = _rows(any_)
    none_rows = _rows(none_)
    return {
        "matched": evaluate_triggers(context, triggers),
        "all": all_rows,
        "any": any_rows,
        "none": none_rows,
        "failed": [r for r in all_rows if not r["passed"]]
        + ([] if not any_rows or any(r["passed"] for r in any_rows) else any_rows)
        + [r for r in none_rows if r["passed"]],
    }
