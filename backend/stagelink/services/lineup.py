"""Performer lineup ordering.

Support acts occupy a dense 1..k sequence and the headliner, when present,
always sits at k+1. Every function returns a new list and leaves its input
untouched.
"""

from __future__ import annotations

from typing import Any, Iterable, List, Mapping

from ..schemas.contract import HEADLINER, SUPPORT
from ..utils.errors import NotFoundError, ValidationError


def _as_dict(performer: Any) -> dict:
    if hasattr(performer, "model_dump"):
        return performer.model_dump(mode="json")
    if isinstance(performer, Mapping):
        return dict(performer)
    raise ValidationError("Invalid performer", {"performer": "must be an object"})


def is_headliner(performer: Mapping) -> bool:
    role = performer.get("role")
    if role:
        return role == HEADLINER
    return performer.get("name") == HEADLINER


def _order_key(indexed: tuple[int, dict]) -> tuple[int, int]:
    index, performer = indexed
    order = performer.get("performance_order")
    return (order if isinstance(order, int) and order > 0 else 10**9, index)


def normalize_lineup(lineup: Iterable[Any]) -> List[dict]:
    """Renumber support acts 1..k by current order and pin the headliner to k+1."""
    performers = [_as_dict(p) for p in lineup]
    seen: set = set()
    for p in performers:
        pid = p.get("id")
        if pid is None or pid == "":
            raise ValidationError("Performer is missing an id", {"id": "required"})
        if pid in seen:
            raise ValidationError("Duplicate performer id", {"id": str(pid)})
        seen.add(pid)

    headliners = [p for p in performers if is_headliner(p)]
    if len(headliners) > 1:
        raise ValidationError("A lineup can only have one headliner", {"role": "duplicate_headliner"})

    support = [p for p in performers if not is_headliner(p)]
    ordered = [p for _, p in sorted(enumerate(support), key=_order_key)]
    for position, performer in enumerate(ordered, start=1):
        performer["performance_order"] = position
        performer["role"] = SUPPORT
    if headliners:
        headliner = headliners[0]
        headliner["role"] = HEADLINER
        headliner["performance_order"] = len(ordered) + 1
        ordered.append(headliner)
    return ordered


def _find(lineup: List[dict], performer_id: str) -> dict:
    for performer in lineup:
        if performer.get("id") == performer_id:
            return performer
    raise NotFoundError("Performer not found", {"performer_id": str(performer_id)})


def add_performer(lineup: Iterable[Any], performer: Any) -> List[dict]:
    """Append a performer as the last support act (or as the headliner)."""
    current = normalize_lineup(lineup)
    new = _as_dict(performer)
    if any(p.get("id") == new.get("id") for p in current):
        raise ValidationError("Duplicate performer id", {"id": str(new.get("id"))})
    # After every existing support act; normalize re-pins the headliner
    new["performance_order"] = sum(1 for p in current if not is_headliner(p)) + 1
    return normalize_lineup(current + [new])


def remove_performer(lineup: Iterable[Any], performer_id: str) -> List[dict]:
    current = normalize_lineup(lineup)
    target = _find(current, performer_id)
    if is_headliner(target):
        raise ValidationError("The headliner cannot be removed", {"performer_id": "headliner"})
    return normalize_lineup([p for p in current if p is not target])


def reorder(lineup: Iterable[Any], performer_id: str, new_order: int) -> List[dict]:
    """Move one support act to ``new_order``, shifting the acts in between.

    The target is clamped to 1..k. Moving the headliner is a no-op because
    its position is always derived from the support count.
    """
    current = normalize_lineup(lineup)
    target = _find(current, performer_id)
    if is_headliner(target):
        return current
    support = [p for p in current if not is_headliner(p)]
    new_pos = max(1, min(int(new_order), len(support)))
    old_pos = target["performance_order"]
    if new_pos < old_pos:
        for p in support:
            if new_pos <= p["performance_order"] < old_pos:
                p["performance_order"] += 1
    elif new_pos > old_pos:
        for p in support:
            if old_pos < p["performance_order"] <= new_pos:
                p["performance_order"] -= 1
    target["performance_order"] = new_pos
    return normalize_lineup(current)
