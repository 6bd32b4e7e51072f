"""Candidate selection strategies — deterministic, no randomness, no I/O."""

from __future__ import annotations

from dataclasses import dataclass

from lead_routing.domain.entities.fairness import FairnessState
from lead_routing.domain.value_objects.enums import RuleType


@dataclass(frozen=True)
class Selection:
    user_id: str
    index: int  # position in the pool, persisted as the round-robin cursor


def pick_round_robin(pool: list[str], state: FairnessState, cap: int = 0) -> Selection | None:
    """Advance the cursor modulo len(pool), skipping capped candidates.

    Starts one past ``state.last_assigned_index``; returns None when every
    candidate is at cap or the pool is empty.
    """
    if not pool:
        return None
    start = (state.last_assigned_index + 1) % len(pool)
    for offset in range(len(pool)):
        index = (start + offset) % len(pool)
        user_id = pool[index]
        if not state.is_capped(user_id, cap):
            return Selection(user_id=user_id, index=index)
    return None


def pick_least_loaded(pool: list[str], state: FairnessState, cap: int = 0) -> Selection | None:
    """Minimum assignment count wins; ties go to the earlier pool position."""
    best: Selection | None = None
    best_count = 0
    for index, user_id in enumerate(pool):
        if state.is_capped(user_id, cap):
            continue
        count = state.count_for(user_id)
        if best is None or count < best_count:
            best, best_count = Selection(user_id=user_id, index=index), count
    return best


def pick_weighted(
    pool: list[str],
    state: FairnessState,
    cap: int = 0,
    weights: dict[str, int] | None = None,
) -> Selection | None:
    """Lowest count/weight wins. Missing weight = 1, weight <= 0 excludes."""
    weights = weights or {}
    best: Selection | None = None
    best_score = 0.0
    for index, user_id in enumerate(pool):
        weight = weights.get(user_id, 1)
        if weight <= 0 or state.is_capped(user_id, cap):
            continue
        score = state.count_for(user_id) / weight
        if best is None or score < best_score:
            best, best_score = Selection(user_id=user_id, index=index), score
    return best


def pick_first_eligible(pool: list[str], state: FairnessState, cap: int = 0) -> Selection | None:
    for index, user_id in enumerate(pool):
        if not state.is_capped(user_id, cap):
            return Selection(user_id=user_id, index=index)
    return None


def pick_next(
    strategy: RuleType,
    pool: list[str],
    state: FairnessState,
    cap: int = 0,
    weights: dict[str, int] | None = None,
) -> Selection | None:
    if strategy == RuleType.ROUND_ROBIN:
        return pick_round_robin(pool, state, cap)
    if strategy == RuleType.LOAD_BALANCED:
        return pick_least_loaded(pool, state, cap)
    if strategy == RuleType.WEIGHTED:
        return pick_weighted(pool, state, cap, weights)
    # manual / territory without a sub-strategy
    return pick_first_eligible(pool, state, cap)
