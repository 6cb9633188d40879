"""
Pool utilities for session builders.

These helpers provide shared, minimal primitives for sampling, shuffling and
ordering exercise pools without enforcing a single scheduling policy.
"""

from __future__ import annotations
import random
from collections import Counter
from typing import Iterable, Optional, Sequence, TypeVar

from studycore.fire.memory_state import round_half_up
from studycore.session_builders.pool_types import CategorizedExercises, Exercise


T = TypeVar("T")

# ---- Anti-clustering scores ----
TRIPLE_PENALTY = -1000      # Would make three of a type in a row
DIFFERENT_TYPE_BONUS = 10   # Differs from the previous exercise
SECOND_SLOT_BONUS = 5       # Differs from the only exercise placed so far


def fisher_yates_shuffle(items: Iterable[T], rng: Optional[random.Random] = None) -> list[T]:
    """
    Return a uniformly shuffled copy (Fisher-Yates). The input is untouched.
    """
    rng = rng or random.Random()
    result = list(items)
    for i in range(len(result) - 1, 0, -1):
        j = rng.randint(0, i)
        result[i], result[j] = result[j], result[i]
    return result


def _placement_score(candidate: Exercise, placed: list[Exercise]) -> int:
    if len(placed) >= 2:
        last, second_last = placed[-1], placed[-2]
        if last.type == second_last.type and candidate.type == last.type:
            return TRIPLE_PENALTY
        if candidate.type != last.type:
            return DIFFERENT_TYPE_BONUS
        return 0
    if len(placed) == 1 and candidate.type != placed[0].type:
        return SECOND_SLOT_BONUS
    return 0


def avoid_consecutive_same_type(exercises: Sequence[Exercise]) -> list[Exercise]:
    """
    Greedily reorder so that no three consecutive exercises share a type.

    Each step appends the best-scoring remaining candidate. Equal scores
    prefer the type with the most exercises still remaining (so the dominant
    type is spread out early), then input order. The abundance step
    is an intentional addition to plain first-highest-score order.
    """
    if len(exercises) <= 2:
        return list(exercises)

    placed: list[Exercise] = []
    remaining = list(exercises)
    remaining_by_type = Counter(exercise.type for exercise in remaining)

    while remaining:
        best_index = 0
        best_key = None
        for index, candidate in enumerate(remaining):
            key = (_placement_score(candidate, placed), remaining_by_type[candidate.type])
            if best_key is None or key > best_key:
                best_key = key
                best_index = index

        chosen = remaining.pop(best_index)
        remaining_by_type[chosen.type] -= 1
        placed.append(chosen)

    return placed


def split_counts(count: int, weak_ratio: float, mastered_ratio: float) -> tuple[int, int, int]:
    """
    Split a slot count into (weak, learning, mastered) targets.

    Weak and mastered targets are rounded half up; learning gets the rest.
    """
    weak = round_half_up(count * weak_ratio)
    mastered = round_half_up(count * mastered_ratio)
    return weak, max(0, count - weak - mastered), mastered


def take_by_ratio(
    categorized: CategorizedExercises,
    count: int,
    weak_ratio: float,
    mastered_ratio: float,
    rng: Optional[random.Random] = None
) -> list[Exercise]:
    """
    Sample up to the target count from each bucket (each bucket shuffled).
    """
    weak_count, learning_count, mastered_count = split_counts(count, weak_ratio, mastered_ratio)
    return [
        *fisher_yates_shuffle(categorized.weak, rng)[:weak_count],
        *fisher_yates_shuffle(categorized.learning, rng)[:learning_count],
        *fisher_yates_shuffle(categorized.mastered, rng)[:mastered_count],
    ]


def fill_up(
    selected: list[Exercise],
    candidates: Iterable[Exercise],
    target_size: int,
    selected_ids: Optional[set[str]] = None
) -> list[Exercise]:
    """
    Append candidates not yet selected until target_size is reached.

    Mutates and returns selected; selected_ids is kept in sync when given.
    """
    if selected_ids is None:
        selected_ids = {exercise.id for exercise in selected}
    for exercise in candidates:
        if len(selected) >= target_size:
            break
        if exercise.id not in selected_ids:
            selected.append(exercise)
            selected_ids.add(exercise.id)
    return selected
