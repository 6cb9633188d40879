"""
Practice Builder - Interleaved Exercise Sessions

Creates practice sessions from three buckets:
1. Weak: exercises whose items are barely known
2. Learning: everything in between
3. Mastered: exercises whose items are well established

Session Logic:
- Target WEAK_RATIO weak, MASTERED_RATIO mastered, the rest learning
- Top up from any remaining exercise when a bucket runs short
- Shuffle, then reorder so no type appears three times in a row

The FIRe variant first reserves slots for exercises covering the due items
chosen by repetition compression, then fills the rest the same way.
"""

from __future__ import annotations
import logging
import random
from datetime import datetime, timezone
from typing import Iterable, Mapping, Optional, Sequence

from studycore.fire.compression import select_optimal_reviews
from studycore.fire.config import DEFAULT_ENGINE_CONFIG, EngineConfig
from studycore.fire.graph import DependencyGraph
from studycore.fire.memory_state import get_decayed_memory, is_due
from studycore.session_builders.pool_types import CategorizedExercises, Exercise, MasteryRecord
from studycore.session_builders.pool_utils import (
    avoid_consecutive_same_type,
    fill_up,
    fisher_yates_shuffle,
    take_by_ratio,
)


logger = logging.getLogger(__name__)

# ---- Session Configuration ----
WEAK_THRESHOLD = 40         # Average strength below this is weak
MASTERED_THRESHOLD = 80     # Average strength at or above this is mastered
WEAK_RATIO = 0.4            # Fraction of session from weak exercises
MASTERED_RATIO = 0.2        # Fraction of session from mastered exercises

FIRE_WEAK_REPETITION = 1.0        # Average repetition level below this is weak
FIRE_MASTERED_REPETITION = 3.0    # Mastered needs this average level...
FIRE_MASTERED_MEMORY = 0.5        # ...and this average decayed memory


def _mastery_map(mastery: Iterable[MasteryRecord]) -> dict[str, MasteryRecord]:
    return {record.item_id: record for record in mastery}


def _exercise_strength(exercise: Exercise, mastery_map: Mapping[str, MasteryRecord]) -> float:
    if not exercise.item_ids:
        return 0.0
    total = sum(
        mastery_map[item_id].strength if item_id in mastery_map else 0.0
        for item_id in exercise.item_ids
    )
    return total / len(exercise.item_ids)


def categorize_by_strength(
    exercises: Iterable[Exercise],
    mastery: Iterable[MasteryRecord]
) -> CategorizedExercises:
    """
    Bucket exercises by the average legacy strength of their items.

    Items without a record count as strength 0.
    """
    mastery_map = _mastery_map(mastery)
    result = CategorizedExercises()

    for exercise in exercises:
        strength = _exercise_strength(exercise, mastery_map)
        if strength < WEAK_THRESHOLD:
            result.add(exercise, "weak")
        elif strength >= MASTERED_THRESHOLD:
            result.add(exercise, "mastered")
        else:
            result.add(exercise, "learning")

    return result


def _exercise_averages(
    exercise: Exercise,
    mastery_map: Mapping[str, MasteryRecord],
    now: datetime
) -> tuple[float, float]:
    """Average repetition level and decayed memory (items without state count 0)."""
    if not exercise.item_ids:
        return 0.0, 0.0

    total_level = 0.0
    total_memory = 0.0
    for item_id in exercise.item_ids:
        record = mastery_map.get(item_id)
        if record is None or record.state is None:
            continue
        total_level += record.state.repetition_level
        total_memory += get_decayed_memory(record.state, now)

    count = len(exercise.item_ids)
    return total_level / count, total_memory / count


def categorize_by_fire(
    exercises: Iterable[Exercise],
    mastery: Iterable[MasteryRecord],
    now: Optional[datetime] = None
) -> CategorizedExercises:
    """
    Bucket exercises by the FIRe state of their items.

    - weak: average repetition level < 1
    - mastered: average repetition level >= 3 and average decayed memory >= 0.5
    - learning: everything else
    """
    now = now or datetime.now(timezone.utc)
    mastery_map = _mastery_map(mastery)
    result = CategorizedExercises()

    for exercise in exercises:
        avg_level, avg_memory = _exercise_averages(exercise, mastery_map, now)
        if avg_level < FIRE_WEAK_REPETITION:
            result.add(exercise, "weak")
        elif avg_level >= FIRE_MASTERED_REPETITION and avg_memory >= FIRE_MASTERED_MEMORY:
            result.add(exercise, "mastered")
        else:
            result.add(exercise, "learning")

    return result


def build_practice_session(
    exercises: Sequence[Exercise],
    mastery: Iterable[MasteryRecord],
    count: int,
    rng: Optional[random.Random] = None
) -> list[Exercise]:
    """
    Build an interleaved practice session from legacy strength data.

    Args:
        exercises: Candidate exercises
        mastery: Per-item mastery records
        count: Requested session size
        rng: Random source (injectable for reproducible sessions)

    Returns:
        Up to min(count, len(exercises)) exercises, anti-clustered by type
    """
    if not exercises or count <= 0:
        return []

    rng = rng or random.Random()
    categorized = categorize_by_strength(exercises, mastery)

    selected = take_by_ratio(categorized, count, WEAK_RATIO, MASTERED_RATIO, rng)
    fill_up(selected, fisher_yates_shuffle(exercises, rng), count)

    session = avoid_consecutive_same_type(fisher_yates_shuffle(selected, rng))
    return session[:min(count, len(exercises))]


def build_fire_practice_session(
    exercises: Sequence[Exercise],
    mastery: Sequence[MasteryRecord],
    count: int,
    graph: Optional[DependencyGraph] = None,
    config: EngineConfig = DEFAULT_ENGINE_CONFIG,
    rng: Optional[random.Random] = None,
    now: Optional[datetime] = None
) -> list[Exercise]:
    """
    Build a practice session that covers due items first.

    Steps:
    1. Collect due items from the mastery records
    2. Prioritize them: repetition compression with a graph, lowest decayed
       memory first without one
    3. For each priority item, take the first unselected exercise
       containing it
    4. Fill remaining slots by FIRe bucket ratios, then from anything left
    5. Shuffle and anti-cluster

    Args:
        exercises: Candidate exercises
        mastery: Per-item mastery records (with FIRe state)
        count: Requested session size
        graph: Dependency graph for repetition compression (optional)
        config: Engine configuration
        rng: Random source
        now: Evaluation time

    Returns:
        Up to min(count, len(exercises)) exercises
    """
    if not exercises or count <= 0:
        return []

    rng = rng or random.Random()
    now = now or datetime.now(timezone.utc)

    due_items = [
        record.item_id for record in mastery
        if record.state is not None and is_due(record.state, config, now)
    ]

    if graph is not None and due_items:
        priority_items = select_optimal_reviews(due_items, graph, count, config)
    else:
        states = {record.item_id: record.state for record in mastery if record.state is not None}
        priority_items = sorted(due_items, key=lambda item_id: get_decayed_memory(states[item_id], now))

    selected: list[Exercise] = []
    selected_ids: set[str] = set()

    for item_id in priority_items:
        if len(selected) >= count:
            break
        for exercise in exercises:
            if exercise.id not in selected_ids and item_id in exercise.item_ids:
                selected.append(exercise)
                selected_ids.add(exercise.id)
                break

    priority_count = len(selected)

    if len(selected) < count:
        remaining = [exercise for exercise in exercises if exercise.id not in selected_ids]
        categorized = categorize_by_fire(remaining, mastery, now)
        additional = take_by_ratio(categorized, count - len(selected), WEAK_RATIO, MASTERED_RATIO, rng)
        fill_up(selected, additional, count, selected_ids)
        fill_up(selected, fisher_yates_shuffle(remaining, rng), count, selected_ids)

    logger.debug(
        "FIRe session: %d due items, %d priority exercises, %d total",
        len(due_items), priority_count, len(selected)
    )

    session = avoid_consecutive_same_type(fisher_yates_shuffle(selected, rng))
    return session[:min(count, len(exercises))]


def get_due_items_from_exercise(
    exercise: Exercise,
    mastery_map: Mapping[str, MasteryRecord],
    config: EngineConfig = DEFAULT_ENGINE_CONFIG,
    now: Optional[datetime] = None
) -> list[str]:
    """Item ids of the exercise that are due for review."""
    now = now or datetime.now(timezone.utc)
    due = []
    for item_id in exercise.item_ids:
        record = mastery_map.get(item_id)
        if record is not None and record.state is not None and is_due(record.state, config, now):
            due.append(item_id)
    return due


def calculate_exercise_reach(
    exercise: Exercise,
    graph: DependencyGraph,
    due_items: set[str],
    config: EngineConfig = DEFAULT_ENGINE_CONFIG
) -> float:
    """
    How much due work an exercise covers.

    Each due item of the exercise counts 1; each due item one knockout edge
    away counts its edge weight.
    """
    reach = 0.0
    for item_id in exercise.item_ids:
        if item_id in due_items:
            reach += 1
        for target, weight in graph.edges_from(item_id):
            if weight >= config.knockout_weight_threshold and target in due_items:
                reach += weight
    return reach


def rank_exercises_by_reach(
    exercises: Iterable[Exercise],
    graph: DependencyGraph,
    due_items: set[str],
    config: EngineConfig = DEFAULT_ENGINE_CONFIG
) -> list[Exercise]:
    """Exercises sorted by reach, highest first (stable)."""
    return sorted(
        exercises,
        key=lambda exercise: calculate_exercise_reach(exercise, graph, due_items, config),
        reverse=True,
    )
