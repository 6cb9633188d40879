"""Session builder modules for practice sessions."""

from studycore.session_builders.pool_types import (
    CategorizedExercises,
    Exercise,
    MasteryRecord,
)
from studycore.session_builders.pool_utils import (
    avoid_consecutive_same_type,
    fisher_yates_shuffle,
)
from studycore.session_builders.practice_builder import (
    build_fire_practice_session,
    build_practice_session,
    calculate_exercise_reach,
    categorize_by_fire,
    categorize_by_strength,
    get_due_items_from_exercise,
    rank_exercises_by_reach,
)

__all__ = [
    "CategorizedExercises",
    "Exercise",
    "MasteryRecord",
    "avoid_consecutive_same_type",
    "fisher_yates_shuffle",
    "build_fire_practice_session",
    "build_practice_session",
    "calculate_exercise_reach",
    "categorize_by_fire",
    "categorize_by_strength",
    "get_due_items_from_exercise",
    "rank_exercises_by_reach",
]
