"""Shared fixtures for the studycore test suite."""

from datetime import datetime, timedelta, timezone

import pytest

from studycore.fire.graph import DependencyGraph
from studycore.fire.memory_state import ItemMemoryState
from studycore.session_builders.pool_types import Exercise


NOW = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def make_state():
    """Factory: make_state(level, memory, days_ago=0, speed=1.0)."""
    def _make(repetition_level=0.0, memory=0.0, days_ago=0.0, learning_speed=1.0):
        return ItemMemoryState(
            repetition_level=repetition_level,
            memory=memory,
            last_event_time=NOW - timedelta(days=days_ago),
            learning_speed=learning_speed,
        )
    return _make


@pytest.fixture
def chain_graph():
    """A -> B -> C, all weight 1.0."""
    return DependencyGraph.from_edges([("A", "B", 1.0), ("B", "C", 1.0)])


@pytest.fixture
def cycle_graph():
    """A and B encompass each other."""
    return DependencyGraph.from_edges([("A", "B", 1.0), ("B", "A", 1.0)])


@pytest.fixture
def knockout_graph():
    """A encompasses B (1.0) and C (0.8)."""
    return DependencyGraph.from_edges([("A", "B", 1.0), ("A", "C", 0.8)])


@pytest.fixture
def make_exercise():
    def _make(exercise_id, exercise_type, item_ids, lesson_id="lesson-1"):
        return Exercise(id=exercise_id, lesson_id=lesson_id, type=exercise_type, item_ids=list(item_ids))
    return _make
