"""
Graph Builder - Deriving Encompassing Edges from Course Content

Edges come from:
1. Lesson -> earlier lessons of the same book (weight decays with distance)
2. Lesson -> lessons of earlier books (weak, fixed weight)
3. Lesson -> its own vocabulary and grammar items (weight 1.0)
4. Items of one lesson <-> each other (weak, both directions)
5. Manual overrides, applied last and never filtered by min_weight

Co-occurrence analysis over exercises is available as an extra edge source.
"""

from __future__ import annotations
import logging
from collections import Counter, defaultdict
from dataclasses import dataclass, field
from typing import Iterable, Optional, Protocol, Sequence

from pydantic import BaseModel, ConfigDict, Field

from studycore.fire.graph import DependencyGraph, Edge, EdgeSpec


logger = logging.getLogger(__name__)


class LessonForGraph(BaseModel):
    """Minimal lesson data needed for graph construction."""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    book: int = Field(..., description="Book number (1-based)")
    lesson: int = Field(..., description="Lesson number within the book")
    vocabulary: list[str] = Field(default_factory=list)
    grammar_points: list[str] = Field(default_factory=list, alias="grammarPoints")

    @property
    def item_ids(self) -> list[str]:
        return [*self.vocabulary, *self.grammar_points]


class HasItemIds(Protocol):
    item_ids: list[str]


@dataclass(frozen=True)
class BuildGraphOptions:
    include_lesson_encompassing: bool = True
    adjacent_lesson_weight: float = 0.5   # Divided by lesson distance
    min_weight: float = 0.05
    same_lesson_item_weight: float = 0.3
    cross_book_weight: float = 0.2
    lesson_item_weight: float = 1.0
    manual_overrides: tuple[EdgeSpec, ...] = field(default_factory=tuple)


DEFAULT_BUILD_OPTIONS = BuildGraphOptions()


def build_encompassing_graph(
    lessons: Iterable[LessonForGraph],
    options: BuildGraphOptions = DEFAULT_BUILD_OPTIONS
) -> DependencyGraph:
    """
    Build the dependency graph for a course.

    Args:
        lessons: Lessons with their items
        options: Edge weights and overrides

    Returns:
        DependencyGraph
    """
    lessons = list(lessons)
    graph = DependencyGraph()

    lessons_by_book: dict[int, list[LessonForGraph]] = defaultdict(list)
    for lesson in lessons:
        lessons_by_book[lesson.book].append(lesson)
    for book_lessons in lessons_by_book.values():
        book_lessons.sort(key=lambda lesson: lesson.lesson)

    if options.include_lesson_encompassing:
        for book, book_lessons in lessons_by_book.items():
            for i, current in enumerate(book_lessons):
                for j in range(i):
                    weight = options.adjacent_lesson_weight / (i - j)
                    graph.add_edge(current.id, book_lessons[j].id, weight, options.min_weight)

            for earlier_book, earlier_lessons in lessons_by_book.items():
                if earlier_book >= book:
                    continue
                for current in book_lessons:
                    for earlier in earlier_lessons:
                        graph.add_edge(current.id, earlier.id, options.cross_book_weight, options.min_weight)

    for lesson in lessons:
        items = lesson.item_ids

        for item_id in items:
            graph.add_edge(lesson.id, item_id, options.lesson_item_weight, options.min_weight)

        for i, first in enumerate(items):
            for second in items[i + 1:]:
                graph.add_edge(first, second, options.same_lesson_item_weight, options.min_weight)
                graph.add_edge(second, first, options.same_lesson_item_weight, options.min_weight)

    for source, target, weight in options.manual_overrides:
        graph.add_edge(source, target, weight, min_weight=0.0)

    stats = graph.stats()
    logger.info(
        "Built dependency graph from %d lessons: %d nodes, %d edges",
        len(lessons), stats["node_count"], stats["edge_count"]
    )
    return graph


# ---- Exercise-Level Edges ----

def get_exercise_encompasses(exercise: HasItemIds) -> list[Edge]:
    """An exercise fully encompasses every item it references."""
    return [Edge(item_id, 1.0) for item_id in exercise.item_ids]


def build_exercise_encompassing(exercises: Iterable) -> dict[str, list[Edge]]:
    """Map of exercise id -> weight-1.0 edges to its items."""
    return {exercise.id: get_exercise_encompasses(exercise) for exercise in exercises}


# ---- Co-occurrence ----

def analyze_co_occurrence(exercises: Iterable[HasItemIds]) -> Counter:
    """
    Count how often each unordered pair of items appears in the same exercise.

    Returns:
        Counter keyed by sorted (item_a, item_b) tuples
    """
    counts: Counter = Counter()
    for exercise in exercises:
        items = exercise.item_ids
        for i, first in enumerate(items):
            for second in items[i + 1:]:
                if first != second:
                    counts[tuple(sorted((first, second)))] += 1
    return counts


def co_occurrence_to_edges(
    counts: Counter,
    max_count: int = 10,
    min_weight: float = 0.1
) -> list[EdgeSpec]:
    """
    Turn co-occurrence counts into bidirectional edges.

    weight = min(1, count / max_count); pairs below min_weight are dropped.
    """
    edges = []
    for (first, second), count in counts.items():
        weight = min(1.0, count / max_count)
        if weight >= min_weight:
            edges.append(EdgeSpec(first, second, weight))
            edges.append(EdgeSpec(second, first, weight))
    return edges


def build_co_occurrence_graph(
    exercises: Sequence[HasItemIds],
    max_count: int = 10,
    min_weight: float = 0.1,
    base: Optional[DependencyGraph] = None
) -> DependencyGraph:
    """Co-occurrence edges as a graph, optionally added onto a copy of base."""
    graph = DependencyGraph.from_edges(base.iter_edges()) if base is not None else DependencyGraph()
    for source, target, weight in co_occurrence_to_edges(analyze_co_occurrence(exercises), max_count, min_weight):
        graph.add_edge(source, target, weight, min_weight=0.0)
    return graph
