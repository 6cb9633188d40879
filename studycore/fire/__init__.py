"""
FIRe - Fractional Implicit Repetition

Main API for the item memory engine.

This module implements spaced repetition over a dependency graph with:
- Per-item memory state (repetition level, memory, learning speed)
- Half-life decay where the half-life equals the expected interval
- Implicit credit flowing down and penalty flowing up the graph
- Repetition compression: reviews that knock out other due items
- Learning-speed calibration from unexpected outcomes

Quick start:
    from studycore import fire

    # Build the graph once per course
    graph = fire.build_encompassing_graph(lessons)

    # Process a review (pure, returns a new map)
    states, event_data = fire.process_review(states, "word-1", passed=True, graph=graph)

    # Pick today's reviews
    due = fire.get_due_items(states)
    reviews = fire.select_optimal_reviews(due, graph, max_reviews=10)
"""

# Core scheduler API
from studycore.fire.scheduler import get_due_items, process_exercise_review, process_review

# Configuration
from studycore.fire.config import (
    DEFAULT_ENGINE_CONFIG,
    EngineConfig,
    load_engine_config,
)

# Memory state
from studycore.fire.memory_state import (
    ItemMemoryState,
    clamp_state,
    create_item_state,
    estimate_retention,
    get_days_overdue,
    get_days_since_event,
    get_days_until_due,
    get_decayed_memory,
    get_interval,
    is_challenge_candidate,
    is_due,
    simple_to_quality,
)

# State updates and propagation
from studycore.fire.updates import apply_implicit_credit, apply_implicit_penalty, update_state
from studycore.fire.propagation import flow_credit_down, flow_penalty_up

# Graph
from studycore.fire.graph import (
    DependencyGraph,
    Edge,
    EdgeSpec,
    calculate_reach,
    find_high_reach_items,
    get_all_encompassed,
    get_encompassing_items,
    merge_graphs,
)
from studycore.fire.graph_builder import (
    BuildGraphOptions,
    LessonForGraph,
    analyze_co_occurrence,
    build_encompassing_graph,
    build_exercise_encompassing,
    co_occurrence_to_edges,
)

# Selection and calibration
from studycore.fire.compression import get_knockouts, select_optimal_reviews, sort_by_review_priority
from studycore.fire.calibration import (
    RepetitionResult,
    apply_calibration,
    calibrate_learning_speed,
    expected_to_pass,
)

# Validation and migration (upgrade tooling)
from studycore.fire.validation import validate_state
from studycore.fire.migration import (
    estimate_sm2_from_state,
    migrate_all,
    migrate_mastery_record,
    migrate_sm2_to_state,
    migrate_strength_to_sm2,
    migrate_strength_to_state,
    needs_migration,
)


__all__ = [
    # Core algorithm
    "process_review",
    "process_exercise_review",
    "get_due_items",

    # Configuration
    "EngineConfig",
    "DEFAULT_ENGINE_CONFIG",
    "load_engine_config",

    # Memory state
    "ItemMemoryState",
    "clamp_state",
    "create_item_state",
    "estimate_retention",
    "get_days_overdue",
    "get_days_since_event",
    "get_days_until_due",
    "get_decayed_memory",
    "get_interval",
    "is_challenge_candidate",
    "is_due",
    "simple_to_quality",

    # Updates and propagation
    "update_state",
    "apply_implicit_credit",
    "apply_implicit_penalty",
    "flow_credit_down",
    "flow_penalty_up",

    # Graph
    "DependencyGraph",
    "Edge",
    "EdgeSpec",
    "calculate_reach",
    "find_high_reach_items",
    "get_all_encompassed",
    "get_encompassing_items",
    "merge_graphs",
    "BuildGraphOptions",
    "LessonForGraph",
    "analyze_co_occurrence",
    "build_encompassing_graph",
    "build_exercise_encompassing",
    "co_occurrence_to_edges",

    # Selection and calibration
    "get_knockouts",
    "select_optimal_reviews",
    "sort_by_review_priority",
    "RepetitionResult",
    "apply_calibration",
    "calibrate_learning_speed",
    "expected_to_pass",

    # Validation and migration
    "validate_state",
    "estimate_sm2_from_state",
    "migrate_all",
    "migrate_mastery_record",
    "migrate_sm2_to_state",
    "migrate_strength_to_sm2",
    "migrate_strength_to_state",
    "needs_migration",
]
