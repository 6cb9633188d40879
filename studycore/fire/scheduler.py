"""
Scheduler - FIRe Review Processing

Pure review processing on a state map (no persistence).

Main workflow:
1. Load the learner's state map (caller's responsibility)
2. Copy the map so the input stays untouched
3. Apply the explicit update to the reviewed item(s)
4. Flow credit down (pass) or penalty up (fail) through the graph
5. Return the new map + event data dict

The caller persists the new map only when it accepts the result, which gives
an all-or-nothing commit without locks.
"""

from __future__ import annotations
import logging
from datetime import datetime, timezone
from typing import Iterable, Mapping, Optional, Tuple

from studycore.fire.calibration import RepetitionResult, expected_to_pass
from studycore.fire.compression import sort_by_review_priority
from studycore.fire.config import DEFAULT_ENGINE_CONFIG, EngineConfig
from studycore.fire.graph import DependencyGraph
from studycore.fire.memory_state import (
    ItemMemoryState,
    create_item_state,
    get_decayed_memory,
    get_interval,
    is_due,
    simple_to_quality,
)
from studycore.fire.propagation import flow_credit_down, flow_penalty_up
from studycore.fire.updates import update_state


logger = logging.getLogger(__name__)

# Magnitude of the credit/penalty that starts a propagation walk
INITIAL_PROPAGATION_AMOUNT = 1.0


def process_review(
    states: Mapping[str, ItemMemoryState],
    item_id: str,
    passed: bool,
    quality: Optional[float] = None,
    graph: Optional[DependencyGraph] = None,
    config: EngineConfig = DEFAULT_ENGINE_CONFIG,
    now: Optional[datetime] = None
) -> Tuple[dict[str, ItemMemoryState], dict]:
    """
    Process a single explicit review and return the new state map + event data.

    Items without a state are created on first encounter. The input map is
    never mutated.

    Args:
        states: Current item states
        item_id: Reviewed item
        passed: Whether the learner passed
        quality: Response quality 0-1 (defaults from passed)
        graph: Dependency graph for implicit updates (optional)
        config: Engine configuration
        now: Review time (defaults to now)

    Returns:
        Tuple of (new_states, event_data_dict)
    """
    new_states, events = _process(states, [item_id], passed, quality, graph, config, now)
    return new_states, events[0]


def process_exercise_review(
    states: Mapping[str, ItemMemoryState],
    item_ids: Iterable[str],
    correct: bool,
    was_hard: bool = False,
    graph: Optional[DependencyGraph] = None,
    config: EngineConfig = DEFAULT_ENGINE_CONFIG,
    now: Optional[datetime] = None
) -> Tuple[dict[str, ItemMemoryState], list[dict]]:
    """
    Process one exercise that practiced several items at once.

    Every item gets the same explicit outcome (quality from
    simple_to_quality), then propagation runs from each of them. Implicit
    updates never overwrite the explicit results of the exercise's own items.

    Returns:
        Tuple of (new_states, list of event_data dicts, one per item)
    """
    item_ids = list(dict.fromkeys(item_ids))
    quality = simple_to_quality(correct, was_hard)
    return _process(states, item_ids, correct, quality, graph, config, now)


def _process(
    states: Mapping[str, ItemMemoryState],
    item_ids: list[str],
    passed: bool,
    quality: Optional[float],
    graph: Optional[DependencyGraph],
    config: EngineConfig,
    now: Optional[datetime]
) -> Tuple[dict[str, ItemMemoryState], list[dict]]:
    now = now or datetime.now(timezone.utc)
    new_states = dict(states)

    explicit: dict[str, ItemMemoryState] = {}
    events = []
    for item_id in item_ids:
        is_new_item = item_id not in new_states
        before = new_states.get(item_id) or create_item_state(now)
        predicted = expected_to_pass(before, config, now)
        was_due = is_due(before, config, now)

        after = update_state(before, passed, quality, config, now)
        new_states[item_id] = after
        explicit[item_id] = after

        events.append({
            'item_id': item_id,
            'timestamp': now,
            'passed': passed,
            'quality': quality,
            'is_new_item': is_new_item,
            'was_due': was_due,
            'repetition_level_before': None if is_new_item else before.repetition_level,
            'memory_before': None if is_new_item else get_decayed_memory(before, now),
            'repetition_level_after': after.repetition_level,
            'memory_after': after.memory,
            'interval_after': get_interval(after.repetition_level),
            'implicit_updates': {},
            'repetition_result': RepetitionResult(
                passed=passed,
                expected_to_pass=predicted,
                timestamp=now,
                quality=quality,
            ),
        })

    if graph is not None:
        snapshot = dict(new_states)
        for item_id in item_ids:
            if passed:
                flow_credit_down(item_id, INITIAL_PROPAGATION_AMOUNT, graph, new_states, config, now=now)
            else:
                flow_penalty_up(item_id, INITIAL_PROPAGATION_AMOUNT, graph, new_states, config)

        # The reviewed items keep their explicit result
        new_states.update(explicit)

        implicit_updates = {
            other_id: state
            for other_id, state in new_states.items()
            if state is not snapshot.get(other_id)
        }
        for event in events:
            event['implicit_updates'] = implicit_updates

        logger.debug(
            "Processed %d reviewed item(s), %d implicit update(s)",
            len(item_ids), len(implicit_updates)
        )

    return new_states, events


def get_due_items(
    states: Mapping[str, ItemMemoryState],
    config: EngineConfig = DEFAULT_ENGINE_CONFIG,
    now: Optional[datetime] = None
) -> list[str]:
    """
    Due item ids, most urgent first (see sort_by_review_priority).
    """
    now = now or datetime.now(timezone.utc)
    due = [(item_id, state) for item_id, state in states.items() if is_due(state, config, now)]
    return [item_id for item_id, _ in sort_by_review_priority(due, now)]
