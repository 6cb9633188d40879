"""
Repetition Compression - Choosing Reviews That Knock Out Others

Reviewing an item that strongly encompasses other due items makes their
explicit reviews redundant ("knocks them out"). The selector greedily picks
the due item that covers the most other due items, removes everything it
covers, and repeats.

This is a greedy approximation of minimum set cover. It is deterministic:
candidates are scanned in input order and ties keep the earliest item.
"""

from __future__ import annotations
import logging
from datetime import datetime
from typing import Iterable, Mapping, Optional, Sequence

from studycore.fire.config import DEFAULT_ENGINE_CONFIG, EngineConfig
from studycore.fire.graph import DependencyGraph
from studycore.fire.memory_state import ItemMemoryState, get_days_overdue, get_decayed_memory


logger = logging.getLogger(__name__)


def get_knockouts(
    item_id: str,
    graph: DependencyGraph,
    config: EngineConfig = DEFAULT_ENGINE_CONFIG,
    visited: Optional[set[str]] = None
) -> list[str]:
    """
    Items that would be implicitly reviewed by reviewing item_id.

    Follows encompasses edges with weight >= knockout_weight_threshold,
    depth first, and returns the targets in discovery order. The result has
    no duplicates and never contains item_id itself (cycles lead back to it).

    Args:
        item_id: Candidate review
        graph: Dependency graph
        config: Engine configuration
        visited: Items already walked through

    Returns:
        Knocked-out item ids
    """
    if visited is None:
        visited = set()
    if item_id in visited:
        return []
    visited.add(item_id)

    knockouts: list[str] = []
    for target, weight in graph.edges_from(item_id):
        if weight < config.knockout_weight_threshold or target in visited:
            continue
        knockouts.append(target)
        knockouts.extend(get_knockouts(target, graph, config, visited))

    return knockouts


def select_optimal_reviews(
    due_items: Iterable[str],
    graph: DependencyGraph,
    max_reviews: int = 10,
    config: EngineConfig = DEFAULT_ENGINE_CONFIG
) -> list[str]:
    """
    Pick up to max_reviews due items that together cover the most due items.

    Each round selects the remaining item whose knockout set intersects the
    remaining due set the most, then drops it and its knockouts from the
    remaining set. With no useful edges this degenerates to the first
    max_reviews items in input order.

    Args:
        due_items: Due item ids, in priority order
        graph: Dependency graph
        max_reviews: Upper bound on the number of reviews
        config: Engine configuration

    Returns:
        Selected item ids, in selection order
    """
    # Insertion-ordered set: preserves input order for tie-breaking
    remaining = dict.fromkeys(due_items)
    knockout_cache: dict[str, list[str]] = {}
    selected: list[str] = []

    def knockouts_of(item_id: str) -> list[str]:
        if item_id not in knockout_cache:
            knockout_cache[item_id] = get_knockouts(item_id, graph, config)
        return knockout_cache[item_id]

    while len(selected) < max_reviews and remaining:
        best_item = None
        best_count = -1

        for item_id in remaining:
            count = sum(1 for ko in knockouts_of(item_id) if ko in remaining)
            if count > best_count:
                best_item = item_id
                best_count = count

        selected.append(best_item)
        del remaining[best_item]
        for ko in knockouts_of(best_item):
            remaining.pop(ko, None)

    logger.debug(
        "Selected %d reviews, %d due items left uncovered",
        len(selected), len(remaining)
    )
    return selected


def sort_by_review_priority(
    items: Mapping[str, ItemMemoryState] | Sequence[tuple[str, ItemMemoryState]],
    now: Optional[datetime] = None
) -> list[tuple[str, ItemMemoryState]]:
    """
    Order items by urgency: most days overdue first, then lowest decayed memory.

    Args:
        items: Mapping or sequence of (item_id, state) pairs
        now: Evaluation time

    Returns:
        (item_id, state) pairs, highest priority first
    """
    pairs = list(items.items()) if isinstance(items, Mapping) else list(items)
    return sorted(
        pairs,
        key=lambda pair: (-get_days_overdue(pair[1], now), get_decayed_memory(pair[1], now)),
    )
