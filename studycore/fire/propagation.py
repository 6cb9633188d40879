"""
Propagation - Flowing Review Outcomes Through the Dependency Graph

An explicit review of one item says something about related items:

- A pass flows credit DOWN to the items it encompasses (prerequisites were
  exercised too)
- A fail flows penalty UP to the items that encompass it (anything built on a
  forgotten prerequisite is at risk)

Both walks mutate the state map they are given. Callers that need the
pre-review snapshot must pass a copy (see scheduler.process_review).

Every walk is bounded by three guards: a visited set (the graph may contain
cycles), max_propagation_depth, and min_credit_threshold.
"""

from __future__ import annotations
import logging
from datetime import datetime, timezone
from typing import MutableMapping, Optional

from studycore.fire.config import DEFAULT_ENGINE_CONFIG, EngineConfig
from studycore.fire.constants import PENALTY_PROPAGATION_FACTOR
from studycore.fire.graph import DependencyGraph
from studycore.fire.memory_state import ItemMemoryState
from studycore.fire.updates import apply_implicit_credit, apply_implicit_penalty


logger = logging.getLogger(__name__)

StateMap = MutableMapping[str, ItemMemoryState]


def _should_stop(
    item_id: str,
    amount: float,
    visited: set[str],
    depth: int,
    config: EngineConfig
) -> bool:
    if item_id in visited:
        return True
    if depth > config.max_propagation_depth:
        logger.debug("Propagation depth limit reached at %s (depth=%d)", item_id, depth)
        return True
    return amount < config.min_credit_threshold


def flow_credit_down(
    item_id: str,
    credit: float,
    graph: DependencyGraph,
    states: StateMap,
    config: EngineConfig = DEFAULT_ENGINE_CONFIG,
    visited: Optional[set[str]] = None,
    depth: int = 0,
    now: Optional[datetime] = None
) -> None:
    """
    Flow credit down the encompasses edges after a passed review.

    Each target receives credit * edge_weight through apply_implicit_credit
    (if it has a state in the map), and the walk continues from the target with
    the same weighted amount, so credit diminishes with every hop.

    Args:
        item_id: Item that was passed (or reached by the walk)
        credit: Credit arriving at item_id
        graph: Dependency graph
        states: Item states, updated in place
        config: Engine configuration
        visited: Items already walked through (shared across the recursion)
        depth: Current hop count
        now: Review time
    """
    if visited is None:
        visited = set()
    if _should_stop(item_id, credit, visited, depth, config):
        return

    now = now or datetime.now(timezone.utc)
    visited.add(item_id)

    for target, weight in graph.edges_from(item_id):
        fractional_credit = credit * weight

        if target in states:
            states[target] = apply_implicit_credit(states[target], fractional_credit, config, now)

        flow_credit_down(target, fractional_credit, graph, states, config, visited, depth + 1, now)


def flow_penalty_up(
    item_id: str,
    penalty: float,
    graph: DependencyGraph,
    states: StateMap,
    config: EngineConfig = DEFAULT_ENGINE_CONFIG,
    visited: Optional[set[str]] = None,
    depth: int = 0
) -> None:
    """
    Flow penalty up the encompassed_by edges after a failed review.

    Each encompassing item receives penalty * edge_weight. The recursion
    carries that amount further damped by PENALTY_PROPAGATION_FACTOR, so
    penalties fade faster than credit.

    Args:
        item_id: Item that was failed (or reached by the walk)
        penalty: Penalty magnitude arriving at item_id (positive)
        graph: Dependency graph
        states: Item states, updated in place
        config: Engine configuration
        visited: Items already walked through (shared across the recursion)
        depth: Current hop count
    """
    if visited is None:
        visited = set()
    if _should_stop(item_id, penalty, visited, depth, config):
        return

    visited.add(item_id)

    for target, weight in graph.edges_to(item_id):
        fractional_penalty = penalty * weight

        if target in states:
            states[target] = apply_implicit_penalty(states[target], fractional_penalty, config)

        flow_penalty_up(
            target,
            fractional_penalty * PENALTY_PROPAGATION_FACTOR,
            graph,
            states,
            config,
            visited,
            depth + 1,
        )
