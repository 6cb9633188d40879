"""
Dependency Graph - Encompassing Relationships Between Items

An edge A -> B with weight w means that mastering A implies a fraction w of
mastery of B. Two adjacency views over the same edge set are kept:

- encompasses[A]     -> [(B, w)]  used to flow credit DOWN on a pass
- encompassed_by[B]  -> [(A, w)]  used to flow penalty UP on a fail

The graph may contain cycles. It is built once and then treated as read-only;
every traversal carries its own visited set.
"""

from __future__ import annotations
import json
from collections import deque
from dataclasses import dataclass, field
from typing import Iterable, NamedTuple, Optional


DEFAULT_MIN_EDGE_WEIGHT = 0.05
DEFAULT_REACH_WEIGHT = 0.5


class Edge(NamedTuple):
    """Weighted edge to a neighbouring item."""
    target: str
    weight: float


class EdgeSpec(NamedTuple):
    """Directed edge description used for bulk construction and overrides."""
    source: str
    target: str
    weight: float


@dataclass
class DependencyGraph:
    """
    Directed weighted graph with forward and reverse adjacency lists.
    """
    encompasses: dict[str, list[Edge]] = field(default_factory=dict)
    encompassed_by: dict[str, list[Edge]] = field(default_factory=dict)

    def add_edge(
        self,
        source: str,
        target: str,
        weight: float,
        min_weight: float = DEFAULT_MIN_EDGE_WEIGHT
    ) -> None:
        """
        Add an edge to both views.

        Self-loops and edges lighter than min_weight are ignored. Adding an
        existing edge keeps the higher of the two weights.
        """
        if weight < min_weight or source == target:
            return
        _upsert(self.encompasses.setdefault(source, []), target, weight)
        _upsert(self.encompassed_by.setdefault(target, []), source, weight)

    def edges_from(self, item_id: str) -> list[Edge]:
        """Items encompassed by item_id."""
        return self.encompasses.get(item_id, [])

    def edges_to(self, item_id: str) -> list[Edge]:
        """Items that encompass item_id."""
        return self.encompassed_by.get(item_id, [])

    def iter_edges(self) -> Iterable[EdgeSpec]:
        for source, edges in self.encompasses.items():
            for target, weight in edges:
                yield EdgeSpec(source, target, weight)

    def stats(self) -> dict[str, int]:
        """Node and edge counts."""
        nodes: set[str] = set()
        edge_count = 0
        for source, target, _ in self.iter_edges():
            nodes.add(source)
            nodes.add(target)
            edge_count += 1
        return {"node_count": len(nodes), "edge_count": edge_count}

    @classmethod
    def from_edges(
        cls,
        edges: Iterable[EdgeSpec | tuple[str, str, float]],
        min_weight: float = 0.0
    ) -> DependencyGraph:
        graph = cls()
        for source, target, weight in edges:
            graph.add_edge(source, target, weight, min_weight)
        return graph

    # ---- Serialization ----

    def to_dict(self) -> dict:
        return {
            "encompasses": {
                source: [{"target": e.target, "weight": e.weight} for e in edges]
                for source, edges in self.encompasses.items()
            },
            "encompassedBy": {
                target: [{"target": e.target, "weight": e.weight} for e in edges]
                for target, edges in self.encompassed_by.items()
            },
        }

    @classmethod
    def from_dict(cls, data: dict) -> DependencyGraph:
        """
        Rebuild a graph from its dict form.

        Only the forward view is read; the reverse view is derived from it so
        the two can never disagree.
        """
        graph = cls()
        for source, edges in data.get("encompasses", {}).items():
            for edge in edges:
                graph.add_edge(source, edge["target"], float(edge["weight"]), min_weight=0.0)
        return graph

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)

    @classmethod
    def from_json(cls, payload: str) -> DependencyGraph:
        return cls.from_dict(json.loads(payload))


def _upsert(edges: list[Edge], target: str, weight: float) -> None:
    for index, existing in enumerate(edges):
        if existing.target == target:
            if weight > existing.weight:
                edges[index] = Edge(target, weight)
            return
    edges.append(Edge(target, weight))


def merge_graphs(*graphs: DependencyGraph) -> DependencyGraph:
    """
    Merge graphs into a new one; conflicting edges keep the higher weight.
    """
    merged = DependencyGraph()
    for graph in graphs:
        for source, target, weight in graph.iter_edges():
            merged.add_edge(source, target, weight, min_weight=0.0)
    return merged


# ---- Graph Analysis ----

def get_all_encompassed(
    item_id: str,
    graph: DependencyGraph,
    min_weight: float = DEFAULT_REACH_WEIGHT
) -> set[str]:
    """
    All items reachable from item_id through edges of at least min_weight (BFS).
    """
    result: set[str] = set()
    visited: set[str] = set()
    queue = deque([item_id])

    while queue:
        current = queue.popleft()
        if current in visited:
            continue
        visited.add(current)

        for target, weight in graph.edges_from(current):
            if weight >= min_weight and target not in visited:
                result.add(target)
                queue.append(target)

    result.discard(item_id)
    return result


def get_encompassing_items(item_id: str, graph: DependencyGraph) -> list[Edge]:
    """Items that would be penalized if item_id is failed."""
    return list(graph.edges_to(item_id))


def calculate_reach(item_id: str, graph: DependencyGraph) -> int:
    """Number of items an explicit review of item_id substantially covers."""
    return len(get_all_encompassed(item_id, graph, DEFAULT_REACH_WEIGHT))


def find_high_reach_items(
    item_ids: Iterable[str],
    graph: DependencyGraph,
    top_n: int = 10
) -> list[str]:
    """
    Items sorted by reach, highest first (stable for equal reach).
    """
    with_reach = [(item_id, calculate_reach(item_id, graph)) for item_id in item_ids]
    with_reach.sort(key=lambda pair: pair[1], reverse=True)
    return [item_id for item_id, _ in with_reach[:top_n]]


def create_empty_graph() -> DependencyGraph:
    return DependencyGraph()


def load_graph(payload: Optional[str]) -> DependencyGraph:
    """Deserialize a graph, treating an empty payload as an empty graph."""
    if not payload:
        return create_empty_graph()
    return DependencyGraph.from_json(payload)
