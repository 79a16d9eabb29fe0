"""Derivation Dependency Graph"""

import heapq
import logging
from dataclasses import dataclass

from form_engine.core.errors import GraphError, GraphErrorKind
from form_engine.core.schema import FormSchema

logger = logging.getLogger(__name__)

# DFS node states
_UNVISITED, _IN_PROGRESS, _DONE = 0, 1, 2


@dataclass(frozen=True)
class Edge:
    source: int  # parent field index
    target: int  # derived field index


class DependencyGraph:
    """Arena graph over one form's fields.

    Nodes are field indexes in schema order; an edge runs from each
    declared parent to the derived field that reads it. Instances are only
    produced by build_graph, so every graph is acyclic and fully resolved.
    """

    def __init__(self, field_ids: list[str], derived: list[bool], edges: list[Edge]):
        self.nodes: tuple[str, ...] = tuple(field_ids)
        self.edges: tuple[Edge, ...] = tuple(edges)
        self._index = {fid: i for i, fid in enumerate(self.nodes)}
        self._derived = tuple(derived)
        self._adjacency: list[list[int]] = [[] for _ in self.nodes]
        self._reverse_adjacency: list[list[int]] = [[] for _ in self.nodes]
        for edge in self.edges:
            self._adjacency[edge.source].append(edge.target)
            self._reverse_adjacency[edge.target].append(edge.source)
        self.evaluation_order: tuple[str, ...] = ()

    def __contains__(self, field_id: object) -> bool:
        return field_id in self._index

    def index_of(self, field_id: str) -> int:
        return self._index[field_id]

    def is_derived(self, field_id: str) -> bool:
        return self._derived[self._index[field_id]]

    def parents_of(self, field_id: str) -> list[str]:
        """Fields the given field reads, in declaration order"""
        return [self.nodes[i] for i in self._reverse_adjacency[self._index[field_id]]]

    def dependents_of(self, field_id: str) -> list[str]:
        """Derived fields that read the given field directly"""
        return [self.nodes[i] for i in self._adjacency[self._index[field_id]]]

    def affected_by(self, field_id: str) -> list[str]:
        """Derived fields to recompute when field_id changes, in evaluation order"""
        start = self._index[field_id]
        affected = set()
        queue = [start]

        while queue:
            current = queue.pop(0)
            for dep in self._adjacency[current]:
                if dep not in affected:
                    affected.add(dep)
                    queue.append(dep)

        return [fid for fid in self.evaluation_order if self._index[fid] in affected]

    def to_mermaid(self) -> str:
        """Export graph as Mermaid diagram"""
        lines = ["graph LR"]

        lines.append("    classDef input fill:#e1f5fe")
        lines.append("    classDef derived fill:#fff3e0")

        for i, field_id in enumerate(self.nodes):
            style = "derived" if self._derived[i] else "input"
            text = field_id.replace('"', "#quot;")
            lines.append(f"    n{i}[\"{text}\"]:::{style}")

        for edge in self.edges:
            lines.append(f"    n{edge.source} --> n{edge.target}")

        return "\n".join(lines)


@dataclass
class GraphBuildResult:
    """Either a graph or the reason one could not be built"""

    graph: DependencyGraph | None = None
    error: GraphError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def build_graph(schema: FormSchema) -> GraphBuildResult:
    """Build the derivation graph for a form.

    Unknown parents are reported before cycles, each for the first
    offending field in schema order.
    """
    field_ids = schema.field_ids
    index = {fid: i for i, fid in enumerate(field_ids)}
    derived = [f.is_derived for f in schema.fields]

    edges = []
    for target, f in enumerate(schema.fields):
        if not f.is_derived:
            continue
        for parent_id in f.parent_field_ids:
            if parent_id not in index:
                error = GraphError(
                    kind=GraphErrorKind.UNKNOWN_PARENT,
                    field_id=f.id,
                    missing_id=parent_id,
                    message=f"Derived field '{f.id}' references unknown parent '{parent_id}'",
                )
                logger.debug("Graph build failed for form %s: %s", schema.id, error.message)
                return GraphBuildResult(error=error)
            edges.append(Edge(index[parent_id], target))

    graph = DependencyGraph(field_ids, derived, edges)

    cycle = _find_cycle(graph)
    if cycle:
        ids = tuple(field_ids[i] for i in cycle)
        error = GraphError(
            kind=GraphErrorKind.CYCLE,
            field_id=ids[0],
            cycle=ids,
            message=f"Circular derivation: {' -> '.join(ids + (ids[0],))}",
        )
        logger.debug("Graph build failed for form %s: %s", schema.id, error.message)
        return GraphBuildResult(error=error)

    graph.evaluation_order = tuple(field_ids[i] for i in _topological_order(graph))
    return GraphBuildResult(graph=graph)


def _find_cycle(graph: DependencyGraph) -> list[int]:
    """Depth-first search along parent edges; returns the first cycle found.

    Iterative so long derivation chains cannot exhaust the interpreter stack.
    """
    state = [_UNVISITED] * len(graph.nodes)

    for root in range(len(graph.nodes)):
        if not graph._derived[root] or state[root] != _UNVISITED:
            continue

        path = [root]
        iterators = [iter(graph._reverse_adjacency[root])]
        state[root] = _IN_PROGRESS

        while iterators:
            nxt = next(iterators[-1], None)
            if nxt is None:
                state[path.pop()] = _DONE
                iterators.pop()
                continue
            if state[nxt] == _IN_PROGRESS:
                # path runs from a field to the parents it reads
                return path[path.index(nxt):]
            if state[nxt] == _UNVISITED:
                state[nxt] = _IN_PROGRESS
                path.append(nxt)
                iterators.append(iter(graph._reverse_adjacency[nxt]))

    return []


def _topological_order(graph: DependencyGraph) -> list[int]:
    """Kahn's algorithm over derived fields, ties broken by schema position"""
    pending = {}
    for i, is_derived in enumerate(graph._derived):
        if is_derived:
            pending[i] = sum(1 for p in graph._reverse_adjacency[i] if graph._derived[p])

    ready = [i for i, count in pending.items() if count == 0]
    heapq.heapify(ready)
    order = []

    while ready:
        current = heapq.heappop(ready)
        order.append(current)
        for dep in graph._adjacency[current]:
            pending[dep] -= 1
            if pending[dep] == 0:
                heapq.heappush(ready, dep)

    return order
