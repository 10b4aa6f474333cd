"""
statchain Graph Store

Owns node and edge identity, the cached topological order and its validity
flag, and enforces the structural invariants:

- acyclicity: every edge insertion is checked before it becomes durable
- symmetry: `a in b.parents` iff `b in a.children`

Parent and child lists hold identifiers, never node references; nodes are
looked up through the store.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple
import logging

from statchain.core.protocols import (
    Aggregate,
    FilterFunc,
    NodeId,
    TransformFunc,
    is_aggregate,
)
from statchain.errors import (
    CycleError,
    DuplicateNodeError,
    GraphConsistencyError,
    NodeNotFoundError,
)
from .algorithms import check_consistency, find_cycle, topological_sort

logger = logging.getLogger(__name__)


# =============================================================================
# NODE / EDGE
# =============================================================================

@dataclass(eq=False)
class Node:
    """One computation step: an aggregate plus its place in the graph."""
    node_id: NodeId
    aggregate: Aggregate

    # Adjacency, in declaration order
    parents: List[NodeId] = field(default_factory=list)
    children: List[NodeId] = field(default_factory=list)

    # Caches
    value: Any = None          # aggregate.read() after the latest update
    last_input: Any = None     # value most recently fed into the aggregate
    update_count: int = 0

    @property
    def is_source(self) -> bool:
        return not self.parents

    @property
    def is_sink(self) -> bool:
        return not self.children

    @property
    def is_fan_in(self) -> bool:
        return len(self.parents) > 1

    @property
    def has_output(self) -> bool:
        return self.update_count > 0

    def apply(self, value: Any) -> Any:
        """Feed one input into the aggregate and refresh the caches."""
        self.aggregate.update(value)
        self.last_input = value
        self.value = self.aggregate.read()
        self.update_count += 1
        return self.value

    def refresh(self) -> Any:
        """Accept the aggregate's current output as the cached value."""
        self.value = self.aggregate.read()
        return self.value


@dataclass(frozen=True)
class Edge:
    """A directed relationship between two existing nodes."""
    source: NodeId
    target: NodeId
    filter: Optional[FilterFunc] = None
    transform: Optional[TransformFunc] = None

    @property
    def key(self) -> Tuple[NodeId, NodeId]:
        return (self.source, self.target)

    @property
    def has_filter(self) -> bool:
        return self.filter is not None

    @property
    def has_transform(self) -> bool:
        return self.transform is not None


# =============================================================================
# GRAPH STORE
# =============================================================================

class GraphStore:
    """Node/edge storage with a lazily recomputed topological order."""

    def __init__(self):
        self._nodes: Dict[NodeId, Node] = {}
        self._edges: Dict[Tuple[NodeId, NodeId], Edge] = {}
        self._order: List[NodeId] = []
        self._order_valid: bool = False

    # -------------------------------------------------------------------------
    # Nodes
    # -------------------------------------------------------------------------

    @property
    def nodes(self) -> Dict[NodeId, Node]:
        return self._nodes

    def add_node(self, node_id: NodeId, aggregate: Aggregate) -> Node:
        """
        Insert a new node with empty adjacency.

        Raises:
            DuplicateNodeError: if node_id is already present
            TypeError: if aggregate lacks update()/read()
        """
        if node_id in self._nodes:
            raise DuplicateNodeError(node_id)
        if not is_aggregate(aggregate):
            raise TypeError(
                f"Aggregate for node {node_id!r} must provide update(value) and read(), "
                f"got {type(aggregate).__name__}"
            )

        node = Node(node_id=node_id, aggregate=aggregate)
        self._nodes[node_id] = node
        self._order_valid = False

        logger.debug(f"Added node {node_id!r} ({type(aggregate).__name__})")
        return node

    def get_node(self, node_id: NodeId) -> Node:
        """Get a node, raising NodeNotFoundError if absent."""
        try:
            return self._nodes[node_id]
        except (KeyError, TypeError):
            # TypeError: unhashable ids can never be present
            raise NodeNotFoundError(node_id) from None

    def has_node(self, node_id: NodeId) -> bool:
        try:
            return node_id in self._nodes
        except TypeError:
            return False

    def node_ids(self) -> List[NodeId]:
        """All node ids in insertion order."""
        return list(self._nodes.keys())

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, node_id: NodeId) -> bool:
        return self.has_node(node_id)

    # -------------------------------------------------------------------------
    # Edges
    # -------------------------------------------------------------------------

    def connect(
        self,
        source: NodeId,
        target: NodeId,
        filter: Optional[FilterFunc] = None,
        transform: Optional[TransformFunc] = None,
    ) -> Edge:
        """
        Add the edge source -> target.

        The edge is appended provisionally to both adjacency lists and the
        whole graph is checked for cycles; on failure the provisional edge is
        removed again before CycleError surfaces. Connecting an existing pair
        replaces its policy without touching adjacency.
        """
        return self.connect_all([source], target, filter=filter, transform=transform)[0]

    def connect_all(
        self,
        sources: Sequence[NodeId],
        target: NodeId,
        filter: Optional[FilterFunc] = None,
        transform: Optional[TransformFunc] = None,
    ) -> List[Edge]:
        """
        Connect several sources to one target (fan-in), in list order.

        Atomic: if any edge fails, every edge added by this call is rolled
        back (and replaced policies restored) before the error is raised.
        """
        target_node = self.get_node(target)
        for source in sources:
            self.get_node(source)

        # (key, previous edge or None, whether adjacency was appended)
        undo: List[Tuple[Tuple[NodeId, NodeId], Optional[Edge], bool]] = []
        created: List[Edge] = []

        try:
            for source in sources:
                key = (source, target)
                previous = self._edges.get(key)
                appended = False

                if previous is None:
                    self._attach(source, target)
                    appended = True
                    undo.append((key, None, True))

                    cycle = find_cycle(self._nodes)
                    if cycle is not None:
                        raise CycleError(source, target, cycle)
                else:
                    undo.append((key, previous, False))

                edge = Edge(source=source, target=target, filter=filter, transform=transform)
                self._edges[key] = edge
                created.append(edge)

                logger.debug(
                    f"{'Connected' if appended else 'Reconnected'} {source!r} -> {target!r}"
                    f" (filter={edge.has_filter}, transform={edge.has_transform})"
                )
        except CycleError:
            self._rollback(undo)
            raise

        if any(appended for _, _, appended in undo):
            self._order_valid = False

        if target_node.is_fan_in:
            logger.debug(f"Node {target!r} now has {len(target_node.parents)} parents")

        return created

    def _attach(self, source: NodeId, target: NodeId) -> None:
        self._nodes[source].children.append(target)
        self._nodes[target].parents.append(source)

    def _detach(self, source: NodeId, target: NodeId) -> None:
        children = self._nodes[source].children
        parents = self._nodes[target].parents
        # Provisional edges are always the most recent occurrence
        del children[len(children) - 1 - children[::-1].index(target)]
        del parents[len(parents) - 1 - parents[::-1].index(source)]

    def _rollback(self, undo: List[Tuple[Tuple[NodeId, NodeId], Optional[Edge], bool]]) -> None:
        for key, previous, appended in reversed(undo):
            if appended:
                self._detach(*key)
                self._edges.pop(key, None)
            elif previous is not None:
                self._edges[key] = previous
        logger.debug(f"Rolled back {len(undo)} provisional edge(s)")

    def get_edge(self, source: NodeId, target: NodeId) -> Optional[Edge]:
        """Get an edge by source and target."""
        return self._edges.get((source, target))

    def edges(self) -> List[Edge]:
        """All edges in creation order."""
        return list(self._edges.values())

    # -------------------------------------------------------------------------
    # Order
    # -------------------------------------------------------------------------

    @property
    def order_valid(self) -> bool:
        return self._order_valid

    def invalidate_order(self) -> None:
        self._order_valid = False

    def topological_order(self) -> List[NodeId]:
        """Current topological order, recomputed first if stale."""
        if not self._order_valid:
            self._order = topological_sort(self._nodes)
            self._order_valid = True
            logger.debug(f"Recomputed topological order over {len(self._order)} nodes")
        return list(self._order)

    # -------------------------------------------------------------------------
    # Validation
    # -------------------------------------------------------------------------

    def validate(self) -> bool:
        """
        Check acyclicity, adjacency symmetry and edge-record agreement.

        Returns:
            True when the structure is consistent

        Raises:
            CycleError: if a cycle exists
            GraphConsistencyError: on any other inconsistency
        """
        cycle = find_cycle(self._nodes)
        if cycle is not None:
            raise CycleError(
                cycle[0], cycle[1], cycle,
                message=f"DAG contains a cycle: {' -> '.join(repr(n) for n in cycle)}",
            )

        problems = check_consistency(self._nodes)

        for node_id, node in self._nodes.items():
            for child_id in node.children:
                if (node_id, child_id) not in self._edges:
                    problems.append(f"Missing edge record for {node_id!r} -> {child_id!r}")
        for source, target in self._edges:
            if source not in self._nodes or target not in self._nodes[source].children:
                problems.append(f"Edge record {source!r} -> {target!r} is not in adjacency")

        if self._order_valid and self._order != topological_sort(self._nodes):
            problems.append("Cached topological order is stale while marked valid")

        if problems:
            raise GraphConsistencyError("; ".join(problems))

        return True
