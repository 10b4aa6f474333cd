"""
statchain StatDAG

The public graph object: construction and mutation, external updates under
the selected evaluation strategy, and read/introspection.

Usage:
    dag = StatDAG()
    dag.add_node("prices", Mean())
    dag.add_node("smoothed", Mean())
    dag.connect("prices", "smoothed", filter=lambda x: x > 0)

    dag.fit("prices", [1.0, 2.0, 3.0])
    dag.value("smoothed")
"""

from __future__ import annotations
from typing import Any, Dict, FrozenSet, List, Mapping, Optional, Sequence, Union
import logging
import warnings

import networkx as nx

from statchain.bootstrap.config import (
    StatChainConfig,
    get_config,
    parse_fan_in_policy,
    parse_strategy,
)
from statchain.core.enums import EvaluationStrategy, FanInPolicy, UpdateKind
from statchain.core.protocols import (
    Aggregate,
    FilterFunc,
    NodeId,
    ObserverCallback,
    TransformFunc,
)
from statchain.errors import EdgeNotFoundError, LengthMismatchWarning, NotASourceError
from .algorithms import is_ancestor
from .cascade import RecomputeExecutor, RecomputeResult
from .export import GraphSnapshot, build_snapshot, to_networkx
from .graph import Edge, GraphStore, Node
from .invalidation import DirtyTracker, PendingUpdate, snapshot_output
from .observers import ObserverRegistry
from .propagation import PropagationEngine

logger = logging.getLogger(__name__)


class StatDAG:
    """
    Directed acyclic graph of incrementally-updatable aggregates.

    External updates target source nodes. Under the eager (and partial)
    strategy every update cascades through the graph before returning;
    under lazy, propagation is deferred until a dirty node is read or
    recompute() is called.
    """

    def __init__(
        self,
        strategy: Union[EvaluationStrategy, str, None] = None,
        fan_in_policy: Union[FanInPolicy, str, None] = None,
        config: Optional[StatChainConfig] = None,
    ):
        """
        Args:
            strategy: "eager", "lazy" or "partial"; defaults to the configured
                engine strategy
            fan_in_policy: "permissive" or "strict"; defaults to the configured
                engine policy
            config: Configuration to take defaults from; the loaded global
                configuration when omitted
        """
        engine_config = (config or get_config()).engine

        self._strategy = parse_strategy(strategy if strategy is not None else engine_config.strategy)
        policy = parse_fan_in_policy(
            fan_in_policy if fan_in_policy is not None else engine_config.fan_in_policy
        )

        self._store = GraphStore()
        self._observers = ObserverRegistry()
        self._engine = PropagationEngine(self._store, self._observers, policy)
        self._tracker = DirtyTracker(self._store)
        self._executor = RecomputeExecutor(self._store, self._engine, self._tracker)

        logger.debug(f"StatDAG created (strategy={self._strategy.value}, fan_in={policy.value})")

    # =========================================================================
    # CONSTRUCTION
    # =========================================================================

    @property
    def store(self) -> GraphStore:
        return self._store

    def add_node(self, node_id: NodeId, aggregate: Aggregate) -> None:
        """
        Add a node wrapping an aggregate.

        Raises:
            DuplicateNodeError: if node_id already exists
            TypeError: if aggregate lacks update()/read()
        """
        self._store.add_node(node_id, aggregate)

    def connect(
        self,
        source: Union[NodeId, Sequence[NodeId]],
        target: NodeId,
        filter: Optional[FilterFunc] = None,
        transform: Optional[TransformFunc] = None,
    ) -> None:
        """
        Connect source to target, or several sources to target (fan-in).

        A list or tuple that is not itself a node id is read as a list of
        sources. Filter and transform apply to every edge created by the call.
        A fan-in connect is all-or-nothing.

        Raises:
            NodeNotFoundError: if an endpoint does not exist
            CycleError: if an edge would close a cycle
        """
        if isinstance(source, (list, tuple)) and not self._store.has_node(source):
            sources = list(source)
        else:
            sources = [source]

        # Replay must never run against a changed structure
        if self._tracker.has_pending:
            self._executor.execute()

        self._store.connect_all(sources, target, filter=filter, transform=transform)

    # =========================================================================
    # EXTERNAL UPDATES
    # =========================================================================

    def fit(self, node_id: NodeId, data: Any) -> None:
        """
        Feed data into a source node.

        A list or tuple is processed element by element, with propagation
        after each element; anything else is a single value.

        Raises:
            NodeNotFoundError: if node_id does not exist
            NotASourceError: if node_id has parents
        """
        node = self._require_source(node_id)
        if isinstance(data, (list, tuple)):
            for value in data:
                self._ingest(node, value)
        else:
            self._ingest(node, data)

    def fit_one(self, node_id: NodeId, value: Any) -> None:
        """Feed exactly one value into a source node, even a list."""
        self._ingest(self._require_source(node_id), value)

    def fit_many(self, data: Mapping[NodeId, Any]) -> None:
        """
        Update several sources simultaneously.

        Values are single values or synchronised sequences (list/tuple).
        Each step updates every listed source, then propagates once, so a
        fan-in node sees all new parent outputs together. Single values are
        repeated at every step. Sequences of different lengths are processed
        up to the shortest, with a LengthMismatchWarning.
        """
        if not data:
            return

        nodes = [self._require_source(node_id) for node_id in data]
        sequences = {
            node_id: values for node_id, values in data.items()
            if isinstance(values, (list, tuple))
        }

        if not sequences:
            self._ingest_many(nodes, [data[node.node_id] for node in nodes])
            return

        lengths = {node_id: len(values) for node_id, values in sequences.items()}
        steps = min(lengths.values())
        if len(set(lengths.values())) > 1:
            message = (
                f"Sequences have different lengths {lengths}; "
                f"processing the first {steps} step(s)"
            )
            warnings.warn(message, LengthMismatchWarning, stacklevel=2)
            logger.warning(message)

        for step in range(steps):
            values = [
                sequences[node.node_id][step] if node.node_id in sequences else data[node.node_id]
                for node in nodes
            ]
            self._ingest_many(nodes, values)

    def _require_source(self, node_id: NodeId) -> Node:
        node = self._store.get_node(node_id)
        if not node.is_source:
            raise NotASourceError(node_id, node.parents)
        return node

    def _ingest(self, node: Node, value: Any) -> None:
        if self._strategy.cascades_immediately:
            self._engine.apply_input(node, value)
            self._engine.cascade(node.node_id)
            return

        before = (node.has_output, snapshot_output(node.value))
        self._engine.apply_input(node, value)
        self._tracker.record(PendingUpdate(
            kind=UpdateKind.CASCADE,
            sources=(node.node_id,),
            before={node.node_id: before},
            after={node.node_id: snapshot_output(node.value)},
        ))
        self._tracker.mark_downstream(node.node_id)

    def _ingest_many(self, nodes: List[Node], values: List[Any]) -> None:
        before = {
            node.node_id: (node.has_output, snapshot_output(node.value)) for node in nodes
        }
        for node, value in zip(nodes, values):
            self._engine.apply_input(node, value)
        source_ids = tuple(node.node_id for node in nodes)

        if self._strategy.cascades_immediately:
            self._engine.wave(source_ids, self._store.topological_order())
            return

        self._tracker.record(PendingUpdate(
            kind=UpdateKind.WAVE,
            sources=source_ids,
            before=before,
            after={node.node_id: snapshot_output(node.value) for node in nodes},
        ))
        for node_id in source_ids:
            self._tracker.mark_downstream(node_id)

    # =========================================================================
    # STRATEGY / RECOMPUTE
    # =========================================================================

    @property
    def strategy(self) -> EvaluationStrategy:
        return self._strategy

    @property
    def fan_in_policy(self) -> FanInPolicy:
        return self._engine.fan_in_policy

    def set_strategy(self, strategy: Union[EvaluationStrategy, str]) -> None:
        """
        Switch evaluation strategy.

        Entering lazy marks every node dirty. Leaving lazy settles all
        deferred work first.

        Raises:
            InvalidStrategyError: for an unknown strategy
        """
        new_strategy = parse_strategy(strategy)
        if new_strategy is self._strategy:
            return

        if new_strategy is EvaluationStrategy.LAZY:
            self._tracker.mark_all()
        elif self._strategy is EvaluationStrategy.LAZY:
            if self._tracker.has_pending:
                logger.warning(
                    f"Flushing {self._tracker.pending_count} deferred update(s) "
                    f"before switching to {new_strategy.value}"
                )
            if self._tracker.needs_recompute:
                self._executor.execute()
            self._tracker.clear()

        logger.info(f"Strategy changed: {self._strategy.value} -> {new_strategy.value}")
        self._strategy = new_strategy

    def invalidate(self, node_id: NodeId) -> None:
        """Mark a node and all of its descendants dirty."""
        self._store.get_node(node_id)
        affected = self._tracker.mark_downstream(node_id)
        logger.debug(f"Invalidated {len(affected)} node(s) from {node_id!r}")

    def recompute(self) -> RecomputeResult:
        """Replay deferred updates and settle every dirty node."""
        return self._executor.execute()

    # =========================================================================
    # READS
    # =========================================================================

    def value(self, node_id: NodeId) -> Any:
        """
        Current output of a node.

        Under lazy evaluation a dirty node triggers a full recompute first.
        """
        node = self._store.get_node(node_id)
        if self._strategy is EvaluationStrategy.LAZY and self._tracker.is_dirty(node_id):
            self._executor.execute()
        return node.value

    def values(self) -> Dict[NodeId, Any]:
        """Current outputs of all nodes, in insertion order."""
        if self._strategy is EvaluationStrategy.LAZY and self._tracker.needs_recompute:
            self._executor.execute()
        return {node_id: node.value for node_id, node in self._store.nodes.items()}

    def last_input(self, node_id: NodeId) -> Any:
        """Value most recently fed into a node's aggregate."""
        return self._store.get_node(node_id).last_input

    # =========================================================================
    # INTROSPECTION
    # =========================================================================

    def nodes(self) -> List[NodeId]:
        return self._store.node_ids()

    def parents(self, node_id: NodeId) -> List[NodeId]:
        return list(self._store.get_node(node_id).parents)

    def children(self, node_id: NodeId) -> List[NodeId]:
        return list(self._store.get_node(node_id).children)

    def topological_order(self) -> List[NodeId]:
        return self._store.topological_order()

    def validate(self) -> bool:
        """
        Raises:
            CycleError: if the graph contains a cycle
            GraphConsistencyError: if adjacency or edge records disagree
        """
        return self._store.validate()

    def get_edge(self, source: NodeId, target: NodeId) -> Edge:
        """
        Edge record for source -> target.

        Raises:
            NodeNotFoundError: if an endpoint does not exist
            EdgeNotFoundError: if the nodes are not connected
        """
        self._store.get_node(source)
        self._store.get_node(target)
        edge = self._store.get_edge(source, target)
        if edge is None:
            raise EdgeNotFoundError(source, target)
        return edge

    def edges(self) -> List[Edge]:
        return self._store.edges()

    def has_filter(self, source: NodeId, target: NodeId) -> bool:
        return self.get_edge(source, target).has_filter

    def get_filter(self, source: NodeId, target: NodeId) -> Optional[FilterFunc]:
        return self.get_edge(source, target).filter

    def has_transform(self, source: NodeId, target: NodeId) -> bool:
        return self.get_edge(source, target).has_transform

    def get_transform(self, source: NodeId, target: NodeId) -> Optional[TransformFunc]:
        return self.get_edge(source, target).transform

    def is_ancestor(self, potential_ancestor: NodeId, node_id: NodeId) -> bool:
        """True if node_id is reachable from potential_ancestor (or they are equal)."""
        self._store.get_node(potential_ancestor)
        self._store.get_node(node_id)
        return is_ancestor(self._store.nodes, potential_ancestor, node_id)

    def is_dirty(self, node_id: NodeId) -> bool:
        self._store.get_node(node_id)
        return self._tracker.is_dirty(node_id)

    @property
    def dirty_nodes(self) -> FrozenSet[NodeId]:
        return self._tracker.dirty_nodes

    @property
    def pending_updates(self) -> int:
        return self._tracker.pending_count

    def snapshot(self) -> GraphSnapshot:
        """Structural snapshot; does not trigger recompute."""
        return build_snapshot(self)

    def to_networkx(self) -> nx.DiGraph:
        return to_networkx(self)

    # =========================================================================
    # OBSERVERS
    # =========================================================================

    def add_observer(self, node_id: NodeId, callback: ObserverCallback) -> str:
        """
        Call callback(node_id, new_value, new_last_input) after every update
        of node_id, external or propagated.

        Returns:
            Subscription ID for remove_observer()
        """
        self._store.get_node(node_id)
        return self._observers.add(node_id, callback)

    def remove_observer(self, node_id: NodeId, subscription_id: str) -> bool:
        """
        Remove an observer registered with add_observer().

        Returns:
            True if the subscription existed

        Raises:
            NodeNotFoundError: if node_id does not exist
        """
        self._store.get_node(node_id)
        return self._observers.remove(node_id, subscription_id)

    def __len__(self) -> int:
        return len(self._store)

    def __contains__(self, node_id: NodeId) -> bool:
        return node_id in self._store

    def __repr__(self) -> str:
        return (
            f"StatDAG(nodes={len(self._store)}, edges={len(self._store.edges())}, "
            f"strategy={self._strategy.value!r})"
        )
