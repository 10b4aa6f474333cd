"""
statchain Propagation Engine

Pushes a node's new output to its descendants.

Two traversals:
- cascade: one updated node, depth-first pre-order over children in
  declaration order (the eager rule)
- wave: several sources updated together, one pass over the topological
  order so a fan-in node sees all of its parents' new outputs at once

During lazy-mode replay, source outputs can be overridden so each deferred
update is propagated with the values it would have seen at the time.
"""

from __future__ import annotations
from contextlib import contextmanager
from typing import Any, Dict, Iterable, Iterator, List, Set, Tuple
import logging

from statchain.core.enums import FanInPolicy
from statchain.core.protocols import NodeId
from .graph import GraphStore, Node
from .observers import ObserverRegistry
from .policy import apply_edge_policy, collect_fan_in

logger = logging.getLogger(__name__)


class PropagationEngine:
    """Applies inputs to nodes and relays outputs along edges."""

    def __init__(
        self,
        store: GraphStore,
        observers: ObserverRegistry,
        fan_in_policy: FanInPolicy = FanInPolicy.PERMISSIVE,
    ):
        self._store = store
        self._observers = observers
        self.fan_in_policy = fan_in_policy

        # node_id -> (has_output, value) seen instead of the live cache
        self._overrides: Dict[NodeId, Tuple[bool, Any]] = {}

        # Total aggregate updates applied through this engine
        self.update_count = 0

    # -------------------------------------------------------------------------
    # Node updates
    # -------------------------------------------------------------------------

    def apply_input(self, node: Node, value: Any) -> Any:
        """Update one node's aggregate and notify its observers."""
        new_value = node.apply(value)
        self.update_count += 1
        self._observers.notify(node.node_id, new_value, value)
        return new_value

    def output_of(self, node_id: NodeId) -> Tuple[bool, Any]:
        """Output a child sees from node_id: (has_output, value)."""
        if node_id in self._overrides:
            return self._overrides[node_id]
        node = self._store.nodes[node_id]
        return node.has_output, node.value

    # -------------------------------------------------------------------------
    # Delivery
    # -------------------------------------------------------------------------

    def deliver(self, parent_id: NodeId, child_id: NodeId) -> bool:
        """
        Evaluate child_id after parent_id produced a new output.

        Single-parent children receive the parent's output through the edge
        policy; fan-in children receive the ordered collection of all their
        parents' outputs.

        Returns:
            True if the child was updated
        """
        child = self._store.nodes[child_id]

        if child.is_fan_in:
            collected = collect_fan_in(self._store, child, self.output_of, self.fan_in_policy)
            if collected is None:
                return False
            self.apply_input(child, collected)
            logger.debug(f"Fan-in {child_id!r} updated with {len(collected)} value(s)")
            return True

        has_output, value = self.output_of(parent_id)
        if not has_output:
            return False

        accepted, delivered = apply_edge_policy(self._store.get_edge(parent_id, child_id), value)
        if not accepted:
            return False

        self.apply_input(child, delivered)
        logger.debug(f"Propagated {parent_id!r} -> {child_id!r}")
        return True

    # -------------------------------------------------------------------------
    # Traversals
    # -------------------------------------------------------------------------

    def cascade(self, node_id: NodeId) -> int:
        """
        Propagate node_id's current output through all its descendants.

        Each accepted child is fully cascaded before its next sibling, the
        same visiting order as a recursive depth-first walk.

        Returns:
            Number of descendant updates applied
        """
        applied = 0
        # Frames are (node_id, index of the next child to visit)
        stack: List[Tuple[NodeId, int]] = [(node_id, 0)]

        while stack:
            current, index = stack.pop()
            children = self._store.nodes[current].children
            if index >= len(children):
                continue

            stack.append((current, index + 1))
            child_id = children[index]
            if self.deliver(current, child_id):
                applied += 1
                stack.append((child_id, 0))

        return applied

    def wave(self, source_ids: Iterable[NodeId], order: List[NodeId]) -> int:
        """
        Propagate several freshly updated sources in one topological pass.

        A non-source node is evaluated once, and only if at least one of its
        parents was updated in this pass.

        Returns:
            Number of descendant updates applied
        """
        fired: Set[NodeId] = set(source_ids)
        applied = 0

        for node_id in order:
            node = self._store.nodes[node_id]
            if node.is_source:
                continue
            if not any(parent in fired for parent in node.parents):
                continue

            if self.deliver(node.parents[0], node_id):
                fired.add(node_id)
                applied += 1

        return applied

    # -------------------------------------------------------------------------
    # Replay support
    # -------------------------------------------------------------------------

    @contextmanager
    def replaying(self, baselines: Dict[NodeId, Tuple[bool, Any]]) -> Iterator["PropagationEngine"]:
        """Expose the given outputs instead of live caches until exit."""
        self._overrides = dict(baselines)
        try:
            yield self
        finally:
            self._overrides = {}

    def show(self, outputs: Dict[NodeId, Any]) -> None:
        """Advance overridden nodes to the given outputs."""
        for node_id, value in outputs.items():
            self._overrides[node_id] = (True, value)
