"""
statchain/dag/export.py - Structural snapshots

Read-only views of a graph for diagnostics and tooling: validated pydantic
models and a networkx DiGraph.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, List, Optional

import networkx as nx
from pydantic import BaseModel, Field

from statchain.core.enums import EvaluationStrategy, FanInPolicy

if TYPE_CHECKING:
    from .chain import StatDAG


# =============================================================================
# Snapshot Schemas
# =============================================================================


class NodeSnapshot(BaseModel):
    """State of one node at snapshot time."""

    node_id: Any = Field(..., description="Node identifier")
    aggregate_type: str = Field(..., description="Class name of the wrapped aggregate")
    parents: List[Any] = Field(default_factory=list, description="Parent ids in declaration order")
    children: List[Any] = Field(default_factory=list, description="Child ids in declaration order")
    value: Any = Field(None, description="Cached output")
    last_input: Any = Field(None, description="Value most recently fed to the aggregate")
    update_count: int = Field(default=0, ge=0, description="Updates applied so far")
    dirty: bool = Field(default=False, description="Cache may be stale (lazy mode)")


class EdgeSnapshot(BaseModel):
    """One edge and whether it carries a policy."""

    source: Any = Field(..., description="Upstream node id")
    target: Any = Field(..., description="Downstream node id")
    has_filter: bool = Field(default=False)
    has_transform: bool = Field(default=False)


class GraphSnapshot(BaseModel):
    """Whole-graph structural snapshot."""

    strategy: EvaluationStrategy = Field(..., description="Evaluation strategy in effect")
    fan_in_policy: FanInPolicy = Field(..., description="Fan-in arity rule")
    topological_order: List[Any] = Field(default_factory=list)
    nodes: List[NodeSnapshot] = Field(default_factory=list)
    edges: List[EdgeSnapshot] = Field(default_factory=list)
    pending_updates: int = Field(default=0, ge=0, description="Deferred updates awaiting recompute")

    def get_node(self, node_id: Any) -> Optional[NodeSnapshot]:
        for node in self.nodes:
            if node.node_id == node_id:
                return node
        return None

    @property
    def dirty_nodes(self) -> List[Any]:
        return [node.node_id for node in self.nodes if node.dirty]


# =============================================================================
# Builders
# =============================================================================


def build_snapshot(dag: "StatDAG") -> GraphSnapshot:
    """Capture a GraphSnapshot without triggering recompute."""
    store = dag.store
    return GraphSnapshot(
        strategy=dag.strategy,
        fan_in_policy=dag.fan_in_policy,
        topological_order=store.topological_order(),
        nodes=[
            NodeSnapshot(
                node_id=node.node_id,
                aggregate_type=type(node.aggregate).__name__,
                parents=list(node.parents),
                children=list(node.children),
                value=node.value,
                last_input=node.last_input,
                update_count=node.update_count,
                dirty=dag.is_dirty(node.node_id),
            )
            for node in store.nodes.values()
        ],
        edges=[
            EdgeSnapshot(
                source=edge.source,
                target=edge.target,
                has_filter=edge.has_filter,
                has_transform=edge.has_transform,
            )
            for edge in store.edges()
        ],
        pending_updates=dag.pending_updates,
    )


def to_networkx(dag: "StatDAG") -> nx.DiGraph:
    """
    Export the structure as a networkx DiGraph.

    Node attributes: aggregate, value, last_input, dirty.
    Edge attributes: filter, transform (the callables, or None).
    """
    graph = nx.DiGraph()

    for node in dag.store.nodes.values():
        graph.add_node(
            node.node_id,
            aggregate=node.aggregate,
            value=node.value,
            last_input=node.last_input,
            dirty=dag.is_dirty(node.node_id),
        )

    for edge in dag.store.edges():
        graph.add_edge(edge.source, edge.target, filter=edge.filter, transform=edge.transform)

    return graph
