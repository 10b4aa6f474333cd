"""
statchain DAG Engine

Provides:
- StatDAG: graph of aggregates with eager, lazy and partial evaluation
- GraphStore: node/edge storage and structural invariants
- PropagationEngine: cascade and wave propagation with edge policy
- DirtyTracker / RecomputeExecutor: deferred, order-correct recompute
- GraphSnapshot: structural export
"""

from .graph import Edge, GraphStore, Node
from .algorithms import (
    descendants_in_order,
    find_cycle,
    has_cycle,
    is_ancestor,
    topological_sort,
)
from .policy import apply_edge_policy, collect_fan_in
from .observers import ObserverRegistry, Subscription
from .propagation import PropagationEngine
from .invalidation import DirtyTracker, PendingUpdate
from .cascade import RecomputeExecutor, RecomputeResult
from .export import EdgeSnapshot, GraphSnapshot, NodeSnapshot, build_snapshot, to_networkx
from .chain import StatDAG

__all__ = [
    # Graph
    "Edge",
    "GraphStore",
    "Node",
    # Algorithms
    "descendants_in_order",
    "find_cycle",
    "has_cycle",
    "is_ancestor",
    "topological_sort",
    # Propagation
    "apply_edge_policy",
    "collect_fan_in",
    "ObserverRegistry",
    "Subscription",
    "PropagationEngine",
    # Lazy evaluation
    "DirtyTracker",
    "PendingUpdate",
    "RecomputeExecutor",
    "RecomputeResult",
    # Export
    "EdgeSnapshot",
    "GraphSnapshot",
    "NodeSnapshot",
    "build_snapshot",
    "to_networkx",
    # Facade
    "StatDAG",
]
