"""
statchain - chained aggregation over a DAG

Nodes wrap incrementally-updatable aggregates; edges relay each node's
output downstream through optional filter and transform functions.
"""

from statchain.core import Aggregate, EvaluationStrategy, FanInPolicy
from statchain.dag import GraphSnapshot, RecomputeResult, StatDAG
from statchain.errors import (
    CycleError,
    DuplicateNodeError,
    EdgeNotFoundError,
    EdgePolicyError,
    GraphConsistencyError,
    InvalidStrategyError,
    LengthMismatchWarning,
    NodeNotFoundError,
    NotASourceError,
    StatChainError,
)

__version__ = "0.1.0"

__all__ = [
    "StatDAG",
    "Aggregate",
    "EvaluationStrategy",
    "FanInPolicy",
    "GraphSnapshot",
    "RecomputeResult",
    # Errors
    "StatChainError",
    "CycleError",
    "DuplicateNodeError",
    "EdgeNotFoundError",
    "EdgePolicyError",
    "GraphConsistencyError",
    "InvalidStrategyError",
    "LengthMismatchWarning",
    "NodeNotFoundError",
    "NotASourceError",
]
