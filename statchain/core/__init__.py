"""
statchain Core Module

Enumerations and protocols shared across the package.
"""

from .enums import EvaluationStrategy, FanInPolicy, UpdateKind
from .protocols import (
    Aggregate,
    FilterFunc,
    NodeId,
    ObserverCallback,
    TransformFunc,
    is_aggregate,
)

__all__ = [
    # Enums
    "EvaluationStrategy",
    "FanInPolicy",
    "UpdateKind",
    # Protocols
    "Aggregate",
    "FilterFunc",
    "NodeId",
    "ObserverCallback",
    "TransformFunc",
    "is_aggregate",
]
