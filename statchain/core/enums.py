"""
statchain Core Enumerations

Enumeration types shared by the graph, propagation and configuration layers.
"""

from enum import Enum


class EvaluationStrategy(str, Enum):
    """
    When propagation runs relative to an external update.
    """
    EAGER = "eager"      # Cascade immediately on every update
    LAZY = "lazy"        # Mark dirty, cascade on read or manual recompute
    PARTIAL = "partial"  # Reserved for subgraph-only evaluation; behaves as eager

    @property
    def cascades_immediately(self) -> bool:
        return self is not EvaluationStrategy.LAZY


class FanInPolicy(str, Enum):
    """
    Arity rule for nodes with more than one parent.
    """
    PERMISSIVE = "permissive"  # Deliver whichever parents pass their edge filter
    STRICT = "strict"          # Deliver only when every parent passes


class UpdateKind(str, Enum):
    """How an external update entered the graph."""
    CASCADE = "cascade"  # Single source, depth-first cascade
    WAVE = "wave"        # Several sources at once, one topological pass
