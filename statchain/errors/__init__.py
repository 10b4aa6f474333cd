"""
errors/ - Error Taxonomy

Structured exception hierarchy for graph construction, propagation and
evaluation-strategy failures.
"""

from .taxonomy import (
    ErrorCategory,
    ErrorCode,
    StatChainError,
    DuplicateNodeError,
    NodeNotFoundError,
    EdgeNotFoundError,
    CycleError,
    GraphConsistencyError,
    EdgePolicyError,
    NotASourceError,
    InvalidStrategyError,
    LengthMismatchWarning,
)

__all__ = [
    "ErrorCategory",
    "ErrorCode",
    "StatChainError",
    "DuplicateNodeError",
    "NodeNotFoundError",
    "EdgeNotFoundError",
    "CycleError",
    "GraphConsistencyError",
    "EdgePolicyError",
    "NotASourceError",
    "InvalidStrategyError",
    "LengthMismatchWarning",
]
