"""
errors/taxonomy.py - Error classification system

Every failure the engine surfaces is a StatChainError carrying a stable
code and category, so embedding applications can branch on codes instead
of message text.
"""

from __future__ import annotations
from typing import Any, Dict, List, Optional
from enum import Enum


class ErrorCategory(Enum):
    """Error categories."""
    # Structural errors (1xxx)
    STRUCTURE = "structure"

    # Lookup errors (2xxx)
    LOOKUP = "lookup"

    # Edge policy errors (3xxx)
    POLICY = "policy"

    # Usage / configuration errors (4xxx)
    USAGE = "usage"
    CONFIGURATION = "configuration"


class ErrorCode(Enum):
    """Specific error codes."""

    # Structure (1xxx)
    STR_DUPLICATE_NODE = 1001
    STR_CYCLE = 1002
    STR_INCONSISTENT = 1003

    # Lookup (2xxx)
    LKP_MISSING_NODE = 2001
    LKP_MISSING_EDGE = 2002

    # Policy (3xxx)
    POL_FILTER_FAILED = 3001
    POL_TRANSFORM_FAILED = 3002

    # Usage (4xxx)
    USE_NOT_A_SOURCE = 4001
    USE_INVALID_STRATEGY = 4002
    USE_INVALID_AGGREGATE = 4003


class StatChainError(Exception):
    """Base exception for all statchain errors."""

    code: ErrorCode = ErrorCode.STR_INCONSISTENT
    category: ErrorCategory = ErrorCategory.STRUCTURE

    def __init__(self, message: str = ""):
        self.message = message
        super().__init__(message)

    def __str__(self) -> str:
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": type(self).__name__,
            "code": self.code.value,
            "category": self.category.value,
            "message": self.message,
        }


class DuplicateNodeError(StatChainError, ValueError):
    """Raised when adding a node whose identifier already exists."""

    code = ErrorCode.STR_DUPLICATE_NODE
    category = ErrorCategory.STRUCTURE

    def __init__(self, node_id: Any):
        self.node_id = node_id
        super().__init__(f"Node {node_id!r} already exists")


class NodeNotFoundError(StatChainError, KeyError):
    """Raised when an operation references a node that does not exist."""

    code = ErrorCode.LKP_MISSING_NODE
    category = ErrorCategory.LOOKUP

    def __init__(self, node_id: Any):
        self.node_id = node_id
        super().__init__(f"Node {node_id!r} does not exist")


class EdgeNotFoundError(StatChainError, KeyError):
    """Raised when an edge lookup names a pair that is not connected."""

    code = ErrorCode.LKP_MISSING_EDGE
    category = ErrorCategory.LOOKUP

    def __init__(self, source: Any, target: Any):
        self.source = source
        self.target = target
        super().__init__(f"No edge {source!r} -> {target!r}")


class CycleError(StatChainError):
    """Raised when an edge would break acyclicity."""

    code = ErrorCode.STR_CYCLE
    category = ErrorCategory.STRUCTURE

    def __init__(
        self,
        source: Any = None,
        target: Any = None,
        cycle: Optional[List[Any]] = None,
        message: Optional[str] = None,
    ):
        self.source = source
        self.target = target
        self.cycle = list(cycle) if cycle else []
        if message is None:
            message = f"Adding edge {source!r} -> {target!r} would create a cycle"
            if self.cycle:
                message += f": {' -> '.join(repr(n) for n in self.cycle)}"
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["edge"] = [self.source, self.target]
        data["cycle"] = self.cycle
        return data


class GraphConsistencyError(StatChainError):
    """Raised by validation when adjacency lists disagree."""

    code = ErrorCode.STR_INCONSISTENT
    category = ErrorCategory.STRUCTURE


class EdgePolicyError(StatChainError):
    """
    A filter or transform raised while propagating across an edge.

    The original exception is chained as __cause__ and kept on .original.
    """

    category = ErrorCategory.POLICY

    def __init__(self, source: Any, target: Any, stage: str, original: BaseException):
        self.source = source
        self.target = target
        self.stage = stage
        self.original = original
        self.code = (
            ErrorCode.POL_FILTER_FAILED if stage == "filter"
            else ErrorCode.POL_TRANSFORM_FAILED
        )
        super().__init__(
            f"{stage.capitalize()} function failed on edge {source!r} -> {target!r}: "
            f"{type(original).__name__}: {original}"
        )

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["edge"] = [self.source, self.target]
        data["stage"] = self.stage
        return data


class NotASourceError(StatChainError, ValueError):
    """Raised when an external update targets a node that has parents."""

    code = ErrorCode.USE_NOT_A_SOURCE
    category = ErrorCategory.USAGE

    def __init__(self, node_id: Any, parents: List[Any]):
        self.node_id = node_id
        self.parents = list(parents)
        super().__init__(
            f"Node {node_id!r} is not a source (parents: {self.parents}); "
            f"external updates must target nodes without parents"
        )


class InvalidStrategyError(StatChainError, ValueError):
    """Raised for an unknown evaluation strategy or fan-in policy."""

    code = ErrorCode.USE_INVALID_STRATEGY
    category = ErrorCategory.CONFIGURATION


class LengthMismatchWarning(UserWarning):
    """Synchronised sequences differ in length; processing stops at the shortest."""
