"""
statchain/core/protocols.py - Aggregate Protocol Definition

Defines the capability a node payload must provide, plus the callable
shapes used for edge policy and update observers.
"""

from __future__ import annotations

from typing import Any, Callable, Hashable, Protocol, runtime_checkable


NodeId = Hashable

# Edge policy callables operate on the propagated value only
FilterFunc = Callable[[Any], bool]
TransformFunc = Callable[[Any], Any]

# observer(node_id, new_value, new_last_input)
ObserverCallback = Callable[[NodeId, Any, Any], None]


@runtime_checkable
class Aggregate(Protocol):
    """
    Incrementally-updatable summary wrapped by a graph node.

    The engine never inspects aggregate internals: anything that can absorb
    one value at a time and report its current output is usable, whether a
    running mean, a counter, or a histogram.
    """

    def update(self, value: Any) -> None:
        """Absorb one input value."""
        ...

    def read(self) -> Any:
        """Return the current output."""
        ...


def is_aggregate(obj: Any) -> bool:
    """Check whether obj provides callable update/read members."""
    return (
        isinstance(obj, Aggregate)
        and callable(getattr(obj, "update", None))
        and callable(getattr(obj, "read", None))
    )
