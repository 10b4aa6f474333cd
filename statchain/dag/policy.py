"""
statchain Edge Policy

Filter-then-transform evaluation for a single edge and value collection for
fan-in nodes. Callable failures are re-raised as EdgePolicyError naming the
edge and stage, with the original exception chained.
"""

from __future__ import annotations
from typing import TYPE_CHECKING, Any, Callable, List, Optional, Tuple
import logging

from statchain.core.enums import FanInPolicy
from statchain.core.protocols import NodeId
from statchain.errors import EdgePolicyError

if TYPE_CHECKING:
    from .graph import Edge, GraphStore, Node

logger = logging.getLogger(__name__)

# output_of(node_id) -> (has_output, value)
OutputLookup = Callable[[NodeId], Tuple[bool, Any]]


def apply_edge_policy(edge: "Edge", value: Any) -> Tuple[bool, Any]:
    """
    Run an edge's filter and transform against a candidate value.

    The transform never runs when the filter rejects.

    Returns:
        (accepted, delivered_value); delivered_value is None when rejected
    """
    if edge.filter is not None:
        try:
            accepted = bool(edge.filter(value))
        except Exception as exc:
            raise EdgePolicyError(edge.source, edge.target, "filter", exc) from exc
        if not accepted:
            logger.debug(f"Filter rejected {value!r} on {edge.source!r} -> {edge.target!r}")
            return False, None

    if edge.transform is not None:
        try:
            value = edge.transform(value)
        except Exception as exc:
            raise EdgePolicyError(edge.source, edge.target, "transform", exc) from exc

    return True, value


def collect_fan_in(
    store: "GraphStore",
    node: "Node",
    output_of: OutputLookup,
    policy: FanInPolicy = FanInPolicy.PERMISSIVE,
) -> Optional[List[Any]]:
    """
    Gather the values a multi-parent node receives, in parent order.

    Each parent's own output is passed through the policy of its edge into
    the node. Parents that have never produced an output are skipped.

    Returns:
        The collected list, or None when the node must not be updated:
        nothing survived (permissive) or some parent was missing or
        rejected (strict).
    """
    collected: List[Any] = []

    for parent_id in node.parents:
        has_output, value = output_of(parent_id)
        if not has_output:
            if policy is FanInPolicy.STRICT:
                logger.debug(f"Fan-in {node.node_id!r} waits for {parent_id!r} to produce output")
                return None
            continue

        edge = store.get_edge(parent_id, node.node_id)
        accepted, delivered = apply_edge_policy(edge, value)
        if accepted:
            collected.append(delivered)
        elif policy is FanInPolicy.STRICT:
            return None

    if not collected:
        return None
    return collected
