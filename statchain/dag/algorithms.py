"""
statchain Structural Algorithms

Cycle detection, topological ordering and reachability over a node mapping.

Every function takes the node mapping explicitly (id -> object with ordered
`parents` and `children` id lists) so that independent graphs never share
state. All traversals are iterative; chain depth is not limited by the
interpreter recursion limit.
"""

from __future__ import annotations
from collections import deque
from typing import TYPE_CHECKING, Dict, Iterable, List, Mapping, Optional, Set

from statchain.core.protocols import NodeId

if TYPE_CHECKING:
    from .graph import Node

WHITE, GRAY, BLACK = 0, 1, 2


def find_cycle(nodes: Mapping[NodeId, "Node"]) -> Optional[List[NodeId]]:
    """
    Three-colour depth-first search over all nodes.

    White = unvisited, gray = on the current path, black = finished. A child
    edge pointing at a gray node is a back edge and closes a cycle.

    Returns:
        The cycle as a path whose first and last ids are equal, or None.
    """
    color: Dict[NodeId, int] = {node_id: WHITE for node_id in nodes}

    for root in nodes:
        if color[root] != WHITE:
            continue

        color[root] = GRAY
        path: List[NodeId] = [root]
        stack = [iter(nodes[root].children)]

        while stack:
            descended = False
            for child in stack[-1]:
                state = color.get(child)
                if state is None:
                    # Dangling reference, reported by check_consistency
                    continue
                if state == GRAY:
                    start = path.index(child)
                    return path[start:] + [child]
                if state == WHITE:
                    color[child] = GRAY
                    path.append(child)
                    stack.append(iter(nodes[child].children))
                    descended = True
                    break

            if not descended:
                color[path.pop()] = BLACK
                stack.pop()

    return None


def has_cycle(nodes: Mapping[NodeId, "Node"]) -> bool:
    """Check whether the graph contains a cycle."""
    return find_cycle(nodes) is not None


def topological_sort(nodes: Mapping[NodeId, "Node"]) -> List[NodeId]:
    """
    Compute a topological order using Kahn's algorithm.

    Zero in-degree nodes are seeded in insertion order and dequeued FIFO, so
    the result is deterministic for a given construction sequence.
    """
    in_degree = {node_id: len(node.parents) for node_id, node in nodes.items()}
    queue = deque(node_id for node_id, degree in in_degree.items() if degree == 0)
    order: List[NodeId] = []

    while queue:
        current = queue.popleft()
        order.append(current)

        for child in nodes[current].children:
            if child not in in_degree:
                continue
            in_degree[child] -= 1
            if in_degree[child] == 0:
                queue.append(child)

    return order


def is_ancestor(
    nodes: Mapping[NodeId, "Node"],
    potential_ancestor: NodeId,
    node_id: NodeId,
) -> bool:
    """
    Check whether node_id is reachable from potential_ancestor.

    Reverse breadth-first search from node_id over parent edges. A node is
    considered its own ancestor.
    """
    if potential_ancestor == node_id:
        return True

    visited: Set[NodeId] = set()
    queue = deque([node_id])

    while queue:
        current = queue.popleft()
        if current in visited:
            continue
        visited.add(current)

        if current == potential_ancestor:
            return True

        node = nodes.get(current)
        if node is None:
            continue
        for parent in node.parents:
            if parent not in visited:
                queue.append(parent)

    return False


def descendants_in_order(
    nodes: Mapping[NodeId, "Node"],
    order: Iterable[NodeId],
    node_id: NodeId,
) -> List[NodeId]:
    """
    All strict descendants of node_id, in topological order.

    Equivalent to running is_ancestor(node_id, candidate) for every node after
    node_id in the order, with the reachability results cached for the pass:
    a candidate is downstream iff one of its parents already is.
    """
    reached: Set[NodeId] = {node_id}
    result: List[NodeId] = []
    started = False

    for candidate in order:
        if not started:
            started = candidate == node_id
            continue
        if any(parent in reached for parent in nodes[candidate].parents):
            reached.add(candidate)
            result.append(candidate)

    return result


def check_consistency(nodes: Mapping[NodeId, "Node"]) -> List[str]:
    """
    Report parent/child asymmetries and dangling references.

    Returns:
        Human-readable problem descriptions; empty when consistent.
    """
    problems: List[str] = []

    for node_id, node in nodes.items():
        for child_id in node.children:
            child = nodes.get(child_id)
            if child is None:
                problems.append(f"Node {node_id!r} has non-existent child {child_id!r}")
            elif node_id not in child.parents:
                problems.append(
                    f"Inconsistent parent-child relationship: {node_id!r} -> {child_id!r}"
                )

        for parent_id in node.parents:
            parent = nodes.get(parent_id)
            if parent is None:
                problems.append(f"Node {node_id!r} has non-existent parent {parent_id!r}")
            elif node_id not in parent.children:
                problems.append(
                    f"Inconsistent parent-child relationship: {parent_id!r} -> {node_id!r}"
                )

        if len(set(node.children)) != len(node.children):
            problems.append(f"Node {node_id!r} lists a child more than once")

    return problems
