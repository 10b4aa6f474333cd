"""
statchain Dirty Tracking

Lazy-mode bookkeeping: which nodes hold caches that may be stale, and the
journal of external updates whose propagation has been deferred.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Deque, Dict, FrozenSet, Iterable, List, Tuple
from collections import deque
import copy
import logging

from statchain.core.enums import UpdateKind
from statchain.core.protocols import NodeId
from .algorithms import descendants_in_order
from .graph import GraphStore

logger = logging.getLogger(__name__)


# =============================================================================
# JOURNAL ENTRY
# =============================================================================

def snapshot_output(value: Any) -> Any:
    """
    Detached copy of an aggregate output for the journal.

    read() may hand back the aggregate's own mutable state, which later
    updates would change under the journal. Values that cannot be deep-copied
    are journaled by reference.
    """
    try:
        return copy.deepcopy(value)
    except Exception as e:
        logger.debug(f"Journaling {type(value).__name__} output by reference: {e}")
        return value


@dataclass
class PendingUpdate:
    """One deferred external update."""
    kind: UpdateKind
    sources: Tuple[NodeId, ...]

    # Source outputs immediately before and after the update
    before: Dict[NodeId, Tuple[bool, Any]] = field(default_factory=dict)
    after: Dict[NodeId, Any] = field(default_factory=dict)

    recorded_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "sources": list(self.sources),
            "recorded_at": self.recorded_at.isoformat(),
        }


# =============================================================================
# DIRTY TRACKER
# =============================================================================

class DirtyTracker:
    """Dirty set plus pending-update journal for one graph."""

    def __init__(self, store: GraphStore):
        self._store = store
        # dict keeps marking order for stable reporting
        self._dirty: Dict[NodeId, None] = {}
        self._journal: Deque[PendingUpdate] = deque()

    # -------------------------------------------------------------------------
    # Dirty set
    # -------------------------------------------------------------------------

    def mark(self, node_ids: Iterable[NodeId]) -> int:
        added = 0
        for node_id in node_ids:
            if node_id not in self._dirty:
                self._dirty[node_id] = None
                added += 1
        return added

    def mark_downstream(self, node_id: NodeId) -> List[NodeId]:
        """
        Mark node_id and every node it structurally precedes.

        Returns:
            The marked nodes, node_id first, then descendants in
            topological order
        """
        affected = [node_id] + descendants_in_order(
            self._store.nodes, self._store.topological_order(), node_id
        )
        self.mark(affected)
        return affected

    def mark_all(self) -> int:
        return self.mark(self._store.node_ids())

    def discard(self, node_id: NodeId) -> None:
        self._dirty.pop(node_id, None)

    def clear(self) -> None:
        self._dirty.clear()

    def is_dirty(self, node_id: NodeId) -> bool:
        return node_id in self._dirty

    @property
    def dirty_nodes(self) -> FrozenSet[NodeId]:
        return frozenset(self._dirty)

    @property
    def any_dirty(self) -> bool:
        return bool(self._dirty)

    # -------------------------------------------------------------------------
    # Journal
    # -------------------------------------------------------------------------

    def record(self, update: PendingUpdate) -> None:
        self._journal.append(update)
        logger.debug(
            f"Deferred {update.kind.value} update from {list(update.sources)!r} "
            f"({len(self._journal)} pending)"
        )

    def pop_next(self) -> PendingUpdate:
        return self._journal.popleft()

    @property
    def has_pending(self) -> bool:
        return bool(self._journal)

    @property
    def pending_count(self) -> int:
        return len(self._journal)

    def pending(self) -> List[PendingUpdate]:
        return list(self._journal)

    def baselines(self) -> Dict[NodeId, Tuple[bool, Any]]:
        """
        Output of every journaled source before its earliest pending update.

        Replay starts from these values and advances each source through its
        recorded snapshots.
        """
        result: Dict[NodeId, Tuple[bool, Any]] = {}
        for update in self._journal:
            for node_id, previous in update.before.items():
                result.setdefault(node_id, previous)
        return result

    @property
    def needs_recompute(self) -> bool:
        return bool(self._dirty) or bool(self._journal)
