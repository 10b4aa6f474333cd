"""
statchain Recompute Executor

Brings a lazy graph up to date in dependency order.

Deferred updates are replayed through the propagation engine in arrival
order, each journaled source exposed at the output it had at that moment,
so every dirty node receives exactly the inputs eager evaluation would have
given it. Remaining dirty nodes are then swept in topological order and
their caches accepted from aggregate.read(); they are never re-fed.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
import logging
import time

from statchain.core.enums import UpdateKind
from statchain.core.protocols import NodeId
from .graph import GraphStore
from .invalidation import DirtyTracker
from .propagation import PropagationEngine

logger = logging.getLogger(__name__)


# =============================================================================
# RECOMPUTE RESULT
# =============================================================================

@dataclass
class RecomputeResult:
    """Result of one recompute pass."""
    started_at: datetime
    completed_at: Optional[datetime] = None

    # Summary
    replayed_updates: int = 0
    node_updates: int = 0
    refreshed_nodes: List[NodeId] = field(default_factory=list)

    # Timing
    total_time_ms: float = 0.0

    @property
    def was_noop(self) -> bool:
        return self.replayed_updates == 0 and not self.refreshed_nodes

    def get_summary(self) -> Dict[str, Any]:
        return {
            "replayed": self.replayed_updates,
            "node_updates": self.node_updates,
            "refreshed": len(self.refreshed_nodes),
            "total_time_ms": self.total_time_ms,
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "replayed_updates": self.replayed_updates,
            "node_updates": self.node_updates,
            "refreshed_nodes": list(self.refreshed_nodes),
            "total_time_ms": self.total_time_ms,
        }


# =============================================================================
# RECOMPUTE EXECUTOR
# =============================================================================

class RecomputeExecutor:
    """Replays the journal and settles dirty nodes for one graph."""

    def __init__(self, store: GraphStore, engine: PropagationEngine, tracker: DirtyTracker):
        self._store = store
        self._engine = engine
        self._tracker = tracker

    def execute(self) -> RecomputeResult:
        """
        Run one recompute pass.

        Idempotent: with nothing dirty and nothing journaled it returns an
        empty result without touching any node. If an edge policy raises
        during replay, the error propagates; consumed journal entries stay
        consumed and the rest of the journal and dirty set are kept.
        """
        result = RecomputeResult(started_at=datetime.now(timezone.utc))

        if not self._tracker.needs_recompute:
            result.completed_at = result.started_at
            return result

        start = time.perf_counter()
        updates_before = self._engine.update_count
        order = self._store.topological_order()

        if self._tracker.has_pending:
            with self._engine.replaying(self._tracker.baselines()) as engine:
                while self._tracker.has_pending:
                    update = self._tracker.pop_next()
                    engine.show(update.after)
                    if update.kind is UpdateKind.WAVE:
                        engine.wave(update.sources, order)
                    else:
                        engine.cascade(update.sources[0])
                    result.replayed_updates += 1

        for node_id in order:
            if self._tracker.is_dirty(node_id):
                self._store.nodes[node_id].refresh()
                self._tracker.discard(node_id)
                result.refreshed_nodes.append(node_id)

        result.node_updates = self._engine.update_count - updates_before
        result.total_time_ms = (time.perf_counter() - start) * 1000
        result.completed_at = datetime.now(timezone.utc)

        logger.info(
            f"Recompute: replayed {result.replayed_updates} update(s), "
            f"{result.node_updates} node update(s), "
            f"{len(result.refreshed_nodes)} node(s) settled in {result.total_time_ms:.2f}ms"
        )
        return result
