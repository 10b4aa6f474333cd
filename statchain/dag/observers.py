"""
statchain Update Observers

Per-node callbacks invoked after every aggregate update, external or
propagated. Each graph owns its own registry.

A failing observer is logged and skipped; it never interrupts propagation
or the remaining observers.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, List
import logging

from statchain.core.protocols import NodeId, ObserverCallback

logger = logging.getLogger(__name__)


@dataclass
class Subscription:
    """A registered observer and the id used to remove it."""
    subscription_id: str
    node_id: NodeId
    callback: ObserverCallback


class ObserverRegistry:
    """
    Observer registry keyed by node id.

    Usage:
        registry = ObserverRegistry()
        sub_id = registry.add("mean", lambda node_id, value, raw: print(value))
        registry.notify("mean", 2.5, 4.0)
        registry.remove("mean", sub_id)
    """

    def __init__(self):
        self._subscriptions: Dict[NodeId, List[Subscription]] = {}
        self._subscription_counter = 0

    def add(self, node_id: NodeId, callback: ObserverCallback) -> str:
        """
        Register callback(node_id, new_value, new_last_input) for a node.

        Returns:
            Subscription ID for remove()
        """
        if not callable(callback):
            raise TypeError(f"Observer for node {node_id!r} must be callable")

        self._subscription_counter += 1
        sub_id = f"sub_{self._subscription_counter}"

        self._subscriptions.setdefault(node_id, []).append(
            Subscription(subscription_id=sub_id, node_id=node_id, callback=callback)
        )

        logger.debug(f"Observer {sub_id} added for node {node_id!r}")
        return sub_id

    def remove(self, node_id: NodeId, subscription_id: str) -> bool:
        """
        Remove a subscription.

        Returns:
            True if the subscription existed
        """
        subs = self._subscriptions.get(node_id, [])
        for i, sub in enumerate(subs):
            if sub.subscription_id == subscription_id:
                del subs[i]
                if not subs:
                    del self._subscriptions[node_id]
                logger.debug(f"Observer {subscription_id} removed from node {node_id!r}")
                return True
        return False

    def notify(self, node_id: NodeId, value: Any, last_input: Any) -> int:
        """
        Call every observer of a node in registration order.

        Returns:
            Number of observers that completed without raising
        """
        subs = self._subscriptions.get(node_id)
        if not subs:
            return 0

        delivered = 0
        # Copy so observers may unsubscribe themselves
        for sub in list(subs):
            try:
                sub.callback(node_id, value, last_input)
                delivered += 1
            except Exception as e:
                logger.error(
                    f"Observer {sub.subscription_id} failed for node {node_id!r}: {e}",
                    exc_info=True,
                )
        return delivered

    def count(self, node_id: NodeId) -> int:
        return len(self._subscriptions.get(node_id, []))
