"""Ordered observer registry for cache-changed notifications.

Delivery is synchronous and follows registration order. Each observer is
called in isolation: one that raises is logged and the rest still run.
"""
from __future__ import annotations

import itertools
import logging
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)

Observer = Callable[[Any], None]


class Subscription:
    """Handle returned by ObserverRegistry.subscribe()."""

    def __init__(self, registry: ObserverRegistry, subscription_id: int, observer: Observer) -> None:
        self._registry = registry
        self.subscription_id = subscription_id
        self.observer = observer

    @property
    def active(self) -> bool:
        return self._registry.is_subscribed(self)

    def unsubscribe(self) -> None:
        self._registry.unsubscribe(self)

    def __repr__(self) -> str:
        return f"Subscription(id={self.subscription_id}, active={self.active})"


class ObserverRegistry:
    """Synchronous fan-out to subscribed observers."""

    def __init__(self) -> None:
        self._subscriptions: dict[int, Subscription] = {}
        self._ids = itertools.count(1)

    def subscribe(self, observer: Observer) -> Subscription:
        """Append an observer; returns a handle for unsubscribing."""
        subscription = Subscription(self, next(self._ids), observer)
        self._subscriptions[subscription.subscription_id] = subscription
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        self._subscriptions.pop(subscription.subscription_id, None)

    def is_subscribed(self, subscription: Subscription) -> bool:
        return self._subscriptions.get(subscription.subscription_id) is subscription

    def publish(self, event: Any) -> int:
        """Deliver *event* to every observer in order. Returns successes."""
        delivered = 0
        # Snapshot so observers may unsubscribe during delivery.
        for subscription in list(self._subscriptions.values()):
            try:
                subscription.observer(event)
            except Exception:
                logger.exception(
                    "Observer %d failed handling %s",
                    subscription.subscription_id,
                    getattr(event, "event_type", type(event).__name__),
                )
                continue
            delivered += 1
        return delivered

    def clear(self) -> None:
        self._subscriptions.clear()

    def __len__(self) -> int:
        return len(self._subscriptions)
