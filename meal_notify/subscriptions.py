"""
Subscription registry: derived identifier -> current push subscription.
"""

from __future__ import annotations

import threading
from typing import Optional, Protocol

from meal_notify.models import PushSubscription


class SubscriptionRegistry(Protocol):
    """Operations the evaluator and request handlers need on subscriptions."""

    def upsert(self, subscription: PushSubscription) -> str:
        ...

    def get(self, identifier: str) -> Optional[PushSubscription]:
        ...

    def remove(self, identifier: str) -> bool:
        ...

    def all(self) -> list[tuple[str, PushSubscription]]:
        ...

    def __len__(self) -> int:
        ...


class InMemorySubscriptionRegistry:
    """Volatile registry; contents are lost when the process restarts."""

    def __init__(self):
        self.subscriptions: dict[str, PushSubscription] = {}
        self._lock = threading.RLock()

    def upsert(self, subscription: PushSubscription) -> str:
        identifier = subscription.identifier
        with self._lock:
            self.subscriptions[identifier] = subscription
        return identifier

    def get(self, identifier: str) -> Optional[PushSubscription]:
        with self._lock:
            return self.subscriptions.get(identifier)

    def remove(self, identifier: str) -> bool:
        with self._lock:
            return self.subscriptions.pop(identifier, None) is not None

    def all(self) -> list[tuple[str, PushSubscription]]:
        with self._lock:
            return list(self.subscriptions.items())

    def __len__(self) -> int:
        with self._lock:
            return len(self.subscriptions)

    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""
        with self._lock:
            self.subscriptions.clear()
