"""Imprint notification channel."""

from __future__ import annotations

import logging
import threading
from typing import Callable

from ...models.domain import Imprint

logger = logging.getLogger(__name__)

ImprintHandler = Callable[[Imprint], None]


class Subscription:
    """Handle returned by :meth:`ImprintEventChannel.subscribe`."""

    def __init__(self, channel: "ImprintEventChannel", handler: ImprintHandler) -> None:
        self._channel = channel
        self.handler = handler
        self.active = True

    def close(self) -> None:
        if self.active:
            self._channel._remove(self)
            self.active = False

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class ImprintEventChannel:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._subscriptions: list[Subscription] = []

    def subscribe(self, handler: ImprintHandler) -> Subscription:
        subscription = Subscription(self, handler)
        with self._lock:
            self._subscriptions.append(subscription)
        return subscription

    def _remove(self, subscription: Subscription) -> None:
        with self._lock:
            if subscription in self._subscriptions:
                self._subscriptions.remove(subscription)

    def publish(self, imprint: Imprint) -> int:
        """Deliver ``imprint`` to every subscriber; returns how many handlers succeeded."""
        with self._lock:
            subscriptions = list(self._subscriptions)
        delivered = 0
        for subscription in subscriptions:
            try:
                subscription.handler(imprint)
            except Exception:
                logger.exception(f"Imprint handler failed for imprint {imprint.id}")
                continue
            delivered += 1
        return delivered

    def __len__(self) -> int:
        with self._lock:
            return len(self._subscriptions)
