import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable

from marketstream.common.exceptions import MessageProcessingError

logger = logging.getLogger(__name__)

Callback = Callable[[Any], Any]
Cancel = Callable[[], None]


@dataclass(eq=False)
class Subscription:
    """Track one callback registered under a key."""

    key: str
    callback: Callback
    active: bool = True
    subscribe_time: datetime = field(default_factory=datetime.now)


class SubscriptionRegistry:
    """Keyed callback registry owned by a single component.

    ``publish`` iterates a snapshot taken when it starts, so callbacks may
    subscribe or cancel while a publish is in flight. A failing callback is
    logged and counted; the remaining callbacks still run.
    """

    def __init__(self, name: str = "registry") -> None:
        self.name = name
        self.error_count = 0
        self._subscriptions: dict[str, list[Subscription]] = {}

    def add(self, key: str, callback: Callback) -> Subscription:
        subscription = Subscription(key=key, callback=callback)
        self._subscriptions.setdefault(key, []).append(subscription)
        return subscription

    def remove(self, subscription: Subscription) -> bool:
        if not subscription.active:
            return False

        subscription.active = False
        entries = self._subscriptions.get(subscription.key, [])
        if subscription in entries:
            entries.remove(subscription)
        if not entries:
            self._subscriptions.pop(subscription.key, None)
        return True

    def subscribe(self, key: str, callback: Callback) -> Cancel:
        subscription = self.add(key, callback)

        def cancel() -> None:
            self.remove(subscription)

        return cancel

    def get(self, key: str) -> list[Subscription]:
        return list(self._subscriptions.get(key, []))

    def keys(self) -> list[str]:
        return list(self._subscriptions)

    def count(self, key: str) -> int:
        return len(self._subscriptions.get(key, []))

    def publish(self, key: str, payload: Any) -> int:
        delivered = 0
        for subscription in self.get(key):
            if not subscription.active:
                continue
            if self.invoke(subscription, payload):
                delivered += 1
        return delivered

    def invoke(self, subscription: Subscription, payload: Any) -> bool:
        try:
            subscription.callback(payload)
            return True
        except Exception as e:
            self.error_count += 1
            error = MessageProcessingError(
                f"{self.name}: subscriber for {subscription.key} failed", e
            )
            logger.error("%s", error)
            logger.debug("Original exception:", exc_info=e)
            return False
