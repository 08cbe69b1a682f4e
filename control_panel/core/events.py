"""Notification relay and event emitters."""

import fnmatch
import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Callable, Iterable, List
from uuid import UUID, uuid4

from control_panel.core.events_model import PanelEvent

logger = logging.getLogger(__name__)


ALLOWED_EVENTS = {
    "app:install:start",
    "app:install:progress",
    "app:install:complete",
    "app:install:error",
    "system:update:start",
    "system:update:progress",
    "system:update:complete",
    "system:update:error",
    "docker:pull:start",
    "docker:pull:progress",
    "docker:pull:complete",
    "docker:pull:error",
}


# ============================================
# RELAY
# ============================================

@dataclass(frozen=True)
class Subscription:
    """Handle returned by NotificationRelay.subscribe()."""
    pattern: str
    callback: Callable[[PanelEvent], None] = field(compare=False)
    subscription_id: UUID = field(default_factory=uuid4)


class NotificationRelay:
    """
    Topic-scoped publish/subscribe.

    Observers subscribe with an fnmatch pattern ("*", "instances/*",
    "system"). Delivery is synchronous and best-effort: nothing is
    buffered, so an observer that is not subscribed misses the event.
    """

    def __init__(self):
        self._subscriptions: List[Subscription] = []
        self._lock = threading.Lock()

    def subscribe(self, pattern: str, callback: Callable[[PanelEvent], None]) -> Subscription:
        subscription = Subscription(pattern=pattern or "*", callback=callback)
        with self._lock:
            self._subscriptions.append(subscription)
        logger.debug(f"[relay] subscribed {subscription.subscription_id} to '{subscription.pattern}'")
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        with self._lock:
            self._subscriptions = [
                s for s in self._subscriptions
                if s.subscription_id != subscription.subscription_id
            ]

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    def publish(self, event: PanelEvent) -> int:
        """Deliver event to every matching subscriber. Returns the delivery count."""
        with self._lock:
            targets = [s for s in self._subscriptions if fnmatch.fnmatchcase(event.topic, s.pattern)]

        delivered = 0
        for subscription in targets:
            try:
                subscription.callback(event)
                delivered += 1
            except Exception:
                logger.exception(
                    f"[relay] subscriber {subscription.subscription_id} failed on {event.event_type}"
                )
        return delivered


# ============================================
# EMITTERS
# ============================================

class EventEmitter(ABC):
    """Abstract event emitter."""

    @abstractmethod
    def emit(self, events: Iterable[PanelEvent]) -> None:
        """Emit one or more events."""
        pass


class RelayEventEmitter(EventEmitter):
    """Publishes events on a NotificationRelay."""

    def __init__(self, relay: NotificationRelay):
        self._relay = relay

    def emit(self, events: Iterable[PanelEvent]) -> None:
        for event in events:
            if event.event_type not in ALLOWED_EVENTS:
                raise ValueError(f"Invalid event type: {event.event_type}")
            self._relay.publish(event)


class LoggingEventEmitter(EventEmitter):
    """Writes every event to the log."""

    def emit(self, events: Iterable[PanelEvent]) -> None:
        for event in events:
            logger.info(f"[EVENT] {event.event_type} | topic={event.topic}")


class MultiEventEmitter(EventEmitter):
    """Fan-out to multiple emitters."""

    def __init__(self, emitters: Iterable[EventEmitter]):
        self._emitters = list(emitters)

    def emit(self, events: Iterable[PanelEvent]) -> None:
        events = list(events)
        for emitter in self._emitters:
            emitter.emit(events)


class NullEventEmitter(EventEmitter):
    """No-op emitter (used when events are not needed)."""

    def emit(self, events: Iterable[PanelEvent]) -> None:
        pass
