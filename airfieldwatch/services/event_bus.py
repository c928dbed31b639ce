"""Typed publish/subscribe for engine events."""

from __future__ import annotations

import logging
from threading import Lock
from typing import Callable, Optional, TypeVar

from airfieldwatch.models.events import (
    NewNoticeEvent,
    NoticeAlertEvent,
    PhaseTransitionEvent,
    VectorLoadErrorEvent,
)

logger = logging.getLogger("airfieldwatch.event_bus")

EventT = TypeVar(
    "EventT", PhaseTransitionEvent, NoticeAlertEvent, NewNoticeEvent, VectorLoadErrorEvent
)
Subscriber = Callable[[EventT], None]


class EventBus:
    """Deliver events to callbacks registered per event class.

    Subscribing to ``None`` receives every event. A failing callback is
    logged and does not prevent delivery to the others.
    """

    def __init__(self) -> None:
        self._lock = Lock()
        self._subscribers: dict[Optional[type], list[Callable]] = {}
        self.delivered = 0
        self.failed = 0

    def subscribe(
        self, event_type: Optional[type[EventT]], callback: Subscriber
    ) -> Callable[[], None]:
        """Register ``callback``; returns a function that unsubscribes it."""

        with self._lock:
            self._subscribers.setdefault(event_type, []).append(callback)

        def unsubscribe() -> None:
            with self._lock:
                callbacks = self._subscribers.get(event_type, [])
                if callback in callbacks:
                    callbacks.remove(callback)

        return unsubscribe

    def publish(self, event) -> None:
        with self._lock:
            callbacks = list(self._subscribers.get(type(event), []))
            callbacks += self._subscribers.get(None, [])

        for callback in callbacks:
            try:
                callback(event)
                self.delivered += 1
            except Exception as exc:
                self.failed += 1
                logger.error("Error in %s subscriber %r: %s", event.kind, callback, exc)


__all__ = ["EventBus", "Subscriber"]
