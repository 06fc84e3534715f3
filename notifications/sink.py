"""
Purpose: In-memory notifier (the notification-delivery collaborator).

Anything with a `publish(event)` method can be injected instead
(push service, email queue, websocket broadcaster...).
"""
from __future__ import annotations

import logging
import threading
from typing import List

from .events import EventType, NotificationEvent

logger = logging.getLogger(__name__)


class InMemoryNotifier:

    def __init__(self):
        self._events: List[NotificationEvent] = []
        self._lock = threading.Lock()

    def publish(self, event: NotificationEvent) -> None:
        with self._lock:
            self._events.append(event)
        logger.debug(f"Event {event.type.value} -> {event.recipient_id}")

    @property
    def events(self) -> List[NotificationEvent]:
        with self._lock:
            return list(self._events)

    def of_type(self, event_type: EventType) -> List[NotificationEvent]:
        return [e for e in self.events if e.type == event_type]

    def for_recipient(self, recipient_id: str) -> List[NotificationEvent]:
        return [e for e in self.events if e.recipient_id == recipient_id]

    def clear(self) -> None:
        with self._lock:
            self._events.clear()
