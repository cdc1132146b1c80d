"""Notification sinks."""

from __future__ import annotations

import threading

import structlog

from ..schemas import NotificationEvent


class InMemoryNotificationSink:
    """Collects published events, in order."""

    def __init__(self) -> None:
        self._events: list[NotificationEvent] = []
        self._lock = threading.Lock()

    def publish(self, event: NotificationEvent) -> None:
        with self._lock:
            self._events.append(event)

    @property
    def events(self) -> list[NotificationEvent]:
        with self._lock:
            return list(self._events)

    def for_user(self, user_id: str) -> list[NotificationEvent]:
        return [event for event in self.events if event.user_id == user_id]


class LoggingNotificationSink:
    """Writes events to the structured log instead of delivering them."""

    def __init__(self) -> None:
        self._logger = structlog.get_logger(__name__)

    def publish(self, event: NotificationEvent) -> None:
        self._logger.info(
            "notification.published",
            user_id=event.user_id,
            kind=event.kind,
            payload=event.payload,
        )
