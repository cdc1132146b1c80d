"""Collaborator interfaces consumed by the core, with reference implementations."""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from ..schemas import Application, Jurisdiction, NotificationEvent, Role
from .memory import InMemoryStore
from .notifications import InMemoryNotificationSink, LoggingNotificationSink


@runtime_checkable
class Store(Protocol):
    """Persistence contract: versioned records behind get / compare-and-swap.

    Records are pydantic models carrying ``id`` and ``version``.
    """

    def get(self, record_id: str) -> tuple[Any, int] | None:
        """Return ``(record, version)`` or ``None`` when absent."""

    def insert(self, record: Any) -> None:
        """Store a new record. Raises ``KeyError`` if the id is taken."""

    def compare_and_swap(self, record_id: str, expected_version: int, new_record: Any) -> bool:
        """Replace the record only if its stored version equals ``expected_version``."""

    def query_by_jurisdiction(self, role: Role, jurisdiction: Jurisdiction) -> list[Any]:
        """Approvable entities targeting ``role`` inside ``jurisdiction``."""

    def query_applications(
        self,
        *,
        student_id: str | None = None,
        opportunity_id: str | None = None,
    ) -> list[Application]:
        """Applications filtered by student and/or opportunity."""


@runtime_checkable
class NotificationSink(Protocol):
    """Fire-and-forget delivery of notification events."""

    def publish(self, event: NotificationEvent) -> None:
        """Hand one event to the delivery collaborator."""


__all__ = [
    "InMemoryNotificationSink",
    "InMemoryStore",
    "LoggingNotificationSink",
    "NotificationSink",
    "Store",
]
