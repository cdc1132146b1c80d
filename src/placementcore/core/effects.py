"""Side effects of committed mutations: notifications and audit records."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable

import pendulum
import structlog

from ..schemas import AuditRecord, NotificationEvent

if TYPE_CHECKING:
    from ..adapters import NotificationSink
    from ..audit import AuditLogger


class MutationEffects:
    """Publishes notifications and audit records after a write has committed.

    A failing sink or audit file never undoes the committed write; the
    failure is logged instead.
    """

    def __init__(
        self,
        *,
        sink: "NotificationSink | None" = None,
        audit_logger: "AuditLogger | None" = None,
        now_provider: Callable[[], pendulum.DateTime] | None = None,
    ) -> None:
        self._sink = sink
        self._audit_logger = audit_logger
        self._now_provider = now_provider or (lambda: pendulum.now("UTC"))
        self._logger = structlog.get_logger(__name__)

    def now(self) -> pendulum.DateTime:
        return self._now_provider()

    def notify(self, user_id: str | None, kind: str, payload: dict[str, Any]) -> None:
        if self._sink is None or not user_id:
            return
        event = NotificationEvent(
            user_id=user_id,
            kind=kind,
            payload=payload,
            created_at=self.now(),
        )
        try:
            self._sink.publish(event)
        except Exception as exc:  # noqa: BLE001
            self._logger.error(
                "notification.publish_failed",
                user_id=user_id,
                kind=kind,
                error=str(exc),
            )

    def audit(
        self,
        action: str,
        *,
        entity_type: str,
        entity_id: str | None,
        user_id: str | None,
        details: dict[str, Any] | None = None,
    ) -> None:
        if self._audit_logger is None:
            return
        record = AuditRecord(
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            user_id=user_id,
            details=details or {},
            created_at=self.now(),
        )
        try:
            self._audit_logger.append(record)
        except OSError as exc:
            self._logger.error(
                "audit.append_failed",
                action=action,
                entity_id=entity_id,
                error=str(exc),
            )
