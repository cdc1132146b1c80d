"""Outbound notification events and audit records."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class NotificationEvent(BaseModel):
    """Event handed to the notification collaborator for delivery."""

    user_id: str
    kind: str
    payload: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime | None = None

    model_config = ConfigDict(extra="forbid", frozen=True)


class AuditRecord(BaseModel):
    """One accepted mutation, in the shape of the portal's audit log."""

    action: str
    entity_type: str
    entity_id: str | None = None
    user_id: str | None = None
    details: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime | None = None

    model_config = ConfigDict(extra="forbid")
