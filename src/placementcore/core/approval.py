"""Approval state machine for role grants, colleges, departments and recruiters."""

from __future__ import annotations

from typing import Any, Callable
from uuid import uuid4

import structlog

from ..adapters import Store
from ..schemas import (
    ApprovableBase,
    ApprovalStatus,
    IdentityContext,
    RoleGrantBase,
    parse_entity,
)
from .effects import MutationEffects
from .errors import (
    AlreadyFinalizedError,
    DuplicateRecordError,
    IncompleteJurisdictionError,
    NotFoundError,
    OutOfJurisdictionError,
    UnauthorizedRoleError,
    VersionConflictError,
)
from .registry import RoleRegistry


class ApprovalWorkflow:
    """Moves approvable entities from ``pending`` to ``approved`` or ``rejected``.

    Decisions are one-shot: both terminal states are immutable. Every
    decision is a single compare-and-swap against the version the caller
    read, so of two approvers racing on one entity exactly one wins.
    """

    def __init__(
        self,
        *,
        store: Store,
        registry: RoleRegistry,
        effects: MutationEffects | None = None,
        id_factory: Callable[[], str] | None = None,
    ) -> None:
        self._store = store
        self._registry = registry
        self._effects = effects or MutationEffects()
        self._id_factory = id_factory or (lambda: uuid4().hex)
        self._logger = structlog.get_logger(__name__)

    def submit(self, entity: ApprovableBase | dict[str, Any]) -> str:
        if isinstance(entity, dict):
            entity = parse_entity(entity)
        required_level = self._registry.required_level(entity.target_role, invited=entity.invited)
        if not entity.jurisdiction.is_complete_for(required_level):
            raise IncompleteJurisdictionError(
                f"{entity.kind} for {entity.target_role.value} needs a "
                f"{required_level.name.lower()}-level jurisdiction",
                required_level=required_level.name.lower(),
                jurisdiction=entity.jurisdiction.describe(),
            )

        entity_id = entity.id or self._id_factory()
        record = entity.model_copy(
            update={
                "id": entity_id,
                "status": ApprovalStatus.PENDING,
                "version": 0,
                "approver_id": None,
                "rejection_reason": None,
                "decided_at": None,
                "submitted_at": self._effects.now(),
            }
        )
        try:
            self._store.insert(record)
        except KeyError as exc:
            raise self._duplicate(entity_id) from exc

        self._effects.audit(
            "approval.submitted",
            entity_type=record.kind,
            entity_id=entity_id,
            user_id=record.submitted_by,
            details={
                "target_role": record.target_role.value,
                "jurisdiction": record.jurisdiction.describe(),
            },
        )
        self._logger.info(
            "approval.submitted",
            entity_id=entity_id,
            kind=record.kind,
            target_role=record.target_role.value,
        )
        return entity_id

    def get(self, entity_id: str) -> ApprovableBase:
        found = self._store.get(entity_id)
        if found is None or not isinstance(found[0], ApprovableBase):
            raise NotFoundError(f"No approvable entity {entity_id!r}", entity_id=entity_id)
        return found[0]

    def approve(
        self,
        entity_id: str,
        approver: IdentityContext,
        expected_version: int,
    ) -> ApprovableBase:
        return self._decide(entity_id, approver, expected_version, ApprovalStatus.APPROVED)

    def reject(
        self,
        entity_id: str,
        approver: IdentityContext,
        reason: str,
        expected_version: int,
    ) -> ApprovableBase:
        return self._decide(
            entity_id,
            approver,
            expected_version,
            ApprovalStatus.REJECTED,
            reason=reason,
        )

    def pending_for(self, approver: IdentityContext) -> list[ApprovableBase]:
        """Pending entities this approver is allowed to decide."""
        queue: dict[str, ApprovableBase] = {}
        for role in self._registry.approvable_roles(approver.caller_role):
            for entity in self._store.query_by_jurisdiction(role, approver.caller_jurisdiction):
                if entity.status != ApprovalStatus.PENDING or self._is_own_grant(entity, approver):
                    continue
                try:
                    self._registry.check_scope(
                        approver.caller_role,
                        approver.caller_jurisdiction,
                        entity.jurisdiction,
                    )
                except OutOfJurisdictionError:
                    continue
                required = self._registry.required_approver(
                    entity.target_role, invited=entity.invited
                )
                if required is approver.caller_role:
                    queue[entity.id] = entity
        return sorted(queue.values(), key=lambda item: (str(item.submitted_at), item.id))

    def _decide(
        self,
        entity_id: str,
        approver: IdentityContext,
        expected_version: int,
        outcome: ApprovalStatus,
        *,
        reason: str | None = None,
    ) -> ApprovableBase:
        entity = self.get(entity_id)
        if entity.is_final:
            raise AlreadyFinalizedError(
                f"{entity.kind} {entity_id!r} is already {entity.status.value}",
                entity_id=entity_id,
                status=entity.status.value,
            )
        if entity.version != expected_version:
            raise self._conflict(entity_id, expected_version, entity.version)
        if self._is_own_grant(entity, approver):
            raise UnauthorizedRoleError(
                "A user cannot decide their own role grant",
                entity_id=entity_id,
                approver_id=approver.caller_id,
            )
        self._registry.authorize(
            approver.caller_role,
            approver.caller_jurisdiction,
            entity.target_role,
            entity.jurisdiction,
            invited=entity.invited,
        )

        updated = entity.model_copy(
            update={
                "status": outcome,
                "approver_id": approver.caller_id,
                "rejection_reason": reason,
                "decided_at": self._effects.now(),
                "version": expected_version + 1,
            }
        )
        if not self._store.compare_and_swap(entity_id, expected_version, updated):
            current = self._store.get(entity_id)
            raise self._conflict(entity_id, expected_version, current[1] if current else None)

        action = f"approval.{outcome.value}"
        self._effects.audit(
            action,
            entity_type=updated.kind,
            entity_id=entity_id,
            user_id=approver.caller_id,
            details={
                "target_role": updated.target_role.value,
                "approver_role": approver.caller_role.value,
                "reason": reason,
                "version": updated.version,
            },
        )
        self._effects.notify(
            self._recipient(updated),
            f"approval_{outcome.value}",
            {
                "entity_id": entity_id,
                "entity_type": updated.kind,
                "role": updated.target_role.value,
                "reason": reason,
            },
        )
        self._logger.info(
            action,
            entity_id=entity_id,
            kind=updated.kind,
            approver_id=approver.caller_id,
            approver_role=approver.caller_role.value,
        )
        return updated

    @staticmethod
    def _is_own_grant(entity: ApprovableBase, approver: IdentityContext) -> bool:
        return isinstance(entity, RoleGrantBase) and entity.user_id == approver.caller_id

    @staticmethod
    def _recipient(entity: ApprovableBase) -> str | None:
        if isinstance(entity, RoleGrantBase):
            return entity.user_id
        return entity.submitted_by

    def _conflict(
        self,
        entity_id: str,
        expected_version: int,
        actual_version: int | None,
    ) -> VersionConflictError:
        self._logger.warning(
            "approval.version_conflict",
            entity_id=entity_id,
            expected_version=expected_version,
            actual_version=actual_version,
        )
        return VersionConflictError(
            f"{entity_id!r} changed since version {expected_version}",
            entity_id=entity_id,
            expected_version=expected_version,
            actual_version=actual_version,
        )

    def _duplicate(self, entity_id: str) -> DuplicateRecordError:
        return DuplicateRecordError(
            f"An entity with id {entity_id!r} already exists",
            entity_id=entity_id,
        )
