"""Facade exposing every core operation to the UI/API layer."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from .core import (
    ApplicationLifecycle,
    ApprovalWorkflow,
    ForbiddenActorError,
    ProfileService,
    RoleRegistry,
    ScoreBreakdown,
    ScoreEngine,
)
from .schemas import (
    ApprovableBase,
    Application,
    ApplicationStatus,
    IdentityContext,
    Interview,
    Jurisdiction,
    Opportunity,
    OpportunityType,
    ProfileUpdate,
    Role,
    StudentGrant,
    StudentProfileSnapshot,
    StudentRecord,
    parse_entity,
)


class PlacementPortal:
    """Entry point for callers that hold an authenticated ``IdentityContext``.

    Each method takes plain arguments, returns a record or id on success and
    raises a ``PlacementError`` subclass on failure.
    """

    def __init__(
        self,
        *,
        registry: RoleRegistry,
        approvals: ApprovalWorkflow,
        lifecycle: ApplicationLifecycle,
        profiles: ProfileService,
        score_engine: ScoreEngine,
    ) -> None:
        self.registry = registry
        self.approvals = approvals
        self.lifecycle = lifecycle
        self.profiles = profiles
        self.score_engine = score_engine

    # approvals

    def submit(self, identity: IdentityContext, entity: ApprovableBase | dict[str, Any]) -> str:
        if isinstance(entity, dict):
            entity = parse_entity(entity)
        if entity.submitted_by is None:
            entity = entity.model_copy(update={"submitted_by": identity.caller_id})
        return self.approvals.submit(entity)

    def approve(
        self,
        identity: IdentityContext,
        entity_id: str,
        expected_version: int,
    ) -> ApprovableBase:
        return self.approvals.approve(entity_id, identity, expected_version)

    def reject(
        self,
        identity: IdentityContext,
        entity_id: str,
        reason: str,
        expected_version: int,
    ) -> ApprovableBase:
        return self.approvals.reject(entity_id, identity, reason, expected_version)

    def pending_approvals(self, identity: IdentityContext) -> list[ApprovableBase]:
        return self.approvals.pending_for(identity)

    # students

    def register_student(
        self,
        identity: IdentityContext,
        *,
        abc_id: str,
        jurisdiction: Jurisdiction | dict[str, Any],
        full_name: str | None = None,
    ) -> StudentRecord:
        """Submit the caller's student grant and create their profile record."""
        self._require_role(identity, Role.STUDENT, "register as a student")
        if isinstance(jurisdiction, dict):
            jurisdiction = Jurisdiction.model_validate(jurisdiction)
        self.profiles.ensure_unregistered(identity.caller_id)
        grant_id = self.approvals.submit(
            StudentGrant(
                user_id=identity.caller_id,
                abc_id=abc_id,
                jurisdiction=jurisdiction,
                submitted_by=identity.caller_id,
            )
        )
        return self.profiles.register(
            StudentRecord(
                id=identity.caller_id,
                abc_id=abc_id,
                jurisdiction=jurisdiction,
                full_name=full_name,
                grant_id=grant_id,
            )
        )

    def update_profile(
        self,
        identity: IdentityContext,
        changes: ProfileUpdate | dict[str, Any],
        expected_version: int,
    ) -> StudentRecord:
        return self.profiles.update_profile(identity.caller_id, identity, changes, expected_version)

    def issue_certificate(
        self,
        identity: IdentityContext,
        student_id: str,
        title: str,
        expected_version: int,
        *,
        kind: str = "completion",
    ) -> StudentRecord:
        return self.profiles.issue_certificate(
            student_id, identity, title, expected_version, kind=kind
        )

    def recompute_score(self, student_id: str) -> StudentRecord:
        return self.profiles.recompute_score(student_id)

    def score(self, snapshot: StudentProfileSnapshot | dict[str, Any]) -> int:
        return self.score_breakdown(snapshot).total

    def score_breakdown(self, snapshot: StudentProfileSnapshot | dict[str, Any]) -> ScoreBreakdown:
        if isinstance(snapshot, dict):
            snapshot = StudentProfileSnapshot.model_validate(snapshot)
        return self.score_engine.breakdown(snapshot)

    # opportunities and applications

    def post_opportunity(
        self,
        identity: IdentityContext,
        title: str,
        kind: OpportunityType | str = OpportunityType.JOB,
    ) -> str:
        return self.lifecycle.post_opportunity(identity, title, kind)

    def close_opportunity(
        self,
        identity: IdentityContext,
        opportunity_id: str,
        expected_version: int,
    ) -> Opportunity:
        return self.lifecycle.close_opportunity(opportunity_id, identity, expected_version)

    def apply(self, identity: IdentityContext, opportunity_id: str) -> str:
        self._require_role(identity, Role.STUDENT, "apply")
        return self.lifecycle.apply(identity.caller_id, opportunity_id)

    def transition(
        self,
        identity: IdentityContext,
        application_id: str,
        target: ApplicationStatus | str,
        expected_version: int,
        feedback: str | None = None,
    ) -> Application:
        return self.lifecycle.transition(
            application_id, identity, target, expected_version, feedback=feedback
        )

    def schedule_interview(
        self,
        identity: IdentityContext,
        application_id: str,
        scheduled_at: datetime | str,
        expected_version: int,
        **details: Any,
    ) -> str:
        return self.lifecycle.schedule_interview(
            application_id, identity, scheduled_at, expected_version, **details
        )

    def complete_interview(
        self,
        identity: IdentityContext,
        interview_id: str,
        expected_version: int,
        feedback: str | None = None,
    ) -> Application:
        return self.lifecycle.complete_interview(
            interview_id, identity, expected_version, feedback=feedback
        )

    def cancel_interview(
        self,
        identity: IdentityContext,
        interview_id: str,
        expected_version: int,
    ) -> Interview:
        return self.lifecycle.cancel_interview(interview_id, identity, expected_version)

    @staticmethod
    def _require_role(identity: IdentityContext, role: Role, action: str) -> None:
        if identity.caller_role is not role:
            raise ForbiddenActorError(
                f"Only a {role.value} can {action}",
                actor_id=identity.caller_id,
                actor_role=identity.caller_role.value,
            )
