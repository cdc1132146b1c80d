"""Application and interview state machine."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Callable, TypeVar
from uuid import uuid4

import structlog

from ..adapters import Store
from ..schemas import (
    Application,
    ApplicationStatus,
    ApprovalStatus,
    IdentityContext,
    Interview,
    InterviewStatus,
    Opportunity,
    OpportunityType,
    Role,
    StudentGrant,
    StudentRecord,
)
from .effects import MutationEffects
from .errors import (
    ApprovalPendingError,
    DuplicateApplicationError,
    ForbiddenActorError,
    IllegalTransitionError,
    InterviewAlreadyActiveError,
    NotFoundError,
    OpportunityClosedError,
    ProfileIncompleteError,
    VersionConflictError,
)

RecordT = TypeVar("RecordT")

_S = ApplicationStatus

TRANSITIONS: dict[ApplicationStatus, frozenset[ApplicationStatus]] = {
    _S.APPLIED: frozenset({_S.UNDER_REVIEW, _S.REJECTED, _S.WITHDRAWN}),
    _S.UNDER_REVIEW: frozenset({_S.INTERVIEW_SCHEDULED, _S.REJECTED, _S.WITHDRAWN}),
    _S.INTERVIEW_SCHEDULED: frozenset({_S.INTERVIEWED, _S.REJECTED}),
    _S.INTERVIEWED: frozenset({_S.OFFERED, _S.REJECTED}),
    _S.OFFERED: frozenset({_S.ACCEPTED, _S.REJECTED}),
    _S.ACCEPTED: frozenset(),
    _S.REJECTED: frozenset(),
    _S.WITHDRAWN: frozenset(),
}

TERMINAL_STATUSES = frozenset(status for status, targets in TRANSITIONS.items() if not targets)

# Targets only the owning student may request.
STUDENT_TARGETS = frozenset({_S.WITHDRAWN, _S.ACCEPTED})

# Targets only the opportunity's recruiter may request.
RECRUITER_TARGETS = frozenset(
    {_S.UNDER_REVIEW, _S.INTERVIEW_SCHEDULED, _S.INTERVIEWED, _S.OFFERED, _S.REJECTED}
)


SCHEDULABLE_STATUSES = frozenset({_S.UNDER_REVIEW, _S.INTERVIEW_SCHEDULED})


def is_edge(current: ApplicationStatus, target: ApplicationStatus) -> bool:
    return target in TRANSITIONS[current]


class ApplicationLifecycle:
    """Applications from ``applied`` to ``accepted``, ``rejected`` or ``withdrawn``.

    Every successful transition (and interview scheduling) publishes exactly
    one notification to the student once the write has committed.
    """

    def __init__(
        self,
        *,
        store: Store,
        effects: MutationEffects | None = None,
        id_factory: Callable[[], str] | None = None,
    ) -> None:
        self._store = store
        self._effects = effects or MutationEffects()
        self._id_factory = id_factory or (lambda: uuid4().hex)
        self._logger = structlog.get_logger(__name__)

    # -- opportunities -------------------------------------------------

    def post_opportunity(
        self,
        actor: IdentityContext,
        title: str,
        kind: OpportunityType | str = OpportunityType.JOB,
    ) -> str:
        if actor.caller_role is not Role.RECRUITER:
            raise ForbiddenActorError(
                "Only recruiters can post opportunities",
                actor_id=actor.caller_id,
                actor_role=actor.caller_role.value,
            )
        opportunity = Opportunity(
            id=self._id_factory(),
            recruiter_id=actor.caller_id,
            title=title,
            kind=OpportunityType(kind),
            created_at=self._effects.now(),
        )
        self._store.insert(opportunity)
        self._effects.audit(
            "opportunity.posted",
            entity_type="opportunity",
            entity_id=opportunity.id,
            user_id=actor.caller_id,
            details={"title": title, "kind": opportunity.kind.value},
        )
        return opportunity.id

    def close_opportunity(
        self,
        opportunity_id: str,
        actor: IdentityContext,
        expected_version: int,
    ) -> Opportunity:
        opportunity = self.get_opportunity(opportunity_id)
        if not self._is_recruiter(opportunity, actor):
            raise ForbiddenActorError(
                "Only the posting recruiter can close an opportunity",
                opportunity_id=opportunity_id,
                actor_id=actor.caller_id,
            )
        if opportunity.version != expected_version:
            raise self._conflict(opportunity_id, expected_version, opportunity.version)
        updated = opportunity.model_copy(update={"active": False, "version": expected_version + 1})
        self._commit(opportunity_id, expected_version, updated)
        self._effects.audit(
            "opportunity.closed",
            entity_type="opportunity",
            entity_id=opportunity_id,
            user_id=actor.caller_id,
        )
        return updated

    # -- applications --------------------------------------------------

    def apply(self, student_id: str, opportunity_id: str) -> str:
        student = self._load(student_id, StudentRecord, "student")
        opportunity = self.get_opportunity(opportunity_id)

        if not student.profile_completed:
            raise ProfileIncompleteError(
                "Complete the profile before applying",
                student_id=student_id,
            )
        if not self._is_approved(student):
            raise ApprovalPendingError(
                "Student registration is not approved yet",
                student_id=student_id,
                grant_id=student.grant_id,
            )
        if not opportunity.active:
            raise OpportunityClosedError(
                f"Opportunity {opportunity_id!r} is closed",
                opportunity_id=opportunity_id,
            )
        existing = [
            application
            for application in self._store.query_applications(
                student_id=student_id, opportunity_id=opportunity_id
            )
            if application.status not in TERMINAL_STATUSES
            or application.status == ApplicationStatus.ACCEPTED
        ]
        if existing:
            raise DuplicateApplicationError(
                "An application for this opportunity already exists",
                student_id=student_id,
                opportunity_id=opportunity_id,
                application_id=existing[0].id,
            )

        now = self._effects.now()
        application = Application(
            id=self._id_factory(),
            student_id=student_id,
            opportunity_id=opportunity_id,
            applied_at=now,
            updated_at=now,
        )
        self._store.insert(application)
        self._effects.audit(
            "application.submitted",
            entity_type="application",
            entity_id=application.id,
            user_id=student_id,
            details={"opportunity_id": opportunity_id},
        )
        self._logger.info(
            "application.submitted",
            application_id=application.id,
            student_id=student_id,
            opportunity_id=opportunity_id,
        )
        return application.id

    def transition(
        self,
        application_id: str,
        actor: IdentityContext,
        target: ApplicationStatus | str,
        expected_version: int,
        feedback: str | None = None,
    ) -> Application:
        application = self.get_application(application_id)
        opportunity = self.get_opportunity(application.opportunity_id)
        target = self._coerce_status(target, application)

        self._authorize(application, opportunity, actor, target)
        if not is_edge(application.status, target):
            raise IllegalTransitionError(
                f"Cannot move application from {application.status.value} to {target.value}",
                application_id=application_id,
                current=application.status.value,
                target=target.value,
            )
        if application.version != expected_version:
            raise self._conflict(application_id, expected_version, application.version)

        updated = application.model_copy(
            update={
                "status": target,
                "feedback": feedback if feedback is not None else application.feedback,
                "updated_at": self._effects.now(),
                "version": expected_version + 1,
            }
        )
        self._commit(application_id, expected_version, updated)

        if target == ApplicationStatus.INTERVIEWED:
            self._complete_active_interview(updated)

        self._after_transition(application, updated, actor)
        return updated

    def schedule_interview(
        self,
        application_id: str,
        actor: IdentityContext,
        scheduled_at: datetime | str,
        expected_version: int,
        *,
        duration_minutes: int = 60,
        location: str | None = None,
        meeting_link: str | None = None,
        interviewer_name: str | None = None,
    ) -> str:
        """Create an interview and move the application to ``interview_scheduled``.

        The application compare-and-swap is the commit point; the interview
        record is written only after it succeeds.
        """
        application = self.get_application(application_id)
        opportunity = self.get_opportunity(application.opportunity_id)
        self._authorize(application, opportunity, actor, ApplicationStatus.INTERVIEW_SCHEDULED)

        active = self._active_interview(application)
        if active is not None:
            raise InterviewAlreadyActiveError(
                "An interview is already active for this application",
                application_id=application_id,
                interview_id=active.id,
            )
        if application.version != expected_version:
            raise self._conflict(application_id, expected_version, application.version)
        # interview_scheduled with no active interview means the last one was cancelled
        if application.status not in SCHEDULABLE_STATUSES:
            raise IllegalTransitionError(
                "Interviews can only be scheduled from under_review or after a cancelled "
                f"interview_scheduled, not {application.status.value}",
                application_id=application_id,
                current=application.status.value,
                target=ApplicationStatus.INTERVIEW_SCHEDULED.value,
            )

        interview = Interview(
            id=self._id_factory(),
            application_id=application_id,
            scheduled_at=scheduled_at,
            duration_minutes=duration_minutes,
            location=location,
            meeting_link=meeting_link,
            interviewer_name=interviewer_name,
        )
        updated = application.model_copy(
            update={
                "status": ApplicationStatus.INTERVIEW_SCHEDULED,
                "interview_id": interview.id,
                "updated_at": self._effects.now(),
                "version": expected_version + 1,
            }
        )
        self._commit(application_id, expected_version, updated)
        self._store.insert(interview)

        self._effects.audit(
            "interview.scheduled",
            entity_type="interview",
            entity_id=interview.id,
            user_id=actor.caller_id,
            details={
                "application_id": application_id,
                "scheduled_at": interview.scheduled_at.isoformat(),
            },
        )
        self._effects.notify(
            application.student_id,
            "interview_scheduled",
            {
                "application_id": application_id,
                "interview_id": interview.id,
                "scheduled_at": interview.scheduled_at.isoformat(),
                "location": location,
                "meeting_link": meeting_link,
            },
        )
        self._logger.info(
            "interview.scheduled",
            application_id=application_id,
            interview_id=interview.id,
        )
        return interview.id

    def complete_interview(
        self,
        interview_id: str,
        actor: IdentityContext,
        expected_version: int,
        feedback: str | None = None,
    ) -> Application:
        """Move the interview's application to ``interviewed``.

        ``expected_version`` is the application's version.
        """
        interview = self.get_interview(interview_id)
        application = self.get_application(interview.application_id)
        opportunity = self.get_opportunity(application.opportunity_id)
        self._authorize(application, opportunity, actor, ApplicationStatus.INTERVIEWED)
        if (
            interview.status != InterviewStatus.SCHEDULED
            or application.interview_id != interview_id
        ):
            raise IllegalTransitionError(
                f"Interview {interview_id!r} is not the application's scheduled interview",
                interview_id=interview_id,
                application_id=application.id,
                current=interview.status.value,
                target=InterviewStatus.COMPLETED.value,
            )
        return self.transition(
            interview.application_id,
            actor,
            ApplicationStatus.INTERVIEWED,
            expected_version,
            feedback=feedback,
        )

    def cancel_interview(
        self,
        interview_id: str,
        actor: IdentityContext,
        expected_version: int,
    ) -> Interview:
        """Cancel a scheduled interview. The application keeps its status."""
        interview = self.get_interview(interview_id)
        application = self.get_application(interview.application_id)
        opportunity = self.get_opportunity(application.opportunity_id)
        if not self._is_recruiter(opportunity, actor):
            raise ForbiddenActorError(
                "Only the opportunity's recruiter can cancel interviews",
                interview_id=interview_id,
                actor_id=actor.caller_id,
            )
        if interview.status != InterviewStatus.SCHEDULED:
            raise IllegalTransitionError(
                f"Interview is {interview.status.value}",
                interview_id=interview_id,
                current=interview.status.value,
                target=InterviewStatus.CANCELLED.value,
            )
        if interview.version != expected_version:
            raise self._conflict(interview_id, expected_version, interview.version)

        updated = interview.model_copy(
            update={"status": InterviewStatus.CANCELLED, "version": expected_version + 1}
        )
        self._commit(interview_id, expected_version, updated)
        self._effects.audit(
            "interview.cancelled",
            entity_type="interview",
            entity_id=interview_id,
            user_id=actor.caller_id,
            details={"application_id": application.id},
        )
        self._effects.notify(
            application.student_id,
            "interview_cancelled",
            {"application_id": application.id, "interview_id": interview_id},
        )
        return updated

    # -- reads ---------------------------------------------------------

    def get_application(self, application_id: str) -> Application:
        return self._load(application_id, Application, "application")

    def get_interview(self, interview_id: str) -> Interview:
        return self._load(interview_id, Interview, "interview")

    def get_opportunity(self, opportunity_id: str) -> Opportunity:
        return self._load(opportunity_id, Opportunity, "opportunity")

    def applications_for_student(self, student_id: str) -> list[Application]:
        return self._store.query_applications(student_id=student_id)

    def applications_for_opportunity(self, opportunity_id: str) -> list[Application]:
        return self._store.query_applications(opportunity_id=opportunity_id)

    # -- helpers -------------------------------------------------------

    def _authorize(
        self,
        application: Application,
        opportunity: Opportunity,
        actor: IdentityContext,
        target: ApplicationStatus,
    ) -> None:
        if target in STUDENT_TARGETS and not self._is_owner(application, actor):
            raise ForbiddenActorError(
                f"Only the applying student can move an application to {target.value}",
                application_id=application.id,
                actor_id=actor.caller_id,
                target=target.value,
            )
        if target in RECRUITER_TARGETS and not self._is_recruiter(opportunity, actor):
            raise ForbiddenActorError(
                f"Only the opportunity's recruiter can move an application to {target.value}",
                application_id=application.id,
                actor_id=actor.caller_id,
                target=target.value,
            )

    def _is_approved(self, student: StudentRecord) -> bool:
        if not student.grant_id:
            return False
        found = self._store.get(student.grant_id)
        if found is None:
            return False
        grant = found[0]
        return (
            isinstance(grant, StudentGrant)
            and grant.user_id == student.id
            and grant.status == ApprovalStatus.APPROVED
        )

    @staticmethod
    def _is_owner(application: Application, actor: IdentityContext) -> bool:
        return actor.caller_role is Role.STUDENT and actor.caller_id == application.student_id

    @staticmethod
    def _is_recruiter(opportunity: Opportunity, actor: IdentityContext) -> bool:
        return actor.caller_role is Role.RECRUITER and actor.caller_id == opportunity.recruiter_id

    @staticmethod
    def _coerce_status(value: Any, application: Application) -> ApplicationStatus:
        try:
            return ApplicationStatus(value)
        except ValueError as exc:
            raise IllegalTransitionError(
                f"Unknown application status {value!r}",
                application_id=application.id,
                current=application.status.value,
                target=str(value),
            ) from exc

    def _active_interview(self, application: Application) -> Interview | None:
        if not application.interview_id:
            return None
        found = self._store.get(application.interview_id)
        if found is None:
            return None
        interview = found[0]
        return interview if interview.is_active else None

    def _complete_active_interview(self, application: Application) -> None:
        interview = self._active_interview(application)
        if interview is None or interview.status != InterviewStatus.SCHEDULED:
            return
        completed = interview.model_copy(
            update={"status": InterviewStatus.COMPLETED, "version": interview.version + 1}
        )
        if not self._store.compare_and_swap(interview.id, interview.version, completed):
            self._logger.warning(
                "interview.complete_skipped",
                interview_id=interview.id,
                application_id=application.id,
            )

    def _after_transition(
        self,
        before: Application,
        after: Application,
        actor: IdentityContext,
    ) -> None:
        self._effects.audit(
            "application.transition",
            entity_type="application",
            entity_id=after.id,
            user_id=actor.caller_id,
            details={
                "from": before.status.value,
                "to": after.status.value,
                "version": after.version,
                "feedback": after.feedback,
            },
        )
        self._effects.notify(
            after.student_id,
            f"application_{after.status.value}",
            {
                "application_id": after.id,
                "opportunity_id": after.opportunity_id,
                "previous_status": before.status.value,
                "status": after.status.value,
                "feedback": after.feedback,
            },
        )
        self._logger.info(
            "application.transition",
            application_id=after.id,
            previous_status=before.status.value,
            status=after.status.value,
            actor_id=actor.caller_id,
        )

    def _load(self, record_id: str, record_type: type[RecordT], label: str) -> RecordT:
        found = self._store.get(record_id)
        if found is None or not isinstance(found[0], record_type):
            raise NotFoundError(f"No {label} {record_id!r}", record_id=record_id, kind=label)
        return found[0]

    def _commit(self, record_id: str, expected_version: int, updated: Any) -> None:
        if not self._store.compare_and_swap(record_id, expected_version, updated):
            current = self._store.get(record_id)
            raise self._conflict(record_id, expected_version, current[1] if current else None)

    def _conflict(
        self,
        record_id: str,
        expected_version: int,
        actual_version: int | None,
    ) -> VersionConflictError:
        self._logger.warning(
            "application.version_conflict",
            record_id=record_id,
            expected_version=expected_version,
            actual_version=actual_version,
        )
        return VersionConflictError(
            f"{record_id!r} changed since version {expected_version}",
            record_id=record_id,
            expected_version=expected_version,
            actual_version=actual_version,
        )
