"""Typed failures raised by the placement core."""

from __future__ import annotations

from typing import Any


class PlacementError(Exception):
    """Base class for every failure returned to the immediate caller.

    ``retryable`` tells the caller whether re-reading and retrying can
    succeed. Only version conflicts are retryable.
    """

    code = "placement_error"
    retryable = False

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context = context

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "retryable": self.retryable,
            "context": dict(self.context),
        }


class NotFoundError(PlacementError, LookupError):
    code = "not_found"


class IncompleteJurisdictionError(PlacementError):
    code = "incomplete_jurisdiction"


class UnauthorizedRoleError(PlacementError):
    code = "unauthorized_role"


class OutOfJurisdictionError(PlacementError):
    code = "out_of_jurisdiction"


class AlreadyFinalizedError(PlacementError):
    code = "already_finalized"


class VersionConflictError(PlacementError):
    code = "version_conflict"
    retryable = True


class IllegalTransitionError(PlacementError):
    code = "illegal_transition"


class ForbiddenActorError(PlacementError):
    code = "forbidden_actor"


class DuplicateApplicationError(PlacementError):
    code = "duplicate_application"


class DuplicateRecordError(PlacementError):
    """A record with the same id is already stored."""

    code = "duplicate_record"


class ProfileIncompleteError(PlacementError):
    code = "profile_incomplete"


class InterviewAlreadyActiveError(PlacementError):
    code = "interview_already_active"


class ApprovalPendingError(PlacementError):
    code = "approval_pending"


class OpportunityClosedError(PlacementError):
    code = "opportunity_closed"


class UnknownRoleError(PlacementError, ValueError):
    """Role missing from the registry table. A programming error."""

    code = "unknown_role"


__all__ = [
    "AlreadyFinalizedError",
    "ApprovalPendingError",
    "DuplicateApplicationError",
    "DuplicateRecordError",
    "ForbiddenActorError",
    "IllegalTransitionError",
    "IncompleteJurisdictionError",
    "InterviewAlreadyActiveError",
    "NotFoundError",
    "OpportunityClosedError",
    "OutOfJurisdictionError",
    "PlacementError",
    "ProfileIncompleteError",
    "UnauthorizedRoleError",
    "UnknownRoleError",
    "VersionConflictError",
]
