"""Core placement components: hierarchy, workflows and scoring."""

from __future__ import annotations

# NOTE: keep imports explicit for export clarity.
from .approval import ApprovalWorkflow
from .effects import MutationEffects
from .errors import (
    AlreadyFinalizedError,
    ApprovalPendingError,
    DuplicateApplicationError,
    DuplicateRecordError,
    ForbiddenActorError,
    IllegalTransitionError,
    IncompleteJurisdictionError,
    InterviewAlreadyActiveError,
    NotFoundError,
    OpportunityClosedError,
    OutOfJurisdictionError,
    PlacementError,
    ProfileIncompleteError,
    UnauthorizedRoleError,
    UnknownRoleError,
    VersionConflictError,
)
from .lifecycle import TRANSITIONS, ApplicationLifecycle, is_edge
from .profiles import ProfileService
from .registry import RegistryConfig, RoleRegistry
from .scoring import ScoreBreakdown, ScoreConfig, ScoreEngine

__all__ = [
    "AlreadyFinalizedError",
    "ApplicationLifecycle",
    "ApprovalPendingError",
    "ApprovalWorkflow",
    "DuplicateApplicationError",
    "DuplicateRecordError",
    "ForbiddenActorError",
    "IllegalTransitionError",
    "IncompleteJurisdictionError",
    "InterviewAlreadyActiveError",
    "MutationEffects",
    "NotFoundError",
    "OpportunityClosedError",
    "OutOfJurisdictionError",
    "PlacementError",
    "ProfileIncompleteError",
    "ProfileService",
    "RegistryConfig",
    "RoleRegistry",
    "ScoreBreakdown",
    "ScoreConfig",
    "ScoreEngine",
    "TRANSITIONS",
    "UnauthorizedRoleError",
    "UnknownRoleError",
    "VersionConflictError",
    "is_edge",
]
