"""Pydantic schema definitions for the placement core data model."""

from __future__ import annotations

from .applications import (
    Application,
    ApplicationStatus,
    Interview,
    InterviewStatus,
    Opportunity,
    OpportunityType,
)
from .entities import (
    ApprovableBase,
    ApprovableEntity,
    ApprovalStatus,
    College,
    CollegePlacementGrant,
    Department,
    DeptCoordinatorGrant,
    DtoGrant,
    NtoGrant,
    RecruiterAccount,
    RecruiterGrant,
    RoleGrant,
    RoleGrantBase,
    StoGrant,
    StudentGrant,
    parse_entity,
)
from .events import AuditRecord, NotificationEvent
from .identity import (
    Identity,
    IdentityContext,
    Jurisdiction,
    JurisdictionLevel,
    Role,
    RoleAssignment,
)
from .students import (
    Certificate,
    ProfileUpdate,
    StudentProfileSnapshot,
    StudentRecord,
)

__all__ = [
    "Application",
    "ApplicationStatus",
    "ApprovableBase",
    "ApprovableEntity",
    "ApprovalStatus",
    "AuditRecord",
    "Certificate",
    "College",
    "CollegePlacementGrant",
    "Department",
    "DeptCoordinatorGrant",
    "DtoGrant",
    "Identity",
    "IdentityContext",
    "Interview",
    "InterviewStatus",
    "Jurisdiction",
    "JurisdictionLevel",
    "NotificationEvent",
    "NtoGrant",
    "Opportunity",
    "OpportunityType",
    "ProfileUpdate",
    "RecruiterAccount",
    "RecruiterGrant",
    "Role",
    "RoleAssignment",
    "RoleGrant",
    "RoleGrantBase",
    "StoGrant",
    "StudentGrant",
    "StudentProfileSnapshot",
    "StudentRecord",
    "parse_entity",
]
