"""Approvable entities: role grants, colleges, departments, recruiter accounts."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from .identity import Jurisdiction, Role, RoleAssignment


class ApprovalStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ApprovableBase(BaseModel):
    """Fields shared by every entity that goes through approval."""

    id: str = ""
    status: ApprovalStatus = ApprovalStatus.PENDING
    version: int = 0
    jurisdiction: Jurisdiction = Field(default_factory=Jurisdiction)
    submitted_by: str | None = None
    approver_id: str | None = None
    rejection_reason: str | None = None
    submitted_at: datetime | None = None
    decided_at: datetime | None = None

    model_config = ConfigDict(extra="forbid", frozen=True)

    @property
    def target_role(self) -> Role:
        raise NotImplementedError

    @property
    def invited(self) -> bool:
        return False

    @property
    def is_final(self) -> bool:
        return self.status != ApprovalStatus.PENDING


class RoleGrantBase(ApprovableBase):
    """Request for a user to hold a role."""

    kind: Literal["role_grant"] = "role_grant"
    user_id: str

    @property
    def target_role(self) -> Role:
        return Role(self.role)  # type: ignore[attr-defined]

    def to_assignment(self) -> RoleAssignment:
        return RoleAssignment(
            role=self.target_role,
            approved=self.status == ApprovalStatus.APPROVED,
            approver_id=self.approver_id,
            jurisdiction=self.jurisdiction,
        )


class StudentGrant(RoleGrantBase):
    role: Literal["student"] = "student"
    abc_id: str = Field(min_length=1)


class RecruiterGrant(RoleGrantBase):
    role: Literal["recruiter"] = "recruiter"
    company_name: str | None = None
    invited_by_college: bool = False

    @property
    def invited(self) -> bool:
        return self.invited_by_college


class NtoGrant(RoleGrantBase):
    role: Literal["nto"] = "nto"
    officer_code: str | None = None


class StoGrant(RoleGrantBase):
    role: Literal["sto"] = "sto"
    officer_code: str | None = None


class DtoGrant(RoleGrantBase):
    role: Literal["dto"] = "dto"
    officer_code: str | None = None


class CollegePlacementGrant(RoleGrantBase):
    role: Literal["college_placement"] = "college_placement"
    officer_code: str | None = None


class DeptCoordinatorGrant(RoleGrantBase):
    role: Literal["dept_coordinator"] = "dept_coordinator"
    officer_code: str | None = None


RoleGrant = Annotated[
    Union[
        StudentGrant,
        RecruiterGrant,
        NtoGrant,
        StoGrant,
        DtoGrant,
        CollegePlacementGrant,
        DeptCoordinatorGrant,
    ],
    Field(discriminator="role"),
]


class College(ApprovableBase):
    """College registration, approved by the district officer."""

    kind: Literal["college"] = "college"
    name: str
    code: str

    @property
    def target_role(self) -> Role:
        return Role.COLLEGE_PLACEMENT


class Department(ApprovableBase):
    """Department registration, approved by the college placement officer."""

    kind: Literal["department"] = "department"
    name: str

    @property
    def target_role(self) -> Role:
        return Role.DEPT_COORDINATOR


class RecruiterAccount(ApprovableBase):
    """Company account verification for a recruiter."""

    kind: Literal["recruiter_account"] = "recruiter_account"
    company_name: str
    website: str | None = None
    industry: str | None = None
    invited_by_college: bool = False

    @property
    def target_role(self) -> Role:
        return Role.RECRUITER

    @property
    def invited(self) -> bool:
        return self.invited_by_college


ApprovableEntity = Annotated[
    Union[RoleGrant, College, Department, RecruiterAccount],
    Field(discriminator="kind"),
]

_ENTITY_ADAPTER: TypeAdapter[Any] = TypeAdapter(ApprovableEntity)


def parse_entity(payload: dict[str, Any]) -> ApprovableBase:
    """Validate a raw mapping into the matching entity variant."""
    return _ENTITY_ADAPTER.validate_python(payload)
