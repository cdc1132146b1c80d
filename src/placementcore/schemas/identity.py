"""Roles, jurisdictions and caller identity."""

from __future__ import annotations

from enum import Enum, IntEnum

from pydantic import BaseModel, ConfigDict, Field


class Role(str, Enum):
    """Portal roles, ordered loosely from the bottom of the hierarchy up."""

    STUDENT = "student"
    DEPT_COORDINATOR = "dept_coordinator"
    COLLEGE_PLACEMENT = "college_placement"
    RECRUITER = "recruiter"
    DTO = "dto"
    STO = "sto"
    NTO = "nto"
    ADMIN = "admin"


class JurisdictionLevel(IntEnum):
    """Depth of a jurisdiction path. Deeper levels are narrower scopes."""

    NATIONAL = 0
    STATE = 1
    DISTRICT = 2
    COLLEGE = 3
    DEPARTMENT = 4


class Jurisdiction(BaseModel):
    """Scope path in the tree state ⊇ district ⊇ college ⊇ department.

    An empty jurisdiction is national scope.
    """

    state: str | None = None
    district: str | None = None
    college_id: str | None = None
    department_id: str | None = None

    model_config = ConfigDict(extra="forbid", frozen=True)

    def path(self) -> tuple[str | None, ...]:
        return (self.state, self.district, self.college_id, self.department_id)

    @property
    def level(self) -> JurisdictionLevel:
        """Number of leading populated fields."""
        depth = 0
        for value in self.path():
            if not value:
                break
            depth += 1
        return JurisdictionLevel(depth)

    @property
    def is_contiguous(self) -> bool:
        """False when a narrower field is set below an unset broader one."""
        populated = [bool(value) for value in self.path()]
        return not any(populated[self.level:])

    def is_complete_for(self, level: JurisdictionLevel) -> bool:
        return self.is_contiguous and self.level >= level

    def contains(self, other: "Jurisdiction") -> bool:
        """True when this jurisdiction is an ancestor of, or equal to, ``other``."""
        if not self.is_contiguous:
            return False
        depth = int(self.level)
        return self.path()[:depth] == other.path()[:depth]

    def describe(self) -> str:
        parts = [value for value in self.path() if value]
        return "/".join(parts) if parts else "national"


class RoleAssignment(BaseModel):
    """A user's single role together with its approval state."""

    role: Role
    approved: bool = False
    approver_id: str | None = None
    jurisdiction: Jurisdiction = Field(default_factory=Jurisdiction)

    model_config = ConfigDict(extra="forbid", frozen=True)


class Identity(BaseModel):
    user_id: str
    assignment: RoleAssignment

    model_config = ConfigDict(extra="forbid", frozen=True)


class IdentityContext(BaseModel):
    """Caller identity supplied by the auth layer on every call.

    The core trusts these values and performs no credential verification.
    """

    caller_id: str
    caller_role: Role
    caller_jurisdiction: Jurisdiction = Field(default_factory=Jurisdiction)

    model_config = ConfigDict(extra="forbid", frozen=True)
