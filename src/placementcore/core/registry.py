"""Role hierarchy and jurisdiction matching."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ..schemas import Jurisdiction, JurisdictionLevel, Role
from .errors import OutOfJurisdictionError, UnauthorizedRoleError, UnknownRoleError


@dataclass
class RegistryConfig:
    """Configuration for the approval hierarchy."""

    student_approver: Role = Role.COLLEGE_PLACEMENT
    allow_recruiter_invites: bool = True


class RoleRegistry:
    """Static definition of who approves whom, and within which scope."""

    # approvee -> approver
    APPROVERS: dict[Role, Role | None] = {
        Role.ADMIN: None,
        Role.NTO: Role.ADMIN,
        Role.STO: Role.NTO,
        Role.DTO: Role.STO,
        Role.COLLEGE_PLACEMENT: Role.DTO,
        Role.DEPT_COORDINATOR: Role.COLLEGE_PLACEMENT,
        Role.STUDENT: Role.COLLEGE_PLACEMENT,
        Role.RECRUITER: Role.ADMIN,
    }

    SCOPES: dict[Role, JurisdictionLevel] = {
        Role.ADMIN: JurisdictionLevel.NATIONAL,
        Role.NTO: JurisdictionLevel.NATIONAL,
        Role.STO: JurisdictionLevel.STATE,
        Role.DTO: JurisdictionLevel.DISTRICT,
        Role.COLLEGE_PLACEMENT: JurisdictionLevel.COLLEGE,
        Role.DEPT_COORDINATOR: JurisdictionLevel.DEPARTMENT,
        Role.STUDENT: JurisdictionLevel.COLLEGE,
        Role.RECRUITER: JurisdictionLevel.NATIONAL,
    }

    _STUDENT_APPROVERS = (Role.COLLEGE_PLACEMENT, Role.DEPT_COORDINATOR)

    def __init__(self, *, config: RegistryConfig | None = None) -> None:
        self._config = config or RegistryConfig()
        student_approver = self.coerce_role(self._config.student_approver)
        if student_approver not in self._STUDENT_APPROVERS:
            raise ValueError(
                f"student_approver must be one of {[r.value for r in self._STUDENT_APPROVERS]}"
            )
        self._approvers = dict(self.APPROVERS)
        self._scopes = dict(self.SCOPES)
        self._approvers[Role.STUDENT] = student_approver
        if student_approver is Role.DEPT_COORDINATOR:
            self._scopes[Role.STUDENT] = JurisdictionLevel.DEPARTMENT

    @staticmethod
    def coerce_role(role: Any) -> Role:
        try:
            return Role(role)
        except ValueError as exc:
            raise UnknownRoleError(f"Unknown role: {role!r}", role=str(role)) from exc

    def required_approver(self, role: Role | str, *, invited: bool = False) -> Role | None:
        role = self.coerce_role(role)
        if role is Role.RECRUITER and invited and self._config.allow_recruiter_invites:
            return Role.COLLEGE_PLACEMENT
        return self._approvers[role]

    def required_level(self, role: Role | str, *, invited: bool = False) -> JurisdictionLevel:
        role = self.coerce_role(role)
        if role is Role.RECRUITER and invited:
            return JurisdictionLevel.COLLEGE
        return self._scopes[role]

    @staticmethod
    def jurisdiction_contains(approver: Jurisdiction, target: Jurisdiction) -> bool:
        """True when ``approver`` is an ancestor of, or equal to, ``target``."""
        return approver.contains(target)

    def approvable_roles(self, approver_role: Role | str) -> list[Role]:
        approver_role = self.coerce_role(approver_role)
        roles = [
            role for role, approver in self._approvers.items() if approver is approver_role
        ]
        if (
            approver_role is Role.COLLEGE_PLACEMENT
            and self._config.allow_recruiter_invites
            and Role.RECRUITER not in roles
        ):
            roles.append(Role.RECRUITER)
        return roles

    def authorize(
        self,
        approver_role: Role | str,
        approver_jurisdiction: Jurisdiction,
        target_role: Role | str,
        target_jurisdiction: Jurisdiction,
        *,
        invited: bool = False,
    ) -> None:
        """Raise unless the approver may act on the target."""
        approver_role = self.coerce_role(approver_role)
        target_role = self.coerce_role(target_role)
        required = self.required_approver(target_role, invited=invited)
        if required is None or approver_role is not required:
            raise UnauthorizedRoleError(
                f"{approver_role.value} cannot approve {target_role.value}",
                approver_role=approver_role.value,
                required_role=required.value if required else None,
            )
        self.check_scope(approver_role, approver_jurisdiction, target_jurisdiction)

    def check_scope(
        self,
        actor_role: Role | str,
        actor_jurisdiction: Jurisdiction,
        target_jurisdiction: Jurisdiction,
    ) -> None:
        """Raise unless the actor's own scope is complete and contains the target."""
        own_level = self.required_level(actor_role)
        if not actor_jurisdiction.is_complete_for(own_level) or not self.jurisdiction_contains(
            actor_jurisdiction, target_jurisdiction
        ):
            raise OutOfJurisdictionError(
                f"{actor_jurisdiction.describe()} does not contain "
                f"{target_jurisdiction.describe()}",
                actor_jurisdiction=actor_jurisdiction.describe(),
                target_jurisdiction=target_jurisdiction.describe(),
            )

    def hierarchy(self) -> list[dict[str, Any]]:
        """Approver table rows, including the invited-recruiter delegation."""
        rows = [
            {
                "role": role.value,
                "approver": approver.value if approver else None,
                "scope": self._scopes[role].name.lower(),
            }
            for role, approver in self._approvers.items()
        ]
        if self._config.allow_recruiter_invites:
            rows.append(
                {
                    "role": f"{Role.RECRUITER.value} (invited)",
                    "approver": Role.COLLEGE_PLACEMENT.value,
                    "scope": JurisdictionLevel.COLLEGE.name.lower(),
                }
            )
        return rows
