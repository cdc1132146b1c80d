"""Student records and the mutations that feed the employability score."""

from __future__ import annotations

from typing import Any, Callable
from uuid import uuid4

import structlog

from ..adapters import Store
from ..schemas import (
    Certificate,
    IdentityContext,
    ProfileUpdate,
    Role,
    StudentRecord,
)
from .effects import MutationEffects
from .errors import (
    DuplicateRecordError,
    ForbiddenActorError,
    NotFoundError,
    VersionConflictError,
)
from .registry import RoleRegistry
from .scoring import ScoreEngine


class ProfileService:
    """Owns student records.

    Profile saves and certificate issuance recompute the score inside the
    same write, so a stored score always matches the stored inputs and the
    formula version it was computed with.
    """

    def __init__(
        self,
        *,
        store: Store,
        score_engine: ScoreEngine,
        registry: RoleRegistry,
        effects: MutationEffects | None = None,
        id_factory: Callable[[], str] | None = None,
    ) -> None:
        self._store = store
        self._score_engine = score_engine
        self._registry = registry
        self._effects = effects or MutationEffects()
        self._id_factory = id_factory or (lambda: uuid4().hex)
        self._logger = structlog.get_logger(__name__)

    def register(self, record: StudentRecord | dict[str, Any]) -> StudentRecord:
        if isinstance(record, dict):
            record = StudentRecord.model_validate(record)
        scored = self._with_score(record.model_copy(update={"version": 0}))
        try:
            self._store.insert(scored)
        except KeyError as exc:
            raise DuplicateRecordError(
                f"Student {scored.id!r} is already registered", student_id=scored.id
            ) from exc
        self._effects.audit(
            "student.registered",
            entity_type="student",
            entity_id=scored.id,
            user_id=scored.id,
            details={"abc_id": scored.abc_id},
        )
        return scored

    def get(self, student_id: str) -> StudentRecord:
        found = self._store.get(student_id)
        if found is None or not isinstance(found[0], StudentRecord):
            raise NotFoundError(f"No student {student_id!r}", student_id=student_id)
        return found[0]

    def ensure_unregistered(self, student_id: str) -> None:
        if self._store.get(student_id) is not None:
            raise DuplicateRecordError(
                f"Student {student_id!r} is already registered", student_id=student_id
            )

    def update_profile(
        self,
        student_id: str,
        actor: IdentityContext,
        changes: ProfileUpdate | dict[str, Any],
        expected_version: int,
    ) -> StudentRecord:
        if isinstance(changes, dict):
            changes = ProfileUpdate.model_validate(changes)
        student = self.get(student_id)
        if actor.caller_role is not Role.STUDENT or actor.caller_id != student_id:
            raise ForbiddenActorError(
                "Only the student can edit their profile",
                student_id=student_id,
                actor_id=actor.caller_id,
            )
        self._check_version(student, expected_version)

        updated = self._with_score(
            student.model_copy(update={**changes.changes(), "version": expected_version + 1})
        )
        self._commit(updated, expected_version)
        self._effects.audit(
            "profile.updated",
            entity_type="student",
            entity_id=student_id,
            user_id=actor.caller_id,
            details={
                "fields": sorted(changes.changes()),
                "employability_score": updated.employability_score,
            },
        )
        return updated

    def issue_certificate(
        self,
        student_id: str,
        actor: IdentityContext,
        title: str,
        expected_version: int,
        *,
        kind: str = "completion",
    ) -> StudentRecord:
        student = self.get(student_id)
        if actor.caller_role is not Role.ADMIN:
            if actor.caller_role is not Role.COLLEGE_PLACEMENT:
                raise ForbiddenActorError(
                    "Certificates are issued by the college placement cell or an admin",
                    student_id=student_id,
                    actor_role=actor.caller_role.value,
                )
            self._registry.check_scope(
                Role.COLLEGE_PLACEMENT,
                actor.caller_jurisdiction,
                student.jurisdiction,
            )
        self._check_version(student, expected_version)

        certificate = Certificate(
            id=self._id_factory(),
            title=title,
            kind=kind,
            issued_by=actor.caller_id,
            issued_at=self._effects.now(),
        )
        updated = self._with_score(
            student.model_copy(
                update={
                    "certificates": [*student.certificates, certificate],
                    "version": expected_version + 1,
                }
            )
        )
        self._commit(updated, expected_version)
        self._effects.audit(
            "certificate.issued",
            entity_type="certificate",
            entity_id=certificate.id,
            user_id=actor.caller_id,
            details={"student_id": student_id, "title": title, "kind": kind},
        )
        self._effects.notify(
            student_id,
            "certificate_issued",
            {"certificate_id": certificate.id, "title": title, "kind": kind},
        )
        return updated

    def recompute_score(self, student_id: str) -> StudentRecord:
        """Recompute and store the score if it (or the formula version) changed."""
        student = self.get(student_id)
        rescored = self._with_score(student)
        if (
            rescored.employability_score == student.employability_score
            and rescored.score_version == student.score_version
        ):
            return student
        updated = rescored.model_copy(update={"version": student.version + 1})
        self._commit(updated, student.version)
        return updated

    def _with_score(self, student: StudentRecord) -> StudentRecord:
        score = self._score_engine.score(student.snapshot())
        self._logger.info(
            "score.computed",
            student_id=student.id,
            score=score,
            score_version=self._score_engine.version,
        )
        return student.model_copy(
            update={
                "employability_score": score,
                "score_version": self._score_engine.version,
            }
        )

    def _check_version(self, student: StudentRecord, expected_version: int) -> None:
        if student.version != expected_version:
            raise VersionConflictError(
                f"Student {student.id!r} changed since version {expected_version}",
                student_id=student.id,
                expected_version=expected_version,
                actual_version=student.version,
            )

    def _commit(self, updated: StudentRecord, expected_version: int) -> None:
        if not self._store.compare_and_swap(updated.id, expected_version, updated):
            current = self._store.get(updated.id)
            raise VersionConflictError(
                f"Student {updated.id!r} changed since version {expected_version}",
                student_id=updated.id,
                expected_version=expected_version,
                actual_version=current[1] if current else None,
            )
