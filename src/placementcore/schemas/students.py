"""Student records and the read-only snapshot fed to the score engine."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from .identity import Jurisdiction


class Certificate(BaseModel):
    """Certificate issued to a student (completion, participation, achievement)."""

    id: str
    title: str
    kind: str = "completion"
    issued_by: str
    issued_at: datetime | None = None

    model_config = ConfigDict(extra="forbid", frozen=True)


class StudentProfileSnapshot(BaseModel):
    """Inputs of the employability score."""

    profile_completed: bool = False
    skills: frozenset[str] = Field(default_factory=frozenset)
    certificates: int = Field(default=0, ge=0)
    education_entries: int = Field(default=0, ge=0)
    has_resume: bool = False

    model_config = ConfigDict(extra="forbid", frozen=True)


class StudentRecord(BaseModel):
    """Student profile keyed by the student's user id."""

    id: str
    abc_id: str = Field(min_length=1)
    jurisdiction: Jurisdiction = Field(default_factory=Jurisdiction)
    full_name: str | None = None
    grant_id: str | None = None
    profile_completed: bool = False
    skills: list[str] = Field(default_factory=list)
    education_entries: int = Field(default=0, ge=0)
    has_resume: bool = False
    certificates: list[Certificate] = Field(default_factory=list)
    employability_score: int | None = None
    score_version: str | None = None
    version: int = 0

    model_config = ConfigDict(extra="forbid", frozen=True)

    def snapshot(self) -> StudentProfileSnapshot:
        return StudentProfileSnapshot(
            profile_completed=self.profile_completed,
            skills=frozenset(self.skills),
            certificates=len(self.certificates),
            education_entries=self.education_entries,
            has_resume=self.has_resume,
        )


class ProfileUpdate(BaseModel):
    """Partial profile changes submitted by the student."""

    full_name: str | None = None
    profile_completed: bool | None = None
    skills: list[str] | None = None
    education_entries: int | None = Field(default=None, ge=0)
    has_resume: bool | None = None

    model_config = ConfigDict(extra="forbid")

    def changes(self) -> dict:
        return self.model_dump(exclude_none=True)
