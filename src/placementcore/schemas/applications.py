"""Opportunities, applications and interviews."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class ApplicationStatus(str, Enum):
    APPLIED = "applied"
    UNDER_REVIEW = "under_review"
    INTERVIEW_SCHEDULED = "interview_scheduled"
    INTERVIEWED = "interviewed"
    OFFERED = "offered"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    WITHDRAWN = "withdrawn"


class InterviewStatus(str, Enum):
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class OpportunityType(str, Enum):
    JOB = "job"
    INTERNSHIP = "internship"
    TRAINING = "training"
    PROJECT = "project"


class Opportunity(BaseModel):
    """Job or internship posted by a recruiter."""

    id: str
    recruiter_id: str
    title: str
    kind: OpportunityType = OpportunityType.JOB
    active: bool = True
    version: int = 0
    created_at: datetime | None = None

    model_config = ConfigDict(extra="forbid", frozen=True)


class Application(BaseModel):
    """A student's application to one opportunity."""

    id: str
    student_id: str
    opportunity_id: str
    status: ApplicationStatus = ApplicationStatus.APPLIED
    applied_at: datetime | None = None
    updated_at: datetime | None = None
    interview_id: str | None = None
    feedback: str | None = None
    version: int = 0

    model_config = ConfigDict(extra="forbid", frozen=True)


class Interview(BaseModel):
    id: str
    application_id: str
    scheduled_at: datetime
    status: InterviewStatus = InterviewStatus.SCHEDULED
    duration_minutes: int = Field(default=60, gt=0)
    location: str | None = None
    meeting_link: str | None = None
    interviewer_name: str | None = None
    feedback: str | None = None
    version: int = 0

    model_config = ConfigDict(extra="forbid", frozen=True)

    @property
    def is_active(self) -> bool:
        return self.status != InterviewStatus.CANCELLED
