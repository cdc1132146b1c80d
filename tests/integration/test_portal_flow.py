from __future__ import annotations

from pathlib import Path

import pytest

from placementcore.audit import AuditLogger
from placementcore.container import create_container
from placementcore.core import ApprovalPendingError, DuplicateRecordError, ForbiddenActorError
from placementcore.portal import PlacementPortal
from placementcore.schemas import (
    ApplicationStatus,
    ApprovalStatus,
    College,
    IdentityContext,
    Jurisdiction,
    Role,
)

COLLEGE = Jurisdiction(state="KA", district="BLR", college_id="rvce")
DTO = IdentityContext(caller_id="u-dto", caller_role=Role.DTO, caller_jurisdiction=Jurisdiction(state="KA", district="BLR"))
PLACEMENT_CELL = IdentityContext(caller_id="u-cp", caller_role=Role.COLLEGE_PLACEMENT, caller_jurisdiction=COLLEGE)
STUDENT = IdentityContext(caller_id="s1", caller_role=Role.STUDENT, caller_jurisdiction=COLLEGE)
RECRUITER = IdentityContext(caller_id="r1", caller_role=Role.RECRUITER)


@pytest.fixture
def audit_path(tmp_path: Path) -> Path:
    return tmp_path / "audit.jsonl"


@pytest.fixture
def container(audit_path: Path):
    return create_container(audit_path=audit_path)


@pytest.fixture
def portal(container) -> PlacementPortal:
    return container.portal()


def test_college_registration_reaches_district_officer(portal: PlacementPortal):
    college_id = portal.submit(PLACEMENT_CELL, College(name="RV College", code="RVCE", jurisdiction=COLLEGE))

    pending = portal.pending_approvals(DTO)
    assert [entity.id for entity in pending] == [college_id]
    assert pending[0].submitted_by == "u-cp"

    approved = portal.approve(DTO, college_id, expected_version=0)
    assert approved.status == ApprovalStatus.APPROVED
    assert portal.pending_approvals(DTO) == []


def test_student_journey_from_registration_to_offer(portal: PlacementPortal, container, audit_path: Path):
    record = portal.register_student(STUDENT, abc_id="ABC-001", jurisdiction=COLLEGE, full_name="Asha Rao")
    record = portal.update_profile(
        STUDENT,
        {"profile_completed": True, "skills": ["python", "sql", "excel"], "has_resume": True},
        expected_version=record.version,
    )
    opportunity_id = portal.post_opportunity(RECRUITER, "Data Analyst Intern", "internship")

    with pytest.raises(ApprovalPendingError):
        portal.apply(STUDENT, opportunity_id)

    [grant] = portal.pending_approvals(PLACEMENT_CELL)
    assert grant.id == record.grant_id
    portal.approve(PLACEMENT_CELL, grant.id, expected_version=0)

    record = portal.issue_certificate(PLACEMENT_CELL, "s1", "SQL Workshop", expected_version=record.version)
    assert record.employability_score == 30 + 9 + 4 + 10

    application_id = portal.apply(STUDENT, opportunity_id)
    portal.transition(RECRUITER, application_id, "under_review", expected_version=0)
    interview_id = portal.schedule_interview(
        RECRUITER,
        application_id,
        "2026-11-02T10:00:00+05:30",
        expected_version=1,
        meeting_link="https://meet.example.com/abc",
    )
    portal.complete_interview(RECRUITER, interview_id, expected_version=2, feedback="Clear thinker")
    offered = portal.transition(RECRUITER, application_id, ApplicationStatus.OFFERED, expected_version=3)
    assert offered.status == ApplicationStatus.OFFERED

    sink = container.notification_sink()
    assert [event.kind for event in sink.for_user("s1")] == [
        "approval_approved",
        "certificate_issued",
        "application_under_review",
        "interview_scheduled",
        "application_interviewed",
        "application_offered",
    ]

    actions = [record["action"] for record in AuditLogger(audit_path).read()]
    assert actions[:2] == ["approval.submitted", "student.registered"]
    assert actions.count("application.transition") == 3
    assert "interview.scheduled" in actions


def test_second_registration_leaves_no_extra_grant(portal: PlacementPortal):
    record = portal.register_student(STUDENT, abc_id="ABC-001", jurisdiction=COLLEGE)

    with pytest.raises(DuplicateRecordError):
        portal.register_student(STUDENT, abc_id="ABC-001", jurisdiction=COLLEGE)

    assert [grant.id for grant in portal.pending_approvals(PLACEMENT_CELL)] == [record.grant_id]


def test_only_students_register_and_apply(portal: PlacementPortal):
    with pytest.raises(ForbiddenActorError):
        portal.register_student(RECRUITER, abc_id="ABC-9", jurisdiction=COLLEGE)
    with pytest.raises(ForbiddenActorError):
        portal.apply(RECRUITER, "any-opportunity")


def test_score_accepts_raw_snapshot(portal: PlacementPortal):
    assert portal.score({"profile_completed": True, "certificates": 2}) == 38
