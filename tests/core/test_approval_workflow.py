from __future__ import annotations

import itertools
import threading
from pathlib import Path
from typing import Any

import pendulum
import pytest

from placementcore.adapters import InMemoryNotificationSink, InMemoryStore
from placementcore.audit import AuditLogger
from placementcore.core import (
    AlreadyFinalizedError,
    ApprovalWorkflow,
    DuplicateRecordError,
    IncompleteJurisdictionError,
    MutationEffects,
    NotFoundError,
    OutOfJurisdictionError,
    RoleRegistry,
    UnauthorizedRoleError,
    VersionConflictError,
)
from placementcore.schemas import (
    ApprovalStatus,
    College,
    CollegePlacementGrant,
    DtoGrant,
    IdentityContext,
    Jurisdiction,
    RecruiterAccount,
    Role,
    StudentGrant,
)

FIXED_NOW = pendulum.datetime(2026, 1, 15, 9, 30, tz="UTC")


class BarrierStore(InMemoryStore):
    """Holds the first ``parties`` reads until all of them have happened."""

    def __init__(self, parties: int):
        super().__init__()
        self._barrier = threading.Barrier(parties)
        self._reads = itertools.count()
        self._parties = parties

    def get(self, record_id: str):
        found = super().get(record_id)
        if next(self._reads) < self._parties:
            self._barrier.wait(timeout=5)
        return found


class FailingSink:
    def publish(self, event) -> None:
        raise RuntimeError("mail server down")


def build_workflow(
    *,
    store: InMemoryStore | None = None,
    sink: Any = None,
    audit_logger: AuditLogger | None = None,
) -> tuple[ApprovalWorkflow, InMemoryStore, Any]:
    store = store if store is not None else InMemoryStore()
    sink = sink if sink is not None else InMemoryNotificationSink()
    counter = itertools.count(1)
    workflow = ApprovalWorkflow(
        store=store,
        registry=RoleRegistry(),
        effects=MutationEffects(sink=sink, audit_logger=audit_logger, now_provider=lambda: FIXED_NOW),
        id_factory=lambda: f"E{next(counter)}",
    )
    return workflow, store, sink


def identity(caller_id: str, role: Role, **jurisdiction: str) -> IdentityContext:
    return IdentityContext(
        caller_id=caller_id,
        caller_role=role,
        caller_jurisdiction=Jurisdiction(**jurisdiction),
    )


def build_college(**kwargs: Any) -> College:
    defaults: dict[str, Any] = {
        "name": "RV College of Engineering",
        "code": "RVCE",
        "jurisdiction": Jurisdiction(state="KA", district="BLR", college_id="rvce"),
        "submitted_by": "u-college",
    }
    defaults.update(kwargs)
    return College(**defaults)


DTO_BLR = identity("u-dto", Role.DTO, state="KA", district="BLR")


def test_submit_stores_pending_entity_at_version_zero():
    workflow, store, _ = build_workflow()
    entity_id = workflow.submit(build_college())

    stored = workflow.get(entity_id)
    assert entity_id == "E1"
    assert stored.status == ApprovalStatus.PENDING
    assert stored.version == 0
    assert stored.submitted_at == FIXED_NOW
    assert len(store) == 1


def test_submit_accepts_raw_payload():
    workflow, _, _ = build_workflow()
    entity_id = workflow.submit(
        {
            "kind": "role_grant",
            "role": "student",
            "user_id": "s1",
            "abc_id": "ABC-001",
            "jurisdiction": {"state": "KA", "district": "BLR", "college_id": "rvce"},
        }
    )
    assert isinstance(workflow.get(entity_id), StudentGrant)


def test_submit_rejects_incomplete_jurisdiction():
    workflow, store, _ = build_workflow()
    with pytest.raises(IncompleteJurisdictionError):
        workflow.submit(build_college(jurisdiction=Jurisdiction(state="KA", district="BLR")))
    assert len(store) == 0


def test_submit_rejects_taken_id():
    workflow, store, _ = build_workflow()
    workflow.submit(build_college(id="college-1"))

    with pytest.raises(DuplicateRecordError) as excinfo:
        workflow.submit(build_college(id="college-1", code="RVCE-2"))

    assert excinfo.value.code == "duplicate_record"
    assert workflow.get("college-1").code == "RVCE"
    assert len(store) == 1


def test_submit_rejects_gapped_jurisdiction():
    workflow, _, _ = build_workflow()
    with pytest.raises(IncompleteJurisdictionError):
        workflow.submit(build_college(jurisdiction=Jurisdiction(state="KA", college_id="rvce")))


def test_approve_records_decision_and_notifies_submitter():
    workflow, _, sink = build_workflow()
    entity_id = workflow.submit(build_college())

    approved = workflow.approve(entity_id, DTO_BLR, expected_version=0)

    assert approved.status == ApprovalStatus.APPROVED
    assert approved.approver_id == "u-dto"
    assert approved.version == 1
    assert approved.decided_at == FIXED_NOW
    assert [(event.user_id, event.kind) for event in sink.events] == [
        ("u-college", "approval_approved")
    ]


def test_second_decision_fails_as_already_finalized():
    workflow, _, sink = build_workflow()
    entity_id = workflow.submit(build_college())
    workflow.approve(entity_id, DTO_BLR, expected_version=0)

    with pytest.raises(AlreadyFinalizedError):
        workflow.approve(entity_id, DTO_BLR, expected_version=1)
    with pytest.raises(AlreadyFinalizedError):
        workflow.reject(entity_id, DTO_BLR, "duplicate", expected_version=1)
    assert workflow.get(entity_id).version == 1
    assert len(sink.events) == 1


def test_reject_stores_reason():
    workflow, _, sink = build_workflow()
    entity_id = workflow.submit(build_college())

    rejected = workflow.reject(entity_id, DTO_BLR, "AICTE approval missing", expected_version=0)

    assert rejected.status == ApprovalStatus.REJECTED
    assert rejected.rejection_reason == "AICTE approval missing"
    assert sink.events[0].kind == "approval_rejected"
    assert sink.events[0].payload["reason"] == "AICTE approval missing"


def test_wrong_role_cannot_approve():
    workflow, _, _ = build_workflow()
    entity_id = workflow.submit(build_college())
    sto = identity("u-sto", Role.STO, state="KA")

    with pytest.raises(UnauthorizedRoleError):
        workflow.approve(entity_id, sto, expected_version=0)
    assert workflow.get(entity_id).status == ApprovalStatus.PENDING


def test_sibling_district_officer_is_out_of_jurisdiction():
    workflow, _, sink = build_workflow()
    entity_id = workflow.submit(build_college())
    other_dto = identity("u-dto-2", Role.DTO, state="KA", district="MYS")

    with pytest.raises(OutOfJurisdictionError):
        workflow.approve(entity_id, other_dto, expected_version=0)
    assert workflow.get(entity_id).version == 0
    assert sink.events == []


def test_stale_version_is_a_retryable_conflict():
    workflow, _, _ = build_workflow()
    entity_id = workflow.submit(build_college())

    with pytest.raises(VersionConflictError) as excinfo:
        workflow.approve(entity_id, DTO_BLR, expected_version=3)
    assert excinfo.value.retryable is True
    assert excinfo.value.context["actual_version"] == 0


def test_missing_entity_is_not_found():
    workflow, _, _ = build_workflow()
    with pytest.raises(NotFoundError):
        workflow.approve("missing", DTO_BLR, expected_version=0)


def test_user_cannot_approve_own_grant():
    workflow, _, _ = build_workflow()
    grant_id = workflow.submit(
        CollegePlacementGrant(
            user_id="u-dto",
            jurisdiction=Jurisdiction(state="KA", district="BLR", college_id="rvce"),
        )
    )
    with pytest.raises(UnauthorizedRoleError):
        workflow.approve(grant_id, DTO_BLR, expected_version=0)


def test_invited_recruiter_is_approved_by_college():
    workflow, _, _ = build_workflow()
    account_id = workflow.submit(
        RecruiterAccount(
            company_name="Acme Analytics",
            invited_by_college=True,
            jurisdiction=Jurisdiction(state="KA", district="BLR", college_id="rvce"),
            submitted_by="u-rec",
        )
    )
    admin = identity("u-admin", Role.ADMIN)
    college_cell = identity("u-cp", Role.COLLEGE_PLACEMENT, state="KA", district="BLR", college_id="rvce")

    with pytest.raises(UnauthorizedRoleError):
        workflow.approve(account_id, admin, expected_version=0)
    assert workflow.approve(account_id, college_cell, expected_version=0).status == ApprovalStatus.APPROVED


def test_uninvited_recruiter_is_approved_by_admin():
    workflow, _, _ = build_workflow()
    account_id = workflow.submit(RecruiterAccount(company_name="Acme Analytics", submitted_by="u-rec"))

    approved = workflow.approve(account_id, identity("u-admin", Role.ADMIN), expected_version=0)
    assert approved.status == ApprovalStatus.APPROVED


def test_pending_for_lists_only_decidable_entities_in_scope():
    workflow, _, _ = build_workflow()
    first = workflow.submit(build_college())
    second = workflow.submit(
        build_college(code="BMS", jurisdiction=Jurisdiction(state="KA", district="BLR", college_id="bms"))
    )
    workflow.submit(
        build_college(code="NIE", jurisdiction=Jurisdiction(state="KA", district="MYS", college_id="nie"))
    )
    decided = workflow.submit(
        build_college(code="PES", jurisdiction=Jurisdiction(state="KA", district="BLR", college_id="pes"))
    )
    workflow.approve(decided, DTO_BLR, expected_version=0)

    assert [entity.id for entity in workflow.pending_for(DTO_BLR)] == [first, second]


def test_pending_for_is_empty_without_a_complete_scope():
    workflow, _, _ = build_workflow()
    grant_id = workflow.submit(
        DtoGrant(user_id="u-dto-pune", jurisdiction=Jurisdiction(state="MH", district="PUNE"))
    )

    assert workflow.pending_for(identity("u-sto", Role.STO)) == []
    assert [entity.id for entity in workflow.pending_for(identity("u-sto-mh", Role.STO, state="MH"))] == [
        grant_id
    ]


def test_concurrent_approvals_have_exactly_one_winner():
    store = BarrierStore(parties=2)
    workflow, _, sink = build_workflow(store=store)
    entity_id = workflow.submit(build_college())
    approvers = [
        identity("u-dto-a", Role.DTO, state="KA", district="BLR"),
        identity("u-dto-b", Role.DTO, state="KA", district="BLR"),
    ]
    outcomes: list[Any] = []
    lock = threading.Lock()

    def decide(approver: IdentityContext) -> None:
        try:
            result: Any = workflow.approve(entity_id, approver, expected_version=0)
        except VersionConflictError as exc:
            result = exc
        with lock:
            outcomes.append(result)

    threads = [threading.Thread(target=decide, args=(approver,)) for approver in approvers]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=10)

    conflicts = [item for item in outcomes if isinstance(item, VersionConflictError)]
    winners = [item for item in outcomes if not isinstance(item, VersionConflictError)]
    assert len(conflicts) == 1
    assert len(winners) == 1
    assert workflow.get(entity_id).approver_id == winners[0].approver_id
    assert workflow.get(entity_id).version == 1
    assert len(sink.events) == 1


def test_sink_failure_does_not_undo_decision():
    workflow, _, _ = build_workflow(sink=FailingSink())
    entity_id = workflow.submit(build_college())

    approved = workflow.approve(entity_id, DTO_BLR, expected_version=0)

    assert approved.status == ApprovalStatus.APPROVED
    assert workflow.get(entity_id).version == 1


def test_decisions_are_audited(tmp_path: Path):
    audit_logger = AuditLogger(tmp_path / "audit.jsonl")
    workflow, _, _ = build_workflow(audit_logger=audit_logger)
    entity_id = workflow.submit(build_college())
    workflow.reject(entity_id, DTO_BLR, "incomplete documents", expected_version=0)

    records = audit_logger.read()
    assert [record["action"] for record in records] == ["approval.submitted", "approval.rejected"]
    assert records[1]["user_id"] == "u-dto"
    assert records[1]["details"]["reason"] == "incomplete documents"
