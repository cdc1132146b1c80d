from __future__ import annotations

import pytest

from placementcore.adapters import (
    InMemoryNotificationSink,
    InMemoryStore,
    LoggingNotificationSink,
    NotificationSink,
    Store,
)
from placementcore.schemas import (
    Application,
    ApplicationStatus,
    College,
    Department,
    Jurisdiction,
    NotificationEvent,
    Role,
)


def build_college(college_id: str, district: str = "BLR") -> College:
    return College(
        id=f"college-{college_id}",
        name=college_id.upper(),
        code=college_id.upper(),
        jurisdiction=Jurisdiction(state="KA", district=district, college_id=college_id),
    )


def test_store_satisfies_protocols():
    assert isinstance(InMemoryStore(), Store)
    assert isinstance(InMemoryNotificationSink(), NotificationSink)
    assert isinstance(LoggingNotificationSink(), NotificationSink)


def test_get_returns_record_and_version():
    store = InMemoryStore()
    college = build_college("rvce")
    store.insert(college)

    assert store.get("college-rvce") == (college, 0)
    assert store.get("missing") is None


def test_insert_refuses_existing_id():
    store = InMemoryStore()
    store.insert(build_college("rvce"))
    with pytest.raises(KeyError):
        store.insert(build_college("rvce"))


def test_compare_and_swap_checks_expected_version():
    store = InMemoryStore()
    college = build_college("rvce")
    store.insert(college)
    renamed = college.model_copy(update={"name": "RV College", "version": 1})

    assert store.compare_and_swap(college.id, 1, renamed.model_copy(update={"version": 2})) is False
    assert store.compare_and_swap(college.id, 0, renamed) is True
    assert store.get(college.id) == (renamed, 1)
    assert store.compare_and_swap(college.id, 0, renamed) is False


def test_compare_and_swap_requires_next_version():
    store = InMemoryStore()
    college = build_college("rvce")
    store.insert(college)
    with pytest.raises(ValueError):
        store.compare_and_swap(college.id, 0, college)


def test_query_by_jurisdiction_filters_role_and_scope():
    store = InMemoryStore()
    store.insert(build_college("rvce"))
    store.insert(build_college("bms"))
    store.insert(build_college("nie", district="MYS"))
    store.insert(
        Department(
            id="dept-cse",
            name="CSE",
            jurisdiction=Jurisdiction(state="KA", district="BLR", college_id="rvce", department_id="cse"),
        )
    )

    found = store.query_by_jurisdiction(Role.COLLEGE_PLACEMENT, Jurisdiction(state="KA", district="BLR"))
    assert sorted(record.id for record in found) == ["college-bms", "college-rvce"]

    departments = store.query_by_jurisdiction(Role.DEPT_COORDINATOR, Jurisdiction(state="KA"))
    assert [record.id for record in departments] == ["dept-cse"]


def test_query_applications_filters():
    store = InMemoryStore()
    store.insert(Application(id="a1", student_id="s1", opportunity_id="o1"))
    store.insert(Application(id="a2", student_id="s1", opportunity_id="o2"))
    store.insert(
        Application(id="a3", student_id="s2", opportunity_id="o1", status=ApplicationStatus.REJECTED)
    )

    assert sorted(app.id for app in store.query_applications(student_id="s1")) == ["a1", "a2"]
    assert sorted(app.id for app in store.query_applications(opportunity_id="o1")) == ["a1", "a3"]
    assert [app.id for app in store.query_applications(student_id="s2", opportunity_id="o1")] == ["a3"]
    assert len(store) == 3


def test_in_memory_sink_keeps_order_per_user():
    sink = InMemoryNotificationSink()
    sink.publish(NotificationEvent(user_id="s1", kind="application_under_review"))
    sink.publish(NotificationEvent(user_id="s2", kind="approval_approved"))
    sink.publish(NotificationEvent(user_id="s1", kind="interview_scheduled"))

    assert [event.kind for event in sink.for_user("s1")] == [
        "application_under_review",
        "interview_scheduled",
    ]
    assert len(sink.events) == 3
