import uuid
from datetime import datetime, timedelta, timezone

import pytest
from sqlmodel import select

from callback_tracker.models.ticket import Department, Note, Ticket, TicketPriority, TicketStatus
from callback_tracker.schemas.ticket import ApiDepartment, ApiPriority, ApiStatus, TicketFilter
from callback_tracker.services import mapping
from callback_tracker.services.mapping import build_ticket_filter, iso_timestamp, to_api_ticket


@pytest.mark.parametrize(
    "api_enum, storage_enum, to_storage, to_api",
    [
        (ApiStatus, TicketStatus, mapping.status_to_storage, mapping.status_to_api),
        (ApiPriority, TicketPriority, mapping.priority_to_storage, mapping.priority_to_api),
        (ApiDepartment, Department, mapping.department_to_storage, mapping.department_to_api),
    ],
)
def test_enum_maps_are_bijections(api_enum, storage_enum, to_storage, to_api):
    for human in api_enum:
        assert to_api(to_storage(human)) is human
    for stored in storage_enum:
        assert to_storage(to_api(stored)) is stored
    assert {to_storage(h) for h in api_enum} == set(storage_enum)


def test_display_strings():
    assert mapping.status_to_storage(ApiStatus("Open Call")) is TicketStatus.OpenCall
    assert mapping.department_to_api(Department.EducationMigration).value == "Education/Migration"
    assert mapping.department_to_api(Department.SkillAssessment).value == "Skill Assessment"


def test_unknown_value_is_rejected():
    with pytest.raises(ValueError):
        mapping.status_to_storage("Reopened")


def _ids(session, filters):
    rows = session.exec(select(Ticket).where(*build_ticket_filter(filters))).all()
    return {t.full_name for t in rows}


def test_search_matches_name_email_or_phone(session, make_ticket):
    make_ticket(full_name="Alice Smith", email="a@x.com", phone_number="1", status=TicketStatus.Closed)
    make_ticket(full_name="Bob", email="ALICE@corp.com", phone_number="2")
    make_ticket(full_name="Carol", email="c@x.com", phone_number="alice-line", department=Department.SkillAssessment)
    make_ticket(full_name="Dan", email="d@x.com", phone_number="3", assigned_to="Alice")

    assert _ids(session, TicketFilter(search="alice")) == {"Alice Smith", "Bob", "Carol"}


def test_filters_are_conjunctive(session, make_ticket):
    make_ticket(full_name="match", status=TicketStatus.Closed, department=Department.CRP)
    make_ticket(full_name="wrong-dept", status=TicketStatus.Closed, department=Department.EducationMigration)
    make_ticket(full_name="wrong-status", status=TicketStatus.InProgress, department=Department.CRP)

    filters = TicketFilter(status=ApiStatus.Closed, department=ApiDepartment.CRP)
    assert _ids(session, filters) == {"match"}


def test_assignee_is_case_insensitive_substring(session, make_ticket):
    make_ticket(full_name="one", assigned_to="Kim Lee")
    make_ticket(full_name="two", assigned_to="Sam Kimball")
    make_ticket(full_name="three", assigned_to="Pat")

    assert _ids(session, TicketFilter(assigned_to="kim")) == {"one", "two"}


def test_wildcards_match_literally(session, make_ticket):
    make_ticket(full_name="100% sure")
    make_ticket(full_name="1000 sure")

    assert _ids(session, TicketFilter(search="0%")) == {"100% sure"}


def test_empty_filter_imposes_nothing(session, make_ticket):
    make_ticket(full_name="a")
    make_ticket(full_name="b", priority=TicketPriority.High)

    assert build_ticket_filter(TicketFilter()) == []
    assert _ids(session, TicketFilter(search="", assigned_to="")) == {"a", "b"}


def _ticket():
    return Ticket(
        id=uuid.uuid4(),
        full_name="Jo",
        phone_number="555",
        email="jo@x.com",
        reason="billing",
        priority=TicketPriority.High,
        status=TicketStatus.InProgress,
        department=Department.EducationMigration,
        assigned_to="Kim",
        reported_by="Sam",
        created_on=datetime(2024, 3, 1, 9, 30, tzinfo=timezone.utc),
    )


def test_to_api_ticket_shape():
    out = to_api_ticket(_ticket(), notes=[])
    assert out["priority"] == "High"
    assert out["status"] == "In Progress"
    assert out["department"] == "Education/Migration"
    assert out["createdOn"] == "2024-03-01T09:30:00.000Z"
    assert out["notes"] == []
    assert set(out) == {
        "id", "fullName", "phoneNumber", "email", "reason", "priority", "status",
        "assignedTo", "reportedBy", "department", "createdOn", "notes",
    }


def test_notes_newest_first_with_stable_ties():
    base = datetime(2024, 3, 1, tzinfo=timezone.utc)
    t1, t2, t3 = base, base + timedelta(minutes=1), base + timedelta(minutes=2)
    notes = [
        Note(content="first", author="a", timestamp=t1),
        Note(content="third", author="a", timestamp=t3),
        Note(content="second-a", author="a", timestamp=t2),
        Note(content="second-b", author="a", timestamp=t2),
    ]

    out = to_api_ticket(_ticket(), notes=notes)
    assert [n["content"] for n in out["notes"]] == ["third", "second-a", "second-b", "first"]


def test_naive_timestamps_are_treated_as_utc():
    assert iso_timestamp(datetime(2024, 1, 2, 3, 4, 5, 678000)) == "2024-01-02T03:04:05.678Z"
