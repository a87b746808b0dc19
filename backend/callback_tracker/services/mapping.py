"""Translation between API-facing ticket values and their stored form.

The API speaks the display strings the dashboard shows ("Open Call",
"Education/Migration"); the database keeps enum-safe identifiers. Every
conversion in either direction goes through the tables below.
"""
from datetime import datetime, timezone
from typing import Any, Iterable

from sqlalchemy import or_
from sqlalchemy.sql.elements import ColumnElement
from sqlmodel import col

from callback_tracker.models.ticket import Department, Note, Ticket, TicketPriority, TicketStatus
from callback_tracker.schemas.ticket import ApiDepartment, ApiPriority, ApiStatus, TicketFilter

STATUS_TO_STORAGE: dict[ApiStatus, TicketStatus] = {
    ApiStatus.OpenCall: TicketStatus.OpenCall,
    ApiStatus.InProgress: TicketStatus.InProgress,
    ApiStatus.Closed: TicketStatus.Closed,
}

STATUS_TO_API: dict[TicketStatus, ApiStatus] = {
    TicketStatus.OpenCall: ApiStatus.OpenCall,
    TicketStatus.InProgress: ApiStatus.InProgress,
    TicketStatus.Closed: ApiStatus.Closed,
}

PRIORITY_TO_STORAGE: dict[ApiPriority, TicketPriority] = {
    ApiPriority.Low: TicketPriority.Low,
    ApiPriority.Normal: TicketPriority.Normal,
    ApiPriority.High: TicketPriority.High,
}

PRIORITY_TO_API: dict[TicketPriority, ApiPriority] = {
    TicketPriority.Low: ApiPriority.Low,
    TicketPriority.Normal: ApiPriority.Normal,
    TicketPriority.High: ApiPriority.High,
}

DEPARTMENT_TO_STORAGE: dict[ApiDepartment, Department] = {
    ApiDepartment.CRP: Department.CRP,
    ApiDepartment.EducationMigration: Department.EducationMigration,
    ApiDepartment.SkillAssessment: Department.SkillAssessment,
}

DEPARTMENT_TO_API: dict[Department, ApiDepartment] = {
    Department.CRP: ApiDepartment.CRP,
    Department.EducationMigration: ApiDepartment.EducationMigration,
    Department.SkillAssessment: ApiDepartment.SkillAssessment,
}

ENUM_TABLES = (
    (ApiStatus, TicketStatus, STATUS_TO_STORAGE, STATUS_TO_API),
    (ApiPriority, TicketPriority, PRIORITY_TO_STORAGE, PRIORITY_TO_API),
    (ApiDepartment, Department, DEPARTMENT_TO_STORAGE, DEPARTMENT_TO_API),
)


def _check_tables() -> None:
    for api_enum, storage_enum, to_storage, to_api in ENUM_TABLES:
        if set(to_storage) != set(api_enum) or set(to_api) != set(storage_enum):
            raise RuntimeError(f"incomplete mapping for {api_enum.__name__}")
        for human, stored in to_storage.items():
            if to_api[stored] is not human:
                raise RuntimeError(f"{api_enum.__name__} mapping is not a bijection at {human!r}")


_check_tables()


def status_to_storage(value: ApiStatus) -> TicketStatus:
    return STATUS_TO_STORAGE[ApiStatus(value)]


def status_to_api(value: TicketStatus) -> ApiStatus:
    return STATUS_TO_API[TicketStatus(value)]


def priority_to_storage(value: ApiPriority) -> TicketPriority:
    return PRIORITY_TO_STORAGE[ApiPriority(value)]


def priority_to_api(value: TicketPriority) -> ApiPriority:
    return PRIORITY_TO_API[TicketPriority(value)]


def department_to_storage(value: ApiDepartment) -> Department:
    return DEPARTMENT_TO_STORAGE[ApiDepartment(value)]


def department_to_api(value: Department) -> ApiDepartment:
    return DEPARTMENT_TO_API[Department(value)]


# Storage-side converters for every API field whose stored form differs.
_FIELD_TO_STORAGE = {
    "status": status_to_storage,
    "priority": priority_to_storage,
    "department": department_to_storage,
}


def ticket_values_to_storage(values: dict[str, Any]) -> dict[str, Any]:
    """Map validated create/update payload fields onto Ticket column values."""
    out: dict[str, Any] = {}
    for name, value in values.items():
        convert = _FIELD_TO_STORAGE.get(name)
        out[name] = convert(value) if convert else value
    return out


def _contains(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def build_ticket_filter(filters: TicketFilter) -> list[ColumnElement[bool]]:
    """Turn optional list filters into predicates to AND together."""
    where: list[ColumnElement[bool]] = []

    if filters.status:
        where.append(col(Ticket.status) == status_to_storage(filters.status))
    if filters.priority:
        where.append(col(Ticket.priority) == priority_to_storage(filters.priority))
    if filters.department:
        where.append(col(Ticket.department) == department_to_storage(filters.department))

    if filters.assigned_to:
        where.append(col(Ticket.assigned_to).ilike(_contains(filters.assigned_to), escape="\\"))

    if filters.search:
        pattern = _contains(filters.search)
        where.append(
            or_(
                col(Ticket.full_name).ilike(pattern, escape="\\"),
                col(Ticket.email).ilike(pattern, escape="\\"),
                col(Ticket.phone_number).ilike(pattern, escape="\\"),
            )
        )

    return where


def iso_timestamp(dt: datetime) -> str:
    # SQLite hands back naive datetimes; they were written as UTC.
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _note_sort_key(note: Note) -> datetime:
    ts = note.timestamp
    return ts if ts.tzinfo else ts.replace(tzinfo=timezone.utc)


def to_api_note(note: Note) -> dict[str, Any]:
    return {
        "id": str(note.id),
        "content": note.content,
        "author": note.author,
        "timestamp": iso_timestamp(note.timestamp),
    }


def to_api_ticket(ticket: Ticket, notes: Iterable[Note] | None = None) -> dict[str, Any]:
    """Project a stored ticket and its notes into the response shape.

    Notes come out newest first; notes sharing a timestamp keep their
    original relative order.
    """
    source = list(ticket.notes if notes is None else notes)
    ordered = sorted(source, key=_note_sort_key, reverse=True)

    return {
        "id": str(ticket.id),
        "fullName": ticket.full_name,
        "phoneNumber": ticket.phone_number,
        "email": ticket.email,
        "reason": ticket.reason,
        "priority": priority_to_api(ticket.priority).value,
        "status": status_to_api(ticket.status).value,
        "assignedTo": ticket.assigned_to,
        "reportedBy": ticket.reported_by,
        "department": department_to_api(ticket.department).value,
        "createdOn": iso_timestamp(ticket.created_on),
        "notes": [to_api_note(n) for n in ordered],
    }
