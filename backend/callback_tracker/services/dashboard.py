from datetime import datetime, timedelta, timezone
from typing import Any, Optional, Sequence

from callback_tracker.models.ticket import Ticket
from callback_tracker.schemas.ticket import ApiDepartment, ApiPriority, ApiStatus
from callback_tracker.services.mapping import department_to_api, priority_to_api, status_to_api, to_api_ticket

LATEST_LIMIT = 10


def _utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _zeroed(enum_cls) -> dict[str, int]:
    return {member.value: 0 for member in enum_cls}


def build_dashboard(tickets: Sequence[Ticket], now: Optional[datetime] = None) -> dict[str, Any]:
    """Aggregate counts for the dashboard cards.

    `today` starts at UTC midnight, `thisWeek` covers the trailing 7 days.
    """
    now = _utc(now or datetime.now(timezone.utc))
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    week_ago = now - timedelta(days=7)

    by_status = _zeroed(ApiStatus)
    by_priority = _zeroed(ApiPriority)
    by_department = _zeroed(ApiDepartment)
    by_status_and_department = {s.value: _zeroed(ApiDepartment) for s in ApiStatus}
    today = _zeroed(ApiStatus)
    this_week = _zeroed(ApiStatus)

    for t in tickets:
        status = status_to_api(t.status).value
        department = department_to_api(t.department).value
        created = _utc(t.created_on)

        by_status[status] += 1
        by_priority[priority_to_api(t.priority).value] += 1
        by_department[department] += 1
        by_status_and_department[status][department] += 1
        if created >= midnight:
            today[status] += 1
        if created >= week_ago:
            this_week[status] += 1

    latest = sorted(tickets, key=lambda t: _utc(t.created_on), reverse=True)[:LATEST_LIMIT]

    return {
        "total": len(tickets),
        "byStatus": by_status,
        "byPriority": by_priority,
        "byDepartment": by_department,
        "byStatusAndDepartment": by_status_and_department,
        "today": today,
        "thisWeek": this_week,
        "latest": [to_api_ticket(t) for t in latest],
    }
