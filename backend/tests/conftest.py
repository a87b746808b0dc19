import os

# Settings are read at import time; give the required ones test values first.
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("AZURE_AD_TENANT_ID", "11111111-2222-3333-4444-555555555555")
os.environ.setdefault("AZURE_AD_API_AUDIENCE", "api://callback-tracker")
os.environ.setdefault("AZURE_AD_CLIENT_ID", "test-client-id")
os.environ.setdefault("AZURE_AD_CLIENT_SECRET", "test-client-secret")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402
from sqlmodel import Session, SQLModel, create_engine  # noqa: E402

from callback_tracker.api.deps import get_directory  # noqa: E402
from callback_tracker.core.config import settings  # noqa: E402
from callback_tracker.db import session as session_mod  # noqa: E402
from callback_tracker.db.session import get_session  # noqa: E402
from callback_tracker.main import app  # noqa: E402
from callback_tracker.models.ticket import Department, Ticket, TicketPriority, TicketStatus  # noqa: E402
from callback_tracker.services.directory import DirectoryUser  # noqa: E402

TICKET_BODY = {
    "fullName": "Jo",
    "phoneNumber": "555",
    "email": "jo@x.com",
    "reason": "billing",
    "priority": "Low",
    "status": "Open Call",
    "assignedTo": "Kim",
    "reportedBy": "Sam",
    "department": "CRP",
}


class FakeDirectory:
    def __init__(self, users=None, error=None):
        self.users = users or []
        self.error = error
        self.calls = 0

    def list_users(self):
        self.calls += 1
        if self.error:
            raise self.error
        return list(self.users)

    def close(self):
        pass


@pytest.fixture()
def engine(monkeypatch):
    # SQLite in-memory shared across the threadpool via a single connection
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    monkeypatch.setattr(session_mod, "engine", engine, raising=False)
    return engine


@pytest.fixture()
def session(engine):
    with Session(engine) as s:
        yield s


@pytest.fixture()
def directory():
    return FakeDirectory(
        users=[
            DirectoryUser(id="u1", display_name="Kim Lee", email="kim@x.com", user_principal_name="kim@x.com"),
        ]
    )


@pytest.fixture()
def client(engine, directory, monkeypatch):
    monkeypatch.setattr(settings, "skip_auth", True)

    def override_get_session():
        with Session(engine) as s:
            yield s

    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_directory] = lambda: directory

    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture()
def make_ticket(session):
    def _make(**overrides) -> Ticket:
        values = dict(
            full_name="Jo Bloggs",
            phone_number="555-0100",
            email="jo@example.com",
            reason="billing",
            priority=TicketPriority.Normal,
            status=TicketStatus.OpenCall,
            department=Department.CRP,
            assigned_to="Kim Lee",
            reported_by="Sam",
        )
        values.update(overrides)
        ticket = Ticket(**values)
        session.add(ticket)
        session.commit()
        session.refresh(ticket)
        return ticket

    return _make
