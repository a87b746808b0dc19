import enum
import uuid
from datetime import datetime, timezone
from typing import List, Optional

from sqlmodel import Field, Relationship, SQLModel


class TicketStatus(str, enum.Enum):
    OpenCall = "OpenCall"
    InProgress = "InProgress"
    Closed = "Closed"


class TicketPriority(str, enum.Enum):
    Low = "Low"
    Normal = "Normal"
    High = "High"


class Department(str, enum.Enum):
    CRP = "CRP"
    EducationMigration = "EducationMigration"
    SkillAssessment = "SkillAssessment"


class Ticket(SQLModel, table=True):
    __tablename__ = "tickets"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True, index=True)

    full_name: str
    phone_number: str
    email: str
    reason: str

    priority: TicketPriority = Field(index=True)
    status: TicketStatus = Field(index=True)
    department: Department = Field(index=True)

    assigned_to: str = Field(index=True)
    reported_by: str

    created_on: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), index=True)

    notes: List["Note"] = Relationship(
        back_populates="ticket",
        sa_relationship_kwargs={"cascade": "all, delete-orphan"},
    )


class Note(SQLModel, table=True):
    __tablename__ = "notes"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True, index=True)
    ticket_id: uuid.UUID = Field(foreign_key="tickets.id", index=True, ondelete="CASCADE")

    content: str
    author: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), index=True)

    ticket: Optional[Ticket] = Relationship(back_populates="notes")
