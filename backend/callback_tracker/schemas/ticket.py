import enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator
from pydantic.alias_generators import to_camel


class ApiStatus(str, enum.Enum):
    OpenCall = "Open Call"
    InProgress = "In Progress"
    Closed = "Closed"


class ApiPriority(str, enum.Enum):
    Low = "Low"
    Normal = "Normal"
    High = "High"


class ApiDepartment(str, enum.Enum):
    CRP = "CRP"
    EducationMigration = "Education/Migration"
    SkillAssessment = "Skill Assessment"


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class TicketCreate(_CamelModel):
    full_name: str = Field(min_length=1)
    phone_number: str = Field(min_length=1)
    email: EmailStr
    reason: str = Field(min_length=1)
    priority: ApiPriority
    status: ApiStatus
    assigned_to: str = Field(min_length=1)
    reported_by: str = Field(min_length=1)
    department: ApiDepartment


class TicketUpdate(_CamelModel):
    """Partial ticket update. Only fields present in the body are applied."""

    full_name: Optional[str] = Field(default=None, min_length=1)
    phone_number: Optional[str] = Field(default=None, min_length=1)
    email: Optional[EmailStr] = None
    reason: Optional[str] = Field(default=None, min_length=1)
    priority: Optional[ApiPriority] = None
    status: Optional[ApiStatus] = None
    assigned_to: Optional[str] = Field(default=None, min_length=1)
    reported_by: Optional[str] = Field(default=None, min_length=1)
    department: Optional[ApiDepartment] = None

    @model_validator(mode="after")
    def _reject_explicit_nulls(self):
        for name in self.model_fields_set:
            if getattr(self, name) is None:
                raise ValueError(f"{to_camel(name)} may not be null")
        return self

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True)


class NoteCreate(BaseModel):
    content: str = Field(min_length=1)
    author: str = Field(min_length=1)


class TicketFilter(BaseModel):
    status: Optional[ApiStatus] = None
    priority: Optional[ApiPriority] = None
    department: Optional[ApiDepartment] = None
    assigned_to: Optional[str] = None
    search: Optional[str] = None
