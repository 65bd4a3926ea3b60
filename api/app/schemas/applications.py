from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, Field

ApplicationStatus = Literal["pending", "accepted", "rejected"]

APPLICATION_STATUSES: frozenset[str] = frozenset({"pending", "accepted", "rejected"})


class ApplicationOut(BaseModel):
    id: str
    applicant_id: str
    recruiter_id: str
    job_id: str
    status: ApplicationStatus
    resume: str | None = None
    date_of_application: date
    date_of_joining: date | None = None
    created_at: datetime
    updated_at: datetime


class ApplicationWithJobOut(ApplicationOut):
    position: str | None = None
    company: str | None = None
    location: str | None = None


class ApplicationPageOut(BaseModel):
    items: list[ApplicationOut] = Field(default_factory=list)
    total: int
    page: int
    page_count: int


class ApplicationStatusPatchRequest(BaseModel):
    status: ApplicationStatus
    date_of_joining: date | None = None
