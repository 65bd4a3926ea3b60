from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, Field

JobStatus = Literal["pending", "interview", "declined"]
JobType = Literal["full-time", "part-time", "internship"]
JobSort = Literal["newest", "oldest", "a-z", "z-a"]

JOB_STATUSES: frozenset[str] = frozenset({"pending", "interview", "declined"})
JOB_TYPES: frozenset[str] = frozenset({"full-time", "part-time", "internship"})


class JobCreateRequest(BaseModel):
    company: str = Field(..., min_length=5, max_length=100)
    position: str = Field(..., min_length=3, max_length=100)
    location: str = Field(..., min_length=1, max_length=200)
    vacancy: int = Field(..., ge=1)
    salary: str = Field(..., min_length=1, max_length=100)
    deadline: date
    description: str = Field(..., min_length=1)
    skills: list[str] = Field(..., min_length=1)
    facilities: list[str] = Field(..., min_length=1)
    contact: str = Field(..., min_length=1, max_length=200)
    job_type: JobType = "full-time"
    # Accepted for compatibility; new jobs always start as pending.
    status: JobStatus | None = None


class JobPatchRequest(BaseModel):
    company: str | None = Field(default=None, min_length=5, max_length=100)
    position: str | None = Field(default=None, min_length=3, max_length=100)
    location: str | None = Field(default=None, min_length=1, max_length=200)
    vacancy: int | None = Field(default=None, ge=1)
    salary: str | None = Field(default=None, min_length=1, max_length=100)
    deadline: date | None = None
    description: str | None = Field(default=None, min_length=1)
    skills: list[str] | None = Field(default=None, min_length=1)
    facilities: list[str] | None = Field(default=None, min_length=1)
    contact: str | None = Field(default=None, min_length=1, max_length=200)
    job_type: JobType | None = None
    status: JobStatus | None = None


class JobStatusPatchRequest(BaseModel):
    status: JobStatus


class JobOut(BaseModel):
    id: str
    company: str
    position: str
    location: str
    vacancy: int
    salary: str
    deadline: date
    description: str
    skills: list[str] = Field(default_factory=list)
    facilities: list[str] = Field(default_factory=list)
    contact: str
    job_type: JobType
    status: JobStatus
    owner_id: str
    created_at: datetime
    updated_at: datetime


class JobPageOut(BaseModel):
    items: list[JobOut] = Field(default_factory=list)
    total: int
    page: int
    page_count: int
