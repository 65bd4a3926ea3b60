from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

UserRole = Literal["admin", "recruiter", "applicant"]


class RegisterRequest(BaseModel):
    username: str = Field(..., min_length=3, max_length=30, pattern=r"^[a-zA-Z][a-zA-Z0-9_]*$")
    email: str = Field(..., min_length=3, max_length=254, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    password: str = Field(..., min_length=8, max_length=72)
    role: UserRole = "applicant"
    admin_code: str | None = None


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=254)
    password: str = Field(..., min_length=1, max_length=72)


class UserOut(BaseModel):
    id: str
    username: str
    email: str
    role: UserRole
    created_at: datetime


class LoginOut(BaseModel):
    token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserOut


class RoleCountsOut(BaseModel):
    admin: int = 0
    recruiter: int = 0
    applicant: int = 0


class JobStatusCountsOut(BaseModel):
    pending: int = 0
    interview: int = 0
    declined: int = 0


class ApplicationStatusCountsOut(BaseModel):
    pending: int = 0
    accepted: int = 0
    rejected: int = 0


class AdminStatsOut(BaseModel):
    total_users: int
    users_by_role: RoleCountsOut
    total_jobs: int
    jobs_by_status: JobStatusCountsOut
    total_applications: int
    applications_by_status: ApplicationStatusCountsOut
