from __future__ import annotations

import asyncio
import copy
from collections import Counter
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from app.services.repository import (
    APPLICATION_COLUMNS,
    JOB_COLUMNS,
    RepositoryConflictError,
    RepositoryNotFoundError,
)


class InMemoryRepository:
    """Process-local store used when no database is configured and in tests.

    A single ``asyncio.Lock`` serialises writes, which is what makes the
    (applicant, job) uniqueness check and the insert behave as one step.
    Rows are copied on the way in and out so callers never alias stored state.
    """

    def __init__(self) -> None:
        self.users: dict[str, dict[str, Any]] = {}
        self.jobs: dict[str, dict[str, Any]] = {}
        self.applications: dict[str, dict[str, Any]] = {}
        self._application_keys: dict[tuple[str, str], str] = {}
        self._lock = asyncio.Lock()

    async def close(self) -> None:
        return None

    async def insert_user(
        self,
        *,
        username: str,
        email: str,
        password_hash: str,
        role: str,
        only_if_empty: bool = False,
    ) -> dict[str, Any] | None:
        normalized_email = email.strip().lower()
        async with self._lock:
            if only_if_empty and self.users:
                return None
            if any(user["email"] == normalized_email for user in self.users.values()):
                raise RepositoryConflictError("email already registered")
            user = {
                "id": str(uuid4()),
                "username": username,
                "email": normalized_email,
                "password_hash": password_hash,
                "role": role,
                "created_at": datetime.now(timezone.utc),
            }
            self.users[user["id"]] = user
            return copy.deepcopy(user)

    async def get_user(self, user_id: str) -> dict[str, Any] | None:
        user = self.users.get(user_id)
        return copy.deepcopy(user) if user else None

    async def get_user_by_email(self, email: str) -> dict[str, Any] | None:
        normalized_email = email.strip().lower()
        for user in self.users.values():
            if user["email"] == normalized_email:
                return copy.deepcopy(user)
        return None

    async def list_users(self, *, limit: int, offset: int) -> list[dict[str, Any]]:
        rows = sorted(self.users.values(), key=lambda user: user["created_at"], reverse=True)
        return [_without_secret(user) for user in rows[offset : offset + limit]]

    async def count_users_by_role(self) -> dict[str, int]:
        return dict(Counter(user["role"] for user in self.users.values()))

    async def insert_job(self, fields: dict[str, Any]) -> dict[str, Any]:
        job = {"id": str(uuid4()), **{column: copy.deepcopy(fields[column]) for column in JOB_COLUMNS}}
        async with self._lock:
            self.jobs[job["id"]] = job
        return copy.deepcopy(job)

    async def get_job(self, job_id: str) -> dict[str, Any] | None:
        job = self.jobs.get(job_id)
        return copy.deepcopy(job) if job else None

    async def save_job(self, job: dict[str, Any]) -> dict[str, Any]:
        async with self._lock:
            stored = self.jobs.get(job["id"])
            if stored is None:
                raise RepositoryNotFoundError("job not found")
            for column in JOB_COLUMNS:
                if column in {"owner_id", "created_at"}:
                    continue
                stored[column] = copy.deepcopy(job[column])
            return copy.deepcopy(stored)

    async def delete_job(self, job_id: str) -> bool:
        async with self._lock:
            return self.jobs.pop(job_id, None) is not None

    async def list_jobs(
        self,
        *,
        limit: int,
        offset: int,
        search: str | None,
        sort: str,
    ) -> tuple[list[dict[str, Any]], int]:
        rows = list(self.jobs.values())
        needle = search.strip().casefold() if search and search.strip() else None
        if needle:
            rows = [
                job
                for job in rows
                if any(needle in str(job[field]).casefold() for field in ("company", "position", "location"))
            ]

        if sort == "oldest":
            rows.sort(key=lambda job: job["created_at"])
        elif sort == "a-z":
            rows.sort(key=lambda job: job["company"].casefold())
        elif sort == "z-a":
            rows.sort(key=lambda job: job["company"].casefold(), reverse=True)
        else:
            rows.sort(key=lambda job: job["created_at"], reverse=True)

        return [copy.deepcopy(job) for job in rows[offset : offset + limit]], len(rows)

    async def list_jobs_by_owner(self, owner_id: str) -> list[dict[str, Any]]:
        rows = [job for job in self.jobs.values() if job["owner_id"] == owner_id]
        rows.sort(key=lambda job: job["created_at"], reverse=True)
        return [copy.deepcopy(job) for job in rows]

    async def count_jobs_by_status(self) -> dict[str, int]:
        return dict(Counter(job["status"] for job in self.jobs.values()))

    async def insert_application(self, fields: dict[str, Any]) -> dict[str, Any]:
        key = (fields["applicant_id"], fields["job_id"])
        async with self._lock:
            if key in self._application_keys:
                raise RepositoryConflictError("application already exists for applicant and job")
            application = {
                "id": str(uuid4()),
                **{column: copy.deepcopy(fields[column]) for column in APPLICATION_COLUMNS},
            }
            self.applications[application["id"]] = application
            self._application_keys[key] = application["id"]
            return copy.deepcopy(application)

    async def get_application(self, application_id: str) -> dict[str, Any] | None:
        application = self.applications.get(application_id)
        return copy.deepcopy(application) if application else None

    async def find_application(self, *, applicant_id: str, job_id: str) -> dict[str, Any] | None:
        application_id = self._application_keys.get((applicant_id, job_id))
        if application_id is None:
            return None
        return await self.get_application(application_id)

    async def save_application(self, application: dict[str, Any]) -> dict[str, Any]:
        async with self._lock:
            stored = self.applications.get(application["id"])
            if stored is None:
                raise RepositoryNotFoundError("application not found")
            for column in ("status", "resume", "date_of_joining", "updated_at"):
                stored[column] = copy.deepcopy(application[column])
            return copy.deepcopy(stored)

    async def list_applications(
        self,
        *,
        applicant_id: str | None = None,
        job_id: str | None = None,
        status: str | None = None,
    ) -> list[dict[str, Any]]:
        rows = [
            application
            for application in self.applications.values()
            if (applicant_id is None or application["applicant_id"] == applicant_id)
            and (job_id is None or application["job_id"] == job_id)
            and (status is None or application["status"] == status)
        ]
        rows.sort(key=lambda application: application["created_at"], reverse=True)
        return [copy.deepcopy(application) for application in rows]

    async def list_applications_for_recruiter(
        self,
        *,
        recruiter_id: str,
        limit: int,
        offset: int,
    ) -> tuple[list[dict[str, Any]], int]:
        rows = [
            application for application in self.applications.values() if application["recruiter_id"] == recruiter_id
        ]
        rows.sort(key=lambda application: application["created_at"], reverse=True)
        return [copy.deepcopy(application) for application in rows[offset : offset + limit]], len(rows)

    async def transition_application_status(
        self,
        application_id: str,
        *,
        status: str,
        from_status: str | None,
        updated_at: Any,
    ) -> dict[str, Any] | None:
        async with self._lock:
            stored = self.applications.get(application_id)
            if stored is None:
                return None
            if from_status is not None and stored["status"] != from_status:
                return None
            stored["status"] = status
            stored["updated_at"] = updated_at
            return copy.deepcopy(stored)

    async def count_applications_by_status(self) -> dict[str, int]:
        return dict(Counter(application["status"] for application in self.applications.values()))


def _without_secret(user: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in user.items() if key != "password_hash"}
