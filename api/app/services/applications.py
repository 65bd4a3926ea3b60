from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import Any, Callable

from app.core.auth import Identity
from app.core.policy import Action, allow
from app.services.errors import ConflictError, ForbiddenError, InvalidStateError, NotFoundError
from app.services.repository import Repository, RepositoryConflictError, RepositoryNotFoundError

logger = logging.getLogger(__name__)

# Targets a recruiter may move an application to.
STATUS_TARGETS = frozenset({"accepted", "rejected"})


class ApplicationLifecycle:
    def __init__(self, repository: Repository, *, clock: Callable[[], datetime] | None = None) -> None:
        self.repository = repository
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def apply(self, identity: Identity, job_id: str, resume: str | None = None) -> dict[str, Any]:
        if not allow(identity, Action.APPLY):
            raise ForbiddenError("only applicants can apply to jobs")

        job = await self.repository.get_job(job_id)
        if job is None:
            raise NotFoundError("job not found")

        existing = await self.repository.find_application(applicant_id=identity.subject_id, job_id=job_id)
        if existing is not None:
            logger.info("duplicate application rejected applicant_id=%s job_id=%s", identity.subject_id, job_id)
            raise ConflictError("already applied")

        now = self._clock()
        try:
            application = await self.repository.insert_application(
                {
                    "applicant_id": identity.subject_id,
                    # Snapshot of the owner at apply time; never re-resolved later.
                    "recruiter_id": job["owner_id"],
                    "job_id": job_id,
                    "status": "pending",
                    "resume": resume,
                    "date_of_application": now.date(),
                    "date_of_joining": None,
                    "created_at": now,
                    "updated_at": now,
                }
            )
        except RepositoryConflictError as exc:
            logger.info("concurrent duplicate application applicant_id=%s job_id=%s", identity.subject_id, job_id)
            raise ConflictError("already applied") from exc

        logger.info(
            "application created application_id=%s job_id=%s applicant_id=%s",
            application["id"],
            job_id,
            identity.subject_id,
        )
        return application

    async def list_mine(self, identity: Identity) -> list[dict[str, Any]]:
        if not allow(identity, Action.LIST_OWN_APPLICATIONS):
            raise ForbiddenError("only applicants can list their applications")
        return await self.repository.list_applications(applicant_id=identity.subject_id)

    async def list_mine_with_jobs(self, identity: Identity) -> list[dict[str, Any]]:
        applications = await self.list_mine(identity)
        jobs: dict[str, dict[str, Any] | None] = {}
        for application in applications:
            job_id = application["job_id"]
            if job_id not in jobs:
                jobs[job_id] = await self.repository.get_job(job_id)
            job = jobs[job_id]
            application["position"] = job["position"] if job else None
            application["company"] = job["company"] if job else None
            application["location"] = job["location"] if job else None
        return applications

    async def list_for_recruiter(
        self,
        identity: Identity,
        *,
        page: int,
        page_size: int,
    ) -> tuple[list[dict[str, Any]], int]:
        if not allow(identity, Action.LIST_RECRUITER_APPLICATIONS):
            raise ForbiddenError("only recruiters can list received applications")
        if page < 1 or page_size < 1:
            raise ValueError("page and page_size must be positive")
        return await self.repository.list_applications_for_recruiter(
            recruiter_id=identity.subject_id,
            limit=page_size,
            offset=(page - 1) * page_size,
        )

    async def update_status(
        self,
        application_id: str,
        identity: Identity,
        status: str,
        *,
        date_of_joining: date | None = None,
    ) -> dict[str, Any]:
        application = await self.repository.get_application(application_id)
        if application is None:
            raise NotFoundError("application not found")

        # Checked against the snapshot taken at apply time, not the job's owner.
        if not allow(identity, Action.UPDATE_APPLICATION_STATUS, application["recruiter_id"]):
            logger.warning(
                "application access denied application_id=%s subject_id=%s",
                application_id,
                identity.subject_id,
            )
            raise ForbiddenError("not authorized for this application")

        if status not in STATUS_TARGETS:
            raise InvalidStateError(f"invalid application status transition: {application['status']} -> {status}")

        application["status"] = status
        if status == "accepted" and date_of_joining is not None:
            application["date_of_joining"] = date_of_joining
        application["updated_at"] = self._clock()
        try:
            saved = await self.repository.save_application(application)
        except RepositoryNotFoundError as exc:
            raise NotFoundError("application not found") from exc
        logger.info("application status changed application_id=%s status=%s", application_id, status)
        return saved

    async def is_applicant_or_recruiter(self, application_id: str, subject_id: str) -> bool:
        application = await self.repository.get_application(application_id)
        if application is None:
            return False
        return subject_id in {application["applicant_id"], application["recruiter_id"]}

    async def get_resume_reference(self, application_id: str, identity: Identity) -> str:
        application = await self.repository.get_application(application_id)
        if application is None:
            raise NotFoundError("application not found")
        if not await self.is_applicant_or_recruiter(application_id, identity.subject_id):
            raise ForbiddenError("not authorized for this application")
        if not application.get("resume"):
            raise NotFoundError("resume not found")
        return application["resume"]
