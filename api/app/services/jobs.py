from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable

from opentelemetry import trace

from app.core.auth import Identity
from app.core.policy import Action, allow
from app.schemas.jobs import JOB_STATUSES, JOB_TYPES
from app.services.coordinator import LifecycleCoordinator
from app.services.errors import ForbiddenError, InvalidStateError, NotFoundError
from app.services.repository import Repository, RepositoryNotFoundError

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

# Targets an owner may move a job to with change_status.
STATUS_TARGETS = frozenset({"interview", "declined"})
PATCHABLE_FIELDS = (
    "company",
    "position",
    "location",
    "vacancy",
    "salary",
    "deadline",
    "description",
    "skills",
    "facilities",
    "contact",
    "job_type",
    "status",
)
_TRIMMED_FIELDS = {"company", "position", "location", "description", "contact"}


class JobLifecycle:
    def __init__(
        self,
        repository: Repository,
        coordinator: LifecycleCoordinator,
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.repository = repository
        self.coordinator = coordinator
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def create(self, identity: Identity, fields: dict[str, Any]) -> dict[str, Any]:
        if not allow(identity, Action.CREATE_JOB):
            raise ForbiddenError("only recruiters can create jobs")

        job_type = fields.get("job_type") or "full-time"
        if job_type not in JOB_TYPES:
            raise InvalidStateError(f"invalid job type: {job_type}")

        now = self._clock()
        values = {field: _clean(field, fields.get(field)) for field in PATCHABLE_FIELDS}
        values.update(
            {
                "skills": list(fields.get("skills") or []),
                "facilities": list(fields.get("facilities") or []),
                "job_type": job_type,
                "status": "pending",
                "owner_id": identity.subject_id,
                "created_at": now,
                "updated_at": now,
            }
        )
        job = await self.repository.insert_job(values)
        logger.info("job created job_id=%s owner_id=%s", job["id"], identity.subject_id)
        return job

    async def get(self, job_id: str) -> dict[str, Any]:
        job = await self.repository.get_job(job_id)
        if job is None:
            raise NotFoundError("job not found")
        return job

    async def list_public(
        self,
        *,
        page: int,
        page_size: int,
        search: str | None = None,
        sort: str = "newest",
    ) -> tuple[list[dict[str, Any]], int]:
        if page < 1 or page_size < 1:
            raise ValueError("page and page_size must be positive")
        return await self.repository.list_jobs(
            limit=page_size,
            offset=(page - 1) * page_size,
            search=search,
            sort=sort,
        )

    async def list_mine(self, identity: Identity) -> list[dict[str, Any]]:
        if not allow(identity, Action.LIST_OWN_JOBS):
            raise ForbiddenError("only recruiters can list their jobs")
        return await self.repository.list_jobs_by_owner(identity.subject_id)

    async def update(self, job_id: str, identity: Identity, patch: dict[str, Any]) -> dict[str, Any]:
        job = await self._get_owned(job_id, identity, Action.UPDATE_JOB)

        changes = {field: patch[field] for field in PATCHABLE_FIELDS if patch.get(field) is not None}
        if "status" in changes and changes["status"] not in JOB_STATUSES:
            raise InvalidStateError(f"invalid job status: {changes['status']}")
        if "job_type" in changes and changes["job_type"] not in JOB_TYPES:
            raise InvalidStateError(f"invalid job type: {changes['job_type']}")

        previous_status = job["status"]
        for field, value in changes.items():
            job[field] = _clean(field, value)
        job["updated_at"] = self._clock()
        saved = await self._save(job)

        if saved["status"] == "declined" and previous_status != "declined":
            await self.coordinator.on_job_declined(job_id)
        return saved

    async def change_status(self, job_id: str, identity: Identity, status: str) -> dict[str, Any]:
        with tracer.start_as_current_span("jobs.change_status") as span:
            span.set_attribute("job.id", job_id)
            job = await self._get_owned(job_id, identity, Action.CHANGE_JOB_STATUS)
            if status not in STATUS_TARGETS:
                raise InvalidStateError(f"invalid job status transition: {job['status']} -> {status}")

            from_status = job["status"]
            job["status"] = status
            job["updated_at"] = self._clock()
            saved = await self._save(job)
            logger.info("job status changed job_id=%s from=%s to=%s", job_id, from_status, status)

            if status == "declined":
                await self.coordinator.on_job_declined(job_id)
            return saved

    async def delete(self, job_id: str, identity: Identity) -> None:
        await self._get_owned(job_id, identity, Action.DELETE_JOB)
        # Applications keep referencing the deleted job.
        if not await self.repository.delete_job(job_id):
            raise NotFoundError("job not found")
        logger.info("job deleted job_id=%s owner_id=%s", job_id, identity.subject_id)

    async def _save(self, job: dict[str, Any]) -> dict[str, Any]:
        try:
            return await self.repository.save_job(job)
        except RepositoryNotFoundError as exc:
            # Deleted between the ownership read and this write.
            raise NotFoundError("job not found") from exc

    async def _get_owned(self, job_id: str, identity: Identity, action: Action) -> dict[str, Any]:
        job = await self.get(job_id)
        if not allow(identity, action, job["owner_id"]):
            logger.warning(
                "job access denied job_id=%s subject_id=%s action=%s",
                job_id,
                identity.subject_id,
                action.value,
            )
            raise ForbiddenError("not authorized for this job")
        return job


def _clean(field: str, value: Any) -> Any:
    if field in _TRIMMED_FIELDS and isinstance(value, str):
        return value.strip()
    return value
