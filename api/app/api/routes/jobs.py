from fastapi import APIRouter, Depends, Query, Response, status

from app.api.deps import get_job_lifecycle
from app.api.errors import page_count, to_http_exception
from app.core.auth import Identity
from app.core.security import get_identity
from app.schemas.jobs import JobCreateRequest, JobOut, JobPageOut, JobPatchRequest, JobSort, JobStatusPatchRequest
from app.services.errors import LifecycleError
from app.services.jobs import JobLifecycle
from app.services.repository import RepositoryUnavailableError

router = APIRouter()
recruiter_router = APIRouter()


@router.get("", response_model=JobPageOut)
async def list_jobs(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=5, ge=1, le=100),
    search: str | None = Query(default=None, min_length=1),
    sort: JobSort = Query(default="newest"),
    lifecycle: JobLifecycle = Depends(get_job_lifecycle),
) -> JobPageOut:
    try:
        rows, total = await lifecycle.list_public(page=page, page_size=limit, search=search, sort=sort)
    except RepositoryUnavailableError as exc:
        raise to_http_exception(exc) from exc
    return JobPageOut(
        items=[JobOut(**row) for row in rows],
        total=total,
        page=page,
        page_count=page_count(total, limit),
    )


@router.get("/{job_id}", response_model=JobOut)
async def get_job(job_id: str, lifecycle: JobLifecycle = Depends(get_job_lifecycle)) -> JobOut:
    try:
        row = await lifecycle.get(job_id)
    except (LifecycleError, RepositoryUnavailableError) as exc:
        raise to_http_exception(exc) from exc
    return JobOut(**row)


@router.post("", response_model=JobOut, status_code=status.HTTP_201_CREATED)
async def create_job(
    payload: JobCreateRequest,
    identity: Identity = Depends(get_identity),
    lifecycle: JobLifecycle = Depends(get_job_lifecycle),
) -> JobOut:
    try:
        row = await lifecycle.create(identity, payload.model_dump())
    except (LifecycleError, RepositoryUnavailableError) as exc:
        raise to_http_exception(exc) from exc
    return JobOut(**row)


@router.patch("/{job_id}", response_model=JobOut)
async def patch_job(
    job_id: str,
    payload: JobPatchRequest,
    identity: Identity = Depends(get_identity),
    lifecycle: JobLifecycle = Depends(get_job_lifecycle),
) -> JobOut:
    try:
        row = await lifecycle.update(job_id, identity, payload.model_dump(exclude_unset=True))
    except (LifecycleError, RepositoryUnavailableError) as exc:
        raise to_http_exception(exc) from exc
    return JobOut(**row)


@router.patch("/{job_id}/status", response_model=JobOut)
async def patch_job_status(
    job_id: str,
    payload: JobStatusPatchRequest,
    identity: Identity = Depends(get_identity),
    lifecycle: JobLifecycle = Depends(get_job_lifecycle),
) -> JobOut:
    try:
        row = await lifecycle.change_status(job_id, identity, payload.status)
    except (LifecycleError, RepositoryUnavailableError) as exc:
        raise to_http_exception(exc) from exc
    return JobOut(**row)


@router.delete("/{job_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_job(
    job_id: str,
    identity: Identity = Depends(get_identity),
    lifecycle: JobLifecycle = Depends(get_job_lifecycle),
) -> Response:
    try:
        await lifecycle.delete(job_id, identity)
    except (LifecycleError, RepositoryUnavailableError) as exc:
        raise to_http_exception(exc) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@recruiter_router.get("/jobs", response_model=list[JobOut])
async def list_my_jobs(
    identity: Identity = Depends(get_identity),
    lifecycle: JobLifecycle = Depends(get_job_lifecycle),
) -> list[JobOut]:
    try:
        rows = await lifecycle.list_mine(identity)
    except (LifecycleError, RepositoryUnavailableError) as exc:
        raise to_http_exception(exc) from exc
    return [JobOut(**row) for row in rows]
