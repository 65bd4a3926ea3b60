import logging

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile, status
from fastapi.responses import FileResponse

from app.api.deps import get_application_lifecycle, get_file_store
from app.api.errors import page_count, to_http_exception
from app.core.auth import Identity
from app.core.security import get_identity
from app.schemas.applications import (
    ApplicationOut,
    ApplicationPageOut,
    ApplicationStatusPatchRequest,
    ApplicationWithJobOut,
)
from app.services.applications import ApplicationLifecycle
from app.services.errors import LifecycleError
from app.services.files import FileRejectedError, FileTooLargeError, LocalFileStore
from app.services.repository import RepositoryUnavailableError

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=list[ApplicationWithJobOut])
async def list_my_applications(
    identity: Identity = Depends(get_identity),
    lifecycle: ApplicationLifecycle = Depends(get_application_lifecycle),
) -> list[ApplicationWithJobOut]:
    try:
        rows = await lifecycle.list_mine_with_jobs(identity)
    except (LifecycleError, RepositoryUnavailableError) as exc:
        raise to_http_exception(exc) from exc
    return [ApplicationWithJobOut(**row) for row in rows]


@router.post("/apply", response_model=ApplicationOut, status_code=status.HTTP_201_CREATED)
async def apply_to_job(
    job_id: str = Form(..., min_length=1),
    resume: UploadFile | None = File(default=None),
    identity: Identity = Depends(get_identity),
    lifecycle: ApplicationLifecycle = Depends(get_application_lifecycle),
    files: LocalFileStore = Depends(get_file_store),
) -> ApplicationOut:
    reference: str | None = None
    if resume is not None and resume.filename:
        data = await resume.read(files.max_bytes + 1)
        try:
            reference = files.store(resume.filename, resume.content_type, data)
        except FileTooLargeError as exc:
            raise HTTPException(status_code=status.HTTP_413_CONTENT_TOO_LARGE, detail=str(exc)) from exc
        except FileRejectedError as exc:
            raise HTTPException(status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE, detail=str(exc)) from exc

    try:
        row = await lifecycle.apply(identity, job_id, resume=reference)
    except (LifecycleError, RepositoryUnavailableError) as exc:
        if reference is not None:
            files.discard(reference)
        raise to_http_exception(exc) from exc
    return ApplicationOut(**row)


@router.get("/recruiter", response_model=ApplicationPageOut)
async def list_received_applications(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    identity: Identity = Depends(get_identity),
    lifecycle: ApplicationLifecycle = Depends(get_application_lifecycle),
) -> ApplicationPageOut:
    try:
        rows, total = await lifecycle.list_for_recruiter(identity, page=page, page_size=limit)
    except (LifecycleError, RepositoryUnavailableError) as exc:
        raise to_http_exception(exc) from exc
    return ApplicationPageOut(
        items=[ApplicationOut(**row) for row in rows],
        total=total,
        page=page,
        page_count=page_count(total, limit),
    )


@router.patch("/{application_id}", response_model=ApplicationOut)
async def patch_application_status(
    application_id: str,
    payload: ApplicationStatusPatchRequest,
    identity: Identity = Depends(get_identity),
    lifecycle: ApplicationLifecycle = Depends(get_application_lifecycle),
) -> ApplicationOut:
    try:
        row = await lifecycle.update_status(
            application_id,
            identity,
            payload.status,
            date_of_joining=payload.date_of_joining,
        )
    except (LifecycleError, RepositoryUnavailableError) as exc:
        raise to_http_exception(exc) from exc
    return ApplicationOut(**row)


@router.get("/{application_id}/resume")
async def download_resume(
    application_id: str,
    identity: Identity = Depends(get_identity),
    lifecycle: ApplicationLifecycle = Depends(get_application_lifecycle),
    files: LocalFileStore = Depends(get_file_store),
) -> FileResponse:
    try:
        reference = await lifecycle.get_resume_reference(application_id, identity)
    except (LifecycleError, RepositoryUnavailableError) as exc:
        raise to_http_exception(exc) from exc

    path = files.resolve(reference)
    if path is None:
        logger.warning("resume missing on disk application_id=%s", application_id)
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="resume not found")
    return FileResponse(path, filename=path.name)
