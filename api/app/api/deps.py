from fastapi import Depends

from app.core.config import Settings, get_settings
from app.services.accounts import AccountService
from app.services.applications import ApplicationLifecycle
from app.services.coordinator import LifecycleCoordinator
from app.services.files import LocalFileStore
from app.services.jobs import JobLifecycle
from app.services.repository import get_repository


def get_job_lifecycle(repository=Depends(get_repository)) -> JobLifecycle:
    return JobLifecycle(repository, LifecycleCoordinator(repository))


def get_application_lifecycle(repository=Depends(get_repository)) -> ApplicationLifecycle:
    return ApplicationLifecycle(repository)


def get_account_service(
    settings: Settings = Depends(get_settings),
    repository=Depends(get_repository),
) -> AccountService:
    return AccountService(
        repository,
        admin_registration_code=settings.admin_registration_code,
        bcrypt_rounds=settings.bcrypt_rounds,
    )


def get_file_store(settings: Settings = Depends(get_settings)) -> LocalFileStore:
    return LocalFileStore(settings.upload_dir, max_bytes=settings.upload_max_bytes)
