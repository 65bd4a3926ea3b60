from fastapi import APIRouter, Depends, Query

from app.api.deps import get_account_service
from app.api.errors import to_http_exception
from app.core.auth import Identity
from app.core.security import get_identity
from app.schemas.users import AdminStatsOut, UserOut
from app.services.accounts import AccountService
from app.services.errors import LifecycleError
from app.services.repository import RepositoryUnavailableError

router = APIRouter()


@router.get("/users", response_model=list[UserOut])
async def list_users(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=50, ge=1, le=200),
    identity: Identity = Depends(get_identity),
    accounts: AccountService = Depends(get_account_service),
) -> list[UserOut]:
    try:
        rows = await accounts.list_users(identity, page=page, page_size=limit)
    except (LifecycleError, RepositoryUnavailableError) as exc:
        raise to_http_exception(exc) from exc
    return [UserOut(**row) for row in rows]


@router.get("/stats", response_model=AdminStatsOut)
async def stats(
    identity: Identity = Depends(get_identity),
    accounts: AccountService = Depends(get_account_service),
) -> AdminStatsOut:
    try:
        payload = await accounts.stats(identity)
    except (LifecycleError, RepositoryUnavailableError) as exc:
        raise to_http_exception(exc) from exc
    return AdminStatsOut(**payload)
