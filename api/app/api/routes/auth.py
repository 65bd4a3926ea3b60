import logging

from fastapi import APIRouter, Depends, HTTPException, Response, status

from app.api.deps import get_account_service
from app.api.errors import to_http_exception
from app.core.auth import Identity, Role
from app.core.config import Settings, get_settings
from app.core.security import get_identity, get_token_codec
from app.core.tokens import TokenCodec, TokenConfigurationError
from app.schemas.users import LoginOut, LoginRequest, RegisterRequest, UserOut
from app.services.accounts import AccountService
from app.services.errors import LifecycleError
from app.services.repository import RepositoryUnavailableError

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/register", response_model=UserOut, status_code=status.HTTP_201_CREATED)
async def register(
    payload: RegisterRequest,
    accounts: AccountService = Depends(get_account_service),
) -> UserOut:
    try:
        user = await accounts.register(
            username=payload.username,
            email=payload.email,
            password=payload.password,
            role=payload.role,
            admin_code=payload.admin_code,
        )
    except (LifecycleError, RepositoryUnavailableError) as exc:
        raise to_http_exception(exc) from exc
    return UserOut(**user)


@router.post("/login", response_model=LoginOut)
async def login(
    payload: LoginRequest,
    response: Response,
    settings: Settings = Depends(get_settings),
    accounts: AccountService = Depends(get_account_service),
    codec: TokenCodec = Depends(get_token_codec),
) -> LoginOut:
    try:
        user = await accounts.authenticate(email=payload.email, password=payload.password)
    except RepositoryUnavailableError as exc:
        raise to_http_exception(exc) from exc
    if user is None:
        logger.info("login rejected")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid email or password")

    try:
        token = codec.issue(user["id"], Role(user["role"]))
    except TokenConfigurationError as exc:
        raise to_http_exception(exc) from exc

    response.set_cookie(
        key=settings.token_cookie_name,
        value=token,
        max_age=codec.ttl_seconds,
        httponly=True,
        secure=settings.token_cookie_secure,
        samesite="lax",
    )
    logger.info("login succeeded user_id=%s", user["id"])
    return LoginOut(token=token, expires_in=codec.ttl_seconds, user=UserOut(**user))


@router.post("/logout")
async def logout(response: Response, settings: Settings = Depends(get_settings)) -> dict[str, str]:
    response.delete_cookie(
        key=settings.token_cookie_name,
        httponly=True,
        secure=settings.token_cookie_secure,
        samesite="lax",
    )
    return {"status": "logged out"}


@router.get("/me", response_model=UserOut)
async def me(
    identity: Identity = Depends(get_identity),
    accounts: AccountService = Depends(get_account_service),
) -> UserOut:
    try:
        user = await accounts.get_user(identity.subject_id)
    except RepositoryUnavailableError as exc:
        raise to_http_exception(exc) from exc
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="user not found")
    return UserOut(**user)
