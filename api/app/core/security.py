import hmac
import logging
from typing import Awaitable, Callable

from fastapi import Depends, HTTPException, Request, status
from starlette.datastructures import Headers
from starlette.responses import Response

from app.core.auth import Identity, parse_role
from app.core.config import Settings, get_settings
from app.core.propagation import (
    BearerToken,
    CookieToken,
    IdentityPropagator,
    parse_public_routes,
    unauthenticated_response,
)
from app.core.tokens import TokenCodec

logger = logging.getLogger(__name__)

Middleware = Callable[[Request, Callable[[Request], Awaitable[Response]]], Awaitable[Response]]


def get_token_codec(settings: Settings = Depends(get_settings)) -> TokenCodec:
    return build_token_codec(settings)


def build_token_codec(settings: Settings) -> TokenCodec:
    return TokenCodec(
        settings.token_secret,
        algorithm=settings.token_algorithm,
        ttl_seconds=settings.token_ttl_seconds,
    )


def build_propagator(settings: Settings) -> IdentityPropagator:
    return IdentityPropagator(
        build_token_codec(settings),
        parse_public_routes(settings.public_routes),
        extractors=(CookieToken(settings.token_cookie_name), BearerToken()),
    )


def get_identity(request: Request) -> Identity:
    identity = getattr(request.state, "identity", None)
    if not isinstance(identity, Identity):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="unauthenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return identity


def identity_from_headers(headers: Headers, settings: Settings) -> Identity | None:
    subject_id = (headers.get(settings.user_id_header) or "").strip()
    role = parse_role(headers.get(settings.user_role_header))
    if not subject_id or role is None:
        return None
    return Identity(subject_id=subject_id, role=role)


def in_process_identity_middleware(settings: Settings) -> Middleware:
    """Single-process boundary: verify the token here and keep the identity on the request."""
    propagator = build_propagator(settings)

    async def middleware(request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
        decision = propagator.resolve(request)
        if not decision.forward:
            return unauthenticated_response()
        request.state.identity = decision.identity
        return await call_next(request)

    return middleware


def trusted_header_identity_middleware(settings: Settings) -> Middleware:
    """Backend-service boundary: the gateway already verified the token and set internal headers."""

    async def middleware(request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
        if settings.gateway_shared_secret and request.url.path != "/healthz":
            presented = request.headers.get(settings.gateway_secret_header) or ""
            if not hmac.compare_digest(presented, settings.gateway_shared_secret):
                logger.warning("rejecting request not routed through gateway path=%s", request.url.path)
                return unauthenticated_response()
        request.state.identity = identity_from_headers(request.headers, settings)
        return await call_next(request)

    return middleware
