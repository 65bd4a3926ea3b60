"""Edge of the split deployment.

Every request is resolved by the identity propagator before it leaves the
gateway. Requests without a valid token on a protected route are answered
with 401 here and never reach the backend service. Forwarded requests carry
the verified identity only in the internal headers the gateway sets itself;
any copy of those headers sent by the client is dropped first.
"""

from contextlib import asynccontextmanager
import logging
import time

import httpx
from fastapi import FastAPI
from starlette.datastructures import Headers
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from app.core.auth import Identity
from app.core.propagation import (
    BearerToken,
    CookieToken,
    IdentityPropagator,
    parse_public_routes,
    unauthenticated_response,
)
from app.core.telemetry import configure_logging, setup_api_telemetry, shutdown_api_telemetry
from app.core.tokens import TokenCodec
from app.gateway.config import GatewaySettings, get_gateway_settings
from app.gateway.upstream import UpstreamClient

logger = logging.getLogger(__name__)

PROXY_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS", "HEAD"]
_HOP_BY_HOP_HEADERS = {
    "connection",
    "keep-alive",
    "proxy-authenticate",
    "proxy-authorization",
    "te",
    "trailer",
    "transfer-encoding",
    "upgrade",
}


def build_gateway_propagator(settings: GatewaySettings) -> IdentityPropagator:
    codec = TokenCodec(
        settings.token_secret,
        algorithm=settings.token_algorithm,
        ttl_seconds=settings.token_ttl_seconds,
    )
    return IdentityPropagator(
        codec,
        parse_public_routes(settings.public_routes),
        extractors=(CookieToken(settings.token_cookie_name), BearerToken()),
    )


def upstream_request_headers(
    headers: Headers,
    settings: GatewaySettings,
    identity: Identity | None,
) -> list[tuple[str, str]]:
    internal = {
        settings.user_id_header.lower(),
        settings.user_role_header.lower(),
        settings.gateway_secret_header.lower(),
    }
    excluded = _HOP_BY_HOP_HEADERS | internal | {"host", "content-length"}
    forwarded = [(key, value) for key, value in headers.items() if key.lower() not in excluded]
    if identity is not None:
        forwarded.append((settings.user_id_header, identity.subject_id))
        forwarded.append((settings.user_role_header, identity.role.value))
    if settings.gateway_shared_secret:
        forwarded.append((settings.gateway_secret_header, settings.gateway_shared_secret))
    return forwarded


def downstream_response(upstream: httpx.Response) -> Response:
    response = Response(content=upstream.content, status_code=upstream.status_code)
    # httpx has already decoded the body, so length and encoding are recomputed.
    excluded = _HOP_BY_HOP_HEADERS | {"content-length", "content-encoding"}
    for key, value in upstream.headers.multi_items():
        if key.lower() not in excluded:
            response.headers.append(key, value)
    return response


def create_gateway_app(
    settings: GatewaySettings | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    settings = settings or get_gateway_settings()
    configure_logging()
    propagator = build_gateway_propagator(settings)
    upstream = UpstreamClient(
        settings.upstream_base_url,
        timeout_seconds=settings.upstream_timeout_seconds,
        transport=transport,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        try:
            yield
        finally:
            shutdown_api_telemetry(app, telemetry_runtime)

    app = FastAPI(title=settings.app_name, lifespan=lifespan, docs_url=None, redoc_url=None, openapi_url=None)
    telemetry_runtime = setup_api_telemetry(app, settings)

    @app.middleware("http")
    async def request_logging_middleware(request: Request, call_next):
        started_at = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started_at) * 1000.0
        logger.info(
            "http request method=%s path=%s status=%s duration_ms=%.2f",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
        )
        return response

    @app.get("/healthz")
    async def healthz() -> dict[str, str]:
        return {"status": "ok"}

    @app.api_route("/{path:path}", methods=PROXY_METHODS)
    async def proxy(request: Request, path: str) -> Response:
        decision = propagator.resolve(request)
        if not decision.forward:
            return unauthenticated_response()

        headers = upstream_request_headers(request.headers, settings, decision.identity)
        body = await request.body()
        try:
            result = await upstream.forward(
                request.method,
                request.url.path,
                query=request.url.query,
                headers=headers,
                body=body,
            )
        except httpx.RequestError as exc:
            logger.warning("upstream request failed method=%s path=%s error=%s", request.method, path, exc)
            return JSONResponse(status_code=502, content={"detail": "upstream unavailable"})
        return downstream_response(result)

    return app


app = create_gateway_app()
