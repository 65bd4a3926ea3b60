from contextlib import asynccontextmanager
import logging
import time

from fastapi import FastAPI
from starlette.requests import Request

from app.api.router import api_router, health_router
from app.core.config import Settings, get_settings
from app.core.security import in_process_identity_middleware, trusted_header_identity_middleware
from app.core.telemetry import configure_logging, setup_api_telemetry, shutdown_api_telemetry
from app.services.repository import get_repository

logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        try:
            yield
        finally:
            shutdown_api_telemetry(app, telemetry_runtime)
            # Ensure asyncpg pool shuts down on app teardown.
            await get_repository().close()
            get_repository.cache_clear()

    app = FastAPI(title=settings.app_name, lifespan=lifespan)
    telemetry_runtime = setup_api_telemetry(app, settings)

    if settings.deployment == "service":
        if not settings.gateway_shared_secret:
            logger.warning(
                "service deployment without JB_GATEWAY_SHARED_SECRET; identity headers are trusted from any caller"
            )
        app.middleware("http")(trusted_header_identity_middleware(settings))
    else:
        app.middleware("http")(in_process_identity_middleware(settings))
    logger.info("api configured deployment=%s prefix=%s", settings.deployment, settings.api_prefix)

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

    app.include_router(health_router)
    app.include_router(api_router, prefix=settings.api_prefix)
    return app


app = create_app()
