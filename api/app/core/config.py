from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "job-board-api"
    environment: str = "dev"
    deployment: Literal["monolith", "service"] = "monolith"
    api_prefix: str = "/api/v1"
    database_url: str | None = None
    database_pool_min_size: int = 1
    database_pool_max_size: int = 10
    token_secret: str | None = None
    token_algorithm: str = "HS256"
    token_ttl_seconds: int = 24 * 60 * 60
    token_cookie_name: str = "jobPortalToken"
    token_cookie_secure: bool = False
    public_routes: list[str] = [
        "*:/api/v1/auth/register",
        "*:/api/v1/auth/login",
        "*:/api/v1/auth/logout",
        "GET:/api/v1/jobs",
        "*:/healthz",
        "GET:/docs",
        "GET:/openapi.json",
    ]
    user_id_header: str = "X-User-Id"
    user_role_header: str = "X-User-Role"
    gateway_secret_header: str = "X-Gateway-Secret"
    gateway_shared_secret: str | None = None
    admin_registration_code: str | None = None
    bcrypt_rounds: int = 12
    upload_dir: str = "public/uploads"
    upload_max_bytes: int = 5 * 1024 * 1024
    otel_enabled: bool = True
    otel_service_name: str = "job-board-api"
    otel_exporter_otlp_endpoint: str | None = None
    otel_exporter_otlp_headers: str | None = None
    otel_trace_sample_ratio: float = 1.0
    otel_log_correlation: bool = True

    model_config = SettingsConfigDict(env_prefix="JB_", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    return Settings()
