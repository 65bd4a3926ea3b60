from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class GatewaySettings(BaseSettings):
    app_name: str = "job-board-gateway"
    environment: str = "dev"
    upstream_base_url: str = "http://localhost:8000"
    upstream_timeout_seconds: float = 10.0
    token_secret: str | None = None
    token_algorithm: str = "HS256"
    token_ttl_seconds: int = 24 * 60 * 60
    token_cookie_name: str = "jobPortalToken"
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
    otel_enabled: bool = True
    otel_service_name: str = "job-board-gateway"
    otel_exporter_otlp_endpoint: str | None = None
    otel_exporter_otlp_headers: str | None = None
    otel_trace_sample_ratio: float = 1.0
    otel_log_correlation: bool = True

    model_config = SettingsConfigDict(env_prefix="JB_GATEWAY_", extra="ignore")


@lru_cache
def get_gateway_settings() -> GatewaySettings:
    return GatewaySettings()
