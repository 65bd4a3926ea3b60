from __future__ import annotations

import os
from datetime import date
from pathlib import Path
from typing import Any, Iterator

import pytest
from fastapi.testclient import TestClient

os.environ.setdefault("JB_OTEL_ENABLED", "false")
os.environ.setdefault("JB_GATEWAY_OTEL_ENABLED", "false")

from app.core.auth import Role  # noqa: E402
from app.core.config import Settings, get_settings  # noqa: E402
from app.core.tokens import TokenCodec  # noqa: E402
from app.main import create_app  # noqa: E402
from app.services.repository import get_repository  # noqa: E402
from app.services.store import InMemoryRepository  # noqa: E402

TOKEN_SECRET = "job-board-test-secret-0123456789abcdef"
ADMIN_CODE = "let-me-admin"


def make_settings(tmp_path: Path, **overrides: Any) -> Settings:
    values: dict[str, Any] = {
        "token_secret": TOKEN_SECRET,
        "bcrypt_rounds": 4,
        "otel_enabled": False,
        "upload_dir": str(tmp_path / "uploads"),
        "admin_registration_code": ADMIN_CODE,
    }
    values.update(overrides)
    return Settings(**values)


def bearer(subject_id: str, role: Role) -> dict[str, str]:
    token = TokenCodec(TOKEN_SECRET).issue(subject_id, role)
    return {"Authorization": f"Bearer {token}"}


def job_payload(**overrides: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "company": "Acme Robotics",
        "position": "Backend Engineer",
        "location": "Remote",
        "vacancy": 2,
        "salary": "90000",
        "deadline": date(2030, 1, 31).isoformat(),
        "description": "Build and run the hiring platform.",
        "skills": ["python", "postgres"],
        "facilities": ["remote work"],
        "contact": "jobs@acme.test",
        "job_type": "full-time",
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def repository() -> InMemoryRepository:
    return InMemoryRepository()


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return make_settings(tmp_path)


@pytest.fixture
def client(settings: Settings, repository: InMemoryRepository) -> Iterator[TestClient]:
    app = create_app(settings)
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_repository] = lambda: repository
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
    get_settings.cache_clear()
