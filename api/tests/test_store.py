from __future__ import annotations

import asyncio
from datetime import date, datetime, timezone

import pytest

from app.services.repository import RepositoryConflictError
from app.services.store import InMemoryRepository

NOW = datetime(2026, 5, 1, tzinfo=timezone.utc)


def _application(applicant_id: str, job_id: str) -> dict:
    return {
        "applicant_id": applicant_id,
        "recruiter_id": "recruiter-1",
        "job_id": job_id,
        "status": "pending",
        "resume": None,
        "date_of_application": date(2026, 5, 1),
        "date_of_joining": None,
        "created_at": NOW,
        "updated_at": NOW,
    }


def test_application_pair_is_unique() -> None:
    async def scenario() -> None:
        repository = InMemoryRepository()
        await repository.insert_application(_application("applicant-1", "job-1"))
        await repository.insert_application(_application("applicant-1", "job-2"))
        await repository.insert_application(_application("applicant-2", "job-1"))

        with pytest.raises(RepositoryConflictError):
            await repository.insert_application(_application("applicant-1", "job-1"))

    asyncio.run(scenario())


def test_conditional_transition_only_applies_from_expected_status() -> None:
    async def scenario() -> None:
        repository = InMemoryRepository()
        application = await repository.insert_application(_application("applicant-1", "job-1"))

        moved = await repository.transition_application_status(
            application["id"], status="rejected", from_status="pending", updated_at=NOW
        )
        assert moved is not None and moved["status"] == "rejected"

        again = await repository.transition_application_status(
            application["id"], status="rejected", from_status="pending", updated_at=NOW
        )
        assert again is None

    asyncio.run(scenario())


def test_returned_rows_are_copies() -> None:
    async def scenario() -> None:
        repository = InMemoryRepository()
        application = await repository.insert_application(_application("applicant-1", "job-1"))
        application["status"] = "accepted"

        assert (await repository.get_application(application["id"]))["status"] == "pending"

    asyncio.run(scenario())


def test_user_emails_are_unique_and_listing_hides_hashes() -> None:
    async def scenario() -> None:
        repository = InMemoryRepository()
        await repository.insert_user(username="ada", email="Ada@Example.test", password_hash="x", role="admin")

        with pytest.raises(RepositoryConflictError):
            await repository.insert_user(username="ada2", email="ada@example.test", password_hash="y", role="applicant")

        users = await repository.list_users(limit=10, offset=0)
        assert [user["email"] for user in users] == ["ada@example.test"]
        assert "password_hash" not in users[0]

    asyncio.run(scenario())
