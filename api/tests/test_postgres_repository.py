from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from uuid import uuid4

import pytest
from asyncpg import exceptions as pg_exc

from app.services.repository import PostgresRepository, RepositoryUnavailableError


class DroppedConnectionPool:
    async def fetch(self, query: str, *args):
        raise pg_exc.ConnectionDoesNotExistError("connection was closed in the middle of operation")

    async def fetchrow(self, query: str, *args):
        raise pg_exc.ConnectionDoesNotExistError("connection was closed in the middle of operation")


class RecordingConnection:
    def __init__(self, has_users: bool) -> None:
        self.has_users = has_users
        self.statements: list[str] = []

    @asynccontextmanager
    async def transaction(self):
        yield

    async def execute(self, query: str, *args) -> str:
        self.statements.append(query)
        return "SELECT 1"

    async def fetchval(self, query: str, *args):
        self.statements.append(query)
        return self.has_users

    async def fetchrow(self, query: str, *args):
        self.statements.append(query)
        return {"id": str(uuid4()), "username": args[0], "email": args[1], "role": args[3]}


class RecordingPool:
    def __init__(self, connection: RecordingConnection) -> None:
        self.connection = connection

    @asynccontextmanager
    async def acquire(self):
        yield self.connection


def _repository(pool) -> PostgresRepository:
    repository = PostgresRepository("postgresql://job-board.invalid/jobs", 1, 1)
    repository._pool = pool
    return repository


def test_cascade_queries_surface_connection_loss_as_unavailable() -> None:
    async def scenario() -> None:
        repository = _repository(DroppedConnectionPool())

        with pytest.raises(RepositoryUnavailableError):
            await repository.list_applications(job_id=str(uuid4()), status="pending")
        with pytest.raises(RepositoryUnavailableError):
            await repository.transition_application_status(
                str(uuid4()),
                status="rejected",
                from_status="pending",
                updated_at=datetime(2026, 3, 1, tzinfo=timezone.utc),
            )

    asyncio.run(scenario())


def test_first_user_insert_is_skipped_when_users_exist() -> None:
    async def scenario() -> None:
        connection = RecordingConnection(has_users=True)
        repository = _repository(RecordingPool(connection))

        user = await repository.insert_user(
            username="late", email="late@example.test", password_hash="x", role="admin", only_if_empty=True
        )

        assert user is None
        assert "pg_advisory_xact_lock" in connection.statements[0]
        assert not any("insert into users" in statement for statement in connection.statements)

    asyncio.run(scenario())


def test_first_user_insert_runs_when_table_is_empty() -> None:
    async def scenario() -> None:
        connection = RecordingConnection(has_users=False)
        repository = _repository(RecordingPool(connection))

        user = await repository.insert_user(
            username="first", email="first@example.test", password_hash="x", role="admin", only_if_empty=True
        )

        assert user is not None
        assert user["role"] == "admin"
        assert "insert into users" in connection.statements[-1]

    asyncio.run(scenario())
