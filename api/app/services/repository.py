from __future__ import annotations

import uuid
from functools import lru_cache
from typing import Any, Protocol

import asyncpg  # type: ignore[import-untyped]
from asyncpg import exceptions as pg_exc

from app.core.config import get_settings


class RepositoryError(Exception):
    """Base repository error."""


class RepositoryUnavailableError(RepositoryError):
    """Raised when the database is unavailable or not configured."""


class RepositoryNotFoundError(RepositoryError):
    """Raised when the requested entity does not exist."""


class RepositoryConflictError(RepositoryError):
    """Raised when a write violates a uniqueness constraint."""


# Connection loss and server-side failures once the pool exists.
_QUERY_ERRORS = (pg_exc.PostgresError, pg_exc.InterfaceError, OSError)
_FIRST_USER_LOCK_KEY = 7_301_001


JOB_COLUMNS = (
    "company",
    "position",
    "location",
    "vacancy",
    "salary",
    "deadline",
    "description",
    "skills",
    "facilities",
    "contact",
    "job_type",
    "status",
    "owner_id",
    "created_at",
    "updated_at",
)
APPLICATION_COLUMNS = (
    "applicant_id",
    "recruiter_id",
    "job_id",
    "status",
    "resume",
    "date_of_application",
    "date_of_joining",
    "created_at",
    "updated_at",
)
JOB_SORTS = {
    "newest": "created_at desc, id asc",
    "oldest": "created_at asc, id asc",
    "a-z": "company asc, id asc",
    "z-a": "company desc, id asc",
}


class Repository(Protocol):
    async def close(self) -> None: ...

    async def insert_user(
        self,
        *,
        username: str,
        email: str,
        password_hash: str,
        role: str,
        only_if_empty: bool = False,
    ) -> dict[str, Any] | None: ...

    async def get_user(self, user_id: str) -> dict[str, Any] | None: ...

    async def get_user_by_email(self, email: str) -> dict[str, Any] | None: ...

    async def list_users(self, *, limit: int, offset: int) -> list[dict[str, Any]]: ...

    async def count_users_by_role(self) -> dict[str, int]: ...

    async def insert_job(self, fields: dict[str, Any]) -> dict[str, Any]: ...

    async def get_job(self, job_id: str) -> dict[str, Any] | None: ...

    async def save_job(self, job: dict[str, Any]) -> dict[str, Any]: ...

    async def delete_job(self, job_id: str) -> bool: ...

    async def list_jobs(
        self, *, limit: int, offset: int, search: str | None, sort: str
    ) -> tuple[list[dict[str, Any]], int]: ...

    async def list_jobs_by_owner(self, owner_id: str) -> list[dict[str, Any]]: ...

    async def count_jobs_by_status(self) -> dict[str, int]: ...

    async def insert_application(self, fields: dict[str, Any]) -> dict[str, Any]: ...

    async def get_application(self, application_id: str) -> dict[str, Any] | None: ...

    async def find_application(self, *, applicant_id: str, job_id: str) -> dict[str, Any] | None: ...

    async def save_application(self, application: dict[str, Any]) -> dict[str, Any]: ...

    async def list_applications(
        self,
        *,
        applicant_id: str | None = None,
        job_id: str | None = None,
        status: str | None = None,
    ) -> list[dict[str, Any]]: ...

    async def list_applications_for_recruiter(
        self, *, recruiter_id: str, limit: int, offset: int
    ) -> tuple[list[dict[str, Any]], int]: ...

    async def transition_application_status(
        self,
        application_id: str,
        *,
        status: str,
        from_status: str | None,
        updated_at: Any,
    ) -> dict[str, Any] | None: ...

    async def count_applications_by_status(self) -> dict[str, int]: ...


class PostgresRepository:
    def __init__(self, database_url: str | None, min_pool_size: int, max_pool_size: int) -> None:
        self.database_url = database_url
        self.min_pool_size = min_pool_size
        self.max_pool_size = max_pool_size
        self._pool: asyncpg.Pool | None = None

    async def close(self) -> None:
        if self._pool is not None:
            await self._pool.close()
            self._pool = None

    async def insert_user(
        self,
        *,
        username: str,
        email: str,
        password_hash: str,
        role: str,
        only_if_empty: bool = False,
    ) -> dict[str, Any] | None:
        pool = await self._get_pool()
        async with pool.acquire() as conn, conn.transaction():
            if only_if_empty:
                # Serializes first-user registrations until this transaction ends.
                await conn.execute("select pg_advisory_xact_lock($1)", _FIRST_USER_LOCK_KEY)
                if await conn.fetchval("select exists(select 1 from users)"):
                    return None
            try:
                row = await conn.fetchrow(
                    """
                    insert into users (username, email, password_hash, role)
                    values ($1, lower($2), $3, $4)
                    returning id::text as id, username, email, password_hash, role, created_at
                    """,
                    username,
                    email,
                    password_hash,
                    role,
                )
            except pg_exc.UniqueViolationError as exc:
                raise RepositoryConflictError("email already registered") from exc
        return dict(row)

    async def get_user(self, user_id: str) -> dict[str, Any] | None:
        if not _is_uuid(user_id):
            return None
        pool = await self._get_pool()
        row = await pool.fetchrow(
            """
            select id::text as id, username, email, password_hash, role, created_at
            from users
            where id = $1::uuid
            """,
            user_id,
        )
        return dict(row) if row else None

    async def get_user_by_email(self, email: str) -> dict[str, Any] | None:
        pool = await self._get_pool()
        row = await pool.fetchrow(
            """
            select id::text as id, username, email, password_hash, role, created_at
            from users
            where email = lower($1)
            """,
            email,
        )
        return dict(row) if row else None

    async def list_users(self, *, limit: int, offset: int) -> list[dict[str, Any]]:
        pool = await self._get_pool()
        rows = await pool.fetch(
            """
            select id::text as id, username, email, role, created_at
            from users
            order by created_at desc, id asc
            limit $1 offset $2
            """,
            limit,
            offset,
        )
        return [dict(row) for row in rows]

    async def count_users_by_role(self) -> dict[str, int]:
        pool = await self._get_pool()
        rows = await pool.fetch("select role, count(*) as total from users group by role")
        return {row["role"]: int(row["total"]) for row in rows}

    async def insert_job(self, fields: dict[str, Any]) -> dict[str, Any]:
        pool = await self._get_pool()
        row = await pool.fetchrow(
            f"""
            insert into jobs ({", ".join(JOB_COLUMNS)})
            values ({", ".join(f"${index}" for index in range(1, len(JOB_COLUMNS) + 1))})
            returning id::text as id, {", ".join(JOB_COLUMNS)}
            """,
            *(fields[column] for column in JOB_COLUMNS),
        )
        return self._job_row_to_dict(row)

    async def get_job(self, job_id: str) -> dict[str, Any] | None:
        if not _is_uuid(job_id):
            return None
        pool = await self._get_pool()
        row = await pool.fetchrow(
            f"""
            select id::text as id, {", ".join(JOB_COLUMNS)}
            from jobs
            where id = $1::uuid
            """,
            job_id,
        )
        return self._job_row_to_dict(row) if row else None

    async def save_job(self, job: dict[str, Any]) -> dict[str, Any]:
        # owner_id and created_at are never rewritten after insert.
        mutable = [column for column in JOB_COLUMNS if column not in {"owner_id", "created_at"}]
        assignments = ", ".join(f"{column} = ${index}" for index, column in enumerate(mutable, start=2))
        pool = await self._get_pool()
        row = await pool.fetchrow(
            f"""
            update jobs
            set {assignments}
            where id = $1::uuid
            returning id::text as id, {", ".join(JOB_COLUMNS)}
            """,
            job["id"],
            *(job[column] for column in mutable),
        )
        if not row:
            raise RepositoryNotFoundError("job not found")
        return self._job_row_to_dict(row)

    async def delete_job(self, job_id: str) -> bool:
        if not _is_uuid(job_id):
            return False
        pool = await self._get_pool()
        deleted = await pool.fetchval("delete from jobs where id = $1::uuid returning 1", job_id)
        return bool(deleted)

    async def list_jobs(
        self,
        *,
        limit: int,
        offset: int,
        search: str | None,
        sort: str,
    ) -> tuple[list[dict[str, Any]], int]:
        pattern = f"%{search.strip()}%" if search and search.strip() else None
        order_by = JOB_SORTS.get(sort, JOB_SORTS["newest"])
        where = """
            where $1::text is null
               or company ilike $1
               or position ilike $1
               or location ilike $1
        """
        pool = await self._get_pool()
        async with pool.acquire() as conn:
            total = await conn.fetchval(f"select count(*) from jobs {where}", pattern)
            rows = await conn.fetch(
                f"""
                select id::text as id, {", ".join(JOB_COLUMNS)}
                from jobs
                {where}
                order by {order_by}
                limit $2 offset $3
                """,
                pattern,
                limit,
                offset,
            )
        return [self._job_row_to_dict(row) for row in rows], int(total)

    async def list_jobs_by_owner(self, owner_id: str) -> list[dict[str, Any]]:
        pool = await self._get_pool()
        rows = await pool.fetch(
            f"""
            select id::text as id, {", ".join(JOB_COLUMNS)}
            from jobs
            where owner_id = $1
            order by created_at desc, id asc
            """,
            owner_id,
        )
        return [self._job_row_to_dict(row) for row in rows]

    async def count_jobs_by_status(self) -> dict[str, int]:
        pool = await self._get_pool()
        rows = await pool.fetch("select status, count(*) as total from jobs group by status")
        return {row["status"]: int(row["total"]) for row in rows}

    async def insert_application(self, fields: dict[str, Any]) -> dict[str, Any]:
        pool = await self._get_pool()
        try:
            row = await pool.fetchrow(
                f"""
                insert into applications ({", ".join(APPLICATION_COLUMNS)})
                values ({", ".join(f"${index}" for index in range(1, len(APPLICATION_COLUMNS) + 1))})
                returning id::text as id, {", ".join(APPLICATION_COLUMNS)}
                """,
                *(fields[column] for column in APPLICATION_COLUMNS),
            )
        except pg_exc.UniqueViolationError as exc:
            raise RepositoryConflictError("application already exists for applicant and job") from exc
        return dict(row)

    async def get_application(self, application_id: str) -> dict[str, Any] | None:
        if not _is_uuid(application_id):
            return None
        pool = await self._get_pool()
        row = await pool.fetchrow(
            f"""
            select id::text as id, {", ".join(APPLICATION_COLUMNS)}
            from applications
            where id = $1::uuid
            """,
            application_id,
        )
        return dict(row) if row else None

    async def find_application(self, *, applicant_id: str, job_id: str) -> dict[str, Any] | None:
        pool = await self._get_pool()
        row = await pool.fetchrow(
            f"""
            select id::text as id, {", ".join(APPLICATION_COLUMNS)}
            from applications
            where applicant_id = $1 and job_id = $2
            """,
            applicant_id,
            job_id,
        )
        return dict(row) if row else None

    async def save_application(self, application: dict[str, Any]) -> dict[str, Any]:
        mutable = ("status", "resume", "date_of_joining", "updated_at")
        assignments = ", ".join(f"{column} = ${index}" for index, column in enumerate(mutable, start=2))
        pool = await self._get_pool()
        row = await pool.fetchrow(
            f"""
            update applications
            set {assignments}
            where id = $1::uuid
            returning id::text as id, {", ".join(APPLICATION_COLUMNS)}
            """,
            application["id"],
            *(application[column] for column in mutable),
        )
        if not row:
            raise RepositoryNotFoundError("application not found")
        return dict(row)

    async def list_applications(
        self,
        *,
        applicant_id: str | None = None,
        job_id: str | None = None,
        status: str | None = None,
    ) -> list[dict[str, Any]]:
        pool = await self._get_pool()
        try:
            rows = await pool.fetch(
                f"""
                select id::text as id, {", ".join(APPLICATION_COLUMNS)}
                from applications
                where ($1::text is null or applicant_id = $1)
                  and ($2::text is null or job_id = $2)
                  and ($3::text is null or status = $3)
                order by created_at desc, id asc
                """,
                applicant_id,
                job_id,
                status,
            )
        except _QUERY_ERRORS as exc:
            raise RepositoryUnavailableError("database unavailable") from exc
        return [dict(row) for row in rows]

    async def list_applications_for_recruiter(
        self,
        *,
        recruiter_id: str,
        limit: int,
        offset: int,
    ) -> tuple[list[dict[str, Any]], int]:
        pool = await self._get_pool()
        async with pool.acquire() as conn:
            total = await conn.fetchval("select count(*) from applications where recruiter_id = $1", recruiter_id)
            rows = await conn.fetch(
                f"""
                select id::text as id, {", ".join(APPLICATION_COLUMNS)}
                from applications
                where recruiter_id = $1
                order by created_at desc, id asc
                limit $2 offset $3
                """,
                recruiter_id,
                limit,
                offset,
            )
        return [dict(row) for row in rows], int(total)

    async def transition_application_status(
        self,
        application_id: str,
        *,
        status: str,
        from_status: str | None,
        updated_at: Any,
    ) -> dict[str, Any] | None:
        if not _is_uuid(application_id):
            return None
        pool = await self._get_pool()
        try:
            row = await pool.fetchrow(
                f"""
                update applications
                set status = $2, updated_at = $4
                where id = $1::uuid
                  and ($3::text is null or status = $3)
                returning id::text as id, {", ".join(APPLICATION_COLUMNS)}
                """,
                application_id,
                status,
                from_status,
                updated_at,
            )
        except _QUERY_ERRORS as exc:
            raise RepositoryUnavailableError("database unavailable") from exc
        return dict(row) if row else None

    async def count_applications_by_status(self) -> dict[str, int]:
        pool = await self._get_pool()
        rows = await pool.fetch("select status, count(*) as total from applications group by status")
        return {row["status"]: int(row["total"]) for row in rows}

    async def _get_pool(self) -> asyncpg.Pool:
        if not self.database_url:
            raise RepositoryUnavailableError("JB_DATABASE_URL is required")

        if self._pool is not None:
            return self._pool

        try:
            self._pool = await asyncpg.create_pool(
                dsn=self.database_url,
                min_size=self.min_pool_size,
                max_size=self.max_pool_size,
                command_timeout=15,
            )
            return self._pool
        except Exception as exc:  # pragma: no cover - depends on environment
            raise RepositoryUnavailableError("database unavailable") from exc

    @staticmethod
    def _job_row_to_dict(row: asyncpg.Record) -> dict[str, Any]:
        job = dict(row)
        job["skills"] = list(job.get("skills") or [])
        job["facilities"] = list(job.get("facilities") or [])
        return job


def _is_uuid(value: str) -> bool:
    try:
        uuid.UUID(value)
    except (TypeError, ValueError):
        return False
    return True


@lru_cache
def get_repository() -> Repository:
    settings = get_settings()
    if not settings.database_url:
        from app.services.store import InMemoryRepository

        return InMemoryRepository()
    return PostgresRepository(
        database_url=settings.database_url,
        min_pool_size=settings.database_pool_min_size,
        max_pool_size=settings.database_pool_max_size,
    )
