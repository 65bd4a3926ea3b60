from __future__ import annotations

import logging
from typing import Any

import bcrypt

from app.core.auth import Identity, Role
from app.core.policy import Action, allow
from app.services.errors import ConflictError, ForbiddenError
from app.services.repository import Repository, RepositoryConflictError

logger = logging.getLogger(__name__)

# Compared against when the email is unknown so both paths cost one bcrypt check.
_DUMMY_HASH = bcrypt.hashpw(b"job-board-dummy-password", bcrypt.gensalt(rounds=4)).decode("ascii")


def hash_password(password: str, *, rounds: int = 12) -> str:
    return bcrypt.hashpw(_encode(password), bcrypt.gensalt(rounds=rounds)).decode("ascii")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(_encode(password), password_hash.encode("ascii"))
    except ValueError:
        return False


def _encode(password: str) -> bytes:
    # bcrypt only looks at the first 72 bytes.
    return password.encode("utf-8")[:72]


class AccountService:
    def __init__(
        self,
        repository: Repository,
        *,
        admin_registration_code: str | None = None,
        bcrypt_rounds: int = 12,
    ) -> None:
        self.repository = repository
        self.admin_registration_code = admin_registration_code
        self.bcrypt_rounds = bcrypt_rounds

    async def register(
        self,
        *,
        username: str,
        email: str,
        password: str,
        role: str,
        admin_code: str | None = None,
    ) -> dict[str, Any]:
        requested_role = Role(role)
        has_admin_code = bool(self.admin_registration_code) and admin_code == self.admin_registration_code
        fields = {
            "username": username.strip(),
            "email": email.strip().lower(),
            "password_hash": hash_password(password, rounds=self.bcrypt_rounds),
        }

        try:
            user = None
            if not (requested_role is Role.ADMIN and has_admin_code):
                # The first account becomes admin; the store decides atomically.
                user = await self.repository.insert_user(**fields, role=Role.ADMIN.value, only_if_empty=True)
            if user is None:
                if requested_role is Role.ADMIN and not has_admin_code:
                    raise ForbiddenError("admin registration requires a valid admin code")
                user = await self.repository.insert_user(**fields, role=requested_role.value)
        except RepositoryConflictError as exc:
            raise ConflictError("email already registered") from exc

        logger.info("user registered user_id=%s role=%s", user["id"], user["role"])
        return user

    async def authenticate(self, *, email: str, password: str) -> dict[str, Any] | None:
        user = await self.repository.get_user_by_email(email.strip().lower())
        if user is None:
            verify_password(password, _DUMMY_HASH)
            return None
        if not verify_password(password, user["password_hash"]):
            return None
        return user

    async def get_user(self, user_id: str) -> dict[str, Any] | None:
        return await self.repository.get_user(user_id)

    async def list_users(self, identity: Identity, *, page: int, page_size: int) -> list[dict[str, Any]]:
        if not allow(identity, Action.LIST_USERS):
            raise ForbiddenError("only admins can list users")
        return await self.repository.list_users(limit=page_size, offset=(page - 1) * page_size)

    async def stats(self, identity: Identity) -> dict[str, Any]:
        if not allow(identity, Action.VIEW_STATS):
            raise ForbiddenError("only admins can view stats")

        users_by_role = await self.repository.count_users_by_role()
        jobs_by_status = await self.repository.count_jobs_by_status()
        applications_by_status = await self.repository.count_applications_by_status()
        return {
            "total_users": sum(users_by_role.values()),
            "users_by_role": users_by_role,
            "total_jobs": sum(jobs_by_status.values()),
            "jobs_by_status": jobs_by_status,
            "total_applications": sum(applications_by_status.values()),
            "applications_by_status": applications_by_status,
        }
