"""Signed identity tokens.

A token is a compact HS256 JWT carrying the subject id (``sub``), the role
(``role``), the issue instant (``iat``) and an expiry (``exp``). There is no
server-side session: verification depends only on the shared secret and the
clock. Every verification failure collapses to ``None`` so callers cannot
tell a forged token from an expired or garbled one.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable

import jwt

from app.core.auth import Identity, Role, parse_role

logger = logging.getLogger(__name__)

_REQUIRED_CLAIMS = ["sub", "role", "exp", "iat"]


class TokenConfigurationError(RuntimeError):
    """Raised when a token is requested but no signing secret is configured."""


class TokenCodec:
    def __init__(
        self,
        secret: str | None,
        *,
        algorithm: str = "HS256",
        ttl_seconds: int = 24 * 60 * 60,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.secret = secret
        self.algorithm = algorithm
        self.ttl = timedelta(seconds=max(1, ttl_seconds))
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def issue(self, subject_id: str, role: Role) -> str:
        if not self.secret:
            raise TokenConfigurationError("JB_TOKEN_SECRET is required to issue tokens")
        issued_at = self._clock()
        payload = {
            "sub": subject_id,
            "role": role.value,
            "iat": int(issued_at.timestamp()),
            "exp": int((issued_at + self.ttl).timestamp()),
        }
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def verify(self, token: str | None) -> Identity | None:
        if not token or not self.secret:
            return None
        try:
            payload = jwt.decode(
                token,
                self.secret,
                algorithms=[self.algorithm],
                options={"require": _REQUIRED_CLAIMS, "verify_exp": False, "verify_iat": False},
            )
        except jwt.InvalidTokenError:
            return None

        # Time claims are checked against the injected clock, not the wall clock.
        expires_at = payload.get("exp")
        if not isinstance(expires_at, int) or expires_at <= int(self._clock().timestamp()):
            return None

        subject_id = payload.get("sub")
        role = parse_role(payload.get("role")) if isinstance(payload.get("role"), str) else None
        if not isinstance(subject_id, str) or not subject_id or role is None:
            return None
        return Identity(subject_id=subject_id, role=role)

    @property
    def ttl_seconds(self) -> int:
        return int(self.ttl.total_seconds())
