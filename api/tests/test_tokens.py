from __future__ import annotations

from datetime import datetime, timedelta, timezone

import jwt
from jwt.utils import base64url_encode
import pytest

from app.core.auth import Identity, Role
from app.core.tokens import TokenCodec, TokenConfigurationError

SECRET = "token-codec-test-secret-0123456789abcdef"


class FakeClock:
    def __init__(self) -> None:
        self.now = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now


def test_issued_token_verifies_to_same_identity() -> None:
    codec = TokenCodec(SECRET)
    token = codec.issue("user-1", Role.RECRUITER)

    assert codec.verify(token) == Identity(subject_id="user-1", role=Role.RECRUITER)


def test_token_expires_after_ttl() -> None:
    clock = FakeClock()
    codec = TokenCodec(SECRET, ttl_seconds=60, clock=clock)
    token = codec.issue("user-1", Role.APPLICANT)

    clock.now += timedelta(seconds=59)
    assert codec.verify(token) is not None

    clock.now += timedelta(seconds=1)
    assert codec.verify(token) is None


def test_token_signed_with_other_secret_is_invalid() -> None:
    token = TokenCodec("another-secret-0123456789abcdef-xyz").issue("user-1", Role.ADMIN)

    assert TokenCodec(SECRET).verify(token) is None


def test_tampered_token_is_invalid() -> None:
    codec = TokenCodec(SECRET)
    header, payload, signature = codec.issue("user-1", Role.APPLICANT).split(".")
    forged_payload = base64url_encode(b'{"sub":"user-1","role":"admin","iat":1,"exp":9999999999}')

    assert codec.verify(f"{header}.{forged_payload.decode()}.{signature}") is None


@pytest.mark.parametrize("token", ["", "not-a-token", "a.b.c"])
def test_garbled_token_is_invalid(token: str) -> None:
    assert TokenCodec(SECRET).verify(token) is None


def test_token_with_unknown_role_is_invalid() -> None:
    now = int(datetime.now(timezone.utc).timestamp())
    token = jwt.encode(
        {"sub": "user-1", "role": "superuser", "iat": now, "exp": now + 60},
        SECRET,
        algorithm="HS256",
    )

    assert TokenCodec(SECRET).verify(token) is None


def test_token_missing_expiry_is_invalid() -> None:
    token = jwt.encode({"sub": "user-1", "role": "admin", "iat": 1}, SECRET, algorithm="HS256")

    assert TokenCodec(SECRET).verify(token) is None


def test_codec_without_secret_refuses_to_issue_and_verify() -> None:
    token = TokenCodec(SECRET).issue("user-1", Role.APPLICANT)
    codec = TokenCodec(None)

    with pytest.raises(TokenConfigurationError):
        codec.issue("user-1", Role.APPLICANT)
    assert codec.verify(token) is None
