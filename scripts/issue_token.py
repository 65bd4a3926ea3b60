#!/usr/bin/env python3
"""Mint an identity token for local testing of the gateway and service split."""

from __future__ import annotations

import argparse
import os
import sys

from app.core.auth import Role
from app.core.tokens import TokenCodec, TokenConfigurationError


def issue_token(*, subject_id: str, role: str, secret: str | None, ttl_seconds: int) -> str:
    codec = TokenCodec(secret, ttl_seconds=ttl_seconds)
    return codec.issue(subject_id, Role(role))


def main() -> None:
    parser = argparse.ArgumentParser(description="Issue a signed job board identity token.")
    parser.add_argument("--subject-id", required=True, help="User id placed in the sub claim")
    parser.add_argument(
        "--role",
        choices=[role.value for role in Role],
        default=Role.APPLICANT.value,
        help="Role placed in the role claim",
    )
    parser.add_argument(
        "--secret",
        default=os.getenv("JB_TOKEN_SECRET"),
        help="Signing secret (defaults to JB_TOKEN_SECRET)",
    )
    parser.add_argument("--ttl-seconds", type=int, default=24 * 60 * 60, help="Token lifetime in seconds")
    args = parser.parse_args()

    try:
        token = issue_token(
            subject_id=args.subject_id,
            role=args.role,
            secret=args.secret,
            ttl_seconds=args.ttl_seconds,
        )
    except TokenConfigurationError as exc:
        print(f"error: {exc}", file=sys.stderr)
        raise SystemExit(2) from exc
    print(token)


if __name__ == "__main__":
    main()
