"""Identity propagation at the trust boundary.

The propagator runs once per inbound request at the outermost edge. Public
routes pass through with no identity. Everything else needs a token that the
codec verifies; the verified subject id and role are then attached to the
request, either in-process (``request.state.identity``) or, in the split
deployment, as internal headers the gateway sets for the backend service.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Protocol

from starlette.requests import HTTPConnection
from starlette.responses import JSONResponse

from app.core.auth import Identity
from app.core.tokens import TokenCodec

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class PublicRoute:
    method: str
    prefix: str

    def matches(self, method: str, path: str) -> bool:
        if self.method != "*" and self.method != method.upper():
            return False
        prefix = self.prefix.rstrip("/") or "/"
        if prefix == "/":
            return path == "/"
        return path == prefix or path.startswith(f"{prefix}/")


def parse_public_routes(values: Iterable[str]) -> tuple[PublicRoute, ...]:
    """Parse ``METHOD:/prefix`` entries; a bare ``/prefix`` matches any method."""
    routes: list[PublicRoute] = []
    for value in values:
        method, separator, prefix = value.strip().partition(":")
        if not separator:
            method, prefix = "*", value.strip()
        if prefix.startswith("/"):
            routes.append(PublicRoute(method=method.strip().upper() or "*", prefix=prefix.strip()))
    return tuple(routes)


class TokenExtractor(Protocol):
    def extract(self, connection: HTTPConnection) -> str | None: ...


@dataclass(frozen=True, slots=True)
class CookieToken:
    name: str

    def extract(self, connection: HTTPConnection) -> str | None:
        value = (connection.cookies.get(self.name) or "").strip()
        return value or None


@dataclass(frozen=True, slots=True)
class BearerToken:
    header: str = "Authorization"

    def extract(self, connection: HTTPConnection) -> str | None:
        authorization = connection.headers.get(self.header)
        if not authorization or not authorization.lower().startswith("bearer "):
            return None
        return authorization.split(" ", maxsplit=1)[1].strip() or None


@dataclass(frozen=True, slots=True)
class Decision:
    forward: bool
    identity: Identity | None = None
    public: bool = False


class IdentityPropagator:
    def __init__(
        self,
        codec: TokenCodec,
        public_routes: Iterable[PublicRoute],
        extractors: Iterable[TokenExtractor],
    ) -> None:
        self.codec = codec
        self.public_routes = tuple(public_routes)
        self.extractors = tuple(extractors)

    def is_public(self, method: str, path: str) -> bool:
        return any(route.matches(method, path) for route in self.public_routes)

    def extract_tokens(self, connection: HTTPConnection) -> list[str]:
        tokens = (extractor.extract(connection) for extractor in self.extractors)
        return [token for token in tokens if token]

    def resolve(self, connection: HTTPConnection) -> Decision:
        method = connection.scope.get("method", "GET")
        path = connection.url.path
        if self.is_public(method, path):
            return Decision(forward=True, public=True)

        tokens = self.extract_tokens(connection)
        if not tokens:
            logger.info("rejecting request without token method=%s path=%s", method, path)
            return Decision(forward=False)

        # A stale cookie must not hide a valid bearer header.
        identity = next(filter(None, (self.codec.verify(token) for token in tokens)), None)
        if identity is None:
            logger.warning("rejecting request with invalid token method=%s path=%s", method, path)
            return Decision(forward=False)

        return Decision(forward=True, identity=identity)


def unauthenticated_response() -> JSONResponse:
    return JSONResponse(
        status_code=401,
        content={"detail": "unauthenticated"},
        headers={"WWW-Authenticate": "Bearer"},
    )
