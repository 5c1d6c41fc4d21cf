"""Lookup of the browser's session with the external auth provider."""

import logging
from typing import Protocol

import jwt
from fastapi import Request

logger = logging.getLogger(__name__)


class SessionResolver(Protocol):
    """Resolves the caller's external session to its subject id."""

    async def resolve_session(self, request: Request) -> str | None: ...


class JWTCookieSessionResolver:
    """Reads the auth provider's access-token cookie and returns its ``sub``.

    The provider signs its session tokens with HS256; a missing, expired or
    forged cookie is treated as "not logged in".
    """

    def __init__(self, secret: str, cookie_name: str, audience: str | None) -> None:
        self._secret = secret
        self._cookie_name = cookie_name
        self._audience = audience or None

    async def resolve_session(self, request: Request) -> str | None:
        token = request.cookies.get(self._cookie_name)
        if not token:
            return None
        try:
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=["HS256"],
                audience=self._audience,
                options={"verify_aud": self._audience is not None},
            )
        except jwt.PyJWTError as exc:
            logger.debug("Ignoring invalid session cookie: %s", exc)
            return None
        subject = claims.get("sub")
        return subject if isinstance(subject, str) and subject else None
