"""FastAPI dependencies exposing the objects built by the app factory."""

from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from elk.core.settings import AuthSettings
from elk.crypto.jwt_manager import JWTManager
from elk.db.engine import get_session
from elk.oidc.clients import ClientRegistry
from elk.oidc.session import SessionResolver


def get_settings(request: Request) -> AuthSettings:
    return request.app.state.settings


def get_client_registry(request: Request) -> ClientRegistry:
    return request.app.state.client_registry


def get_jwt_manager(request: Request) -> JWTManager:
    return request.app.state.jwt_manager


def get_session_resolver(request: Request) -> SessionResolver:
    return request.app.state.session_resolver


def _first_header_value(value: str | None) -> str | None:
    """First entry of a possibly comma-joined proxy header."""
    if not value:
        return None
    first = value.split(",")[0].strip()
    return first or None


def external_origin(request: Request) -> str:
    """Origin the client used to reach us, honoring reverse-proxy headers."""
    host = _first_header_value(
        request.headers.get("x-forwarded-host")
    ) or request.headers.get("host")
    proto = (
        _first_header_value(request.headers.get("x-forwarded-proto"))
        or request.url.scheme
    )
    if host:
        return f"{proto}://{host}"
    return f"{request.url.scheme}://{request.url.netloc}".rstrip("/")


def get_issuer(
    request: Request,
    settings: Annotated[AuthSettings, Depends(get_settings)],
) -> str:
    """Configured issuer if pinned, else the request's external origin."""
    if settings.issuer_url:
        return settings.issuer_url.rstrip("/")
    return external_origin(request)


DbSession = Annotated[AsyncSession, Depends(get_session)]
Settings = Annotated[AuthSettings, Depends(get_settings)]
Registry = Annotated[ClientRegistry, Depends(get_client_registry)]
Signer = Annotated[JWTManager, Depends(get_jwt_manager)]
Sessions = Annotated[SessionResolver, Depends(get_session_resolver)]
Issuer = Annotated[str, Depends(get_issuer)]
