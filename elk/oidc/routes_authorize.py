"""OIDC authorization endpoint."""

import logging
from typing import Annotated
from urllib.parse import parse_qsl, urlencode, urljoin, urlsplit, urlunsplit

from fastapi import APIRouter, Query, Request
from fastapi.responses import RedirectResponse
from pydantic import BaseModel

from elk.api.deps import DbSession, Registry, Sessions, Settings, external_origin
from elk.db.repo_user import resolve_user_by_id_or_external_id
from elk.oidc.auth_code import AuthCodeParams, issue_authorization_code
from elk.oidc.clients import ClientRegistry
from elk.oidc.errors import HTTP_NOT_FOUND, OIDCError
from elk.oidc.types import OIDCClient

logger = logging.getLogger(__name__)

router = APIRouter()

HTTP_FOUND = 302


class _AuthQuery(BaseModel):
    """Bundle query params for the authorize endpoint."""

    client_id: str | None = None
    redirect_uri: str | None = None
    response_type: str | None = None
    scope: str = ""
    state: str | None = None
    nonce: str | None = None
    code_challenge: str | None = None
    code_challenge_method: str | None = None


def _validate_request(q: _AuthQuery, registry: ClientRegistry) -> OIDCClient:
    """Return the client, or raise; errors are never bounced to redirect_uri."""
    client = registry.lookup(q.client_id)
    if client is None:
        raise OIDCError("invalid_client")
    if q.response_type != "code":
        raise OIDCError("unsupported_response_type")
    if "openid" not in q.scope.split():
        raise OIDCError("invalid_scope")
    if not q.redirect_uri:
        raise OIDCError("invalid_request", description="redirect_uri is required")
    if not registry.is_redirect_allowed(client, q.redirect_uri):
        raise OIDCError("invalid_redirect_uri")
    return client


def _with_query(url: str, params: dict[str, str]) -> str:
    """Append params to ``url``, replacing same-named ones already there."""
    parts = urlsplit(url)
    query = [
        (k, v)
        for k, v in parse_qsl(parts.query, keep_blank_values=True)
        if k not in params
    ]
    query.extend(params.items())
    return urlunsplit(parts._replace(query=urlencode(query)))


def _login_redirect(request: Request, login_url: str) -> RedirectResponse:
    """Send the browser to the login UI, resuming this request afterwards."""
    origin = external_origin(request)
    return_to = f"{origin}{request.url.path}"
    if request.url.query:
        return_to = f"{return_to}?{request.url.query}"
    target = _with_query(urljoin(f"{origin}/", login_url), {"returnTo": return_to})
    return RedirectResponse(url=target, status_code=HTTP_FOUND)


@router.get("/authorize", response_model=None)
async def authorize(
    request: Request,
    db: DbSession,
    settings: Settings,
    registry: Registry,
    sessions: Sessions,
    q: Annotated[_AuthQuery, Query()],
) -> RedirectResponse:
    """GET /authorize -- OIDC authorization endpoint."""
    client = _validate_request(q, registry)
    redirect_uri = q.redirect_uri or ""

    subject = await sessions.resolve_session(request)
    if subject is None:
        return _login_redirect(request, settings.login_url)

    user = await resolve_user_by_id_or_external_id(
        db, subject, external_lookup=settings.user_external_id_lookup
    )
    if user is None:
        logger.warning("Session subject %s has no user record", subject)
        raise OIDCError("user_not_found", status_code=HTTP_NOT_FOUND)

    code = await issue_authorization_code(
        db,
        AuthCodeParams(
            client_id=client.client_id,
            user_id=user.id,
            redirect_uri=redirect_uri,
            nonce=q.nonce or None,
            code_challenge=q.code_challenge or None,
            code_challenge_method=q.code_challenge_method or None,
            ttl_seconds=settings.auth_code_ttl,
        ),
    )
    await db.commit()
    logger.info(
        "Issued authorization code to %s for user %s", client.client_id, user.id
    )

    redir_params = {"code": code}
    if q.state:
        redir_params["state"] = q.state
    return RedirectResponse(
        url=_with_query(redirect_uri, redir_params),
        status_code=HTTP_FOUND,
    )
