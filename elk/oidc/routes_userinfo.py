"""OIDC userinfo endpoint."""

import logging

import jwt
from fastapi import APIRouter, Request
from pydantic import ValidationError

from elk.api.deps import DbSession, Settings, Signer
from elk.db.repo_user import resolve_user_by_id_or_external_id
from elk.oidc.errors import HTTP_NOT_FOUND, HTTP_UNAUTHORIZED, OIDCError
from elk.oidc.types import UserInfoResponse

logger = logging.getLogger(__name__)

router = APIRouter()


def _extract_token(request: Request) -> str | None:
    """Bearer header first, then the ``access_token`` query parameter."""
    auth = request.headers.get("Authorization", "")
    if auth.startswith("Bearer "):
        return auth[len("Bearer ") :].strip() or None
    return request.query_params.get("access_token") or None


@router.get("/userinfo")
async def userinfo(
    request: Request,
    db: DbSession,
    settings: Settings,
    jwt_mgr: Signer,
) -> UserInfoResponse:
    """GET /userinfo -- profile of the token's subject."""
    token = _extract_token(request)
    if not token:
        raise OIDCError("unauthorized", status_code=HTTP_UNAUTHORIZED)

    try:
        claims = jwt_mgr.verify_token(token)
    except (jwt.PyJWTError, ValidationError) as exc:
        logger.info("Rejected userinfo token: %s", exc)
        raise OIDCError("invalid_token", status_code=HTTP_UNAUTHORIZED) from exc
    if not claims.sub:
        raise OIDCError("invalid_token", status_code=HTTP_UNAUTHORIZED)

    user = await resolve_user_by_id_or_external_id(
        db, claims.sub, external_lookup=settings.user_external_id_lookup
    )
    if user is None:
        logger.warning("Token subject %s has no user record", claims.sub)
        raise OIDCError("user_not_found", status_code=HTTP_NOT_FOUND)

    return UserInfoResponse(
        sub=user.id,
        id=user.id,
        name=user.display_name,
        email=user.email,
        email_verified=True,
        preferred_username=user.id,
    )
