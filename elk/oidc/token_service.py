"""Authorization-code exchange and ID token issuance."""

import json
import logging

from fastapi import Request
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from elk.core.settings import AuthSettings
from elk.crypto.jwt_manager import JWTManager
from elk.crypto.types import IDTokenClaims
from elk.db.models_user import UserEntity
from elk.db.repo_user import resolve_user_by_id_or_external_id
from elk.oidc.auth_code import validate_and_consume, verify_pkce
from elk.oidc.clients import ClientRegistry
from elk.oidc.errors import HTTP_UNAUTHORIZED, OIDCError
from elk.oidc.types import AuthCodeBinding, TokenRequest, TokenResponse

logger = logging.getLogger(__name__)


async def parse_token_request(request: Request) -> TokenRequest:
    """Normalize a JSON or form-encoded /token body.

    OIDC mandates form encoding; JSON is accepted for convenience.
    """
    content_type = request.headers.get("content-type", "")
    try:
        if "application/json" in content_type:
            raw = await request.json()
            if not isinstance(raw, dict):
                raise OIDCError(
                    "invalid_request", description="Body must be an object"
                )
        else:
            form = await request.form()
            raw = {k: v for k, v in form.items() if isinstance(v, str)}
        return TokenRequest.model_validate(raw)
    except (json.JSONDecodeError, UnicodeDecodeError, ValidationError) as exc:
        raise OIDCError("invalid_request", description="Malformed body") from exc


def build_id_token_claims(
    user: UserEntity, client_id: str, nonce: str | None, ttl_seconds: int
) -> IDTokenClaims:
    """Derive ID token claims from the user record."""
    return IDTokenClaims(
        sub=user.id,
        aud=client_id,
        name=user.display_name or user.email,
        email=user.email,
        preferred_username=user.id,
        nonce=nonce,
        ttl_seconds=ttl_seconds,
    )


def _check_pkce(binding: AuthCodeBinding, code_verifier: str | None) -> None:
    if not binding.code_challenge:
        return
    if not code_verifier:
        raise OIDCError("invalid_request", description="code_verifier is required")
    if not verify_pkce(
        code_verifier, binding.code_challenge, binding.code_challenge_method
    ):
        raise OIDCError("invalid_grant")


async def exchange_authorization_code(
    db: AsyncSession,
    form: TokenRequest,
    *,
    registry: ClientRegistry,
    jwt_mgr: JWTManager,
    settings: AuthSettings,
    issuer: str,
) -> TokenResponse:
    """Validate the client and code, check PKCE and sign the ID token.

    The code is committed as consumed before PKCE is checked, so a failed
    verifier still spends it.
    """
    client = registry.lookup(form.client_id)
    if client is None or not registry.verify_secret(client, form.client_secret):
        logger.info("Rejected client credentials for %r", form.client_id)
        raise OIDCError("invalid_client", status_code=HTTP_UNAUTHORIZED)

    if form.grant_type != "authorization_code":
        raise OIDCError("unsupported_grant_type")
    if not form.code:
        raise OIDCError("invalid_request", description="code is required")

    binding = await validate_and_consume(
        db,
        code=form.code,
        client_id=client.client_id,
        redirect_uri=form.redirect_uri,
    )
    if binding is None:
        logger.info("Rejected authorization code for %s", client.client_id)
        raise OIDCError("invalid_grant")
    await db.commit()

    _check_pkce(binding, form.code_verifier)

    user = await resolve_user_by_id_or_external_id(
        db, binding.user_id, external_lookup=settings.user_external_id_lookup
    )
    if user is None:
        logger.warning("Code subject %s has no user record", binding.user_id)
        raise OIDCError("user_not_found")

    claims = build_id_token_claims(
        user, client.client_id, binding.nonce, settings.id_token_ttl
    )
    id_token = jwt_mgr.create_id_token(claims, issuer)
    logger.info("Issued ID token to %s for user %s", client.client_id, user.id)

    # The ID token doubles as the access token accepted by /userinfo.
    return TokenResponse(
        access_token=id_token,
        token_type="Bearer",
        expires_in=settings.id_token_ttl,
        id_token=id_token,
    )
