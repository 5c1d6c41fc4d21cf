"""Authorization code issuance, single-use redemption and PKCE."""

import hashlib
import logging
import secrets
from base64 import urlsafe_b64encode
from datetime import UTC, datetime, timedelta

from pydantic import BaseModel
from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from elk.core.settings import AUTH_CODE_TTL_DEFAULT
from elk.db.models_oauth import AuthorizationCodeEntity
from elk.oidc.errors import OIDCError
from elk.oidc.types import AuthCodeBinding

logger = logging.getLogger(__name__)

PKCE_S256 = "s256"
PKCE_PLAIN = "plain"


class AuthCodeParams(BaseModel):
    """Parameters for creating an authorization code."""

    client_id: str
    user_id: str
    redirect_uri: str
    nonce: str | None = None
    code_challenge: str | None = None
    code_challenge_method: str | None = None
    ttl_seconds: int = AUTH_CODE_TTL_DEFAULT


def generate_code() -> str:
    """Generate a cryptographically random authorization code."""
    return secrets.token_urlsafe(32)


def compute_s256_challenge(code_verifier: str) -> str:
    """BASE64URL(SHA256(verifier)) without padding."""
    digest = hashlib.sha256(code_verifier.encode("ascii")).digest()
    return urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")


def verify_pkce(
    code_verifier: str, code_challenge: str, method: str | None = None
) -> bool:
    """Check a verifier against the stored challenge.

    A missing method means ``plain`` (RFC 7636 4.3). Unknown methods raise
    ``invalid_request``.
    """
    normalized = (method or PKCE_PLAIN).lower()
    if normalized == PKCE_S256:
        try:
            computed = compute_s256_challenge(code_verifier)
        except UnicodeEncodeError:
            return False
        return secrets.compare_digest(computed.encode(), code_challenge.encode())
    if normalized == PKCE_PLAIN:
        return secrets.compare_digest(
            code_verifier.encode(), code_challenge.encode()
        )
    raise OIDCError("invalid_request", description="Unsupported code_challenge_method")


async def purge_expired_codes(session: AsyncSession) -> int:
    """Delete codes whose expiry has passed. Returns the number removed."""
    stmt = (
        delete(AuthorizationCodeEntity)
        .where(AuthorizationCodeEntity.expires_at <= datetime.now(UTC))
        .execution_options(synchronize_session=False)
    )
    result = await session.execute(stmt)
    return result.rowcount or 0


async def issue_authorization_code(
    session: AsyncSession, params: AuthCodeParams
) -> str:
    """Create and store a new authorization code."""
    purged = await purge_expired_codes(session)
    if purged:
        logger.debug("Purged %d expired authorization codes", purged)

    code = generate_code()
    entity = AuthorizationCodeEntity(
        code=code,
        user_id=params.user_id,
        client_id=params.client_id,
        redirect_uri=params.redirect_uri,
        nonce=params.nonce,
        code_challenge=params.code_challenge,
        code_challenge_method=params.code_challenge_method,
        expires_at=datetime.now(UTC) + timedelta(seconds=params.ttl_seconds),
        consumed=False,
    )
    session.add(entity)
    await session.flush()
    return code


async def validate_and_consume(
    session: AsyncSession,
    *,
    code: str,
    client_id: str,
    redirect_uri: str | None,
) -> AuthCodeBinding | None:
    """Redeem a code at most once. Returns None for any invalid code.

    The checks and the consumed flag are one conditional UPDATE, so of two
    concurrent redemptions only one sees a changed row. Unknown, expired,
    already used and mismatched codes are indistinguishable to the caller;
    a client or redirect mismatch leaves the code redeemable.
    """
    if not code or not redirect_uri:
        return None

    stmt = (
        update(AuthorizationCodeEntity)
        .where(
            AuthorizationCodeEntity.code == code,
            AuthorizationCodeEntity.consumed.is_(False),
            AuthorizationCodeEntity.expires_at > datetime.now(UTC),
            AuthorizationCodeEntity.client_id == client_id,
            AuthorizationCodeEntity.redirect_uri == redirect_uri,
        )
        .values(consumed=True)
        .execution_options(synchronize_session=False)
    )
    result = await session.execute(stmt)
    if result.rowcount != 1:
        return None

    row = await session.execute(
        select(AuthorizationCodeEntity).where(AuthorizationCodeEntity.code == code)
    )
    entity = row.scalar_one()
    return AuthCodeBinding(
        user_id=entity.user_id,
        client_id=entity.client_id,
        redirect_uri=entity.redirect_uri,
        nonce=entity.nonce,
        code_challenge=entity.code_challenge,
        code_challenge_method=entity.code_challenge_method,
    )
