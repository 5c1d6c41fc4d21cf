"""JWT creation and verification using HS256."""

from datetime import UTC, datetime, timedelta

import jwt
from jwt.types import Options

from elk.crypto.types import DecodedToken, IDTokenClaims

ID_TOKEN_DEFAULT_TTL = 3600
ALGORITHM = "HS256"


class JWTManager:
    """Creates and verifies HS256-signed ID tokens with a shared secret.

    The issuer is passed per token because it follows the origin the
    request came in on (internal docker host vs. public hostname).
    """

    def __init__(self, secret: str) -> None:
        self._secret = secret

    def create_id_token(self, claims: IDTokenClaims, issuer: str) -> str:
        """Create a signed id_token per OIDC Core 1.0."""
        now = datetime.now(UTC)
        ttl = claims.ttl_seconds or ID_TOKEN_DEFAULT_TTL
        payload = {
            "iss": issuer,
            "sub": claims.sub,
            "aud": claims.aud,
            "exp": now + timedelta(seconds=ttl),
            "iat": now,
            "email_verified": True,
        }
        if claims.name is not None:
            payload["name"] = claims.name
        if claims.email is not None:
            payload["email"] = claims.email
        if claims.preferred_username is not None:
            payload["preferred_username"] = claims.preferred_username
        if claims.nonce is not None:
            payload["nonce"] = claims.nonce
        return jwt.encode(payload, self._secret, algorithm=ALGORITHM)

    def verify_token(self, token: str) -> DecodedToken:
        """Verify signature and expiry; issuer and audience are not pinned."""
        opts: Options = {"verify_aud": False, "require": ["exp"]}
        raw = jwt.decode(token, self._secret, algorithms=[ALGORITHM], options=opts)
        return DecodedToken.model_validate(raw)
