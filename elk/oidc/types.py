"""Type definitions for OIDC clients, codes and token operations."""

from pydantic import BaseModel, ConfigDict, Field


class OIDCClient(BaseModel):
    """A registered relying party."""

    model_config = ConfigDict(frozen=True)

    client_id: str
    client_secret: str
    redirect_uris: frozenset[str] = Field(default_factory=frozenset)
    name: str = ""


class AuthCodeBinding(BaseModel):
    """Everything bound to an authorization code at issuance."""

    user_id: str
    client_id: str
    redirect_uri: str
    nonce: str | None = None
    code_challenge: str | None = None
    code_challenge_method: str | None = None


class TokenRequest(BaseModel):
    """Normalized /token request, whatever the body encoding was."""

    grant_type: str | None = None
    code: str | None = None
    redirect_uri: str | None = None
    client_id: str | None = None
    client_secret: str | None = None
    code_verifier: str | None = None


class TokenResponse(BaseModel):
    """OAuth token endpoint response."""

    access_token: str
    token_type: str = "Bearer"
    expires_in: int
    id_token: str


class UserInfoResponse(BaseModel):
    """OIDC userinfo response; ``id`` is kept for plain OAuth2 clients."""

    sub: str
    id: str
    name: str | None = None
    email: str | None = None
    email_verified: bool = True
    preferred_username: str
