"""Type definitions for JWT operations."""

from pydantic import BaseModel, ConfigDict


class IDTokenClaims(BaseModel):
    """Claims bundle for ID token creation."""

    sub: str
    aud: str
    email: str | None = None
    name: str | None = None
    preferred_username: str | None = None
    nonce: str | None = None
    ttl_seconds: int = 3600


class DecodedToken(BaseModel):
    """Decoded and verified JWT token claims."""

    model_config = ConfigDict(extra="allow")

    sub: str = ""
    iss: str = ""
    aud: str | list[str] = ""
    email: str | None = None
    name: str | None = None
    nonce: str | None = None
