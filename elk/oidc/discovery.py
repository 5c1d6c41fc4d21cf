"""OpenID Connect Discovery document builder."""

from pydantic import BaseModel

CLAIMS_SUPPORTED = [
    "sub",
    "name",
    "email",
    "email_verified",
    "preferred_username",
    "nonce",
]


class DiscoveryDocument(BaseModel):
    """OIDC .well-known/openid-configuration response."""

    issuer: str
    authorization_endpoint: str
    token_endpoint: str
    userinfo_endpoint: str
    response_types_supported: list[str]
    grant_types_supported: list[str]
    subject_types_supported: list[str]
    id_token_signing_alg_values_supported: list[str]
    scopes_supported: list[str]
    token_endpoint_auth_methods_supported: list[str]
    code_challenge_methods_supported: list[str]
    claims_supported: list[str]


def build_discovery(issuer: str, path_prefix: str = "") -> DiscoveryDocument:
    """Build the discovery document for ``issuer``."""
    issuer = issuer.rstrip("/")
    base = f"{issuer}{path_prefix.rstrip('/')}"
    return DiscoveryDocument(
        issuer=issuer,
        authorization_endpoint=f"{base}/authorize",
        token_endpoint=f"{base}/token",
        userinfo_endpoint=f"{base}/userinfo",
        response_types_supported=["code"],
        grant_types_supported=["authorization_code"],
        subject_types_supported=["public"],
        id_token_signing_alg_values_supported=["HS256"],
        scopes_supported=["openid", "email", "profile"],
        token_endpoint_auth_methods_supported=["client_secret_post"],
        code_challenge_methods_supported=["S256", "plain"],
        claims_supported=list(CLAIMS_SUPPORTED),
    )
