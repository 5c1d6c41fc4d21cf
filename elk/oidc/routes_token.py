"""OIDC token endpoint."""

from fastapi import APIRouter, Request

from elk.api.deps import DbSession, Issuer, Registry, Settings, Signer
from elk.oidc.token_service import exchange_authorization_code, parse_token_request
from elk.oidc.types import TokenResponse

router = APIRouter()


@router.post("/token")
async def token_endpoint(
    request: Request,
    db: DbSession,
    settings: Settings,
    registry: Registry,
    jwt_mgr: Signer,
    issuer: Issuer,
) -> TokenResponse:
    """POST /token -- exchange an authorization code for an ID token."""
    form = await parse_token_request(request)
    return await exchange_authorization_code(
        db,
        form,
        registry=registry,
        jwt_mgr=jwt_mgr,
        settings=settings,
        issuer=issuer,
    )
