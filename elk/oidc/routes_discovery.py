"""OIDC discovery endpoint."""

from fastapi import APIRouter

from elk.api.deps import Issuer, Settings
from elk.oidc.discovery import DiscoveryDocument, build_discovery

router = APIRouter()


@router.get("/.well-known/openid-configuration")
async def openid_configuration(issuer: Issuer, settings: Settings) -> DiscoveryDocument:
    """OpenID Connect Discovery 1.0."""
    return build_discovery(issuer, settings.oidc_path_prefix)
