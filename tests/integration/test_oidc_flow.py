"""Integration test: full OIDC authorization code flow."""

import time
from collections.abc import AsyncIterator
from pathlib import Path
from urllib.parse import parse_qs, urlparse

import jwt
import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from elk.core.app import create_app
from elk.core.settings import AuthSettings
from elk.db.base import BaseEntity
from elk.db.engine import get_session
from elk.db.models_oauth import AuthorizationCodeEntity
from elk.db.models_user import UserEntity
from elk.oidc.auth_code import compute_s256_challenge
from elk.oidc.types import OIDCClient

HTTP_OK = 200
HTTP_REDIRECT = 302
HTTP_BAD_REQUEST = 400
HTTP_UNAUTHORIZED = 401

JWT_SECRET = "integration-jwt-secret-long-enough-for-hs256"
SESSION_SECRET = "integration-session-secret-long-enough-too"
CLIENT_ID = "nextcloud"
CLIENT_SECRET = "registered-secret"
REDIRECT_URI = "https://cloud.example/cb"
VERIFIER = "dBjftJeZ4CVP-mB92K27uhbUJU1p1r_wW1gFWFOEjXk"
USER_ID = "u1"
USER_EMAIL = "flow@example.com"
PREFIX = "/api/oidc"


def _session_cookie(sub: str = "auth-u1") -> dict[str, str]:
    """Cookie header carrying a session token from the auth provider."""
    token = jwt.encode(
        {"sub": sub, "aud": "authenticated", "exp": int(time.time()) + 300},
        SESSION_SECRET,
        algorithm="HS256",
    )
    return {"Cookie": f"sb-access-token={token}"}


@pytest.fixture
async def factory(tmp_path: Path) -> AsyncIterator[async_sessionmaker[AsyncSession]]:
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'flow.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(BaseEntity.metadata.create_all)

    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        session.add(
            UserEntity(
                id=USER_ID,
                email=USER_EMAIL,
                display_name="Flow User",
                auth_user_id="auth-u1",
            )
        )
        await session.commit()

    yield factory
    await engine.dispose()


@pytest.fixture
async def flow_client(
    factory: async_sessionmaker[AsyncSession],
) -> AsyncIterator[AsyncClient]:
    """Full app with the cookie session resolver and a per-request session."""
    settings = AuthSettings(
        jwt_secret=JWT_SECRET,
        session_jwt_secret=SESSION_SECRET,
        clients=[
            OIDCClient(
                client_id=CLIENT_ID,
                client_secret=CLIENT_SECRET,
                redirect_uris=frozenset({REDIRECT_URI}),
            )
        ],
    )
    app = create_app(settings)

    async def _override() -> AsyncIterator[AsyncSession]:
        async with factory() as s:
            try:
                yield s
                await s.commit()
            except Exception:
                await s.rollback()
                raise

    app.dependency_overrides[get_session] = _override
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


async def _authorize(ac: AsyncClient, **extra: str) -> str:
    params = {
        "client_id": CLIENT_ID,
        "redirect_uri": REDIRECT_URI,
        "response_type": "code",
        "scope": "openid email",
        "state": "abc123",
        **extra,
    }
    resp = await ac.get(
        f"{PREFIX}/authorize",
        params=params,
        headers=_session_cookie(),
        follow_redirects=False,
    )
    assert resp.status_code == HTTP_REDIRECT
    loc = urlparse(resp.headers["location"])
    assert f"{loc.scheme}://{loc.netloc}{loc.path}" == REDIRECT_URI
    qs = parse_qs(loc.query)
    assert qs["state"] == ["abc123"]
    return qs["code"][0]


def _token_form(code: str, **extra: str) -> dict[str, str]:
    return {
        "grant_type": "authorization_code",
        "code": code,
        "redirect_uri": REDIRECT_URI,
        "client_id": CLIENT_ID,
        "client_secret": CLIENT_SECRET,
        **extra,
    }


@pytest.mark.integration
class TestFullOIDCFlow:
    """End-to-end OIDC authorization code flow."""

    async def test_discovery(self, flow_client: AsyncClient) -> None:
        resp = await flow_client.get("/.well-known/openid-configuration")
        assert resp.status_code == HTTP_OK
        doc = resp.json()
        assert doc["issuer"] == "http://test"
        assert doc["authorization_endpoint"] == f"http://test{PREFIX}/authorize"
        assert doc["token_endpoint"] == f"http://test{PREFIX}/token"
        assert doc["userinfo_endpoint"] == f"http://test{PREFIX}/userinfo"
        assert doc["id_token_signing_alg_values_supported"] == ["HS256"]

    async def test_full_flow(self, flow_client: AsyncClient) -> None:
        """discovery -> authorize -> token -> userinfo, with PKCE and nonce."""
        ac = flow_client
        doc = (await ac.get("/.well-known/openid-configuration")).json()

        code = await _authorize(
            ac,
            nonce="n-0S6_WzA2Mj",
            code_challenge=compute_s256_challenge(VERIFIER),
            code_challenge_method="S256",
        )

        resp = await ac.post(
            urlparse(doc["token_endpoint"]).path,
            data=_token_form(code, code_verifier=VERIFIER),
        )
        assert resp.status_code == HTTP_OK
        tokens = resp.json()
        claims = jwt.decode(
            tokens["id_token"], JWT_SECRET, algorithms=["HS256"], audience=CLIENT_ID
        )
        assert claims["iss"] == doc["issuer"]
        assert claims["sub"] == USER_ID
        assert claims["nonce"] == "n-0S6_WzA2Mj"

        resp = await ac.get(
            urlparse(doc["userinfo_endpoint"]).path,
            headers={"Authorization": f"Bearer {tokens['access_token']}"},
        )
        assert resp.status_code == HTTP_OK
        info = resp.json()
        assert info["sub"] == USER_ID
        assert info["email"] == USER_EMAIL
        assert info["name"] == "Flow User"

    async def test_redeem_twice(self, flow_client: AsyncClient) -> None:
        code = await _authorize(flow_client)

        first = await flow_client.post(f"{PREFIX}/token", data=_token_form(code))
        assert first.status_code == HTTP_OK
        claims = jwt.decode(
            first.json()["id_token"],
            JWT_SECRET,
            algorithms=["HS256"],
            audience=CLIENT_ID,
        )
        assert claims["aud"] == CLIENT_ID
        assert claims["sub"] == USER_ID

        second = await flow_client.post(f"{PREFIX}/token", data=_token_form(code))
        assert second.status_code == HTTP_BAD_REQUEST
        assert second.json() == {"error": "invalid_grant"}

    async def test_unregistered_redirect_issues_no_code(
        self,
        flow_client: AsyncClient,
        factory: async_sessionmaker[AsyncSession],
    ) -> None:
        resp = await flow_client.get(
            f"{PREFIX}/authorize",
            params={
                "client_id": CLIENT_ID,
                "redirect_uri": "https://evil.example/cb",
                "response_type": "code",
                "scope": "openid",
            },
            headers=_session_cookie(),
            follow_redirects=False,
        )
        assert resp.status_code == HTTP_BAD_REQUEST
        assert resp.json() == {"error": "invalid_redirect_uri"}

        async with factory() as s:
            count = await s.scalar(
                select(func.count()).select_from(AuthorizationCodeEntity)
            )
        assert count == 0

    async def test_no_session_sends_to_login(self, flow_client: AsyncClient) -> None:
        resp = await flow_client.get(
            f"{PREFIX}/authorize",
            params={
                "client_id": CLIENT_ID,
                "redirect_uri": REDIRECT_URI,
                "response_type": "code",
                "scope": "openid",
            },
            headers={"Cookie": "sb-access-token=not-a-jwt"},
            follow_redirects=False,
        )
        assert resp.status_code == HTTP_REDIRECT
        assert resp.headers["location"].startswith("http://test/login?returnTo=")

    async def test_expired_token_at_userinfo(self, flow_client: AsyncClient) -> None:
        expired = jwt.encode(
            {"sub": USER_ID, "exp": int(time.time()) - 60},
            JWT_SECRET,
            algorithm="HS256",
        )
        resp = await flow_client.get(
            f"{PREFIX}/userinfo", headers={"Authorization": f"Bearer {expired}"}
        )
        assert resp.status_code == HTTP_UNAUTHORIZED
        assert resp.json() == {"error": "invalid_token"}
