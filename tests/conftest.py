"""Shared test fixtures for the OIDC provider."""

from collections.abc import AsyncIterator

import pytest
from fastapi import Request
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from elk.core.app import create_app
from elk.core.settings import AuthSettings
from elk.db.base import BaseEntity
from elk.db.engine import get_session
from elk.db.models_user import UserEntity
from elk.oidc.types import OIDCClient

JWT_SECRET = "test-jwt-secret-that-is-long-enough-for-hs256"
CLIENT_ID = "nextcloud"
CLIENT_SECRET = "nextcloud-test-secret"
REDIRECT_URI = "https://cloud.example/cb"
USER_ID = "u1"


class StaticSessionResolver:
    """Session resolver returning a fixed subject (None = logged out)."""

    def __init__(self, subject: str | None = USER_ID) -> None:
        self.subject = subject

    async def resolve_session(self, _request: Request) -> str | None:
        return self.subject


@pytest.fixture
def settings() -> AuthSettings:
    """Settings with one registered client and a known signing secret."""
    return AuthSettings(
        jwt_secret=JWT_SECRET,
        clients=[
            OIDCClient(
                client_id=CLIENT_ID,
                client_secret=CLIENT_SECRET,
                redirect_uris=frozenset({REDIRECT_URI}),
                name="Nextcloud",
            )
        ],
    )


@pytest.fixture
def session_resolver() -> StaticSessionResolver:
    return StaticSessionResolver()


@pytest.fixture
async def db_session() -> AsyncIterator[AsyncSession]:
    """Create an in-memory SQLite async session for tests."""
    engine = create_async_engine("sqlite+aiosqlite://", echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(BaseEntity.metadata.create_all)

    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        yield session

    await engine.dispose()


@pytest.fixture
async def user(db_session: AsyncSession) -> UserEntity:
    """Insert the default test user."""
    entity = UserEntity(
        id=USER_ID,
        email="u1@example.com",
        display_name="User One",
        auth_user_id="auth-u1",
    )
    db_session.add(entity)
    await db_session.commit()
    return entity


@pytest.fixture
async def client(
    db_session: AsyncSession,
    settings: AuthSettings,
    session_resolver: StaticSessionResolver,
) -> AsyncIterator[AsyncClient]:
    """Create an httpx test client with DB session override."""
    app = create_app(settings, session_resolver=session_resolver)

    async def _override_session() -> AsyncIterator[AsyncSession]:
        try:
            yield db_session
            await db_session.commit()
        except Exception:
            await db_session.rollback()
            raise

    app.dependency_overrides[get_session] = _override_session

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
