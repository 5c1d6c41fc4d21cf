"""FastAPI application factory for the Elkdonis OIDC provider."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from elk.core.log_config import configure_logging
from elk.core.settings import AuthSettings
from elk.crypto.jwt_manager import JWTManager
from elk.db.engine import dispose_engine
from elk.oidc.clients import ClientRegistry
from elk.oidc.errors import register_error_handlers
from elk.oidc.routes_authorize import router as authorize_router
from elk.oidc.routes_discovery import router as discovery_router
from elk.oidc.routes_token import router as token_router
from elk.oidc.routes_userinfo import router as userinfo_router
from elk.oidc.session import JWTCookieSessionResolver, SessionResolver

logger = logging.getLogger(__name__)


def create_app(
    settings: AuthSettings | None = None,
    session_resolver: SessionResolver | None = None,
) -> FastAPI:
    """Build and configure the FastAPI application."""
    settings = settings or AuthSettings()
    configure_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        yield
        await dispose_engine()

    app = FastAPI(
        title="Elkdonis OIDC Provider",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.client_registry = ClientRegistry(settings.clients)
    app.state.jwt_manager = JWTManager(settings.jwt_secret)
    app.state.session_resolver = session_resolver or JWTCookieSessionResolver(
        secret=settings.get_session_secret(),
        cookie_name=settings.session_cookie_name,
        audience=settings.session_audience,
    )

    origins = settings.get_cors_origin_list()
    if origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_credentials=True,
            allow_methods=["GET", "POST"],
            allow_headers=["Authorization", "Content-Type"],
        )

    register_error_handlers(app)

    prefix = settings.oidc_path_prefix.rstrip("/")
    app.include_router(discovery_router)
    app.include_router(authorize_router, prefix=prefix)
    app.include_router(token_router, prefix=prefix)
    app.include_router(userinfo_router, prefix=prefix)

    logger.info(
        "OIDC provider ready: %d client(s), endpoints under %s",
        len(app.state.client_registry),
        prefix or "/",
    )
    return app
