"""Application settings loaded from environment variables."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from elk.oidc.types import OIDCClient

AUTH_CODE_TTL_DEFAULT = 600
ID_TOKEN_TTL_DEFAULT = 3600
DB_POOL_SIZE_DEFAULT = 5
DB_MAX_OVERFLOW_DEFAULT = 10
DB_PORT_DEFAULT = 5432

DEV_JWT_SECRET = "your-super-secret-jwt-token-with-at-least-32-characters"

_SOCIAL_LOGIN_HOSTS = (
    "http://localhost:8080",
    "http://192.168.0.179:8080",
)


def _default_clients() -> list[OIDCClient]:
    uris = {
        f"{host}/apps/sociallogin/{kind}/{name}"
        for host in _SOCIAL_LOGIN_HOSTS
        for kind in ("custom_oidc", "custom_oauth2")
        for name in ("elkdonis", "nextcloud")
    }
    uris |= {
        f"{host}/apps/sociallogin/{kind}/elkdonis"
        for host in ("http://nextcloud-nginx:80", "https://cloud.elkdonis.com")
        for kind in ("custom_oidc", "custom_oauth2")
    }
    return [
        OIDCClient(
            client_id="nextcloud",
            client_secret="nextcloud-secret",
            redirect_uris=frozenset(uris),
            name="Nextcloud",
        )
    ]


class DatabaseSettings(BaseSettings):
    """PostgreSQL connection settings."""

    model_config = SettingsConfigDict(env_prefix="ELK_DB_")

    host: str = "localhost"
    port: int = DB_PORT_DEFAULT
    user: str = "elkdonis"
    password: str = "elkdonis"
    database: str = "elkdonis"
    pool_size: int = DB_POOL_SIZE_DEFAULT
    max_overflow: int = DB_MAX_OVERFLOW_DEFAULT

    @property
    def async_url(self) -> str:
        """Build async PostgreSQL connection URL."""
        return (
            f"postgresql+asyncpg://{self.user}:{self.password}"
            f"@{self.host}:{self.port}/{self.database}"
        )


class AuthSettings(BaseSettings):
    """OIDC provider settings.

    ``clients`` is read as JSON from ``ELK_CLIENTS`` when set, e.g.
    ``[{"client_id": "nextcloud", "client_secret": "...",
    "redirect_uris": ["https://cloud.example/cb"]}]``.
    """

    model_config = SettingsConfigDict(env_prefix="ELK_")

    jwt_secret: str = DEV_JWT_SECRET
    issuer_url: str = ""
    oidc_path_prefix: str = "/api/oidc"
    auth_code_ttl: int = AUTH_CODE_TTL_DEFAULT
    id_token_ttl: int = ID_TOKEN_TTL_DEFAULT
    login_url: str = "/login"

    session_cookie_name: str = "sb-access-token"
    session_jwt_secret: str = ""
    session_audience: str = "authenticated"

    user_external_id_lookup: bool = True
    clients: list[OIDCClient] = Field(default_factory=_default_clients)

    cors_origins: str = ""
    log_level: str = "INFO"

    def get_cors_origin_list(self) -> list[str]:
        """Parse comma-separated CORS origins."""
        if not self.cors_origins:
            return []
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    def get_session_secret(self) -> str:
        """Secret for the session provider's tokens; shared with ours by default."""
        return self.session_jwt_secret or self.jwt_secret
