"""Static registry of relying parties allowed to use the provider."""

import secrets
from collections.abc import Iterable

from elk.oidc.types import OIDCClient


class ClientRegistry:
    """Read-only mapping of ``client_id`` to client configuration.

    Built once at startup and shared by the authorize and token handlers.
    """

    def __init__(self, clients: Iterable[OIDCClient]) -> None:
        by_id: dict[str, OIDCClient] = {}
        for client in clients:
            if client.client_id in by_id:
                raise ValueError(f"Duplicate OIDC client_id: {client.client_id}")
            by_id[client.client_id] = client
        self._clients = by_id

    def __len__(self) -> int:
        return len(self._clients)

    def __contains__(self, client_id: object) -> bool:
        return client_id in self._clients

    def lookup(self, client_id: str | None) -> OIDCClient | None:
        """Return the client for ``client_id``, or None if unknown."""
        if not client_id:
            return None
        return self._clients.get(client_id)

    @staticmethod
    def is_redirect_allowed(client: OIDCClient, redirect_uri: str | None) -> bool:
        """Exact-match check against the registered callback URLs."""
        return bool(redirect_uri) and redirect_uri in client.redirect_uris

    @staticmethod
    def verify_secret(client: OIDCClient, client_secret: str | None) -> bool:
        """Compare the presented secret with the registered one."""
        if client_secret is None:
            return False
        return secrets.compare_digest(
            client.client_secret.encode(), client_secret.encode()
        )
