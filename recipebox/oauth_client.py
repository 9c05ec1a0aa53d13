"""External identity provider client built on authlib."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from authlib.integrations.base_client import OAuthError
from authlib.integrations.starlette_client import OAuth
from starlette.requests import Request
from starlette.responses import Response

from .core import GOOGLE_CLIENT_ID, GOOGLE_CLIENT_SECRET, OAUTH_REDIRECT_BASE
from .services.callbacks import PROVIDERS, Provider
from .services.identity import IdentityAssertion, assertion_from_userinfo

logger = logging.getLogger(__name__)

_CREDENTIALS: Dict[str, tuple[Optional[str], Optional[str]]] = {
    "google_oauth2": (GOOGLE_CLIENT_ID, GOOGLE_CLIENT_SECRET),
}


class HandshakeError(Exception):
    """The provider handshake ended without a usable assertion."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


def callback_url(provider: Provider) -> str:
    return f"{OAUTH_REDIRECT_BASE.rstrip('/')}/users/auth/{provider.key}/callback"


class IdentityProvider:
    """Runs the authorization-code handshake for every registered provider."""

    def __init__(self, credentials: Dict[str, tuple[Optional[str], Optional[str]]]):
        self.oauth = OAuth()
        self._configured = set()
        for provider in PROVIDERS.values():
            client_id, client_secret = credentials.get(provider.key, (None, None))
            if client_id and client_secret:
                self._configured.add(provider.key)
            else:  # pragma: no cover - allows app to boot without credentials
                logger.warning("%s OAuth not configured", provider.label)
                client_id, client_secret = "dummy", "dummy"
            self.oauth.register(
                name=provider.client_name,
                client_id=client_id,
                client_secret=client_secret,
                server_metadata_url=provider.server_metadata_url,
                client_kwargs={"scope": provider.scope},
            )

    def is_configured(self, provider: Provider) -> bool:
        return provider.key in self._configured

    async def authorize_redirect(self, request: Request, provider: Provider) -> Response:
        client = self.oauth.create_client(provider.client_name)
        return await client.authorize_redirect(request, callback_url(provider))

    async def fetch_assertion(self, request: Request, provider: Provider) -> IdentityAssertion:
        """Complete the handshake and return the identity it asserts.

        Raises ``HandshakeError`` when the user denied consent, the provider
        reported an error, or the returned profile lacks a subject id.
        """

        client = self.oauth.create_client(provider.client_name)
        try:
            token: Dict[str, Any] = await client.authorize_access_token(request)
            userinfo = token.get("userinfo") or await client.userinfo(token=token)
        except OAuthError as exc:
            raise HandshakeError(exc.description or exc.error or "unknown error") from exc

        assertion = assertion_from_userinfo(provider.key, userinfo or {})
        if not assertion.uid:
            raise HandshakeError("provider returned no subject id")
        return assertion


identity_provider = IdentityProvider(_CREDENTIALS)


def get_identity_provider() -> IdentityProvider:
    """FastAPI dependency returning the configured identity provider."""

    return identity_provider


__all__ = [
    "HandshakeError",
    "IdentityProvider",
    "callback_url",
    "get_identity_provider",
    "identity_provider",
]
