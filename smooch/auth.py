"""
Request authentication for outbound Smooch API calls.

Turns the configured auth mode into the Authorization header of one request.
Basic credentials are static; bearer tokens are fetched from the token provider
before every request, since another instance may have renewed the token.
"""

import base64
import logging
from dataclasses import dataclass

from .config import AUTH_BASIC, AUTH_JWT, SmoochSettings
from .exceptions import SmoochConfigError
from .token_manager import TokenProvider

logger = logging.getLogger(__name__)

AUTHORIZATION_HEADER = "Authorization"


@dataclass(frozen=True)
class BasicCredential:
    """Static key id / secret pair. Never expires."""

    key_id: str
    secret: str

    def header_value(self) -> str:
        raw = f"{self.key_id}:{self.secret}".encode("utf-8")
        return f"Basic {base64.b64encode(raw).decode('ascii')}"


@dataclass(frozen=True)
class BearerCredential:
    """Signed, time-bounded token."""

    token: str

    def header_value(self) -> str:
        return f"Bearer {self.token}"


Credential = BasicCredential | BearerCredential


class BasicAuthenticator:
    """Authenticates with HTTP basic auth. No I/O."""

    def __init__(self, key_id: str, secret: str) -> None:
        self._credential = BasicCredential(key_id=key_id, secret=secret)

    async def credential(self) -> Credential:
        return self._credential

    async def auth_headers(self) -> dict[str, str]:
        return {AUTHORIZATION_HEADER: self._credential.header_value()}


class BearerAuthenticator:
    """Authenticates with the current JWT from a token provider."""

    def __init__(self, token_provider: TokenProvider) -> None:
        self._token_provider = token_provider

    @property
    def token_provider(self) -> TokenProvider:
        return self._token_provider

    async def credential(self) -> Credential:
        """
        Fetch the live token.

        Raises:
            SmoochTokenError: If no valid token can be obtained; the request
                must not be sent unauthenticated
        """
        token = await self._token_provider.current_token()
        return BearerCredential(token=token)

    async def auth_headers(self) -> dict[str, str]:
        credential = await self.credential()
        return {AUTHORIZATION_HEADER: credential.header_value()}


Authenticator = BasicAuthenticator | BearerAuthenticator


def build_authenticator(
    settings: SmoochSettings, token_provider: TokenProvider | None = None
) -> Authenticator:
    """
    Select the authenticator for the configured auth mode.

    Raises:
        SmoochConfigError: If JWT mode is selected without a token provider
    """
    if settings.AUTH == AUTH_BASIC:
        return BasicAuthenticator(settings.KEY_ID, settings.SECRET)

    if settings.AUTH == AUTH_JWT:
        if token_provider is None:
            raise SmoochConfigError("token provider is required for jwt auth")
        return BearerAuthenticator(token_provider)

    raise SmoochConfigError("error wrong authentication")
