# ============================================================================
# SCOPE: GLOBAL
# Description: Smooch API client. Messages, app users, attachments and the
#              webhook route, authenticated with basic auth or a shared JWT.
# ============================================================================
"""
Smooch API Client.

Usage:
    settings = SmoochSettings(APP_ID="app_1", KEY_ID="app_key", SECRET="...")
    redis = aioredis.Redis.from_url(settings.REDIS_URL)

    async with SmoochClient(settings, redis=redis) as client:
        client.add_webhook_event_handler(on_event)
        app.include_router(client.router)
        await client.send("user-1", Message(role=Role.APP_MAKER, type=MessageType.TEXT, text="Hi"))
"""

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any, BinaryIO

import httpx
import redis.asyncio as aioredis
from fastapi import APIRouter
from pydantic import ValidationError

from .auth import Authenticator, build_authenticator
from .config import AUTH_JWT, REGION_EU, SmoochSettings, get_settings
from .exceptions import SmoochConfigError, SmoochValidationError
from .http_client import SmoochHttpClient
from .models import (
    AppUser,
    Attachment,
    AttachmentUpload,
    GetAppUserResponse,
    HsmMessage,
    LinkAppConfirmationData,
    LinkAppUserToChannelPayload,
    Message,
    PreCreateAppUserPayload,
    ResponsePayload,
)
from .storage.redis import RedisTokenStorage
from .token_manager import StaticTokenManager, TokenManager, TokenProvider
from .webhook import WebhookDispatcher, WebhookEventHandler

logger = logging.getLogger(__name__)

US_ROOT_URL = "https://api.smooch.io"
EU_ROOT_URL = "https://api.eu-1.smooch.io"
API_VERSION = "v1.1"


class SmoochClient:
    """
    Client for the Smooch v1.1 API.

    Responsibilities:
    - Wiring settings into token provider, authenticator and HTTP client
    - Message sending (plain and WhatsApp HSM)
    - App user lookup, pre-creation and channel linking
    - Attachment upload and removal
    - Webhook route and handler registration
    """

    def __init__(
        self,
        settings: SmoochSettings,
        redis: aioredis.Redis | None = None,
        token_provider: TokenProvider | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        storage: RedisTokenStorage | None = None,
    ) -> None:
        """
        Initialize Smooch client.

        Args:
            settings: Client configuration
            redis: Shared Redis client, required for renewing JWT auth
            token_provider: Optional pre-built token provider (overrides redis)
            transport: Optional httpx transport
            storage: Optional pre-built token storage (overrides redis)

        Raises:
            SmoochConfigError: If JWT auth is selected without a way to store tokens
        """
        self._settings = settings
        self._owned_storage: RedisTokenStorage | None = None
        self._token_provider: TokenProvider | None = None

        if settings.AUTH == AUTH_JWT:
            if storage is None and redis is not None:
                storage = RedisTokenStorage(redis, key=settings.REDIS_TOKEN_KEY)
            self._token_provider = token_provider or self._build_token_provider(settings, storage)

        self._authenticator: Authenticator = build_authenticator(settings, self._token_provider)
        self._http = SmoochHttpClient(
            self._authenticator,
            timeout=settings.HTTP_TIMEOUT,
            transport=transport,
        )
        self._root_url = EU_ROOT_URL if settings.REGION == REGION_EU else US_ROOT_URL
        self._webhook = WebhookDispatcher(verify_secret=settings.VERIFY_SECRET)
        self._router: APIRouter | None = None

        logger.info(
            f"Initializing SmoochClient for app {settings.APP_ID} "
            f"(auth={settings.AUTH}, region={settings.REGION})"
        )

    @staticmethod
    def _build_token_provider(
        settings: SmoochSettings, storage: RedisTokenStorage | None
    ) -> TokenProvider:
        if not settings.JWT_RENEW:
            return StaticTokenManager(settings.KEY_ID, settings.SECRET, scope=settings.JWT_SCOPE)

        return TokenManager(
            storage,
            key_id=settings.KEY_ID,
            secret=settings.SECRET,
            scope=settings.JWT_SCOPE,
            lifetime=settings.JWT_EXPIRATION,
        )

    @classmethod
    def from_settings(
        cls,
        settings: SmoochSettings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        **overrides: Any,
    ) -> "SmoochClient":
        """
        Build a client from settings (or environment), creating its own Redis client.

        Without ``settings`` the cached environment settings are used, or fresh
        settings built from ``overrides``. With ``settings``, ``overrides``
        replace individual fields and the result is validated again.

        Raises:
            SmoochConfigError: If the settings are invalid
        """
        try:
            if settings is None:
                settings = SmoochSettings(**overrides) if overrides else get_settings()
            elif overrides:
                settings = SmoochSettings.model_validate({**settings.model_dump(), **overrides})
        except ValidationError as e:
            raise SmoochConfigError(f"Invalid Smooch settings: {e}") from e

        storage = None
        if settings.AUTH == AUTH_JWT and settings.JWT_RENEW:
            storage = RedisTokenStorage.from_url(settings.REDIS_URL, key=settings.REDIS_TOKEN_KEY)

        client = cls(settings, storage=storage, transport=transport)
        client._owned_storage = storage
        return client

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def initialize(self) -> None:
        """Ensure a token exists (JWT auth) and open the HTTP client."""
        if self._token_provider is not None:
            await self._token_provider.initialize()
        await self._http.initialize()

    async def close(self) -> None:
        await self._http.close()
        if self._owned_storage is not None:
            await self._owned_storage.close()
            self._owned_storage = None
        logger.info("SmoochClient closed")

    async def __aenter__(self) -> "SmoochClient":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    @property
    def settings(self) -> SmoochSettings:
        return self._settings

    @property
    def token_provider(self) -> TokenProvider | None:
        return self._token_provider

    # =========================================================================
    # Token
    # =========================================================================

    def _require_token_provider(self) -> TokenProvider:
        if self._token_provider is None:
            raise SmoochConfigError("JWT operations require jwt auth")
        return self._token_provider

    async def is_jwt_expired(self) -> bool:
        """Check whether the shared Smooch JWT is expired."""
        return await self._require_token_provider().is_expired()

    async def renew_token(self) -> str:
        """Generate and store a new Smooch JWT."""
        return await self._require_token_provider().renew()

    # =========================================================================
    # Webhook
    # =========================================================================

    def add_webhook_event_handler(self, handler: WebhookEventHandler) -> None:
        self._webhook.add_handler(handler)

    def verify_request(self, headers: Mapping[str, str]) -> bool:
        return self._webhook.verify_request(headers)

    @property
    def router(self) -> APIRouter:
        """FastAPI router serving the webhook at ``WEBHOOK_URL``."""
        if self._router is None:
            self._router = self._webhook.build_router(self._settings.WEBHOOK_URL)
        return self._router

    # =========================================================================
    # Messages
    # =========================================================================

    def _get_url(self, endpoint: str) -> str:
        return f"{self._root_url}/{API_VERSION}/apps/{self._settings.APP_ID}{endpoint}"

    async def send(self, user_id: str, message: Message | None) -> ResponsePayload:
        """
        Send a message to an app user.

        Args:
            user_id: Smooch app user ID
            message: Message with at least role and type

        Returns:
            Parsed API response

        Raises:
            SmoochValidationError: If user id or message fields are missing
            SmoochAPIError: On API errors
        """
        if not user_id:
            raise SmoochValidationError("user id is empty")
        if message is None:
            raise SmoochValidationError("message is nil")
        if not message.role:
            raise SmoochValidationError("message.Role is empty")
        if not message.type:
            raise SmoochValidationError("message.Type is empty")

        data = await self._http.request(
            "POST",
            self._get_url(f"/appusers/{user_id}/messages"),
            json_body=message.to_wire(),
        )
        logger.info(f"Message sent to app user {user_id}")
        return ResponsePayload.model_validate(data)

    async def send_hsm(self, user_id: str, hsm_message: HsmMessage) -> ResponsePayload:
        """Send a WhatsApp HSM template message."""
        if not user_id:
            raise SmoochValidationError("user id is empty")
        if hsm_message is None:
            raise SmoochValidationError("message is nil")

        data = await self._http.request(
            "POST",
            self._get_url(f"/appusers/{user_id}/messages"),
            json_body=hsm_message.to_wire(),
        )
        logger.info(f"HSM message sent to app user {user_id}")
        return ResponsePayload.model_validate(data)

    # =========================================================================
    # App users
    # =========================================================================

    async def get_app_user(self, user_id: str) -> AppUser | None:
        if not user_id:
            raise SmoochValidationError("user id is empty")

        data = await self._http.request("GET", self._get_url(f"/appusers/{user_id}"))
        return GetAppUserResponse.model_validate(data).app_user

    async def pre_create_app_user(
        self, user_id: str, surname: str, given_name: str
    ) -> AppUser | None:
        """
        Register a user in Smooch before they start a conversation.

        Raises:
            SmoochValidationError: If any argument is empty
        """
        if not user_id:
            raise SmoochValidationError("user id is empty")
        if not surname:
            raise SmoochValidationError("surname is empty")
        if not given_name:
            raise SmoochValidationError("givenName is empty")

        payload = PreCreateAppUserPayload(user_id=user_id, surname=surname, given_name=given_name)
        data = await self._http.request(
            "POST", self._get_url("/appusers"), json_body=payload.to_wire()
        )
        return GetAppUserResponse.model_validate(data).app_user

    async def link_app_user_to_channel(
        self,
        user_id: str,
        channel_type: str,
        confirmation_type: str,
        phone_number: str,
    ) -> AppUser | None:
        """
        Link an app user to a channel (e.g. WhatsApp) by phone number.

        Raises:
            SmoochValidationError: If any argument is empty
        """
        if not user_id:
            raise SmoochValidationError("user id is empty")
        if not channel_type:
            raise SmoochValidationError("channel type is empty")
        if not confirmation_type:
            raise SmoochValidationError("confirmation type is empty")
        if not phone_number:
            raise SmoochValidationError("phonenumber is empty")

        payload = LinkAppUserToChannelPayload(
            type=channel_type,
            confirmation=LinkAppConfirmationData(type=confirmation_type),
            phone_number=phone_number,
        )
        data = await self._http.request(
            "POST",
            self._get_url(f"/appusers/{user_id}/channels"),
            json_body=payload.to_wire(),
        )
        return GetAppUserResponse.model_validate(data).app_user

    # =========================================================================
    # Attachments
    # =========================================================================

    async def upload_file_attachment(
        self, filepath: str | Path, upload: AttachmentUpload
    ) -> Attachment:
        """Upload a file from disk as an attachment."""
        path = Path(filepath)
        with path.open("rb") as f:
            return await self.upload_attachment(f, upload, filename=path.name)

    async def upload_attachment(
        self,
        source: BinaryIO | bytes,
        upload: AttachmentUpload,
        filename: str = "file",
    ) -> Attachment:
        """
        Upload an attachment as multipart form data.

        Args:
            source: File object or raw bytes
            upload: MIME type, access level and optional ownership parameters
            filename: Filename reported for the ``source`` part

        Returns:
            Attachment with the hosted media URL
        """
        data = await self._http.request(
            "POST",
            self._get_url("/attachments"),
            params=upload.query_params(),
            files={"source": (filename, source, upload.mime_type)},
            data={"type": upload.mime_type},
        )
        attachment = Attachment.model_validate(data)
        logger.info(f"Attachment uploaded: {attachment.media_url}")
        return attachment

    async def delete_attachment(self, attachment: Attachment) -> None:
        """Remove a previously uploaded attachment by its media URL."""
        await self._http.request(
            "POST",
            self._get_url("/attachments/remove"),
            json_body={"mediaUrl": attachment.media_url},
        )
        logger.info(f"Attachment removed: {attachment.media_url}")
