"""
Smooch Client.

Async client and webhook receiver for the Smooch conversational messaging API.

Usage:
    from smooch import SmoochClient, SmoochSettings

    async with SmoochClient.from_settings() as client:
        await client.send(user_id, message)
"""

from .auth import (
    BasicAuthenticator,
    BasicCredential,
    BearerAuthenticator,
    BearerCredential,
    build_authenticator,
)
from .client import SmoochClient
from .config import SmoochSettings, get_settings
from .exceptions import (
    ResponseData,
    SmoochAPIError,
    SmoochConfigError,
    SmoochError,
    SmoochRateLimitError,
    SmoochRetryableError,
    SmoochTokenError,
    SmoochValidationError,
    TokenDecodeError,
    TokenSigningError,
    TokenStorageError,
)
from .jwt import JWT_EXPIRATION, TokenStatus, generate_jwt, get_jwt_expiration, verify_jwt
from .models import (
    AppUser,
    Attachment,
    AttachmentUpload,
    HsmMessage,
    Message,
    MessageType,
    Payload,
    ResponsePayload,
    Role,
)
from .storage import RedisTokenStorage
from .token_manager import StaticTokenManager, TokenManager, TokenProvider, TokenState
from .webhook import WebhookDispatcher

__all__ = [
    # Client
    "SmoochClient",
    "SmoochSettings",
    "get_settings",
    # Auth
    "BasicAuthenticator",
    "BearerAuthenticator",
    "BasicCredential",
    "BearerCredential",
    "build_authenticator",
    # Tokens
    "JWT_EXPIRATION",
    "TokenStatus",
    "generate_jwt",
    "verify_jwt",
    "get_jwt_expiration",
    "RedisTokenStorage",
    "TokenManager",
    "StaticTokenManager",
    "TokenProvider",
    "TokenState",
    # Webhook
    "WebhookDispatcher",
    # Models
    "AppUser",
    "Attachment",
    "AttachmentUpload",
    "HsmMessage",
    "Message",
    "MessageType",
    "Payload",
    "ResponsePayload",
    "Role",
    # Exceptions
    "ResponseData",
    "SmoochError",
    "SmoochConfigError",
    "SmoochValidationError",
    "SmoochTokenError",
    "TokenSigningError",
    "TokenDecodeError",
    "TokenStorageError",
    "SmoochAPIError",
    "SmoochRetryableError",
    "SmoochRateLimitError",
]
