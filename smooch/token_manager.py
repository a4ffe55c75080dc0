# ============================================================================
# SCOPE: GLOBAL
# Description: JWT lifecycle for Smooch bearer authentication.
#              Issue, store in Redis, detect expiry, renew under a local lock.
# ============================================================================
"""
Smooch Token Manager.

Single Responsibility: Own the JWT lifecycle (issue, check, renew).

The token lives in Redis, shared by every instance of the service. Renewal is
lazy: the first request that observes a missing, expired or malformed token
pays for issuing a new one. Within one process an asyncio.Lock serializes
renewal; across processes duplicate renewals are tolerated because any freshly
signed token is as good as any other and Redis keeps the last write.
"""

import asyncio
import logging
import time
from abc import abstractmethod
from collections.abc import Callable
from enum import Enum
from typing import Protocol, runtime_checkable

from .exceptions import SmoochConfigError
from .jwt import DEFAULT_SCOPE, JWT_EXPIRATION, TokenStatus, generate_jwt, verify_jwt
from .storage.redis import RedisTokenStorage

logger = logging.getLogger(__name__)


def _validate_credentials(key_id: str, secret: str) -> None:
    if not key_id:
        raise SmoochConfigError("key id is empty")
    if not secret:
        raise SmoochConfigError("secret is empty")


class TokenState(str, Enum):
    """Lifecycle state as last observed by this manager."""

    UNINITIALIZED = "uninitialized"
    VALID = "valid"
    EXPIRED = "expired"


@runtime_checkable
class TokenProvider(Protocol):
    """Anything that can hand out a currently valid bearer token."""

    @abstractmethod
    async def initialize(self) -> None: ...

    @abstractmethod
    async def is_expired(self) -> bool: ...

    @abstractmethod
    async def current_token(self) -> str: ...

    @abstractmethod
    async def renew(self) -> str: ...


class TokenManager:
    """
    Redis-backed JWT lifecycle manager with on-demand renewal.

    States: UNINITIALIZED -> VALID <-> EXPIRED.

    Usage:
        manager = TokenManager(storage, key_id="app_123", secret="...")
        await manager.initialize()
        token = await manager.current_token()
    """

    def __init__(
        self,
        storage: RedisTokenStorage | None,
        key_id: str,
        secret: str,
        scope: str = DEFAULT_SCOPE,
        lifetime: int = JWT_EXPIRATION,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """
        Initialize token manager.

        Args:
            storage: Shared token storage
            key_id: Key identifier embedded in every token
            secret: Signing secret
            scope: Token scope
            lifetime: Token lifetime and Redis TTL in seconds
            clock: Time source, injectable for tests

        Raises:
            SmoochConfigError: If storage, key id or secret is missing, or
                lifetime is not positive
        """
        if storage is None:
            raise SmoochConfigError("redis pool is nil")
        _validate_credentials(key_id, secret)
        if lifetime <= 0:
            raise SmoochConfigError(f"token lifetime must be positive, got {lifetime}")

        self._storage = storage
        self._key_id = key_id
        self._secret = secret
        self._scope = scope
        self._lifetime = lifetime
        self._clock = clock
        self._lock = asyncio.Lock()
        self._state = TokenState.UNINITIALIZED

    @property
    def state(self) -> TokenState:
        return self._state

    @property
    def lifetime(self) -> int:
        return self._lifetime

    async def initialize(self) -> None:
        """
        Ensure a token exists in storage.

        If none is stored, one is issued and saved before returning. An existing
        token is left alone and verified lazily on first use.
        """
        token = await self._storage.get_token()
        if token is not None:
            logger.debug("Existing Smooch JWT found in storage, verification deferred")
            return

        logger.info("No Smooch JWT in storage, issuing initial token")
        await self.renew()

    def _status(self, token: str | None) -> TokenStatus:
        if token is None:
            return TokenStatus.EXPIRED
        return verify_jwt(token, self._secret, now=self._clock())

    async def is_expired(self) -> bool:
        """
        Check whether the stored token needs renewal.

        Missing and malformed tokens count as expired.
        """
        status = self._status(await self._storage.get_token())
        if status is TokenStatus.MALFORMED:
            logger.warning("Stored Smooch JWT is malformed, treating as expired")
        expired = status is not TokenStatus.VALID
        self._state = TokenState.EXPIRED if expired else TokenState.VALID
        return expired

    async def current_token(self) -> str:
        """
        Get a valid token, renewing it if needed.

        Concurrent callers that all observe an expired token queue on the lock;
        the first one renews and the rest pick up the token it stored.

        Raises:
            TokenSigningError: If a new token cannot be signed
            TokenStorageError: If Redis is unreachable
        """
        token = await self._storage.get_token()
        if self._status(token) is TokenStatus.VALID:
            self._state = TokenState.VALID
            return token  # type: ignore[return-value]

        self._state = TokenState.EXPIRED
        async with self._lock:
            token = await self._storage.get_token()
            if self._status(token) is TokenStatus.VALID:
                logger.debug("Smooch JWT renewed by a concurrent caller")
                self._state = TokenState.VALID
                return token  # type: ignore[return-value]

            return await self._issue_and_store()

    async def renew(self) -> str:
        """
        Issue a new token and store it, unconditionally.

        Raises:
            TokenSigningError: If the token cannot be signed
            TokenStorageError: If Redis is unreachable
        """
        async with self._lock:
            return await self._issue_and_store()

    async def _issue_and_store(self) -> str:
        # Caller holds self._lock.
        token = generate_jwt(
            self._scope,
            self._key_id,
            self._secret,
            lifetime=self._lifetime,
            now=self._clock(),
        )
        await self._storage.save_token(token, self._lifetime)
        self._state = TokenState.VALID
        logger.info(f"Smooch JWT renewed for key {self._key_id} (expires in {self._lifetime}s)")
        return token


class StaticTokenManager:
    """
    Non-renewing token provider.

    Issues a single token without an ``exp`` claim at construction and hands it
    out for the lifetime of the process. Never transitions to EXPIRED.
    """

    def __init__(self, key_id: str, secret: str, scope: str = DEFAULT_SCOPE) -> None:
        _validate_credentials(key_id, secret)
        self._token = generate_jwt(scope, key_id, secret, lifetime=None)
        self._state = TokenState.VALID

    @property
    def state(self) -> TokenState:
        return self._state

    async def initialize(self) -> None:
        return None

    async def is_expired(self) -> bool:
        return False

    async def current_token(self) -> str:
        return self._token

    async def renew(self) -> str:
        return self._token
