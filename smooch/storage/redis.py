"""
Redis Token Storage

Stores the current Smooch JWT under a fixed key using redis.asyncio, so every
service instance pointed at the same Redis observes the same token.
"""

import logging

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from ..exceptions import TokenStorageError

logger = logging.getLogger(__name__)

DEFAULT_TOKEN_KEY = "smooch-jwt-token"


class RedisTokenStorage:
    """
    Async Redis storage for the shared Smooch JWT.

    The token self-destructs at the Redis TTL boundary, so no explicit deletion
    is needed. The Redis client owns its connection pool; each call acquires and
    releases a connection on its own.

    Usage:
        storage = RedisTokenStorage(aioredis.Redis.from_url(url))
        await storage.save_token(token, ttl=3600)
        token = await storage.get_token()
    """

    def __init__(self, redis: aioredis.Redis, key: str = DEFAULT_TOKEN_KEY):
        self._redis = redis
        self.key = key

    @classmethod
    def from_url(cls, url: str, key: str = DEFAULT_TOKEN_KEY) -> "RedisTokenStorage":
        """Create storage with a new Redis client for ``url``."""
        client = aioredis.Redis.from_url(
            url,
            socket_timeout=5.0,
            socket_connect_timeout=5.0,
        )
        return cls(client, key=key)

    async def save_token(self, token: str, ttl: int) -> None:
        """
        Save the token with an expiring key (``SET key token EX ttl``).

        Raises:
            TokenStorageError: If Redis is unreachable
        """
        try:
            await self._redis.set(self.key, token, ex=ttl)
        except RedisError as e:
            logger.error(f"Error saving JWT to Redis key {self.key}: {e}")
            raise TokenStorageError(f"Failed to save token: {e}") from e

        logger.debug(f"JWT stored in Redis key {self.key} (ttl={ttl}s)")

    async def get_token(self) -> str | None:
        """
        Get the stored token.

        Returns:
            The token, or None when no token is stored (first boot or expired)

        Raises:
            TokenStorageError: If Redis is unreachable
        """
        try:
            value = await self._redis.get(self.key)
        except RedisError as e:
            logger.error(f"Error reading JWT from Redis key {self.key}: {e}")
            raise TokenStorageError(f"Failed to read token: {e}") from e

        if value is None:
            logger.debug(f"Key {self.key} not found in Redis")
            return None

        if isinstance(value, bytes):
            value = value.decode("utf-8")

        return value or None

    async def ttl(self) -> int | None:
        """Remaining TTL of the stored token in seconds, None if missing or persistent."""
        try:
            remaining = await self._redis.ttl(self.key)
        except RedisError as e:
            raise TokenStorageError(f"Failed to read token TTL: {e}") from e

        # -2: key missing, -1: no expiry
        if remaining is None or remaining < 0:
            return None
        return int(remaining)

    async def close(self) -> None:
        """Close the underlying Redis client."""
        await self._redis.aclose()
        logger.info("Redis token storage closed")
