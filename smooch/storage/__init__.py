"""Shared token storage backends."""

from .redis import DEFAULT_TOKEN_KEY, RedisTokenStorage

__all__ = ["DEFAULT_TOKEN_KEY", "RedisTokenStorage"]
