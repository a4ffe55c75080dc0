"""
Shared pytest fixtures for all tests.

Provides settings, Redis doubles, a controllable clock and sample payloads.
"""

import asyncio
import os
from unittest.mock import AsyncMock, Mock

import pytest
from redis.asyncio import Redis

from smooch.config import SmoochSettings
from smooch.storage.redis import RedisTokenStorage

# Ensure test environment
os.environ["ENVIRONMENT"] = "test"

TEST_SECRET = "s3cr3t"
TEST_KEY_ID = "k1"
TEST_APP_ID = "app_5698edbf2a43bd081be982f1"
TEST_VERIFY_SECRET = "very-secure-test-secret"


# ============================================================================
# REDIS FIXTURES
# ============================================================================


class InMemoryRedis:
    """
    Async stand-in for redis.asyncio.Redis covering GET/SET/TTL.

    ``get`` yields to the event loop so concurrent callers interleave the way
    they would against a real server.
    """

    def __init__(self) -> None:
        self.data: dict[str, bytes] = {}
        self.ttls: dict[str, int] = {}
        self.set_calls: list[tuple[str, str, int | None]] = []
        self.closed = False

    async def get(self, key: str) -> bytes | None:
        await asyncio.sleep(0)
        return self.data.get(key)

    async def set(self, key: str, value: str, ex: int | None = None) -> bool:
        await asyncio.sleep(0)
        self.set_calls.append((key, value, ex))
        self.data[key] = value.encode("utf-8")
        if ex is not None:
            self.ttls[key] = ex
        return True

    async def ttl(self, key: str) -> int:
        if key not in self.data:
            return -2
        return self.ttls.get(key, -1)

    async def aclose(self) -> None:
        self.closed = True

    def expire_now(self, key: str) -> None:
        """Simulate the key reaching its TTL."""
        self.data.pop(key, None)
        self.ttls.pop(key, None)


@pytest.fixture
def fake_redis() -> InMemoryRedis:
    return InMemoryRedis()


@pytest.fixture
def token_storage(fake_redis) -> RedisTokenStorage:
    return RedisTokenStorage(fake_redis)  # type: ignore[arg-type]


@pytest.fixture
def mock_redis() -> Mock:
    """Create a mock Redis client."""
    mock = Mock(spec=Redis)
    mock.get = AsyncMock(return_value=None)
    mock.set = AsyncMock(return_value=True)
    mock.ttl = AsyncMock(return_value=-2)
    mock.aclose = AsyncMock(return_value=None)
    return mock


# ============================================================================
# CLOCK / SETTINGS
# ============================================================================


class FakeClock:
    """Manually advanced time source."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def jwt_settings() -> SmoochSettings:
    return SmoochSettings(
        AUTH="jwt",
        APP_ID=TEST_APP_ID,
        KEY_ID=TEST_KEY_ID,
        SECRET=TEST_SECRET,
        VERIFY_SECRET=TEST_VERIFY_SECRET,
        _env_file=None,
    )


@pytest.fixture
def basic_settings() -> SmoochSettings:
    return SmoochSettings(
        AUTH="basic",
        APP_ID=TEST_APP_ID,
        KEY_ID=TEST_KEY_ID,
        SECRET=TEST_SECRET,
        VERIFY_SECRET=TEST_VERIFY_SECRET,
        _env_file=None,
    )


# ============================================================================
# SAMPLE PAYLOADS
# ============================================================================


@pytest.fixture
def send_response_json() -> dict:
    return {
        "message": {
            "_id": "55c8c1498590aa1900b9b9b1",
            "authorId": "c7f6e6d6c3a637261bd9656f",
            "role": "appMaker",
            "type": "text",
            "name": "Steve",
            "text": "Just put some vinegar on it",
            "avatarUrl": "https://www.gravatar.com/image.jpg",
            "received": 1439220041.586,
        },
        "extraMessages": [
            {
                "_id": "507f1f77bcf86cd799439011",
                "authorId": "c7f6e6d6c3a637261bd9656f",
                "role": "appMaker",
                "type": "image",
                "name": "Steve",
                "text": "Check out this image!",
                "mediaUrl": "http://example.org/image.jpg",
                "actions": [{"text": "More info", "type": "link", "uri": "http://example.org"}],
            }
        ],
        "conversation": {"_id": "df0ebe56cbeab98589b8bfa7", "unreadCount": 0},
    }


@pytest.fixture
def webhook_payload_json() -> dict:
    return {
        "trigger": "message:appUser",
        "app": {"_id": "5698edbf2a43bd081be982f1"},
        "messages": [
            {
                "_id": "55c8c1498590aa1900b9b9b1",
                "type": "text",
                "text": "Hi! Do you have time to chat?",
                "role": "appUser",
                "authorId": "c7f6e6d6c3a637261bd9656f",
                "name": "Steve",
                "received": 1444348338.704,
                "source": {"type": "messenger"},
            }
        ],
        "appUser": {
            "_id": "c7f6e6d6c3a637261bd9656f",
            "userId": "bob@example.com",
            "conversationStarted": True,
            "surname": "Steve",
            "givenName": "Bob",
            "signedUpAt": "2018-04-02T14:45:46.505Z",
            "properties": {"favoriteFood": "prizza"},
        },
        "client": {"_id": "5c9d2f34a1d3a2504bc89511", "platform": "web", "active": True},
        "conversation": {"_id": "105e47578be874292d365ee8"},
        "version": "v1.1",
    }


@pytest.fixture
def app_user_response_json() -> dict:
    return {
        "appUser": {
            "_id": "7494535bff5cef41a15be74d",
            "userId": "steveb@channel5.com",
            "givenName": "Steve",
            "signedUpAt": "2019-01-14T18:55:12.515Z",
            "hasPaymentInfo": False,
            "conversationStarted": False,
            "clients": [
                {
                    "_id": "5c93cb748f63db54ff3b51dd",
                    "lastSeen": "2019-01-14T16:55:59.364Z",
                    "platform": "ios",
                    "deviceId": "F272EB80-D512-4C19-9AC0-BD259DAEAD91",
                    "appVersion": "1.0",
                    "active": True,
                    "primary": False,
                    "integrationId": "599ad41e49db6e243ad77d2f",
                }
            ],
            "pendingClients": [],
            "properties": {"favoriteFood": "prizza"},
        }
    }
