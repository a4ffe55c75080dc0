# ============================================================================
# SCOPE: GLOBAL
# Description: HTTP client for the Smooch API with automatic retry.
#              Exponential backoff with jitter on transient server errors.
# ============================================================================
"""
Smooch HTTP Client with Exponential Backoff.

Single Responsibility: Execute authenticated HTTP requests with retry on
transient errors.

- 429 Rate Limit: Raise SmoochRateLimitError (caller decides backoff)
- 500/502/503/504: Retry with exponential backoff + jitter
- Other 4xx: Fail immediately with SmoochAPIError
"""

import json
import logging
from typing import Any

import httpx
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from .auth import Authenticator
from .exceptions import SmoochAPIError, SmoochRateLimitError, SmoochRetryableError
from .models import ErrorPayload

logger = logging.getLogger(__name__)

# HTTP status codes that warrant retry with exponential backoff
RETRYABLE_STATUS_CODES = frozenset({500, 502, 503, 504})

CONTENT_TYPE_JSON = "application/json"


class SmoochHttpClient:
    """
    HTTP client for the Smooch API with exponential backoff retry.

    Credentials are requested from the authenticator on every attempt, so a
    token renewed between attempts is picked up. Uses a persistent AsyncClient
    for connection reuse.
    """

    DEFAULT_TIMEOUT = 30.0

    MAX_RETRIES = 3  # Total attempts for 5xx errors
    BASE_DELAY = 1.0  # Initial delay in seconds
    MAX_DELAY = 30.0  # Maximum delay between retries
    JITTER_MAX = 5  # Random jitter up to 5 seconds

    def __init__(
        self,
        authenticator: Authenticator,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize HTTP client.

        Args:
            authenticator: Produces the Authorization header for each request
            timeout: Request timeout in seconds
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self._authenticator = authenticator
        self._timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def initialize(self) -> None:
        """Initialize persistent HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout, transport=self._transport)

    async def close(self) -> None:
        """Close HTTP client and release resources."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "SmoochHttpClient":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            await self.initialize()
        return self._client  # type: ignore

    async def request(
        self,
        method: str,
        url: str,
        *,
        json_body: Any = None,
        params: dict[str, str] | None = None,
        files: dict[str, Any] | None = None,
        data: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        """
        Send an authenticated request, retrying transient server errors.

        Args:
            method: HTTP method
            url: Absolute URL
            json_body: JSON body (sent with Content-Type: application/json)
            params: Query parameters
            files: Multipart files
            data: Multipart form fields

        Returns:
            Parsed JSON response (empty dict if no body)

        Raises:
            SmoochTokenError: If no credential could be obtained
            SmoochRetryableError: If 5xx persists after all attempts
            SmoochRateLimitError: On 429
            SmoochAPIError: On any other non-2xx response
            httpx.HTTPError: On transport failures
        """
        try:
            return await self._execute_with_backoff(
                method, url, json_body=json_body, params=params, files=files, data=data
            )
        except SmoochRetryableError as e:
            logger.error(f"Max retries ({self.MAX_RETRIES}) exceeded on {method} {url}: {e}")
            raise

    @retry(
        retry=retry_if_exception_type(SmoochRetryableError),
        stop=stop_after_attempt(MAX_RETRIES),
        wait=wait_exponential_jitter(initial=BASE_DELAY, max=MAX_DELAY, jitter=JITTER_MAX),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    async def _execute_with_backoff(
        self,
        method: str,
        url: str,
        *,
        json_body: Any = None,
        params: dict[str, str] | None = None,
        files: dict[str, Any] | None = None,
        data: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        client = await self._ensure_client()

        # No credential means no request: errors from the authenticator propagate.
        headers = await self._authenticator.auth_headers()
        if json_body is not None:
            headers["Content-Type"] = CONTENT_TYPE_JSON

        response = await client.request(
            method,
            url,
            headers=headers,
            json=json_body,
            params=params,
            files=files,
            data=data,
        )

        if 200 <= response.status_code < 300:
            return self._safe_parse_json(response)

        error = self._parse_error(response)

        if response.status_code == 429:
            retry_after = response.headers.get("Retry-After")
            logger.warning(f"Rate limited (429), Retry-After: {retry_after}")
            raise SmoochRateLimitError(
                429, error.error.code, error.error.description, retry_after=retry_after
            )

        if response.status_code in RETRYABLE_STATUS_CODES:
            logger.warning(f"Server error {response.status_code}, will retry: {error.error.code}")
            raise SmoochRetryableError(
                response.status_code, error.error.code, error.error.description
            )

        logger.error(
            f"Smooch API error {response.status_code} on {method} {url}: {error.error.code}"
        )
        raise SmoochAPIError(response.status_code, error.error.code, error.error.description)

    def _safe_parse_json(self, response: httpx.Response) -> dict[str, Any]:
        """Parse JSON response, returning empty dict for empty body."""
        if response.status_code == 204 or not response.text.strip():
            return {}

        try:
            return response.json()
        except (ValueError, json.JSONDecodeError) as e:
            logger.warning(f"Failed to parse JSON response: {e}, body: {response.text[:100]}")
            return {}

    def _parse_error(self, response: httpx.Response) -> ErrorPayload:
        """Extract ``{"error": {"code", "description"}}`` from an error response."""
        body = self._safe_parse_json(response)
        try:
            return ErrorPayload.model_validate(body)
        except ValueError:
            return ErrorPayload()
