# ============================================================================
# SCOPE: GLOBAL
# Description: Exception hierarchy for the Smooch client.
# ============================================================================
"""
Smooch Client Exceptions.

Single Responsibility: Define exception types for Smooch operations.

Hierarchy:
    SmoochError
    ├── SmoochConfigError
    ├── SmoochValidationError
    ├── SmoochTokenError
    │   ├── TokenSigningError
    │   ├── TokenDecodeError
    │   └── TokenStorageError
    └── SmoochAPIError
        ├── SmoochRetryableError
        └── SmoochRateLimitError
"""

from dataclasses import dataclass


class SmoochError(Exception):
    """Base exception for Smooch errors."""

    pass


class SmoochConfigError(SmoochError):
    """Invalid or incomplete client configuration. Raised at construction."""

    pass


class SmoochValidationError(SmoochError, ValueError):
    """Invalid arguments for an API call, detected before any request is made."""

    pass


class SmoochTokenError(SmoochError):
    """Error issuing, decoding or storing a Smooch JWT."""

    pass


class TokenSigningError(SmoochTokenError):
    """The token could not be signed (unusable secret)."""

    pass


class TokenDecodeError(SmoochTokenError):
    """The token is structurally invalid or its signature does not match."""

    pass


class TokenStorageError(SmoochTokenError):
    """The shared token store could not be reached."""

    pass


@dataclass(frozen=True)
class ResponseData:
    """Status information attached to every API response."""

    http_code: int
    flag: str = ""


class SmoochAPIError(SmoochError):
    """
    Non-2xx response from the Smooch API.

    The message follows the format
    ``StatusCode: <status> Code: <code> Message: <description>``.
    """

    def __init__(self, status_code: int, code: str = "", description: str = "") -> None:
        self.status_code = status_code
        self.code = code
        self.description = description
        super().__init__(
            f"StatusCode: {status_code} Code: {code} Message: {description}"
        )

    @property
    def response_data(self) -> ResponseData:
        return ResponseData(http_code=self.status_code, flag=self.code)


class SmoochRetryableError(SmoochAPIError):
    """
    Transient server error (500/502/503/504).

    Caught by tenacity's retry decorator for automatic retry.
    """

    pass


class SmoochRateLimitError(SmoochAPIError):
    """
    Rate limiting error (429 Too Many Requests).

    Not retried by the transport; ``retry_after`` carries the server hint.
    """

    def __init__(
        self,
        status_code: int = 429,
        code: str = "",
        description: str = "",
        retry_after: str | None = None,
    ) -> None:
        self.retry_after = retry_after
        super().__init__(status_code, code, description)
