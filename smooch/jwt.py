"""
Smooch JWT codec.

Issues and verifies the app-scoped HS256 tokens used for bearer authentication
against the Smooch API. Storage and renewal live in ``token_manager``.
"""

import logging
import time
from enum import Enum

from jose import jwt
from jose.exceptions import JOSEError, JWTError

from .exceptions import TokenDecodeError, TokenSigningError

logger = logging.getLogger(__name__)

# How many seconds a Smooch JWT is valid
JWT_EXPIRATION = 3600
JWT_ALGORITHM = "HS256"
DEFAULT_SCOPE = "app"


class TokenStatus(str, Enum):
    """Outcome of verifying a token against a secret."""

    VALID = "valid"
    EXPIRED = "expired"
    MALFORMED = "malformed"


def generate_jwt(
    scope: str,
    key_id: str,
    secret: str,
    lifetime: int | None = JWT_EXPIRATION,
    now: float | None = None,
) -> str:
    """
    Generate a signed Smooch JWT.

    Args:
        scope: Token scope (``app`` for app-level access)
        key_id: Key identifier, placed in the ``kid`` header
        secret: Shared secret used for HMAC-SHA256 signing
        lifetime: Seconds until expiry; ``None`` issues a token without ``exp``
        now: Issuance timestamp (defaults to the current time)

    Returns:
        Compact serialized token

    Raises:
        TokenSigningError: If the secret cannot be used to sign
    """
    claims: dict[str, object] = {"scope": scope}
    if lifetime is not None:
        issued_at = int(now if now is not None else time.time())
        claims["exp"] = issued_at + lifetime

    try:
        return jwt.encode(
            claims,
            secret,
            algorithm=JWT_ALGORITHM,
            headers={"kid": key_id},
        )
    except (JOSEError, TypeError, ValueError) as e:
        raise TokenSigningError(f"Failed to sign JWT for key {key_id}: {e}") from e


def _decode(token: str, secret: str) -> dict:
    # Expiry is checked by the caller against an explicit clock.
    return jwt.decode(
        token,
        secret,
        algorithms=[JWT_ALGORITHM],
        options={"verify_exp": False, "verify_aud": False},
    )


def verify_jwt(token: str, secret: str, now: float | None = None) -> TokenStatus:
    """
    Verify a token's signature and expiry.

    A token is expired once ``now >= exp``. Tokens without ``exp`` never expire.

    Returns:
        TokenStatus.VALID, TokenStatus.EXPIRED or TokenStatus.MALFORMED
    """
    try:
        claims = _decode(token, secret)
    except (JWTError, JOSEError, TypeError, ValueError) as e:
        logger.debug(f"JWT rejected as malformed: {e}")
        return TokenStatus.MALFORMED

    exp = claims.get("exp")
    if exp is None:
        return TokenStatus.VALID
    if isinstance(exp, bool) or not isinstance(exp, (int, float)):
        return TokenStatus.MALFORMED

    current = now if now is not None else time.time()
    if current >= exp:
        return TokenStatus.EXPIRED
    return TokenStatus.VALID


def get_jwt_expiration(token: str, secret: str, now: float | None = None) -> int:
    """
    Get the number of seconds until the token expires.

    Returns:
        Remaining seconds (negative if already expired)

    Raises:
        TokenDecodeError: If the token is malformed or carries no ``exp``
    """
    try:
        claims = _decode(token, secret)
    except (JWTError, JOSEError, TypeError, ValueError) as e:
        raise TokenDecodeError(f"error decode token: {e}") from e

    exp = claims.get("exp")
    if isinstance(exp, bool) or not isinstance(exp, (int, float)):
        raise TokenDecodeError("error decode token: missing exp claim")

    current = now if now is not None else time.time()
    return int(exp - current)
