"""
Admin Session Tokens

The back office is protected by a single password. A successful login
issues a signed, expiring token stored in an HTTP-only cookie:

    v1.<unix timestamp>.<signature>

where the signature is the unpadded base64url HMAC-SHA256 of
``v1:<timestamp>`` keyed by the admin password. Changing the password
therefore invalidates every outstanding session.

A token is rejected when it is malformed, has another version, is older
than the configured TTL, or its signature does not match. Signature and
password comparisons are constant time, and only the canonical
encoding of a signature is accepted.
"""

import base64
import hashlib
import hmac
import logging
import secrets
import time
from typing import Optional

from fastapi import HTTPException, Request, status

from storefront.core.config import get_settings

logger = logging.getLogger(__name__)

SESSION_VERSION = "v1"


def _b64url_encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _signature(secret: str, timestamp: int) -> bytes:
    payload = f"{SESSION_VERSION}:{timestamp}".encode("utf-8")
    return hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).digest()


def issue_session_token(secret: str, now: Optional[int] = None) -> str:
    """Create a session token stamped with ``now`` (defaults to the clock)."""
    timestamp = int(time.time()) if now is None else int(now)
    return f"{SESSION_VERSION}.{timestamp}.{_b64url_encode(_signature(secret, timestamp))}"


def validate_session_token(
    token: Optional[str],
    secret: Optional[str],
    ttl_seconds: int,
    now: Optional[int] = None,
) -> bool:
    """
    Check a session token.

    Args:
        token: Raw cookie value
        secret: Admin password the token was signed with
        ttl_seconds: Maximum accepted token age
        now: Current unix time (defaults to the clock)

    Returns:
        bool: True only for a well-formed, unexpired, correctly signed token
    """
    if not token or not secret:
        return False

    parts = token.split(".")
    if len(parts) != 3:
        return False
    version, ts_str, sig = parts
    if version != SESSION_VERSION or not ts_str or not sig:
        return False
    # Only the canonical form issue_session_token writes; int() would also
    # take signs, whitespace, underscores and leading zeros.
    if len(ts_str) > 20 or not (ts_str.isascii() and ts_str.isdigit()):
        return False
    timestamp = int(ts_str)
    if str(timestamp) != ts_str:
        return False

    current = int(time.time()) if now is None else int(now)
    if current - timestamp > ttl_seconds:
        return False

    expected = _b64url_encode(_signature(secret, timestamp))
    return hmac.compare_digest(sig.encode("ascii", "replace"), expected.encode("ascii"))


def verify_password(candidate: str, expected: Optional[str]) -> bool:
    """Constant-time password check; always False when no password is configured."""
    if not expected:
        return False
    return secrets.compare_digest(candidate.encode("utf-8"), expected.encode("utf-8"))


def require_admin(request: Request) -> None:
    """
    FastAPI dependency guarding admin endpoints.

    Raises:
        HTTPException: 503 if no admin password is configured,
            401 if the session cookie is missing or invalid
    """
    settings = get_settings()
    if not settings.admin_password:
        logger.error("Admin endpoint hit but ADMIN_PASSWORD is not configured")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Admin access is not configured",
        )

    token = request.cookies.get(settings.session_cookie_name)
    if not validate_session_token(token, settings.admin_password, settings.session_ttl_seconds):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Admin session missing or expired",
        )
