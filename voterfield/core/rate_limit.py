"""Rate limiting for the API.

Canvassers in the field often share one carrier NAT or office Wi-Fi,
so authenticated requests are bucketed per user, not per address.
"""

import logging
import os

import jwt
from slowapi import Limiter
from slowapi.util import get_remote_address
from starlette.requests import Request

from voterfield.core.config import settings
from voterfield.core.security import decode_session_token

logger = logging.getLogger(__name__)

IS_TESTING = os.getenv("TESTING", "").lower() in ("1", "true", "yes")
DEFAULT_LIMITS = (
    []
    if IS_TESTING or settings.RATE_LIMIT_API <= 0
    else [f"{settings.RATE_LIMIT_API}/minute"]
)
IMPORT_LIMIT = f"{max(settings.RATE_LIMIT_IMPORT, 1)}/minute"
SYNC_LIMIT = f"{max(settings.RATE_LIMIT_SYNC, 1)}/minute"


def rate_limit_key(request: Request) -> str:
    """user:<id> for a verifiable bearer token, otherwise the client address."""
    header = request.headers.get("authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() == "bearer" and token:
        try:
            claims = decode_session_token(token.strip())
        except jwt.InvalidTokenError:
            claims = {}
        if claims.get("sub"):
            return f"user:{claims['sub']}"
    return f"ip:{get_remote_address(request)}"


def _build_limiter(storage_uri: str, enabled: bool = True) -> Limiter:
    return Limiter(
        key_func=rate_limit_key,
        storage_uri=storage_uri,
        default_limits=DEFAULT_LIMITS,
        enabled=enabled,
    )


def _redis_storage_uri() -> str:
    """REDIS_URL when reachable, so limits are shared across API processes."""
    try:
        import redis

        redis.from_url(settings.REDIS_URL, socket_connect_timeout=1).ping()
    except Exception as e:
        logger.warning("Redis unavailable for rate limiting, using in-memory: %s", e)
        return "memory://"
    return settings.REDIS_URL


limiter = (
    _build_limiter("memory://", enabled=False)
    if IS_TESTING
    else _build_limiter(_redis_storage_uri())
)
