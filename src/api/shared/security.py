"""
Security Middleware and Utilities

Response hardening headers, error message scrubbing and the in-memory
rate limiter that guards the login endpoint.
"""

import logging
import re
import time
from typing import Callable, Dict, List, Optional

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from .exceptions import RateLimitedError

logger = logging.getLogger(__name__)

RATE_WINDOW_SECONDS = 60


class SecurityMiddleware(BaseHTTPMiddleware):
    """
    Adds hardening headers to every gateway response.

    Proxied responses keep their own content headers; only the headers
    below are set or removed.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"

        if "server" in response.headers:
            del response.headers["server"]

        return response


def sanitize_error_message(error: Exception) -> str:
    """
    Sanitize an exception message before it is logged or returned.

    Removes bearer tokens, credentials in URLs and key/value secrets.
    """
    message = str(error)

    message = re.sub(r'Bearer\s+[\w\-.~+/]+=*', 'Bearer [REDACTED]', message)
    message = re.sub(r'://[^/@\s]+@', '://[credentials]@', message)
    message = re.sub(r'password[=:][^\s,;&]+', 'password=[REDACTED]', message, flags=re.IGNORECASE)
    message = re.sub(r'token[=:][^\s,;&]+', 'token=[REDACTED]', message, flags=re.IGNORECASE)
    message = re.sub(r'secret[=:][^\s,;&]+', 'secret=[REDACTED]', message, flags=re.IGNORECASE)

    if len(message) > 500:
        message = message[:500] + "..."

    return message


class RateLimiter:
    """
    Simple in-memory sliding window rate limiter.

    State is per process; several gateway workers each keep their own
    window.
    """

    def __init__(self, requests_per_minute: int = 60, clock: Callable[[], float] = time.monotonic):
        self.limit = requests_per_minute
        self._clock = clock
        self._timestamps: Dict[str, List[float]] = {}

    def _prune(self, key: str) -> List[float]:
        window_start = self._clock() - RATE_WINDOW_SECONDS
        recent = [t for t in self._timestamps.get(key, []) if t > window_start]
        if recent:
            self._timestamps[key] = recent
        else:
            self._timestamps.pop(key, None)
        return recent

    def is_allowed(self, key: str) -> bool:
        """Check if a request is allowed, recording it when it is."""
        recent = self._prune(key)

        if len(recent) >= self.limit:
            logger.warning(f"Rate limit exceeded for {key}: {len(recent)}/{self.limit}")
            return False

        recent.append(self._clock())
        self._timestamps[key] = recent
        return True

    def get_remaining(self, key: str) -> int:
        """Get remaining requests in current window."""
        return max(0, self.limit - len(self._prune(key)))

    def reset(self, key: Optional[str] = None) -> None:
        if key is None:
            self._timestamps.clear()
        else:
            self._timestamps.pop(key, None)


auth_rate_limiter = RateLimiter(requests_per_minute=10)


def check_rate_limit(key: str, limiter: RateLimiter = None) -> None:
    """
    Check rate limit and raise RateLimitedError if exceeded.

    Args:
        key: Rate limit key (usually the client IP)
        limiter: RateLimiter instance (defaults to the login limiter)

    Raises:
        RateLimitedError: If rate limit exceeded
    """
    if limiter is None:
        limiter = auth_rate_limiter

    if not limiter.is_allowed(key):
        raise RateLimitedError(
            retry_after=RATE_WINDOW_SECONDS,
            remaining=limiter.get_remaining(key),
        )


def get_client_ip(request: Request) -> str:
    """Get client IP address from request."""
    # Check X-Forwarded-For header (reverse proxy)
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip

    if request.client:
        return request.client.host

    return "unknown"
