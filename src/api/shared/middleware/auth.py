"""
Session Gate Middleware

Validates the session cookie pair against the backend before any
dashboard page is served. Expired access tokens get one refresh attempt;
every other failure sends the browser to the login page with its
cookies cleared.
"""

import logging
from typing import Callable, Optional

import httpx
from fastapi import Request, Response
from fastapi.responses import RedirectResponse
from starlette.middleware.base import BaseHTTPMiddleware

from ....core.auth.roles import is_super_admin_by_email
from ....core.auth.session import (
    REFRESH_COOKIE_NAME,
    TOKEN_COOKIE_NAME,
    SessionTokens,
    clear_auth_cookies,
    set_auth_cookies,
)
from ....core.backend.client import BackendClient
from ....core.config import GatewaySettings
from ....core.observability.metrics import record_counter
from ..error_codes import ErrorCode
from ..responses import ErrorBody
from .error_handler import error_response

logger = logging.getLogger(__name__)

LOGIN_PATH = "/login"
SUPER_ADMIN_HEADER = "X-Super-Admin"

# Paths that are never gated
EXCLUDED_PATHS = {
    LOGIN_PATH,
    "/favicon.ico",
    "/openapi.json",
    "/docs",
    "/docs/oauth2-redirect",
    "/redoc",
    "/health",
}

EXCLUDED_PREFIXES = (
    "/api/",
    "/static/",
    "/_next/static/",
    "/_next/image",
    "/images/",
    "/health/",
)


def is_gated_path(path: str) -> bool:
    """Check if a path must carry a valid session."""
    if path in EXCLUDED_PATHS:
        return False
    return not path.startswith(EXCLUDED_PREFIXES)


def redirect_to_login(settings: GatewaySettings, reason: str) -> Response:
    """Redirect to the login page and drop both session cookies."""
    record_counter("session_gate_decisions_total", 1, {"outcome": "redirect", "reason": reason})
    logger.info(f"Session gate redirect to login: {reason}", extra={"reason": reason})

    response = RedirectResponse(url=LOGIN_PATH, status_code=307)
    clear_auth_cookies(response, secure=settings.secure_cookies)
    return response


class SessionGateMiddleware(BaseHTTPMiddleware):
    """
    Middleware that:
    1. Skips API routes, static assets and the login page
    2. Verifies the access token with the backend "who am I" endpoint
    3. Marks super admin sessions with the X-Super-Admin header
    4. Refreshes an expired token once, writing the new cookies
    5. Redirects everything else to /login
    """

    def __init__(self, app, settings: GatewaySettings, backend: BackendClient):
        super().__init__(app)
        self.settings = settings
        self.backend = backend

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request.state.user_email = None
        request.state.is_super_admin = False

        if not is_gated_path(request.url.path):
            return await call_next(request)

        token = request.cookies.get(TOKEN_COOKIE_NAME)
        refresh_token = request.cookies.get(REFRESH_COOKIE_NAME)

        if not token:
            return redirect_to_login(self.settings, "missing_token")

        if not self.settings.verify_url:
            logger.error("Session gate cannot verify tokens: BACKEND_VERIFY_URL not configured")
            return error_response(500, ErrorBody(
                code=ErrorCode.CONFIGURATION_ERROR.value,
                message="Server configuration error. Please contact support.",
            ))

        try:
            verify = await self.backend.verify_token(token)
            email = self._extract_email(verify) if verify.is_success else None
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Session gate verification failed: {e}")
            return redirect_to_login(self.settings, "verification_error")

        if verify.is_success:
            request.state.user_email = email

            if is_super_admin_by_email(email, self.settings.super_admin_emails):
                request.state.is_super_admin = True
                record_counter("session_gate_decisions_total", 1, {"outcome": "allow_super_admin"})
                response = await call_next(request)
                response.headers[SUPER_ADMIN_HEADER] = "true"
                return response

            record_counter("session_gate_decisions_total", 1, {"outcome": "allow"})
            return await call_next(request)

        if verify.status_code == 401 and refresh_token:
            tokens = await self._refresh(refresh_token)

            if tokens is not None:
                record_counter("session_gate_decisions_total", 1, {"outcome": "refreshed"})
                response = await call_next(request)
                set_auth_cookies(response, tokens, secure=self.settings.secure_cookies)
                return response

            return redirect_to_login(self.settings, "refresh_failed")

        return redirect_to_login(self.settings, f"verification_status_{verify.status_code}")

    @staticmethod
    def _extract_email(verify: httpx.Response) -> Optional[str]:
        payload = verify.json()
        user = payload.get("user") if isinstance(payload, dict) else None
        if isinstance(user, dict) and isinstance(user.get("email"), str):
            return user["email"]
        return None

    async def _refresh(self, refresh_token: str) -> Optional[SessionTokens]:
        tokens = await self.backend.refresh_session(refresh_token)
        if tokens is None or not self.settings.reverify_after_refresh:
            return tokens

        try:
            verify = await self.backend.verify_token(tokens.access_token)
        except httpx.HTTPError as e:
            logger.warning(f"Refreshed token could not be verified: {e}")
            return None

        if not verify.is_success:
            logger.warning(f"Refreshed token rejected: {verify.status_code}")
            return None
        return tokens


def get_session_email(request: Request) -> Optional[str]:
    """Email verified by the session gate for this request, if any."""
    return getattr(request.state, "user_email", None)
