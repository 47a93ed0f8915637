"""
Session Cookies

Handles the access/refresh token pair issued by the backend.

The tokens are opaque to the gateway. They live in http-only,
same-site-strict cookies and are replaced together on refresh.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from starlette.responses import Response

TOKEN_COOKIE_NAME = "token"
REFRESH_COOKIE_NAME = "refresh_token"

TOKEN_MAX_AGE = 60 * 60  # 1 hour
REFRESH_MAX_AGE = 60 * 60 * 24 * 7  # 7 days


@dataclass(frozen=True)
class SessionTokens:
    """Access token plus optional rotated refresh token."""

    access_token: str
    refresh_token: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Any) -> Optional["SessionTokens"]:
        """
        Build tokens from a backend login/refresh payload.

        Returns None when the payload has no usable access token.
        """
        if not isinstance(payload, dict):
            return None

        access_token = payload.get("access_token")
        if not isinstance(access_token, str) or not access_token:
            return None

        refresh_token = payload.get("refresh_token")
        if not isinstance(refresh_token, str) or not refresh_token:
            refresh_token = None

        return cls(access_token=access_token, refresh_token=refresh_token)


def _cookie_options(secure: bool) -> Dict[str, Any]:
    return {
        "httponly": True,
        "secure": secure,
        "samesite": "strict",
        "path": "/",
    }


def set_auth_cookies(response: Response, tokens: SessionTokens, secure: bool) -> None:
    """Write the token pair onto an outgoing response."""
    options = _cookie_options(secure)

    response.set_cookie(
        key=TOKEN_COOKIE_NAME,
        value=tokens.access_token,
        max_age=TOKEN_MAX_AGE,
        **options,
    )

    if tokens.refresh_token:
        response.set_cookie(
            key=REFRESH_COOKIE_NAME,
            value=tokens.refresh_token,
            max_age=REFRESH_MAX_AGE,
            **options,
        )


def clear_auth_cookies(response: Response, secure: bool = False) -> None:
    """Expire both session cookies."""
    options = _cookie_options(secure)
    response.delete_cookie(TOKEN_COOKIE_NAME, **options)
    response.delete_cookie(REFRESH_COOKIE_NAME, **options)
