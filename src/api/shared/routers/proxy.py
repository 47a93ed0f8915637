"""
Authenticated Proxy Endpoint

Forwards dashboard API calls to the backend with the session's bearer
token. Calls that hit a hibernating backend are retried by the backend
client; business errors come back verbatim.
"""

import logging
from typing import Dict

import httpx
from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse

from ....core.auth.session import REFRESH_COOKIE_NAME, TOKEN_COOKIE_NAME
from ....core.backend.client import BODY_METHODS, BackendClient
from ....core.backend.retry import BackendTimeoutError as RetryCeilingExceeded
from ..dependencies import get_backend
from ..exceptions import BackendTimeoutError, ExternalServiceError, UnauthorizedError
from ..security import sanitize_error_message

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/proxy", tags=["proxy"])

PROXY_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE"]

RETRY_AFTER_POST_HEADER = "x-retry-after-post"
READ_AFTER_WRITE_DELAY = 1.0

# Never forwarded upstream
STRIPPED_HEADERS = frozenset({
    "host",
    "content-length",
    "origin",
    "authorization",
    "cookie",
    "connection",
    "keep-alive",
    "transfer-encoding",
    "upgrade",
    "proxy-connection",
})

SESSION_COOKIES = frozenset({TOKEN_COOKIE_NAME, REFRESH_COOKIE_NAME})


def build_forward_headers(request: Request, token: str) -> Dict[str, str]:
    """
    Copy the inbound headers for the backend call.

    Hop-by-hop headers are dropped, the session cookies are removed from
    the Cookie header and Authorization always carries the session token.
    """
    headers = {
        name: value
        for name, value in request.headers.items()
        if name.lower() not in STRIPPED_HEADERS
    }

    other_cookies = [
        f"{name}={value}"
        for name, value in request.cookies.items()
        if name not in SESSION_COOKIES
    ]
    if other_cookies:
        headers["cookie"] = "; ".join(other_cookies)

    headers["Authorization"] = f"Bearer {token}"
    return headers


def relay_response(method: str, upstream: httpx.Response) -> Response:
    """Turn the backend response into the gateway response."""
    if method == "DELETE" and upstream.status_code == 204:
        return Response(status_code=204)

    content_type = upstream.headers.get("content-type")

    if not upstream.is_success:
        return Response(
            content=upstream.content,
            status_code=upstream.status_code,
            media_type=content_type or "application/json",
        )

    try:
        data = upstream.json()
    except ValueError:
        return Response(
            content=upstream.text,
            status_code=upstream.status_code,
            media_type=content_type or "text/plain",
        )
    return JSONResponse(content=data, status_code=upstream.status_code)


@router.api_route("/{path:path}", methods=PROXY_METHODS)
async def proxy(
    path: str,
    request: Request,
    backend: BackendClient = Depends(get_backend),
) -> Response:
    """
    Forward a request to ``{BACKEND_API_BASE_URL}/{path}?{query}``.

    Returns 401 without contacting the backend when no session token is
    present.
    """
    token = request.cookies.get(TOKEN_COOKIE_NAME)
    if not token:
        raise UnauthorizedError("Unauthorized")

    method = request.method.upper()

    if method == "GET" and request.headers.get(RETRY_AFTER_POST_HEADER, "").lower() == "true":
        await backend.pause(READ_AFTER_WRITE_DELAY)

    # Read once so retries can replay it
    body = await request.body() if method in BODY_METHODS else None

    try:
        upstream = await backend.forward(
            method,
            path,
            headers=build_forward_headers(request, token),
            query=request.url.query,
            content=body,
        )
    except RetryCeilingExceeded as e:
        logger.error(str(e), extra={"method": method, "path": path})
        raise BackendTimeoutError("Request timeout: backend took too long to respond")
    except httpx.HTTPError as e:
        logger.error(
            f"Proxy request failed: {sanitize_error_message(e)}",
            extra={"method": method, "path": path},
        )
        raise ExternalServiceError("backend", "Failed to connect to external service")

    return relay_response(method, upstream)
