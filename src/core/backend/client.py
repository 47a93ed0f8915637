"""
Backend Client

httpx client for the external school-inventory API: token verification
and refresh, login and user creation, and retried forwarding of
authenticated calls.
"""

import asyncio
import logging
import time
from typing import Any, Dict, Mapping, Optional

import httpx
from opentelemetry import trace

from ..auth.session import SessionTokens
from ..config import ConfigurationError, GatewaySettings
from ..observability.metrics import record_counter, record_histogram
from ..observability.tracing import create_span, inject_trace_context
from .retry import Clock, Sleep, fetch_with_retry

logger = logging.getLogger(__name__)

BODY_METHODS = frozenset({"POST", "PUT", "PATCH"})


class BackendClient:
    """
    Gateway-side client for the backend API.

    A fresh httpx.AsyncClient is opened per call; ``transport`` lets tests
    substitute an httpx.MockTransport for the network.
    """

    def __init__(
        self,
        settings: GatewaySettings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Sleep = asyncio.sleep,
        clock: Clock = time.monotonic,
    ):
        self.settings = settings
        self._transport = transport
        self._timeout = settings.backend_timeout
        self._sleep = sleep
        self._clock = clock

    async def pause(self, seconds: float) -> None:
        """Wait using the client's sleep function."""
        await self._sleep(seconds)

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self._timeout, transport=self._transport)

    @staticmethod
    def _require(value: Optional[str], name: str) -> str:
        if not value:
            raise ConfigurationError(name)
        return value

    # -------------------------------------------------------------------------
    # Session endpoints
    # -------------------------------------------------------------------------

    async def verify_token(self, token: str) -> httpx.Response:
        """Call the "who am I" endpoint once. No retries."""
        url = self._require(self.settings.verify_url, "BACKEND_VERIFY_URL")
        async with self._client() as client:
            return await client.get(
                url,
                headers={
                    "Authorization": f"Bearer {token}",
                    "Content-Type": "application/json",
                },
            )

    async def current_user(self, token: str) -> Any:
        """
        Fetch the "who am I" payload with hibernation retries.

        Raises:
            httpx.HTTPStatusError: non-2xx response
            ValueError: body is not JSON
        """
        url = self._require(self.settings.verify_url, "BACKEND_VERIFY_URL")
        headers = inject_trace_context({"Authorization": f"Bearer {token}", "Accept": "application/json"})

        async with self._client() as client:
            response = await fetch_with_retry(
                lambda: client.get(url, headers=headers),
                policy=self.settings.retry_policy,
                label="GET current user",
                sleep=self._sleep,
                clock=self._clock,
            )
        response.raise_for_status()
        return response.json()

    async def refresh_session(self, refresh_token: str) -> Optional[SessionTokens]:
        """
        Exchange a refresh token for a new token pair.

        Returns None on any failure (not configured, non-OK response,
        network error, malformed payload).
        """
        if not self.settings.refresh_url:
            logger.warning("Token refresh skipped: BACKEND_REFRESH_URL not configured")
            return None

        try:
            async with self._client() as client:
                response = await client.post(
                    self.settings.refresh_url,
                    json={"refresh_token": refresh_token},
                )
            if not response.is_success:
                logger.info(f"Token refresh rejected: {response.status_code}")
                return None
            tokens = SessionTokens.from_payload(response.json())
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Token refresh failed: {e}")
            return None

        if tokens is None:
            logger.warning("Token refresh returned no access token")
        return tokens

    async def login(self, email: str, password: str) -> httpx.Response:
        url = self._require(self.settings.auth_url, "BACKEND_AUTH_URL")
        async with self._client() as client:
            return await client.post(url, json={"email": email, "password": password})

    async def create_user(self, payload: Dict[str, Any]) -> httpx.Response:
        url = self._require(self.settings.create_user_url, "BACKEND_CREATE_USER_URL")
        async with self._client() as client:
            return await client.post(url, json=payload)

    # -------------------------------------------------------------------------
    # Authenticated API calls
    # -------------------------------------------------------------------------

    def backend_url(self, path: str, query: str = "") -> str:
        """Join the base URL, a sub-path and a raw query string."""
        base = self._require(self.settings.backend_base_url, "BACKEND_API_BASE_URL")
        url = f"{base}/{path.lstrip('/')}"
        if query:
            url = f"{url}?{query.lstrip('?')}"
        return url

    async def forward(
        self,
        method: str,
        path: str,
        *,
        headers: Mapping[str, str],
        query: str = "",
        content: Optional[bytes] = None,
    ) -> httpx.Response:
        """
        Forward a request to the backend with hibernation retries.

        The body (already read) is replayed on every attempt.
        """
        method = method.upper()
        url = self.backend_url(path, query)
        label = f"{method} {path}"
        body = content if method in BODY_METHODS else None

        outbound = dict(headers)
        inject_trace_context(outbound)

        record_counter("proxy_requests_total", 1, {"method": method})
        started = self._clock()

        with create_span(
            f"backend {method}",
            {"http.method": method, "http.url": url},
            kind=trace.SpanKind.CLIENT,
        ) as span:
            async with self._client() as client:
                response = await fetch_with_retry(
                    lambda: client.request(method, url, headers=outbound, content=body),
                    policy=self.settings.retry_policy,
                    label=label,
                    sleep=self._sleep,
                    clock=self._clock,
                )
            span.set_attribute("http.status_code", response.status_code)

        record_histogram(
            "proxy_backend_duration_seconds",
            self._clock() - started,
            {"method": method, "status": str(response.status_code)},
        )
        return response

    async def get_json(
        self,
        path: str,
        token: str,
        params: Optional[Mapping[str, str]] = None,
    ) -> Any:
        """
        GET a backend resource as JSON on behalf of a session.

        Raises:
            httpx.HTTPStatusError: non-2xx response
            ValueError: body is not JSON
        """
        query = str(httpx.QueryParams(params)) if params else ""
        response = await self.forward(
            "GET",
            path,
            headers={"Authorization": f"Bearer {token}", "Accept": "application/json"},
            query=query,
        )
        response.raise_for_status()
        return response.json()
