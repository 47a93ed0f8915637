"""
Integration Test Fixtures

The gateway runs in-process over ASGITransport; the school-inventory
backend is an httpx.MockTransport driven by a scripted FakeBackend.
"""

from typing import Callable, Dict, List, Tuple, Union

import httpx
import pytest
from fastapi import Request
from httpx import AsyncClient, ASGITransport

from src.api.gateway.main import create_app
from src.api.shared.security import auth_rate_limiter
from src.core.config import GatewaySettings, RetryPolicy

BACKEND = "http://backend.test"

Reply = Union[httpx.Response, Exception, Callable[[httpx.Request], httpx.Response]]


class FakeBackend:
    """
    Scripted backend.

    Each (method, path) gets a queue of replies; the last reply repeats.
    Every request is recorded along with its body.
    """

    def __init__(self):
        self.routes: Dict[Tuple[str, str], List[Reply]] = {}
        self.requests: List[httpx.Request] = []

    def on(self, method: str, path: str, *replies: Reply) -> "FakeBackend":
        self.routes[(method.upper(), path)] = list(replies)
        return self

    def calls(self, method: str = None, path: str = None) -> List[httpx.Request]:
        return [
            r for r in self.requests
            if (method is None or r.method == method) and (path is None or r.url.path == path)
        ]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        request.read()
        self.requests.append(request)

        replies = self.routes.get((request.method, request.url.path))
        if not replies:
            return httpx.Response(404, json={"message": f"no route {request.method} {request.url.path}"})

        reply = replies.pop(0) if len(replies) > 1 else replies[0]
        if isinstance(reply, Exception):
            raise reply
        if callable(reply):
            return reply(request)
        # Fresh copy so a repeated reply is never consumed twice
        return httpx.Response(reply.status_code, headers=reply.headers, content=reply.content)


class FakeTime:
    """Recording sleep plus a clock that advances with it."""

    def __init__(self):
        self.now = 0.0
        self.sleeps: List[float] = []

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds

    def clock(self) -> float:
        return self.now


def make_settings(**overrides) -> GatewaySettings:
    values = dict(
        environment="test",
        backend_base_url=f"{BACKEND}/api",
        verify_url=f"{BACKEND}/auth/me",
        refresh_url=f"{BACKEND}/auth/refresh",
        auth_url=f"{BACKEND}/auth/login",
        create_user_url=f"{BACKEND}/auth/users",
        super_admin_emails=frozenset({"head@school.org"}),
        public_super_admin_emails=frozenset({"head@school.org", "deputy@school.org"}),
        retry_policy=RetryPolicy(),
    )
    values.update(overrides)
    return GatewaySettings(**values)


def build_app(settings: GatewaySettings, backend: FakeBackend, clock: FakeTime):
    app = create_app(
        settings=settings,
        backend_transport=httpx.MockTransport(backend),
        sleep=clock.sleep,
        clock=clock.clock,
    )

    @app.get("/dashboard")
    async def dashboard(request: Request):
        return {
            "page": "dashboard",
            "email": request.state.user_email,
            "superAdmin": request.state.is_super_admin,
        }

    return app


@pytest.fixture(autouse=True)
def reset_rate_limiter():
    auth_rate_limiter.reset()
    yield
    auth_rate_limiter.reset()


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def fake_time() -> FakeTime:
    return FakeTime()


@pytest.fixture
def settings() -> GatewaySettings:
    return make_settings()


@pytest.fixture
async def client(settings, backend, fake_time):
    """Create async test client."""
    app = build_app(settings, backend, fake_time)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client


@pytest.fixture
def make_client(backend, fake_time):
    """Client factory for tests that need non-default settings."""
    def factory(**overrides) -> AsyncClient:
        app = build_app(make_settings(**overrides), backend, fake_time)
        return AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver")
    return factory


@pytest.fixture
async def session_client(client):
    """Client holding a session cookie pair."""
    client.cookies.set("token", "tok")
    client.cookies.set("refresh_token", "ref")
    return client
