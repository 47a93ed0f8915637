#!/usr/bin/env python3
"""
Kayron Dashboard Gateway
========================

FastAPI application that sits in front of the school-inventory dashboard.
Gates dashboard pages on a valid session, proxies authenticated API
calls to the backend and serves the session's authorization context.
"""

import asyncio
import logging
import os
import time
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from ...core.backend.client import BackendClient
from ...core.backend.retry import Clock, Sleep
from ...core.config import GatewaySettings
from ..shared.middleware import (
    SessionGateMiddleware,
    TracingMiddleware,
    register_error_handlers,
)
from ..shared.routers import (
    auth_router,
    debug_router,
    health_router,
    proxy_router,
    session_router,
)
from ..shared.security import SecurityMiddleware

logger = logging.getLogger(__name__)

SERVICE_NAME = "kayron-dashboard-gateway"

API_HOST = os.environ.get("API_HOST", "0.0.0.0")
API_PORT = int(os.environ.get("API_PORT", "3000"))


# =============================================================================
# OBSERVABILITY INITIALIZATION
# =============================================================================

def init_observability():
    """Initialize observability components (tracing, metrics, logging)."""
    from ...core.observability import init_tracing, init_metrics, configure_logging

    otlp_endpoint = os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT")
    console_export = os.getenv("OTEL_CONSOLE_EXPORT", "false").lower() == "true"
    log_level = os.getenv("LOG_LEVEL", "INFO")
    log_structured = os.getenv("LOG_STRUCTURED", "true").lower() == "true"

    # Configure structured logging first
    configure_logging(
        level=log_level,
        structured=log_structured,
        service_name=SERVICE_NAME
    )

    init_tracing(
        service_name=SERVICE_NAME,
        service_version=os.getenv("APP_VERSION", "1.0.0"),
        otlp_endpoint=otlp_endpoint,
        console_export=console_export
    )

    init_metrics(
        service_name=SERVICE_NAME,
        otlp_endpoint=otlp_endpoint,
        console_export=console_export
    )

    logger.info("OpenTelemetry observability initialized")


# =============================================================================
# LIFESPAN
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifespan - startup and shutdown."""
    init_observability()

    for issue in app.state.settings.validate():
        logger.warning(f"Configuration: {issue}")

    logger.info(
        "Gateway started",
        extra={"environment": app.state.settings.environment}
    )
    yield
    logger.info("Gateway stopped")


# =============================================================================
# FASTAPI APP
# =============================================================================

def create_app(
    settings: Optional[GatewaySettings] = None,
    backend_transport: Optional[httpx.AsyncBaseTransport] = None,
    sleep: Sleep = asyncio.sleep,
    clock: Clock = time.monotonic,
) -> FastAPI:
    """
    Build the gateway application.

    Args:
        settings: Gateway settings (defaults to the environment)
        backend_transport: httpx transport for backend calls (tests pass a MockTransport)
        sleep: Sleep function used between backend retries
        clock: Monotonic clock used for the retry ceiling

    Returns:
        Configured FastAPI application
    """
    settings = settings or GatewaySettings.from_env()
    backend = BackendClient(settings, transport=backend_transport, sleep=sleep, clock=clock)

    app = FastAPI(
        title="Kayron Dashboard Gateway",
        description="Session gate, authenticated proxy and authorization context",
        version="1.0.0",
        lifespan=lifespan,
        docs_url=None if settings.is_production else "/docs",
        redoc_url=None if settings.is_production else "/redoc",
    )
    app.state.settings = settings
    app.state.backend = backend

    register_error_handlers(app)

    # Innermost first: the gate sees the request after tracing has started
    app.add_middleware(SessionGateMiddleware, settings=settings, backend=backend)
    app.add_middleware(TracingMiddleware)
    app.add_middleware(SecurityMiddleware)

    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(proxy_router)
    app.include_router(session_router)
    app.include_router(debug_router)

    if settings.frontend_dir:
        app.mount("/", StaticFiles(directory=settings.frontend_dir, html=True), name="frontend")

    return app


app = create_app()


# =============================================================================
# MAIN
# =============================================================================

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "src.api.gateway.main:app",
        host=API_HOST,
        port=API_PORT,
    )
