"""Shared API routers."""

from .health import router as health_router
from .auth import router as auth_router
from .proxy import router as proxy_router
from .session import router as session_router
from .debug import router as debug_router

__all__ = ["health_router", "auth_router", "proxy_router", "session_router", "debug_router"]
