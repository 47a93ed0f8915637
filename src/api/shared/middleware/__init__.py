"""
Shared API Middleware

Provides cross-cutting concerns for all gateway endpoints:
- Error handling with standardized responses
- OpenTelemetry distributed tracing
- Session gate in front of dashboard pages
"""

from .error_handler import register_error_handlers, error_response
from .tracing import (
    TracingMiddleware,
    get_trace_id_from_request,
)
from .auth import (
    SessionGateMiddleware,
    is_gated_path,
    get_session_email,
    LOGIN_PATH,
    SUPER_ADMIN_HEADER,
)

__all__ = [
    # Error handling
    "register_error_handlers",
    "error_response",
    # OpenTelemetry Tracing
    "TracingMiddleware",
    "get_trace_id_from_request",
    # Session gate
    "SessionGateMiddleware",
    "is_gated_path",
    "get_session_email",
    "LOGIN_PATH",
    "SUPER_ADMIN_HEADER",
]
