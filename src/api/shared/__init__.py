"""
Shared API Utilities

Common errors, responses, middleware and routers for the gateway.
"""

from .responses import (
    ErrorDetail,
    ErrorBody,
    MessageResponse,
)

from .error_codes import (
    ErrorCode,
    get_status_code,
)

from .exceptions import (
    APIException,
    ValidationError,
    NotFoundError,
    ConflictError,
    UnauthorizedError,
    RateLimitedError,
    ConfigurationError,
    ExternalServiceError,
    BackendTimeoutError,
    BackendError,
)

from .middleware import (
    register_error_handlers,
    TracingMiddleware,
    SessionGateMiddleware,
    get_trace_id_from_request,
)

from .security import SecurityMiddleware

__all__ = [
    # Responses
    "ErrorDetail",
    "ErrorBody",
    "MessageResponse",
    # Error codes
    "ErrorCode",
    "get_status_code",
    # Exceptions
    "APIException",
    "ValidationError",
    "NotFoundError",
    "ConflictError",
    "UnauthorizedError",
    "RateLimitedError",
    "ConfigurationError",
    "ExternalServiceError",
    "BackendTimeoutError",
    "BackendError",
    # Middleware
    "register_error_handlers",
    "TracingMiddleware",
    "SessionGateMiddleware",
    "get_trace_id_from_request",
    "SecurityMiddleware",
]
