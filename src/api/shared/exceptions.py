"""
API Exception Classes

Custom exceptions that map to standard error responses.
"""

from typing import Any, Optional, List

from .error_codes import ErrorCode, get_status_code
from .responses import ErrorDetail


class APIException(Exception):
    """
    Base exception for API errors.

    All custom API exceptions should inherit from this class.
    The error handler middleware will catch these and return
    standardized error responses.
    """

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        details: Optional[List[ErrorDetail]] = None,
        trace_id: Optional[str] = None,
        status_code: Optional[int] = None,
        headers: Optional[dict] = None,
    ):
        self.code = code
        self.message = message
        self.details = details
        self.trace_id = trace_id
        self.status_code = status_code or get_status_code(code)
        self.headers = headers
        super().__init__(message)


class ValidationError(APIException):
    """
    Validation error for invalid request data.

    HTTP Status: 400
    """

    def __init__(
        self,
        message: str,
        details: Optional[List[ErrorDetail]] = None,
        trace_id: Optional[str] = None
    ):
        super().__init__(
            code=ErrorCode.VALIDATION_ERROR,
            message=message,
            details=details,
            trace_id=trace_id
        )


class NotFoundError(APIException):
    """
    Resource not found error.

    HTTP Status: 404
    """

    def __init__(
        self,
        resource: str,
        trace_id: Optional[str] = None
    ):
        super().__init__(code=ErrorCode.NOT_FOUND, message=f"{resource} not found", trace_id=trace_id)
        self.resource = resource


class ConflictError(APIException):
    """
    Conflict error (e.g., user already exists).

    HTTP Status: 409
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.CONFLICT,
        trace_id: Optional[str] = None
    ):
        super().__init__(code=code, message=message, trace_id=trace_id)


class UnauthorizedError(APIException):
    """
    Authentication required error.

    HTTP Status: 401
    """

    def __init__(
        self,
        message: str = "Authentication required",
        code: ErrorCode = ErrorCode.UNAUTHORIZED,
        trace_id: Optional[str] = None
    ):
        super().__init__(code=code, message=message, trace_id=trace_id)


class RateLimitedError(APIException):
    """
    Too many requests.

    HTTP Status: 429
    """

    def __init__(self, retry_after: int = 60, remaining: int = 0):
        super().__init__(
            code=ErrorCode.RATE_LIMITED,
            message="Too many requests. Please slow down.",
            headers={"Retry-After": str(retry_after), "X-RateLimit-Remaining": str(remaining)},
        )


class ConfigurationError(APIException):
    """
    Required server configuration is missing.

    HTTP Status: 500
    """

    def __init__(
        self,
        message: str = "Server configuration error. Please contact support.",
        trace_id: Optional[str] = None
    ):
        super().__init__(code=ErrorCode.CONFIGURATION_ERROR, message=message, trace_id=trace_id)


class ExternalServiceError(APIException):
    """
    External service error.

    HTTP Status: 502
    """

    def __init__(
        self,
        service: str,
        message: Optional[str] = None,
        details: Optional[List[ErrorDetail]] = None,
        trace_id: Optional[str] = None
    ):
        msg = message or f"External service '{service}' is unavailable"
        super().__init__(
            code=ErrorCode.EXTERNAL_SERVICE_ERROR,
            message=msg,
            details=details,
            trace_id=trace_id
        )
        self.service = service


class BackendTimeoutError(APIException):
    """
    Backend did not wake up within the wall-clock ceiling.

    HTTP Status: 504
    """

    def __init__(self, message: str, trace_id: Optional[str] = None):
        super().__init__(code=ErrorCode.BACKEND_TIMEOUT, message=message, trace_id=trace_id)


class BackendError(APIException):
    """
    Backend rejected a request; relayed with the backend's status code.
    """

    def __init__(
        self,
        status_code: int,
        message: str,
        payload: Any = None,
        trace_id: Optional[str] = None
    ):
        details = None
        if payload is not None:
            details = [ErrorDetail(message=str(payload)[:500], code="backend_response")]
        super().__init__(
            code=ErrorCode.BACKEND_ERROR,
            message=message,
            details=details,
            trace_id=trace_id,
            status_code=status_code,
        )
