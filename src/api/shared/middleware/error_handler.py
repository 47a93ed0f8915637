"""
Global Error Handler Middleware

Catches exceptions and returns standardized error responses.
"""

import logging
import traceback
from uuid import uuid4

from fastapi import Request, FastAPI
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError

from ....core.config import ConfigurationError as SettingsError
from ..exceptions import APIException
from ..responses import ErrorBody, ErrorDetail
from ..error_codes import ErrorCode
from .tracing import get_trace_id_from_request

logger = logging.getLogger(__name__)


def _trace_id(request: Request) -> str:
    return get_trace_id_from_request(request) or str(uuid4())


def error_response(status_code: int, body: ErrorBody, headers: dict = None) -> JSONResponse:
    """Render an ErrorBody in the standard envelope."""
    return JSONResponse(
        status_code=status_code,
        content={"error": body.model_dump(mode="json")},
        headers=headers,
    )


def register_error_handlers(app: FastAPI):
    """
    Register all error handlers on the FastAPI app.

    This function sets up exception handlers for:
    - APIException (custom API errors)
    - RequestValidationError (FastAPI validation)
    - Generic Exception (catch-all for unexpected errors)
    """

    @app.exception_handler(APIException)
    async def api_exception_handler(request: Request, exc: APIException):
        """Handle custom API exceptions."""
        trace_id = exc.trace_id or _trace_id(request)

        log = logger.error if exc.status_code >= 500 else logger.warning
        log(
            f"API Error: {exc.code.value} - {exc.message}",
            extra={
                "error_code": exc.code.value,
                "status_code": exc.status_code,
                "path": request.url.path
            }
        )

        error_body = ErrorBody(
            code=exc.code.value,
            message=exc.message,
            details=exc.details,
            trace_id=trace_id
        )
        return error_response(exc.status_code, error_body, exc.headers)

    @app.exception_handler(SettingsError)
    async def configuration_error_handler(request: Request, exc: SettingsError):
        """Missing backend settings surface as a 500, never a pass-through."""
        logger.error(
            f"Configuration Error: {exc}",
            extra={"missing": list(exc.names), "path": request.url.path}
        )
        error_body = ErrorBody(
            code=ErrorCode.CONFIGURATION_ERROR.value,
            message="Server configuration error. Please contact support.",
            trace_id=_trace_id(request)
        )
        return error_response(500, error_body)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Handle FastAPI validation errors."""
        trace_id = _trace_id(request)

        details = []
        for error in exc.errors():
            field = ".".join(str(loc) for loc in error["loc"])
            details.append(ErrorDetail(
                field=field,
                message=error["msg"],
                code=error["type"]
            ))

        logger.warning(
            f"Validation Error: {len(details)} field(s)",
            extra={
                "path": request.url.path,
                "errors": [d.model_dump() for d in details]
            }
        )

        error_body = ErrorBody(
            code=ErrorCode.VALIDATION_ERROR.value,
            message="Request validation failed",
            details=details,
            trace_id=trace_id
        )
        return error_response(400, error_body)

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        """Handle unexpected exceptions."""
        trace_id = _trace_id(request)

        logger.error(
            f"Unhandled Exception: {type(exc).__name__}: {exc}",
            extra={
                "path": request.url.path,
                "traceback": traceback.format_exc()
            }
        )

        # Don't expose internal details
        error_body = ErrorBody(
            code=ErrorCode.INTERNAL_ERROR.value,
            message="An internal error occurred",
            trace_id=trace_id
        )
        return error_response(500, error_body)
