"""
OpenTelemetry Tracing Middleware

FastAPI middleware for automatic request tracing with OpenTelemetry.
"""

import time
import logging
from typing import Callable, Optional
from uuid import uuid4

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from opentelemetry import trace

from ....core.observability.tracing import get_tracer, extract_trace_context, get_trace_id
from ....core.observability.metrics import record_counter, record_histogram

logger = logging.getLogger(__name__)

UNTRACED_PATHS = frozenset({"/health", "/health/live", "/health/ready"})


class TracingMiddleware(BaseHTTPMiddleware):
    """
    Middleware that creates OpenTelemetry spans for HTTP requests.

    Features:
    - Extracts trace context from incoming headers
    - Creates request span
    - Records request metrics
    - Propagates trace_id to response
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path in UNTRACED_PATHS:
            return await call_next(request)

        context = extract_trace_context(dict(request.headers))
        trace_id = request.headers.get("X-Trace-ID") or uuid4().hex

        tracer = get_tracer()
        start_time = time.time()

        with tracer.start_as_current_span(
            f"{request.method} {request.url.path}",
            context=context,
            kind=trace.SpanKind.SERVER,
            attributes={
                "http.method": request.method,
                "http.route": request.url.path,
                "http.scheme": request.url.scheme,
                "http.user_agent": request.headers.get("user-agent", ""),
                "trace_id": trace_id,
            }
        ) as span:
            request.state.trace_id = get_trace_id() or trace_id

            try:
                response = await call_next(request)
            except Exception as e:
                span.set_status(trace.Status(trace.StatusCode.ERROR, str(e)))
                span.record_exception(e)
                record_counter("http_requests_total", 1, {
                    "method": request.method,
                    "status": "500"
                })
                raise

            span.set_attribute("http.status_code", response.status_code)

            duration = time.time() - start_time
            record_counter("http_requests_total", 1, {
                "method": request.method,
                "status": str(response.status_code)
            })
            record_histogram("http_request_duration_seconds", duration, {
                "method": request.method
            })

            response.headers["X-Trace-ID"] = request.state.trace_id
            return response


def get_trace_id_from_request(request: Request) -> Optional[str]:
    """Get trace_id from request state."""
    return getattr(request.state, "trace_id", None)
