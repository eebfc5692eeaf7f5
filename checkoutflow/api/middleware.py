"""API middleware.

Provides:
- Request ID and checkout ID log correlation
- Last-resort error handling
"""

import re
import time
from typing import Callable
from uuid import uuid4

import structlog
from fastapi import FastAPI, Request, Response, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

logger = structlog.get_logger()

REQUEST_ID_HEADER = "X-Request-ID"

_CHECKOUT_PATH = re.compile(r"^/checkouts/(?P<checkout_id>chk_[0-9a-f]+)")


def error_body(
    request: Request,
    error_code: str,
    message: str,
    details: dict | None = None,
) -> dict:
    """Standard error payload shared by middleware and exception handlers."""
    return {
        "error_code": error_code,
        "message": message,
        "details": details or {},
        "request_id": getattr(request.state, "request_id", None),
    }


# ============================================================================
# Log Correlation
# ============================================================================


class CorrelationMiddleware(BaseHTTPMiddleware):
    """Bind request and checkout identifiers to the structlog context.

    The request ID is taken from ``X-Request-ID`` when the caller sends one
    and echoed on the response. Requests under ``/checkouts/{id}`` also
    carry ``checkout_id`` on every log line they produce.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid4())
        request.state.request_id = request_id

        bound = {"request_id": request_id}
        match = _CHECKOUT_PATH.match(request.url.path)
        if match:
            bound["checkout_id"] = match.group("checkout_id")
        structlog.contextvars.bind_contextvars(**bound)

        started = time.perf_counter()
        response = None
        try:
            response = await call_next(request)
        finally:
            logger.info(
                "Request completed",
                method=request.method,
                path=request.url.path,
                status_code=getattr(response, "status_code", 500),
                duration_ms=round((time.perf_counter() - started) * 1000, 2),
            )
            structlog.contextvars.unbind_contextvars(*bound)

        response.headers[REQUEST_ID_HEADER] = request_id
        return response


# ============================================================================
# Error Handling
# ============================================================================


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """Turn anything that escaped the routers into ``INTERNAL_ERROR``."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            return await call_next(request)
        except Exception as e:
            logger.exception(
                "Unhandled exception",
                path=request.url.path,
                method=request.method,
                error=str(e),
            )
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content=error_body(request, "INTERNAL_ERROR", "An internal error occurred"),
            )


def setup_middleware(app: FastAPI) -> None:
    """Install middleware; the last one added runs first."""
    app.add_middleware(ErrorHandlerMiddleware)
    app.add_middleware(CorrelationMiddleware)
