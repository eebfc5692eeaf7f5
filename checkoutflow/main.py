"""Checkout service application.

Wires the checkout and health routers, correlation middleware and the
error handlers that give every failure the
``{error_code, message, details, request_id}`` shape.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from checkoutflow import __version__
from checkoutflow.api.checkouts import router as checkouts_router
from checkoutflow.api.health import router as health_router
from checkoutflow.api.middleware import error_body, setup_middleware
from checkoutflow.application.outcome_emitter import close_outcome_emitter
from checkoutflow.infrastructure.backend_client import close_backend_clients
from checkoutflow.infrastructure.config import settings
from checkoutflow.infrastructure.logging_config import configure_logging

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    configure_logging()
    logger.info(
        "Starting checkout service",
        version=__version__,
        api_version=settings.api_version,
        content_api_url=settings.content_api_url,
        payments_api_url=settings.payments_api_url,
        public_base_url=settings.public_base_url,
        analytics_sink="http" if settings.analytics_url else "log",
    )

    yield

    logger.info("Shutting down checkout service")
    # Pending analytics deliveries are flushed before clients close
    await close_outcome_emitter()
    await close_backend_clients()


app = FastAPI(
    title="Checkout Service",
    description="Checkout and order confirmation across redirect and widget payment providers",
    version=settings.api_version,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID"],
)

setup_middleware(app)

app.include_router(health_router, tags=["Health"])
app.include_router(checkouts_router)


# ============================================================================
# Exception Handlers
# ============================================================================


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Render router errors (``detail`` dicts) in the standard shape."""
    detail = exc.detail
    if isinstance(detail, dict):
        content = error_body(
            request,
            detail.get("error_code", "ERROR"),
            detail.get("message", "Request failed"),
            detail.get("details"),
        )
    else:
        content = error_body(request, "ERROR", str(detail))
    return JSONResponse(status_code=exc.status_code, content=content)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Malformed request bodies, e.g. an unknown provider name."""
    errors = [
        {"loc": [str(part) for part in error["loc"]], "msg": error["msg"]}
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=422,
        content=error_body(request, "VALIDATION_ERROR", "Invalid request", {"errors": errors}),
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(
        "Unhandled exception in handler",
        path=request.url.path,
        method=request.method,
        error=str(exc),
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body(request, "INTERNAL_ERROR", "An internal error occurred"),
    )
