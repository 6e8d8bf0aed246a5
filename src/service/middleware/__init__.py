import logging as log
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .logging import RequestResponseLoggingMiddleware
from .error_handling import ErrorHandlingMiddleware
from .exception_handlers import (
    EXCEPTION_HANDLERS,
    custom_http_exception_handler,
    request_validation_handler,
    backend_unavailable_handler,
)

logger = log.getLogger('rideshare.service.middleware')


def setup_middleware(
    app: FastAPI,
    cors_allowed_origins: list[str],
    cors_allowed_methods: list[str],
    cors_allowed_headers: list[str]
):
    """
    Setup exception handlers and middleware for the FastAPI application.

    Middleware are added in reverse order (last added = first executed).
    Current order of execution:
    1. CORSMiddleware (handles CORS)
    2. ErrorHandlingMiddleware (catches unhandled errors)
    3. RequestResponseLoggingMiddleware (logs requests/responses)

    Args:
        app: FastAPI application instance
        cors_allowed_origins: List of allowed CORS origins
        cors_allowed_methods: List of allowed HTTP methods
        cors_allowed_headers: List of allowed headers
    """
    for exc_class, handler in EXCEPTION_HANDLERS.items():
        app.add_exception_handler(exc_class, handler)

    app.add_middleware(RequestResponseLoggingMiddleware)

    app.add_middleware(ErrorHandlingMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_allowed_origins,
        allow_credentials=True,
        allow_methods=cors_allowed_methods,
        allow_headers=cors_allowed_headers,
    )

    logger.info(f"CORS configured with origins: {cors_allowed_origins}")


__all__ = [
    'setup_middleware',
    'RequestResponseLoggingMiddleware',
    'ErrorHandlingMiddleware',
    'custom_http_exception_handler',
    'request_validation_handler',
    'backend_unavailable_handler',
]
