import logging
from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from auth import ProviderUnavailableError
from users import UserRepositoryError

logger = logging.getLogger('rideshare.service.middleware')


async def custom_http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Render HTTPExceptions as `{success: false, message}`, the shape the mobile client parses"""
    if exc.status_code >= 500:
        logger.error(f"HTTP_EXCEPTION: {exc.status_code} - {exc.detail}")
    else:
        logger.info(f"HTTP_EXCEPTION: {exc.status_code} - {exc.detail}")

    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": str(exc.detail) if exc.detail else "Request failed"},
        headers=getattr(exc, "headers", None),
    )


async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Malformed request bodies answer 400 in the same envelope as other client errors"""
    logger.info(f"VALIDATION_ERROR: {request.url.path} - {exc.errors()}")
    return JSONResponse(
        status_code=400,
        content={"success": False, "message": "Invalid request body"},
    )


async def backend_unavailable_handler(request: Request, exc: Exception):
    """User store or identity provider failures: never reported as 401"""
    logger.error(f"BACKEND_UNAVAILABLE: {type(exc).__name__}: {exc}")
    return JSONResponse(
        status_code=500,
        content={"success": False, "message": "Internal server error"},
    )


EXCEPTION_HANDLERS = {
    StarletteHTTPException: custom_http_exception_handler,
    RequestValidationError: request_validation_handler,
    UserRepositoryError: backend_unavailable_handler,
    ProviderUnavailableError: backend_unavailable_handler,
}
