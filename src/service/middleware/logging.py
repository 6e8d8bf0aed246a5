import logging
import time
from starlette.middleware.base import BaseHTTPMiddleware
from fastapi import Request, HTTPException

logger = logging.getLogger('rideshare.service.middleware')


class RequestResponseLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware to log all requests and responses, without leaking bearer tokens"""

    async def dispatch(self, request: Request, call_next):
        started = time.perf_counter()
        logger.debug(f"REQUEST_DEBUG: {request.method} {request.url.path}")

        auth_header = request.headers.get("Authorization")
        logger.debug(f"REQUEST_DEBUG: Bearer token present: {bool(auth_header and auth_header.startswith('Bearer '))}")

        try:
            response = await call_next(request)

            elapsed_ms = (time.perf_counter() - started) * 1000
            logger.info(f"{request.method} {request.url.path} -> {response.status_code} ({elapsed_ms:.1f} ms)")

            if response.status_code >= 500:
                logger.error(f"ERROR_RESPONSE_DEBUG: Status {response.status_code} for {request.url.path}")

            return response

        except HTTPException as exc:
            logger.error(f"HTTP_EXCEPTION_DEBUG: Status {exc.status_code}, Detail: {exc.detail}")
            raise
        except Exception as exc:
            logger.error(f"UNEXPECTED_EXCEPTION_DEBUG: {type(exc)}: {str(exc)}")
            raise
