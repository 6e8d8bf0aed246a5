import logging
from starlette.middleware.base import BaseHTTPMiddleware
from fastapi import Request, HTTPException
from fastapi.responses import JSONResponse

logger = logging.getLogger('rideshare.service.middleware')


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Middleware to turn unexpected errors into the API's error envelope"""

    async def dispatch(self, request: Request, call_next):
        try:
            response = await call_next(request)
            return response
        except HTTPException:
            # Http Exceptions are handled by the custom handler registered on the app
            raise
        except Exception as exc:
            logger.error(f"Unexpected error for {request.url.path}: {str(exc)}", exc_info=True)
            return JSONResponse(
                status_code=500,
                content={
                    "success": False,
                    "message": "Internal server error",
                }
            )
