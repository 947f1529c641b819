import logging
from starlette.middleware.base import BaseHTTPMiddleware
from fastapi import Request, HTTPException
from fastapi.responses import JSONResponse

logger = logging.getLogger('satchel.service.middleware')

# Never include exception text here, it is sent to the client
INTERNAL_ERROR_CONTENT = {
    "error": "Internal server error occurred",
    "error_code": "internal_error",
    "message": "An unexpected error occurred. Please try again later.",
}


async def default_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log a session load/commit failure and answer with a generic 500."""
    logger.error(f"Session error for {request.method} {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(status_code=500, content=INTERNAL_ERROR_CONTENT)


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Middleware to render unexpected errors as a generic JSON 500"""

    async def dispatch(self, request: Request, call_next):
        try:
            response = await call_next(request)
            return response
        except HTTPException:
            # Http Exceptions should be handled by fastapi's default handler
            raise
        except Exception as exc:
            logger.error(f"Unexpected error for {request.url}: {str(exc)}", exc_info=True)
            return JSONResponse(status_code=500, content=INTERNAL_ERROR_CONTENT)
