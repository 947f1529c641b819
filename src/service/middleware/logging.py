import logging
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp
from fastapi import Request, HTTPException

logger = logging.getLogger('satchel.service.middleware')


class RequestResponseLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware to log requests and responses, including session cookie traffic"""

    def __init__(self, app: ASGIApp, cookie_name: str = "session"):
        super().__init__(app)
        self.cookie_name = cookie_name

    async def dispatch(self, request: Request, call_next):
        logger.debug(f"REQUEST_DEBUG: {request.method} {request.url}")

        # Never log the token itself
        session_cookie_value = request.cookies.get(self.cookie_name)
        logger.debug(f"REQUEST_DEBUG: Session cookie present: {bool(session_cookie_value)}")
        if session_cookie_value:
            logger.debug(f"REQUEST_DEBUG: Session cookie length: {len(session_cookie_value)}")

        try:
            response = await call_next(request)

            logger.debug(f"RESPONSE_DEBUG: Status {response.status_code}")
            logger.debug(f"RESPONSE_DEBUG: Sets session cookie: {'set-cookie' in response.headers}")

            if response.status_code >= 400:
                logger.error(f"ERROR_RESPONSE_DEBUG: Status {response.status_code} for {request.url}")

            return response

        except HTTPException as exc:
            logger.error(f"HTTP_EXCEPTION_DEBUG: Status {exc.status_code}, Detail: {exc.detail}")
            raise
        except Exception as exc:
            logger.error(f"UNEXPECTED_EXCEPTION_DEBUG: {type(exc)}: {str(exc)}")
            raise
