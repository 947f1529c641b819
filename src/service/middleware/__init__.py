import logging as log
from fastapi import FastAPI

from session.manager import SessionManager

from .logging import RequestResponseLoggingMiddleware
from .error_handling import ErrorHandlingMiddleware, default_error_handler
from .session import SessionMiddleware, register_cleanup
from .buffer import ResponseBuffer, SinkCapabilities, flush_response, get_response_buffer

logger = log.getLogger('satchel.service.middleware')


def setup_middleware(app: FastAPI, session_manager: SessionManager):
    """
    Setup all middleware for the FastAPI application.

    Middleware are added in reverse order (last added = first executed).
    Current order of execution:
    1. ErrorHandlingMiddleware (catches unhandled errors)
    2. RequestResponseLoggingMiddleware (logs requests/responses)
    3. SessionMiddleware (loads the session, sets the cookie after the handler)

    Args:
        app: FastAPI application instance
        session_manager: Manager whose sessions are loaded and saved per request
    """
    app.add_middleware(SessionMiddleware, manager=session_manager)

    app.add_middleware(RequestResponseLoggingMiddleware, cookie_name=session_manager.cookie.name)

    app.add_middleware(ErrorHandlingMiddleware)

    logger.info(f"Session middleware configured with cookie '{session_manager.cookie.name}'")


__all__ = [
    'setup_middleware',
    'RequestResponseLoggingMiddleware',
    'ErrorHandlingMiddleware',
    'SessionMiddleware',
    'ResponseBuffer',
    'SinkCapabilities',
    'default_error_handler',
    'flush_response',
    'get_response_buffer',
    'register_cleanup',
]
