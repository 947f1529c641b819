"""
FastAPI dependencies for the session service.

This module provides reusable dependency functions that can be injected
into route handlers throughout the application.
"""
import os
import logging
from functools import lru_cache

from fastapi import Depends, Request

from session import SessionConfig, SessionData, SessionManager
from session.backends import MemoryStore, RedisStore, SessionStore
from session.codecs import get_codec

from .redis_client import get_redis_client

logger = logging.getLogger('satchel.service.dependencies')


def create_session_store() -> SessionStore:
    """Use Redis when REDIS_URL is set, otherwise keep sessions in memory."""
    if not os.getenv("REDIS_URL"):
        logger.warning("REDIS_URL not set, falling back to MemoryStore for sessions")
        return MemoryStore()

    prefix = os.getenv("SESSION_REDIS_PREFIX", "satchel:session:")
    return RedisStore(redis_client=get_redis_client(), prefix=prefix)


@lru_cache
def get_session_manager() -> SessionManager:
    """
    Get the application's session manager.

    Cached as a singleton: the manager's configuration is immutable after
    construction and it holds no per-request state.
    """
    return SessionManager(
        config=SessionConfig.from_env(),
        store=create_session_store(),
        codec=get_codec(os.getenv("SESSION_CODEC", "json")),
    )


def get_session(
    request: Request,
    session_manager: SessionManager = Depends(get_session_manager),
) -> SessionData:
    """Returns the session loaded by SessionMiddleware for this request."""
    return session_manager.get_session(request)
