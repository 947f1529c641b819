import logging
from typing import AsyncGenerator
from fastapi import FastAPI
from contextlib import asynccontextmanager

from session.backends import MemoryStore

from .dependencies import get_session_manager
from .redis_client import close_redis_clients

logger = logging.getLogger("satchel.service.lifecycle")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    session_manager = get_session_manager()
    logger.info(f"Session store: {type(session_manager.store).__name__}")

    yield

    # Expired in-memory records are only dropped lazily, clear the rest on shutdown
    if isinstance(session_manager.store, MemoryStore):
        session_manager.store.purge_expired()

    await close_redis_clients()
