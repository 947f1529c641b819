from datetime import datetime, timedelta, timezone
from typing import Optional
import logging

import redis.asyncio as aioredis
from redis import RedisError, ConnectionError as RedisConnectionError

from ..errors import StoreError
from .base import SessionStore, StoreRecord, mask_token

logger = logging.getLogger(__name__)


class RedisStore(SessionStore):
    def __init__(self, redis_client: aioredis.Redis, prefix: str = "satchel:session:"):
        """
        Initialize the Redis store with an async Redis client.

        The client must be created with decode_responses=False, session
        payloads are raw bytes.
        """
        self.redis_client = redis_client
        self.prefix = prefix

    def _key(self, token: str) -> str:
        return f"{self.prefix}{token}"

    def _handle_redis_error(self, operation: str, token: str, error: Exception) -> None:
        """Centralized error handling for Redis operations."""
        if isinstance(error, RedisConnectionError):
            logger.error(f"Redis connection failed during {operation} for session {mask_token(token)}: {error}")
            raise StoreError(f"Database connection error during {operation}") from error
        elif isinstance(error, RedisError):
            logger.error(f"Redis error during {operation} for session {mask_token(token)}: {error}")
            raise StoreError(f"Database error during {operation}") from error
        else:
            logger.error(f"Unexpected error during {operation} for session {mask_token(token)}: {error}")
            raise StoreError(f"Unexpected error during {operation}") from error

    async def find(self, token: str) -> Optional[StoreRecord]:
        try:
            async with self.redis_client.pipeline(transaction=True) as pipe:
                data, ttl_ms = await pipe.get(self._key(token)).pttl(self._key(token)).execute()
        except Exception as e:
            self._handle_redis_error("session read", token, e)
            raise  # Never reached, but helps type checker

        if data is None:
            return None
        # -1: key without expiry, only possible if written outside this store
        expiry = None if ttl_ms < 0 else datetime.now(timezone.utc) + timedelta(milliseconds=ttl_ms)
        return StoreRecord(data, expiry)

    async def commit(self, token: str, data: bytes, expiry: datetime) -> None:
        # Redis rejects an expiry that is already in the past
        if expiry <= datetime.now(timezone.utc):
            await self.delete(token)
            return

        try:
            await self.redis_client.set(self._key(token), data, pxat=int(expiry.timestamp() * 1000))
            logger.debug(f"Session {mask_token(token)} committed, expires {expiry.isoformat()}")
        except Exception as e:
            self._handle_redis_error("session commit", token, e)

    async def delete(self, token: str) -> None:
        try:
            deleted_count = await self.redis_client.delete(self._key(token))
        except Exception as e:
            self._handle_redis_error("session deletion", token, e)
            return

        if deleted_count == 0:
            logger.debug(f"Session {mask_token(token)} was not present, nothing to delete")
        else:
            logger.debug(f"Session {mask_token(token)} deleted successfully")
