import redis.asyncio as aioredis
import os
import logging
from typing import Optional

logger = logging.getLogger(__name__)

redis_clients = {}


def get_redis_client(redis_url: Optional[str] = None) -> aioredis.Redis:
    """
    Return a shared Redis client for redis_url (default: REDIS_URL).

    Clients keep responses as bytes, session payloads are binary.
    """
    if not redis_url:
        redis_url = os.getenv("REDIS_URL", "redis://localhost:6379")

    if redis_url not in redis_clients:
        logger.info(f"Creating new Redis client for {redis_url}")
        redis_clients[redis_url] = aioredis.from_url(redis_url, decode_responses=False)

    return redis_clients[redis_url]


async def close_redis_clients() -> None:
    while redis_clients:
        redis_url, client = redis_clients.popitem()
        try:
            await client.aclose()
            logger.info(f"Closed Redis client for {redis_url}")
        except Exception as e:
            logger.error(f"Failed to close Redis client for {redis_url}: {e}")
