import redis.asyncio as aioredis
import os
import logging
from typing import Optional

logger = logging.getLogger(__name__)

redis_clients = {}


def get_redis_client(redis_url: Optional[str] = None) -> aioredis.Redis:
    if not redis_url:
        redis_url = os.getenv("REDIS_URL", "redis://localhost:6379")

    if redis_url not in redis_clients:
        logger.info(f"Creating new Redis client with: URL {redis_url}")
        redis_clients[redis_url] = aioredis.from_url(redis_url, decode_responses=True)

    return redis_clients[redis_url]


async def close_redis_clients() -> None:
    for url, client in list(redis_clients.items()):
        await client.aclose()
        logger.info(f"Closed Redis client for {url}")
    redis_clients.clear()
