"""
Redis Connection Module

One shared async connection pool, used for the pub/sub channels that
carry live notifications between API instances (see
services/websocket_manager.py).
"""

import logging
from typing import Optional

from redis.asyncio import ConnectionPool, Redis

from trafficrules.core.config import settings

logger = logging.getLogger(__name__)

_redis_pool: Optional[ConnectionPool] = None


def get_redis_pool() -> ConnectionPool:
    """Create the pool on first use; no connection is opened here."""
    global _redis_pool
    if _redis_pool is None:
        # bytes out; consumers decode what they read
        _redis_pool = ConnectionPool.from_url(settings.REDIS_URL, max_connections=10, decode_responses=False)
        logger.info(f"Redis pool created for {settings.REDIS_URL}")
    return _redis_pool


async def get_redis() -> Redis:
    return Redis(connection_pool=get_redis_pool())


async def close_redis_pool() -> None:
    global _redis_pool
    if _redis_pool is not None:
        await _redis_pool.disconnect()
        _redis_pool = None
        logger.info("Redis pool closed")


async def check_redis_connection() -> bool:
    """True if Redis answers PING."""
    try:
        redis = await get_redis()
        return bool(await redis.ping())
    except Exception as e:
        logger.error(f"Redis health check failed: {e}")
        return False
