"""Redis client backing the QR replay-guard"""
import redis.asyncio as redis
from redis.asyncio.connection import ConnectionPool
from typing import Optional
import logging

from app.core.config import get_settings

logger = logging.getLogger(__name__)

redis_client: Optional[redis.Redis] = None
redis_pool: Optional[ConnectionPool] = None


async def init_redis(redis_url: Optional[str] = None, max_connections: Optional[int] = None):
    """Initialize the Redis connection pool"""
    global redis_client, redis_pool

    settings = get_settings()
    redis_url = redis_url or settings.REDIS_URL
    max_connections = max_connections or settings.REDIS_MAX_CONNECTIONS

    redis_pool = ConnectionPool.from_url(
        redis_url,
        max_connections=max_connections,
        decode_responses=True,
        socket_connect_timeout=5,
        socket_keepalive=True,
        retry_on_timeout=True,
        health_check_interval=30,
    )

    redis_client = redis.Redis(connection_pool=redis_pool)

    try:
        await redis_client.ping()
        logger.info(f"Redis connected (pool max_connections={max_connections})")
    except Exception as e:
        # Startup continues; the replay-guard surfaces the error per request
        logger.error(f"Error connecting to Redis: {e}")


async def get_redis() -> redis.Redis:
    """Return the shared client, initializing it on first use"""
    if redis_client is None:
        await init_redis()
    return redis_client


async def close_redis():
    """Close the client and its pool"""
    global redis_client, redis_pool
    if redis_client:
        await redis_client.close()
        redis_client = None
    if redis_pool:
        await redis_pool.disconnect()
        redis_pool = None
    logger.info("Redis disconnected")
