# storefront/db/redis.py
import logging
import redis.asyncio as redis

logger = logging.getLogger(__name__)

redis_client: redis.Redis | None = None


async def connect(url: str | None):
    """
    Connect Redis when a URL is configured.
    Missing or unreachable Redis is not fatal: slots fall back to JSON files.
    """
    global redis_client
    if not url:
        logger.info("No REDIS_URL configured, skipping Redis connection.")
        redis_client = None
        return

    try:
        logger.info("Connecting to Redis at %s", url)
        redis_client = redis.from_url(url, decode_responses=True)
        await redis_client.ping()
        logger.info("Redis connection successful")
    except Exception as e:
        logger.warning("Failed to connect to Redis: %s", e)
        redis_client = None  # fallback: file backend


async def disconnect():
    """Close the Redis connection if there is one."""
    global redis_client
    if redis_client:
        await redis_client.aclose()
        redis_client = None
        logger.info("Redis disconnected")


def get_redis() -> redis.Redis | None:
    """
    Redis getter. Returns None when Redis is not configured or unavailable.
    Callers must handle that.
    """
    return redis_client
