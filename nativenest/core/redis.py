import logging
import redis.asyncio as redis
from nativenest.core.config import REDIS_URL

logger = logging.getLogger("nativenest.redis")


async def create_redis(url: str | None = None) -> redis.Redis:
    return redis.from_url(
        url or REDIS_URL,
        encoding="utf-8",
        decode_responses=True,
        health_check_interval=30,
        retry_on_timeout=True,
        socket_connect_timeout=10,
        socket_timeout=None,
        socket_keepalive=True
    )


async def redis_alive(r: redis.Redis | None) -> bool:
    if r is None:
        return False
    try:
        return bool(await r.ping())
    except redis.RedisError:
        logger.warning("Redis ping failed", exc_info=True)
        return False
