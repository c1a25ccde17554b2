import redis.asyncio as aioredis
from ridebook.config import get_settings

settings = get_settings()

_redis_pool: aioredis.Redis | None = None


async def get_redis() -> aioredis.Redis:
    global _redis_pool
    if _redis_pool is None:
        _redis_pool = aioredis.from_url(
            settings.redis_url,
            encoding="utf-8",
            decode_responses=True,
            max_connections=100,
        )
    return _redis_pool


async def close_redis() -> None:
    global _redis_pool
    if _redis_pool:
        await _redis_pool.aclose()
        _redis_pool = None


# ---------------------------------------------------------------------------
# Pub/sub helpers
# ---------------------------------------------------------------------------

BOOKINGS_CHANNEL = "bookings:events"


def booking_channel(booking_id: str) -> str:
    return f"booking:{booking_id}:events"


async def publish(redis: aioredis.Redis, channel: str, message: str) -> int:
    """Publish to a channel; returns the number of receiving subscribers."""
    return await redis.publish(channel, message)
