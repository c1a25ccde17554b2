import json
from typing import Optional

from fastapi import Request, Response
from fastapi.responses import JSONResponse

from ridebook.redis_client import get_redis


IDEMPOTENCY_TTL = 86400  # 24 hours


def _cache_key(key: str, rider_id: str | None) -> str:
    # Scope keys per rider so two riders can never replay each other's bookings
    return f"idempotency:{rider_id or 'anonymous'}:{key}"


async def check_idempotency(request: Request, rider_id: str | None) -> Optional[Response]:
    """
    Returns a cached Response if the Idempotency-Key was already used,
    otherwise returns None (proceed normally).
    """
    key = request.headers.get("Idempotency-Key")
    if not key:
        return None

    redis = await get_redis()
    cached = await redis.get(_cache_key(key, rider_id))

    if cached:
        data = json.loads(cached)
        return JSONResponse(
            content=data["body"],
            status_code=data["status_code"],
            headers={"X-Idempotency-Replay": "true"},
        )
    return None


async def store_idempotency_result(key: str, rider_id: str | None, status_code: int, body: dict) -> None:
    """Persist the response for the given idempotency key (24h TTL)."""
    redis = await get_redis()
    await redis.setex(
        _cache_key(key, rider_id),
        IDEMPOTENCY_TTL,
        json.dumps({"status_code": status_code, "body": body}),
    )
