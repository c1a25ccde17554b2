"""
Broadcast booking changes over Redis pub/sub.

Each event goes to the firehose channel and to the booking's own channel so
a viewer waiting on one booking can react to assignment without polling.
"""
import json
import logging

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from ridebook.redis_client import BOOKINGS_CHANNEL, booking_channel, publish
from ridebook.schemas.schemas import BookingEvent

logger = logging.getLogger(__name__)


def event_payload(event: BookingEvent) -> dict:
    return {
        "type": "booking.updated" if event.previous_status else "booking.created",
        "previous_status": event.previous_status.value if event.previous_status else None,
        "booking": event.booking.model_dump(mode="json"),
    }


class RedisEventPublisher:
    def __init__(self, redis: aioredis.Redis):
        self.redis = redis

    async def __call__(self, event: BookingEvent) -> None:
        message = json.dumps(event_payload(event))
        try:
            await publish(self.redis, BOOKINGS_CHANNEL, message)
            await publish(self.redis, booking_channel(event.booking.id), message)
        except RedisError as exc:
            logger.error("Failed to publish event for booking=%s: %s", event.booking.id, exc)
