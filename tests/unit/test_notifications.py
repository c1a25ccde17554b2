"""
Unit tests for the Redis booking event publisher.
"""
import json
from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from conftest import MICHAEL
from ridebook.schemas.schemas import BookingEvent, BookingRecord, BookingStatusEnum
from ridebook.services.notifications import RedisEventPublisher, event_payload


def _event(previous=BookingStatusEnum.pending):
    booking = BookingRecord(
        id="b-1", rider_id="R1", pickup="A", dropoff="B", date="2025-01-01", time="09:00",
        status=BookingStatusEnum.confirmed, driver=MICHAEL,
        created_at=datetime(2025, 1, 1, tzinfo=timezone.utc),
    )
    return BookingEvent(booking=booking, previous_status=previous)


class TestEventPayload:
    def test_update_payload(self):
        payload = event_payload(_event())
        assert payload["type"] == "booking.updated"
        assert payload["previous_status"] == "pending"
        assert payload["booking"]["driver"]["vehicle"]["license_plate"] == "ABC 1234"

    def test_payload_is_json_serialisable(self):
        json.dumps(event_payload(_event()))


@pytest.mark.asyncio
class TestRedisEventPublisher:
    async def test_publishes_to_firehose_and_booking_channel(self):
        mock_redis = AsyncMock()
        mock_redis.publish = AsyncMock(return_value=1)

        await RedisEventPublisher(mock_redis)(_event())

        channels = [c.args[0] for c in mock_redis.publish.await_args_list]
        assert channels == ["bookings:events", "booking:b-1:events"]
        body = json.loads(mock_redis.publish.await_args_list[1].args[1])
        assert body["booking"]["status"] == "confirmed"

    async def test_redis_outage_is_logged_not_raised(self):
        mock_redis = AsyncMock()
        mock_redis.publish = AsyncMock(side_effect=RedisConnectionError("down"))

        await RedisEventPublisher(mock_redis)(_event())
