from datetime import datetime, timezone
from typing import Any, Dict, Optional

import pytest
import pytest_asyncio
from fakeredis.aioredis import FakeRedis

from app.realtime import event_pubsub
from app.services.hosting_quota import HostingConfigurator


@pytest_asyncio.fixture
async def fake_redis():
    original = event_pubsub.redis_client
    client = FakeRedis(decode_responses=True)
    event_pubsub.set_redis_client(client)
    try:
        yield client
    finally:
        event_pubsub.set_redis_client(original)
        await client.flushall()


@pytest.fixture
def configurator() -> HostingConfigurator:
    return HostingConfigurator(max_count=3, refresh_period_min=60)


@pytest.fixture
def now() -> datetime:
    return datetime(2026, 5, 1, 12, 0, tzinfo=timezone.utc)


def make_row(
    event_id: int,
    distance: Optional[float] = 100.0,
    participant_id: Optional[int] = None,
    host_id: int = 1,
    max_participant_count: int = 4,
    deleted: bool = False,
    **overrides: Any,
) -> Dict[str, Any]:
    """get_events 쿼리 한 행 모양 (이벤트 × 참여자)."""
    row = {
        "id": event_id,
        "event_name": f"Event {event_id}",
        "host_id": host_id,
        "host_username": f"user{host_id}",
        "host_preferred_name": f"User {host_id}",
        "host_profile_icon_url": None,
        "destination": "Riverside Court",
        "distance": distance,
        "start_time": datetime(2026, 6, 1, 9, 0),
        "end_time": datetime(2026, 6, 1, 11, 0),
        "longitude": 103.85,
        "latitude": 1.29,
        "event_type": "Badminton",
        "max_participant_count": max_participant_count,
        "description": "",
        "deleted": deleted,
        "participant_id": participant_id,
        "participant_username": f"user{participant_id}" if participant_id is not None else None,
        "participant_preferred_name": f"User {participant_id}" if participant_id is not None else None,
        "participant_profile_icon_url": None,
    }
    row.update(overrides)
    return row
