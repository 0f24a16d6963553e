import asyncio
import json

import pytest

from app.realtime import event_pubsub
from app.realtime.event_pubsub import _event_name, channel, publish_event_change, stream_event_changes


async def test_publish_reaches_channel(fake_redis):
    pubsub = fake_redis.pubsub()
    await pubsub.subscribe(channel(11))

    await publish_event_change(11, "participant_joined", {"user_id": 4})

    message = None
    for _ in range(20):
        message = await pubsub.get_message(ignore_subscribe_messages=True, timeout=0.1)
        if message:
            break
    await pubsub.aclose()

    payload = json.loads(message["data"])
    assert message["channel"] == "event:11:status"
    assert payload["type"] == "participant_joined"
    assert payload["event_id"] == 11
    assert payload["user_id"] == 4


async def test_publish_unknown_type():
    with pytest.raises(ValueError):
        await publish_event_change(1, "exploded")


async def test_publish_failure_is_swallowed(monkeypatch, caplog):
    class BrokenRedis:
        async def publish(self, *args):
            raise ConnectionError("redis down")

    monkeypatch.setattr(event_pubsub, "redis_client", BrokenRedis())
    await publish_event_change(1, "event_updated")
    assert "Redis publish failed" in caplog.text


async def test_stream_formats_sse_frames(fake_redis):
    stream = stream_event_changes(21)
    first = asyncio.ensure_future(stream.__anext__())
    # 구독이 붙을 시간을 줌
    await asyncio.sleep(0.2)
    await publish_event_change(21, "event_cancelled")

    frame = await asyncio.wait_for(first, timeout=5)
    await stream.aclose()

    lines = frame.strip().split("\n")
    assert lines[0] == "event: event_cancelled"
    assert lines[1].startswith("data: ")
    assert json.loads(lines[1][len("data: "):])["type"] == "event_cancelled"


@pytest.mark.parametrize(
    "raw, expected",
    [
        ('{"type": "participant_left"}', "participant_left"),
        ('{"type": "something_else"}', "message"),
        ("[1, 2]", "message"),
        ("not json", "message"),
    ],
)
def test_event_name(raw, expected):
    assert _event_name(raw) == expected
