# SSE + Redis Pub/Sub: 이벤트 상태 변경 실시간 전달
# participant_joined / participant_left / event_updated / event_cancelled
# 발행 실패는 스트림만 영향, 참여/취소 결과는 유지

import asyncio
import json
import logging
import os
from datetime import datetime, timezone
from typing import Any, AsyncGenerator, Dict, Optional

import redis.asyncio as redis

logger = logging.getLogger(__name__)

# Docker 환경에서는 localhost가 아니라 서비스명(redis)을 사용해야 함
REDIS_URL = os.getenv("REDIS_URL", "redis://redis:6379/0")
CHANNEL_PREFIX = "event:"
CHANNEL_SUFFIX = ":status"
HEARTBEAT_INTERVAL = 15.0

EVENT_TYPES = {"participant_joined", "participant_left", "event_updated", "event_cancelled"}

# 모듈 단일 클라이언트 재사용 (테스트에서는 set_redis_client로 교체)
redis_client = redis.from_url(REDIS_URL, decode_responses=True)


def set_redis_client(client) -> None:
    global redis_client
    redis_client = client


def channel(event_id: int) -> str:
    return f"{CHANNEL_PREFIX}{event_id}{CHANNEL_SUFFIX}"


async def publish_event_change(
    event_id: int,
    change_type: str,
    extra: Optional[Dict[str, Any]] = None,
) -> None:
    """commit 후 라우터에서 호출."""
    if change_type not in EVENT_TYPES:
        raise ValueError(f"Unknown change type: {change_type}")
    payload = {
        "type": change_type,
        "event_id": event_id,
        "ts": datetime.now(timezone.utc).isoformat(),
        **(extra or {}),
    }
    try:
        await redis_client.publish(channel(event_id), json.dumps(payload, ensure_ascii=False))
    except Exception:
        logger.warning("Redis publish failed for event %s (%s)", event_id, change_type, exc_info=True)


def _event_name(data: str) -> str:
    try:
        parsed = json.loads(data)
    except ValueError:
        return "message"
    t = parsed.get("type") if isinstance(parsed, dict) else None
    return t if t in EVENT_TYPES else "message"


async def stream_event_changes(event_id: int) -> AsyncGenerator[str, None]:
    """
    GET /events/{id}/stream 용. 채널 구독 → SSE 포맷으로 전달.
    long-lived connection이므로 연결 해제(CancelledError) 시 구독 정리.
    """
    ch = channel(event_id)
    pubsub = redis_client.pubsub()
    try:
        await pubsub.subscribe(ch)
        last_heartbeat = datetime.now(timezone.utc).timestamp()

        while True:
            message = await pubsub.get_message(ignore_subscribe_messages=True, timeout=1.0)
            now = datetime.now(timezone.utc).timestamp()
            if now - last_heartbeat >= HEARTBEAT_INTERVAL:
                yield ": ping\n\n"
                last_heartbeat = now
            if message and message.get("type") == "message":
                data = message.get("data") or ""
                yield f"event: {_event_name(data)}\ndata: {data}\n\n"
    except asyncio.CancelledError:
        pass
    finally:
        await pubsub.unsubscribe(ch)
        await pubsub.aclose()
