# 이벤트 상태 변경 푸시 알림: 요청과 분리된 백그라운드 작업 (fire-and-forget)
# 발송 실패는 로그만 남기고 삼킴 → 참여/취소/삭제 결과에 영향 없음

import asyncio
import logging
from typing import Callable, Coroutine, Dict, Optional, Set

from sqlalchemy.orm import Session

from app.crud.push_token_crud import get_participant_tokens
from app.database import SessionLocal
from app.integrations.push_gateway import send_multicast

logger = logging.getLogger(__name__)

# 실행 중 작업 참조 유지 (GC로 사라지지 않도록) + 종료 시 취소 대상
_pending: Set[asyncio.Task] = set()


def schedule_background(coro: Coroutine, name: str) -> asyncio.Task:
    task = asyncio.get_running_loop().create_task(coro, name=name)
    _pending.add(task)
    task.add_done_callback(_pending.discard)
    return task


def pending_count() -> int:
    return len(_pending)


async def cancel_pending() -> None:
    """앱 종료 시 호출. 전달 보장 없음."""
    tasks = list(_pending)
    for task in tasks:
        task.cancel()
    if tasks:
        await asyncio.gather(*tasks, return_exceptions=True)
    _pending.clear()


def _load_tokens(event_id: int, session_factory: Callable[[], Session]) -> list:
    db = session_factory()
    try:
        return get_participant_tokens(db, event_id)
    finally:
        db.close()


async def broadcast_to_participants(
    event_id: int,
    data: Dict[str, str],
    session_factory: Optional[Callable[[], Session]] = None,
) -> None:
    try:
        tokens = await asyncio.to_thread(_load_tokens, event_id, session_factory or SessionLocal)
        if not tokens:
            return
        result = await send_multicast(tokens, data)
        logger.info(
            "Push sent for event %s: success=%d failure=%d",
            event_id,
            result.success_count,
            result.failure_count,
        )
    except asyncio.CancelledError:
        raise
    except Exception:
        logger.warning("Push broadcast failed for event %s", event_id, exc_info=True)


def notify_event_joined(event_id: int, user_preferred_name: str) -> asyncio.Task:
    data = {
        "type": "event",
        "eventId": str(event_id),
        "title": "Welcome your partner!",
        "subtitle": f"{user_preferred_name} has joined the event!",
    }
    return schedule_background(broadcast_to_participants(event_id, data), f"push-joined-{event_id}")


def notify_event_cancelled(event_id: int, event_name: str) -> asyncio.Task:
    data = {
        "type": "event",
        "eventId": str(event_id),
        "title": "Event cancelled",
        "subtitle": f"The host had cancelled the event: {event_name}",
    }
    return schedule_background(broadcast_to_participants(event_id, data), f"push-cancelled-{event_id}")
