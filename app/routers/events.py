# 이벤트 탐색/생성/참여 API
import logging
from typing import List, NoReturn, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from app.crud.event_crud import create_event, delete_event, get_event_by_id, get_events, update_event
from app.crud.participation_crud import join_event, quit_event
from app.crud.user_crud import get_preferred_name
from app.database import get_db
from app.dependencies import get_current_user
from app.errors import EventServiceError
from app.models.user import User
from app.realtime.event_pubsub import publish_event_change, stream_event_changes
from app.schemas.event import EventCreate, EventDetail, EventDetailResponse, EventUpdate, GeoPoint
from app.schemas.participation import ParticipationResponse
from app.services.event_pagination import EventFilter
from app.services.notification_service import notify_event_cancelled, notify_event_joined

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/events", tags=["Events"])


def _rollback_and_reraise(db: Session, exc: Exception, failure_message: str) -> NoReturn:
    """도메인 예외는 그대로, 그 외는 로그 후 불투명한 500으로."""
    db.rollback()
    if isinstance(exc, EventServiceError):
        raise exc
    logger.exception(failure_message)
    raise EventServiceError(failure_message) from exc


@router.get("", response_model=EventDetailResponse)
def list_events(
    longitude: float = Query(..., ge=-180, le=180),
    latitude: float = Query(..., ge=-90, le=90),
    event_types: List[str] = Query(default=[], alias="eventTypes"),
    page_size: int = Query(20, alias="pageSize"),
    cursor_id: Optional[str] = Query(None, alias="cursorId"),
    prev_cursor_id: Optional[str] = Query(None, alias="prevCursorId"),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> EventDetailResponse:
    """가까운 순 이벤트 탐색. nextCursorId를 그대로 다음 요청의 cursorId로 전달."""
    event_filter = EventFilter(
        from_location=GeoPoint(longitude=longitude, latitude=latitude),
        event_types=event_types,
        page_size=page_size,
        cursor_id=cursor_id,
        prev_cursor_id=prev_cursor_id,
    )
    return get_events(db, event_filter, user.id)


@router.post("", response_model=EventDetail)
def post_event(
    body: EventCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> EventDetail:
    """이벤트 생성 (호스트 자동 참여 + 호스팅 카운트 증가, 한 트랜잭션)."""
    try:
        event = create_event(db, body, user.id)
        db.commit()  # ✅ 트랜잭션 소유권: 라우터
    except Exception as exc:
        _rollback_and_reraise(db, exc, "Failed to create event")
    return get_event_by_id(db, event.id, user.id)


@router.get("/{event_id}", response_model=EventDetail)
def get_event(
    event_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> EventDetail:
    return get_event_by_id(db, event_id, user.id)


@router.patch("/{event_id}", response_model=EventDetail)
async def patch_event(
    event_id: int,
    body: EventUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> EventDetail:
    try:
        update_event(db, event_id, user.id, body)
        db.commit()
    except Exception as exc:
        _rollback_and_reraise(db, exc, "Failed to update event")
    await publish_event_change(event_id, "event_updated")
    return get_event_by_id(db, event_id, user.id)


@router.delete("/{event_id}", response_model=EventDetail)
async def delete_event_by_host(
    event_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> EventDetail:
    """소프트 삭제 후 참여자에게 취소 알림."""
    try:
        event = delete_event(db, event_id, user.id)
        event_name = event.event_name
        db.commit()
    except Exception as exc:
        _rollback_and_reraise(db, exc, "Failed to delete event")
    notify_event_cancelled(event_id, event_name)
    await publish_event_change(event_id, "event_cancelled")
    return get_event_by_id(db, event_id, user.id)


@router.post("/{event_id}/join", response_model=ParticipationResponse)
async def post_join(
    event_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> ParticipationResponse:
    """
    이벤트 참여. 정원 경쟁에서 지면 409 (errorCode 2003, StaleInfo) → 클라이언트는 새로고침 후 재시도.
    알림 발송은 응답과 분리되어 실패해도 참여는 유지.
    """
    try:
        join_event(db, event_id, user.id)
        db.commit()
    except Exception as exc:
        _rollback_and_reraise(db, exc, "Failed to join event")

    notify_event_joined(event_id, get_preferred_name(db, user.id))
    await publish_event_change(event_id, "participant_joined", {"user_id": user.id})
    return ParticipationResponse(message="joined", event_id=event_id)


@router.delete("/{event_id}/join", response_model=ParticipationResponse)
async def delete_join(
    event_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> ParticipationResponse:
    """참여 취소. 두 번 호출해도 오류 없음."""
    try:
        removed = quit_event(db, event_id, user.id)
        db.commit()
    except Exception as exc:
        _rollback_and_reraise(db, exc, "Failed to quit event")

    if removed:
        await publish_event_change(event_id, "participant_left", {"user_id": user.id})
    return ParticipationResponse(message="left", event_id=event_id)


@router.get("/{event_id}/stream")
async def get_event_stream(event_id: int):
    """SSE: 참여/취소/수정/삭제 실시간 스트림."""
    return StreamingResponse(
        stream_event_changes(event_id),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )
