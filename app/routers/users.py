# 사용자 기준 이벤트 조회, 호스팅 한도, 푸시 토큰 등록 API
import logging
from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.crud.event_crud import (
    get_event_history,
    get_joined_event_count,
    get_mutual_joined_event_count,
    get_user_events,
)
from app.crud.hosting_crud import get_or_update_hosting_config
from app.crud.push_token_crud import register_push_token
from app.database import get_db
from app.dependencies import get_current_user
from app.errors import EventServiceError
from app.models.user import User
from app.schemas.event import CountResponse, EventHistoryItem, HostingConfigInfo, UserScheduledEventsResponse
from app.schemas.participation import PushTokenBody

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("/me/events", response_model=UserScheduledEventsResponse)
def get_my_events(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """참여 중인 예정 이벤트 (취소된 이벤트는 isDeleted=true)."""
    return get_user_events(db, user.id)


@router.get("/me/history", response_model=List[EventHistoryItem])
def get_my_history(
    page_number: int = Query(1, alias="pageNumber"),
    page_size: int = Query(20, alias="pageSize", le=100),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return get_event_history(db, user.id, page_number, page_size)


@router.get("/me/joined-count", response_model=CountResponse)
def get_my_joined_count(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return CountResponse(count=get_joined_event_count(db, user.id))


@router.get("/{other_user_id}/mutual-count", response_model=CountResponse)
def get_mutual_count(
    other_user_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """나와 상대가 함께 참여한 (취소 안 된) 이벤트 수."""
    return CountResponse(count=get_mutual_joined_event_count(db, user.id, other_user_id))


@router.get("/me/hosting-config", response_model=HostingConfigInfo)
def get_my_hosting_config(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """현재 호스팅 가능 여부. 갱신 주기가 지났으면 이 조회에서 카운터가 리셋됨."""
    try:
        info = get_or_update_hosting_config(db, user.id, did_just_host=False)
        db.commit()
        return info
    except EventServiceError:
        db.rollback()
        raise
    except Exception as exc:
        db.rollback()
        logger.exception("Failed to load hosting config for user %s", user.id)
        raise EventServiceError("Failed to load hosting config") from exc


@router.put("/me/push-token", status_code=204)
def put_push_token(
    body: PushTokenBody,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> None:
    try:
        register_push_token(db, user.id, body.token)
        db.commit()
    except EventServiceError:
        db.rollback()
        raise
    except Exception as exc:
        db.rollback()
        logger.exception("Failed to register push token for user %s", user.id)
        raise EventServiceError("Failed to register push token") from exc
