# 푸시 토큰 등록/조회

from typing import List

from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.orm import Session
from sqlalchemy.sql import func

from app.database import store_errors
from app.models.participation import EventParticipant
from app.models.push_token import PushToken


def register_push_token(db: Session, user_id: int, token: str) -> None:
    """사용자당 1개: 있으면 덮어씀 (commit은 호출자)."""
    stmt = insert(PushToken).values(user_id=user_id, token=token)
    stmt = stmt.on_conflict_do_update(
        index_elements=[PushToken.user_id],
        set_={"token": stmt.excluded.token, "updated_at": func.now()},
    )
    with store_errors():
        db.execute(stmt)


def get_participant_tokens(db: Session, event_id: int) -> List[str]:
    """이벤트 현재 참여자들의 푸시 토큰."""
    rows = (
        db.query(PushToken.token)
        .join(EventParticipant, EventParticipant.participant_id == PushToken.user_id)
        .filter(EventParticipant.event_id == event_id)
        .all()
    )
    return [token for (token,) in rows]
