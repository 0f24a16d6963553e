# 참여/취소 CRUD (조건부 INSERT 한 문장으로 정원 초과 방지)
import logging

from sqlalchemy import Integer, func, insert, literal, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.database import store_errors
from app.errors import AlreadyJoinedError, NotFoundError, StaleInfoError
from app.models.event import Event
from app.models.participation import EventParticipant

logger = logging.getLogger(__name__)


def _guarded_insert(event_id: int, user_id: int):
    """
    INSERT INTO event_participants (event_id, participant_id)
    SELECT e.id, :user_id FROM events e
    WHERE e.id = :event_id AND NOT e.deleted
      AND (SELECT count(*) FROM event_participants WHERE event_id = e.id) < e.max_participant_count

    정원 비교는 DB가 같은 문장 안에서 수행. 영향받은 행 수(0 또는 1)가 유일한 성공 신호.
    """
    participant_count = (
        select(func.count(EventParticipant.id))
        .where(EventParticipant.event_id == Event.id)
        .scalar_subquery()
    )
    guarded = select(Event.id, literal(user_id, Integer)).where(
        Event.id == event_id,
        Event.deleted.is_(False),
        participant_count < Event.max_participant_count,
    )
    return insert(EventParticipant).from_select(["event_id", "participant_id"], guarded)


def join_event(db: Session, event_id: int, user_id: int) -> None:
    """
    이벤트 참여.

    - 이벤트 행을 FOR UPDATE로 잠가 동시 참여 요청을 한 줄로 세움 →
      각 조건부 INSERT는 앞선 참여가 commit된 뒤의 참여자 수로 평가됨
    - 조건부 INSERT가 0행이면 StaleInfoError (정원 경쟁에서 짐, 클라이언트 재조회 필요)
    - 참여 후 다시 세어 보고 초과 시 되돌리는 방식은 쓰지 않음
      (그 사이 다른 조회가 정원 초과 상태를 볼 수 있음)

    ⚠️ 이 함수는 commit/rollback 하지 않음. 호출자(라우터)가 트랜잭션을 제어.
    """
    with store_errors():
        event = db.query(Event).filter(Event.id == event_id).with_for_update().first()
        if event is None or event.deleted:
            raise NotFoundError("Event not found")

        existing = (
            db.query(EventParticipant.id)
            .filter(
                EventParticipant.event_id == event_id,
                EventParticipant.participant_id == user_id,
            )
            .first()
        )
        if existing is not None:
            raise AlreadyJoinedError("Already joined this event")

        try:
            result = db.execute(_guarded_insert(event_id, user_id))
        except IntegrityError:
            # 같은 사용자의 동시 요청: UniqueConstraint 위반
            # rollback은 호출자(라우터)에서 수행
            raise AlreadyJoinedError("Already joined this event")

    if result.rowcount == 0:
        logger.info("Join rejected (stale capacity) event=%s user=%s", event_id, user_id)
        raise StaleInfoError("Event is full. Please refresh and try again")

    logger.info("User %s joined event %s", user_id, event_id)


def quit_event(db: Session, event_id: int, user_id: int) -> bool:
    """
    참여 취소. 멱등: 참여 기록이 없어도 오류 없음.
    반환: 실제로 삭제된 행이 있었는지 (실시간 알림 여부 판단용)
    """
    with store_errors():
        deleted = (
            db.query(EventParticipant)
            .filter(
                EventParticipant.event_id == event_id,
                EventParticipant.participant_id == user_id,
            )
            .delete(synchronize_session=False)
        )
    if deleted:
        logger.info("User %s quit event %s", user_id, event_id)
    return bool(deleted)
