# 이벤트 조회/생성/수정 CRUD
# 탐색(get_events): 거리순 키셋 페이지네이션 + 팬아웃 조인 접기

import logging
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

from geoalchemy2 import WKTElement
from shapely.geometry import Point
from sqlalchemy import func, null, select
from sqlalchemy.orm import Session, aliased

from app.crud.hosting_crud import get_or_update_hosting_config
from app.database import store_errors
from app.errors import HostingQuotaExceededError, NotFoundError, ValidationError
from app.models.event import Event
from app.models.participation import EventParticipant
from app.models.user import User, UserProfile
from app.schemas.event import (
    EventCreate,
    EventDetail,
    EventDetailResponse,
    EventHistoryItem,
    EventUpdate,
    UserScheduledEventDetail,
    UserScheduledEventsResponse,
)
from app.services.cursor_codec import Cursor, encode_cursor
from app.services.event_aggregation import fold_event_rows, format_time
from app.services.event_pagination import EventFilter, advance_cursor, sort_by_distance
from app.services.geo_distance import SRID, distance_from
from app.services.sport_catalog import ensure_known_sport, load_sport_images, sport_image_url_or_default

logger = logging.getLogger(__name__)


def _wall_clock(value: datetime) -> datetime:
    """타임존 정규화 없이 입력된 벽시계 시각 그대로 저장."""
    return value.replace(tzinfo=None)


def _detail_query(distance, page=None):
    """
    이벤트 1건 × 참여자 N명 → N행 (참여자 없으면 participant_* NULL 1행).
    호스트 정보는 항상 존재 (INNER JOIN).
    """
    host = aliased(User, name="host")
    host_profile = aliased(UserProfile, name="host_profile")
    participant = aliased(User, name="participant")
    participant_profile = aliased(UserProfile, name="participant_profile")

    stmt = (
        select(
            Event.id,
            Event.event_name,
            Event.host_id,
            host.username.label("host_username"),
            host_profile.preferred_name.label("host_preferred_name"),
            host_profile.profile_icon_url.label("host_profile_icon_url"),
            Event.destination,
            distance.label("distance"),
            Event.start_time,
            Event.end_time,
            func.ST_X(Event.long_lat).label("longitude"),
            func.ST_Y(Event.long_lat).label("latitude"),
            Event.event_type,
            Event.max_participant_count,
            Event.description,
            Event.deleted,
            EventParticipant.participant_id,
            participant.username.label("participant_username"),
            participant_profile.preferred_name.label("participant_preferred_name"),
            participant_profile.profile_icon_url.label("participant_profile_icon_url"),
        )
    )
    if page is None:
        stmt = stmt.select_from(Event)
    else:
        stmt = stmt.select_from(page).join(Event, Event.id == page.c.event_id)
    return (
        stmt.join(host, host.id == Event.host_id)
        .outerjoin(host_profile, host_profile.user_id == host.id)
        .outerjoin(EventParticipant, EventParticipant.event_id == Event.id)
        .outerjoin(participant, participant.id == EventParticipant.participant_id)
        .outerjoin(participant_profile, participant_profile.user_id == participant.id)
    )


def _fetch_page_rows(
    db: Session,
    event_filter: EventFilter,
    cursor: Cursor,
    now: datetime,
) -> List[Mapping[str, Any]]:
    """
    한 번의 쿼리로 다음 페이지 행들을 가져옴.

    - LIMIT은 이벤트 단위로 먼저 적용(서브쿼리) 후 참여자 팬아웃 조인
    - 커서가 있으면 distance >= last_distance AND id NOT IN visited
      (거리는 유일 키가 아니므로 > 를 쓰면 같은 거리의 이벤트를 건너뛰게 됨)
    - 페이지 간 스냅샷 격리 없음: 페이지 사이 생성/삭제는 그대로 반영됨
    """
    loc = event_filter.from_location
    distance = distance_from(loc.longitude, loc.latitude)

    page = select(Event.id.label("event_id"), distance.label("distance")).where(
        Event.start_time > now,
        Event.event_type.in_(event_filter.event_type_values()),
        Event.deleted.is_(False),
    )
    if cursor.last_distance is not None:
        page = page.where(distance >= cursor.last_distance)
        if cursor.visited_event_index:
            page = page.where(Event.id.not_in(cursor.visited_event_index))
    page = page.order_by(distance.asc()).limit(event_filter.page_size).subquery("page")

    stmt = _detail_query(page.c.distance, page).order_by(
        page.c.distance.asc(), EventParticipant.joined_at.asc(), EventParticipant.id.asc()
    )
    return list(db.execute(stmt).mappings().all())


def get_events(
    db: Session,
    event_filter: EventFilter,
    user_id: Optional[int],
    now: Optional[datetime] = None,
) -> EventDetailResponse:
    """
    가까운 순으로 아직 시작 전인 이벤트 한 페이지 + 다음 커서.

    이벤트가 없으면 커서는 진행하지 않음(이전과 동일) → 클라이언트는 이를 끝으로 판단.
    중간 오류 시 페이지 전체 실패 (부분 페이지 반환 없음).
    """
    event_filter.validate()
    cursor = event_filter.resolve_cursor()
    now = now or datetime.now()

    with store_errors():
        rows = _fetch_page_rows(db, event_filter, cursor, now)

    events = sort_by_distance(fold_event_rows(rows, user_id))
    next_cursor = advance_cursor(cursor, events)
    return EventDetailResponse(events=events, next_cursor_id=encode_cursor(next_cursor))


def get_event_by_id(db: Session, event_id: int, user_id: Optional[int]) -> EventDetail:
    """단건 상세. 소프트 삭제된 이벤트도 status=CANCEL 로 반환. 기준점이 없어 distance=None."""
    stmt = (
        _detail_query(null())
        .where(Event.id == event_id)
        .order_by(EventParticipant.joined_at.asc(), EventParticipant.id.asc())
    )
    with store_errors():
        rows = db.execute(stmt).mappings().all()
    details = fold_event_rows(rows, user_id)
    if not details:
        raise NotFoundError("Event not found")
    return details[0]


def create_event(
    db: Session,
    body: EventCreate,
    host_id: int,
    sport_images: Optional[Dict[str, str]] = None,
) -> Event:
    """
    이벤트 생성 + 호스트 자동 참여 + 호스팅 카운트 증가를 한 트랜잭션에서.

    ⚠️ commit/rollback 하지 않음. 셋 중 하나라도 실패하면 호출자가 rollback → 모두 취소.
    """
    images = sport_images if sport_images is not None else load_sport_images()
    ensure_known_sport(body.event_type, images)

    with store_errors():
        quota = get_or_update_hosting_config(db, host_id, did_just_host=False, lock=True)
        if quota.status == "INVALID":
            raise HostingQuotaExceededError(
                f"Hosting limit reached ({quota.host_count}/{quota.max_host_count}). "
                f"Try again in {quota.refresh_in_min} min."
            )

        # ✅ PostGIS POINT 저장 (주의: Point(lng, lat) 순서)
        pt = Point(body.long_lat.longitude, body.long_lat.latitude)
        event = Event(
            event_name=body.event_name,
            host_id=host_id,
            start_time=_wall_clock(body.start_time),
            end_time=_wall_clock(body.end_time),
            destination=body.destination,
            long_lat=WKTElement(pt.wkt, srid=SRID),
            event_type=body.event_type,
            max_participant_count=body.max_participant_count,
            description=body.description,
        )
        db.add(event)
        db.flush()

        db.add(EventParticipant(event_id=event.id, participant_id=host_id))
        get_or_update_hosting_config(db, host_id, did_just_host=True)
        db.flush()

    logger.info("Event %s created by user %s", event.id, host_id)
    return event


def _hosted_event(db: Session, event_id: int, host_id: int) -> Event:
    with store_errors():
        event = (
            db.query(Event)
            .filter(Event.id == event_id, Event.host_id == host_id, Event.deleted.is_(False))
            .first()
        )
    if event is None:
        # 다른 사람의 이벤트인지 여부는 노출하지 않음
        raise NotFoundError("Event not found")
    return event


def update_event(db: Session, event_id: int, host_id: int, body: EventUpdate) -> Event:
    """호스트만 시간/설명 수정 가능."""
    event = _hosted_event(db, event_id, host_id)
    event.start_time = _wall_clock(body.start_time)
    event.end_time = _wall_clock(body.end_time)
    event.description = body.description
    with store_errors():
        db.flush()
    logger.info("Event %s updated by host %s", event_id, host_id)
    return event


def delete_event(db: Session, event_id: int, host_id: int) -> Event:
    """소프트 삭제만. 참여 행은 남지만 더 이상 참여/탐색 대상이 아님."""
    event = _hosted_event(db, event_id, host_id)
    event.deleted = True
    with store_errors():
        db.flush()
    logger.info("Event %s cancelled by host %s", event_id, host_id)
    return event


def get_user_events(
    db: Session,
    user_id: int,
    now: Optional[datetime] = None,
    sport_images: Optional[Dict[str, str]] = None,
) -> UserScheduledEventsResponse:
    """참여 중이고 아직 끝나지 않은 이벤트 (취소된 것 포함, is_deleted로 표시). 시작 시각 순."""
    now = now or datetime.now()
    images = sport_images if sport_images is not None else load_sport_images()
    with store_errors():
        rows = (
            db.query(Event)
            .join(EventParticipant, EventParticipant.event_id == Event.id)
            .filter(Event.end_time > now, EventParticipant.participant_id == user_id)
            .order_by(Event.start_time.asc())
            .all()
        )
    return UserScheduledEventsResponse(
        user_events=[
            UserScheduledEventDetail(
                event_id=e.id,
                event_name=e.event_name,
                start_time=format_time(e.start_time),
                end_time=format_time(e.end_time),
                destination=e.destination,
                event_type=e.event_type,
                is_deleted=e.deleted,
                sport_image_url=sport_image_url_or_default(e.event_type, images),
            )
            for e in rows
        ]
    )


def get_event_history(
    db: Session,
    user_id: int,
    page_number: int,
    page_size: int,
    now: Optional[datetime] = None,
) -> List[EventHistoryItem]:
    """이미 끝난 참여 이벤트, 최신순. 과거 기록은 변하지 않으므로 OFFSET 페이지로 충분."""
    if page_number < 1 or page_size < 1:
        raise ValidationError("pageNumber and pageSize must be positive")
    now = now or datetime.now()
    with store_errors():
        rows = (
            db.query(Event.event_name, Event.event_type, Event.start_time)
            .join(EventParticipant, EventParticipant.event_id == Event.id)
            .filter(
                Event.end_time < now,
                EventParticipant.participant_id == user_id,
                Event.deleted.is_(False),
            )
            .order_by(Event.start_time.desc())
            .limit(page_size)
            .offset((page_number - 1) * page_size)
            .all()
        )
    return [
        EventHistoryItem(event_name=name, event_type=event_type, event_start_time=format_time(start))
        for name, event_type, start in rows
    ]


def get_joined_event_count(db: Session, user_id: int, now: Optional[datetime] = None) -> int:
    """끝까지 진행된(취소 안 된) 참여 이벤트 수."""
    now = now or datetime.now()
    with store_errors():
        return (
            db.query(func.count(EventParticipant.id))
            .join(Event, Event.id == EventParticipant.event_id)
            .filter(
                EventParticipant.participant_id == user_id,
                Event.end_time < now,
                Event.deleted.is_(False),
            )
            .scalar()
        )


def get_mutual_joined_event_count(db: Session, user_id: int, other_user_id: int) -> int:
    mine = aliased(EventParticipant)
    theirs = aliased(EventParticipant)
    with store_errors():
        return (
            db.query(func.count(mine.id))
            .join(theirs, theirs.event_id == mine.event_id)
            .join(Event, Event.id == mine.event_id)
            .filter(
                mine.participant_id == user_id,
                theirs.participant_id == other_user_id,
                Event.deleted.is_(False),
            )
            .scalar()
        )
