# (이벤트 × 참여자) 팬아웃 조인 결과 → 이벤트당 EventDetail 1개로 접기

from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional

from app.models.event import EventStatus
from app.schemas.event import EventDetail, EventParticipantDetail, GeoPoint


def format_time(value: Any) -> str:
    """시작/종료 시각은 정규화 없이 그대로 문자열화."""
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def event_status(detail: EventDetail, deleted: bool = False) -> str:
    if deleted:
        return EventStatus.CANCEL.value
    if len(detail.participants) >= detail.max_participant_count:
        return EventStatus.FULL.value
    return EventStatus.AVAILABLE.value


def _new_detail(row: Mapping[str, Any], user_id: int) -> EventDetail:
    host = EventParticipantDetail(
        user_id=row["host_id"],
        username=row["host_username"],
        user_preferred_name=row.get("host_preferred_name") or "",
        profile_icon_url=row.get("host_profile_icon_url"),
    )
    detail = EventDetail(
        id=row["id"],
        event_name=row["event_name"],
        start_time=format_time(row["start_time"]),
        end_time=format_time(row["end_time"]),
        destination=row["destination"],
        distance=row.get("distance"),
        long_lat=GeoPoint(longitude=row["longitude"], latitude=row["latitude"]),
        event_type=row["event_type"],
        max_participant_count=row["max_participant_count"],
        description=row.get("description") or "",
        host=host,
        is_host=row["host_id"] == user_id,
        participants=[],
    )
    detail.status = event_status(detail, bool(row.get("deleted")))
    return detail


def fold_event_rows(rows: Iterable[Mapping[str, Any]], user_id: Optional[int]) -> List[EventDetail]:
    """
    행 스트림(이벤트당 참여자 수만큼 반복, 참여자 없는 이벤트는 participant_* 가 NULL)을
    이벤트 id 기준으로 접음.

    - 처음 보는 id: 호스트 정보 / is_host / 빈 참여자 목록으로 초기화
    - participant_id 가 있는 행: 참여자 추가(중복 id 무시) 후 상태 재계산
    - participant_id == user_id: is_joined = True
    반환 순서는 id가 처음 등장한 순서. 거리순 정렬은 호출자 책임.
    """
    details: Dict[int, EventDetail] = {}
    seen: Dict[int, set] = {}
    deleted_ids: set = set()

    for row in rows:
        event_id = row["id"]
        detail = details.get(event_id)
        if detail is None:
            detail = _new_detail(row, user_id)
            details[event_id] = detail
            seen[event_id] = set()
            if row.get("deleted"):
                deleted_ids.add(event_id)

        participant_id = row.get("participant_id")
        if participant_id is None or participant_id in seen[event_id]:
            continue

        seen[event_id].add(participant_id)
        detail.participants.append(
            EventParticipantDetail(
                user_id=participant_id,
                username=row.get("participant_username") or "",
                user_preferred_name=row.get("participant_preferred_name") or "",
                profile_icon_url=row.get("participant_profile_icon_url"),
            )
        )
        detail.status = event_status(detail, event_id in deleted_ids)
        if participant_id == user_id:
            detail.is_joined = True

    return list(details.values())
