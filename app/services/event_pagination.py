# 거리 기반 키셋 페이지네이션의 순수 로직: 필터 검증, 커서 해석, 다음 커서 계산
# 쿼리 자체는 app.crud.event_crud.get_events 에서 실행

from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from app.errors import ValidationError
from app.schemas.event import EventDetail, GeoPoint
from app.services.cursor_codec import Cursor, decode_cursor, empty_cursor

MAX_PAGE_SIZE = 100
# event_type IN (...) 이 빈 목록이면 아무것도 보여주지 않음 (전체 보기 아님)
NO_MATCH_EVENT_TYPE = "-1"


@dataclass
class EventFilter:
    from_location: GeoPoint
    event_types: List[str] = field(default_factory=list)
    page_size: int = 20
    cursor_id: Optional[str] = None
    prev_cursor_id: Optional[str] = None

    def validate(self) -> None:
        errors = {}
        if self.cursor_id and self.prev_cursor_id:
            errors["cursor"] = "Cannot provide 2 cursor at the same time"
        elif self.prev_cursor_id:
            errors["cursor"] = "Backward paging is not supported"
        if not 0 < self.page_size <= MAX_PAGE_SIZE:
            errors["pageSize"] = f"pageSize must be between 1 and {MAX_PAGE_SIZE}"
        if errors:
            raise ValidationError("; ".join(f"{k}: {v}" for k, v in errors.items()))

    def event_type_values(self) -> List[str]:
        return list(self.event_types) if self.event_types else [NO_MATCH_EVENT_TYPE]

    def resolve_cursor(self) -> Cursor:
        """커서 없으면 첫 페이지. 있으면 정방향(is_next) 커서여야 함."""
        if not self.cursor_id:
            return empty_cursor()
        cursor = decode_cursor(self.cursor_id)
        if not cursor.is_next:
            raise ValidationError(
                f"Unmatched cursor, IsNext expected to be True but is {cursor.is_next}"
            )
        return cursor


def sort_by_distance(events: List[EventDetail]) -> List[EventDetail]:
    # 접기 과정은 순서를 보장하지 않으므로 반환 전 재정렬
    return sorted(events, key=lambda e: e.distance if e.distance is not None else 0.0)


def advance_cursor(previous: Cursor, page: Sequence[EventDetail]) -> Cursor:
    """
    이번 페이지를 반영한 다음 커서.

    - 빈 페이지: 진행 없음 (이전 커서 그대로) → 클라이언트는 이것을 끝으로 판단
    - 가장 먼 거리 == 이전 last_distance: 방문 집합에 이번 페이지 id 추가
    - 그 외: 방문 집합을 새 경계 거리의 id들로 교체
    visited_event_index 의 모든 id는 항상 거리 == last_distance.
    """
    if not page:
        return Cursor(
            last_distance=previous.last_distance,
            visited_event_index=list(previous.visited_event_index),
            is_next=True,
        )

    farthest = max(e.distance for e in page)
    boundary_ids = [e.id for e in page if e.distance == farthest]

    if previous.last_distance is not None and farthest == previous.last_distance:
        visited = list(previous.visited_event_index)
        visited.extend(i for i in boundary_ids if i not in visited)
    else:
        visited = boundary_ids

    return Cursor(last_distance=farthest, visited_event_index=visited, is_next=True)
