# 이벤트 API 요청/응답 스키마 (JSON은 camelCase)

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

EventStatusLiteral = Literal["AVAILABLE", "FULL", "CANCEL"]
HostingStatusLiteral = Literal["VALID", "INVALID"]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class GeoPoint(CamelModel):
    longitude: float = Field(..., ge=-180, le=180)
    latitude: float = Field(..., ge=-90, le=90)


class EventCreate(CamelModel):
    """이벤트 생성 요청. 호스트는 요청 사용자."""

    event_name: str = Field(..., min_length=1, max_length=100)
    start_time: datetime
    end_time: datetime
    destination: str = Field(..., min_length=1, max_length=300)
    long_lat: GeoPoint
    event_type: str = Field(..., min_length=1, max_length=50)
    max_participant_count: int = Field(..., ge=1)
    description: str = ""

    @model_validator(mode="after")
    def _check_times(self) -> "EventCreate":
        if self.end_time <= self.start_time:
            raise ValueError("endTime must be after startTime")
        return self


class EventUpdate(CamelModel):
    """호스트만 수정 가능: 시간과 설명."""

    start_time: datetime
    end_time: datetime
    description: str = ""

    @model_validator(mode="after")
    def _check_times(self) -> "EventUpdate":
        if self.end_time <= self.start_time:
            raise ValueError("endTime must be after startTime")
        return self


class EventParticipantDetail(CamelModel):
    user_id: int
    username: str
    user_preferred_name: str = ""
    profile_icon_url: Optional[str] = None


class EventDetail(CamelModel):
    """이벤트 + 호스트 요약 + 참여자 목록 + 요청자 기준 파생 필드. 저장하지 않고 조회마다 계산."""

    id: int
    event_name: str
    start_time: str
    end_time: str
    destination: str
    distance: Optional[float] = None  # 기준점이 없는 단건 조회는 None
    long_lat: GeoPoint
    event_type: str
    max_participant_count: int
    description: str = ""
    host: EventParticipantDetail
    is_host: bool = False
    is_joined: bool = False
    status: EventStatusLiteral = "AVAILABLE"
    participants: List[EventParticipantDetail] = Field(default_factory=list)


class EventDetailResponse(CamelModel):
    events: List[EventDetail]
    next_cursor_id: str


class UserScheduledEventDetail(CamelModel):
    event_id: int
    event_name: str
    start_time: str
    end_time: str
    destination: str
    event_type: str
    is_deleted: bool
    sport_image_url: str


class UserScheduledEventsResponse(CamelModel):
    user_events: List[UserScheduledEventDetail]


class EventHistoryItem(CamelModel):
    event_name: str
    event_start_time: str
    event_type: str


class HostingConfigInfo(CamelModel):
    host_count: int
    max_host_count: int
    refresh_in_min: int
    status: HostingStatusLiteral


class CountResponse(CamelModel):
    count: int
