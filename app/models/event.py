# Event 모델: 스포츠 모임 엔티티 (물리 삭제 없음, deleted 플래그로 소프트 삭제)

from enum import Enum as PyEnum

from geoalchemy2 import Geometry
from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.sql import expression, func

from app.models.base import Base


class EventStatus(str, PyEnum):
    """조회 시 계산되는 파생 상태. DB에는 저장하지 않음."""

    AVAILABLE = "AVAILABLE"
    FULL = "FULL"
    CANCEL = "CANCEL"


class Event(Base):
    """이벤트 테이블. 위치는 PostGIS POINT(WGS84), 시작/종료 시각은 타임존 정규화 없이 저장."""

    __tablename__ = "events"

    id = Column(Integer, primary_key=True, index=True)
    event_name = Column(String(100), nullable=False)
    host_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    start_time = Column(DateTime(timezone=False), nullable=False)
    end_time = Column(DateTime(timezone=False), nullable=False)
    destination = Column(String(300), nullable=False)
    long_lat = Column(Geometry(geometry_type="POINT", srid=4326), nullable=False)  # (경도, 위도) 순
    event_type = Column(String(50), nullable=False, index=True)  # 종목 (자유 텍스트)
    max_participant_count = Column(Integer, nullable=False)
    description = Column(Text, nullable=False, default="")
    deleted = Column(Boolean, nullable=False, default=False, server_default=expression.false())
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        CheckConstraint("max_participant_count >= 1", name="ck_events_max_participant_count"),
    )
