# EventParticipant 모델: 이벤트 참여 (user-event 1:1)

from sqlalchemy import Column, DateTime, ForeignKey, Integer, UniqueConstraint
from sqlalchemy.sql import func

from app.models.base import Base


class EventParticipant(Base):
    """참여 테이블. 호스트도 생성 시점에 첫 참여자로 들어감."""

    __tablename__ = "event_participants"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    participant_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    joined_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        UniqueConstraint("event_id", "participant_id", name="uq_event_participant"),
    )
