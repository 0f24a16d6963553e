# User / UserProfile 모델 (가입·인증은 외부 서비스 담당, 여기서는 조회만)

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.sql import func

from app.models.base import Base


class User(Base):
    """사용자 테이블."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(100), nullable=False, unique=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class UserProfile(Base):
    """프로필 요약: 이벤트 상세의 host/participants 표시용."""

    __tablename__ = "user_profiles"

    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    preferred_name = Column(String(100), nullable=False, default="")
    profile_icon_url = Column(String(500), nullable=True)
