# 사용자별 호스팅 횟수 카운터 (갱신 주기마다 0으로 리셋)

from sqlalchemy import Column, DateTime, ForeignKey, Integer
from sqlalchemy.sql import func

from app.models.base import Base


class UserHostingConfig(Base):
    __tablename__ = "user_hosting_configs"

    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    host_count = Column(Integer, nullable=False, default=0, server_default="0")
    last_refresh_time = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
