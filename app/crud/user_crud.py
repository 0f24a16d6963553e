# 사용자 조회 (인증/가입은 외부 담당)

from typing import Optional

from sqlalchemy.orm import Session

from app.database import store_errors
from app.models.user import User, UserProfile


def get_user_by_id(db: Session, user_id: int) -> Optional[User]:
    with store_errors():
        return db.query(User).filter(User.id == user_id).first()


def get_user_by_username(db: Session, username: str) -> Optional[User]:
    return db.query(User).filter(User.username == username).first()


def get_preferred_name(db: Session, user_id: int) -> str:
    """알림 문구용 표시 이름. 프로필이 없으면 username."""
    row = (
        db.query(User.username, UserProfile.preferred_name)
        .outerjoin(UserProfile, UserProfile.user_id == User.id)
        .filter(User.id == user_id)
        .first()
    )
    if row is None:
        return ""
    username, preferred_name = row
    return preferred_name or username
