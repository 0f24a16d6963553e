# 요청 사용자 식별: 토큰 검증은 앞단(게이트웨이)이 하고 검증된 사용자 id를 X-User-Id로 전달

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from app.crud.user_crud import get_user_by_id
from app.database import get_db
from app.models.user import User


def get_current_user(
    x_user_id: int | None = Header(default=None),
    db: Session = Depends(get_db),
) -> User:
    if x_user_id is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")
    user = get_user_by_id(db, x_user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unknown user")
    return user
