# 사용자별 호스팅 카운터 조회/갱신 (read-modify-write는 행 잠금 하에서)

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.orm import Session

from app.database import store_errors
from app.models.hosting import UserHostingConfig
from app.schemas.event import HostingConfigInfo
from app.services.hosting_quota import (
    HostingConfigurator,
    HostingState,
    load_hosting_configurator,
    next_hosting_state,
    to_hosting_info,
)


def initialise_hosting_config(db: Session, user_id: int) -> None:
    stmt = insert(UserHostingConfig).values(user_id=user_id)
    db.execute(stmt.on_conflict_do_nothing(index_elements=[UserHostingConfig.user_id]))


def get_or_update_hosting_config(
    db: Session,
    user_id: int,
    did_just_host: bool,
    now: Optional[datetime] = None,
    lock: bool = False,
    configurator: Optional[HostingConfigurator] = None,
) -> HostingConfigInfo:
    """
    주기가 지났으면 리셋, did_just_host면 +1, 아니면 현재 값 반환.

    - did_just_host 또는 lock=True: FOR UPDATE로 행 잠금 → 동시 이벤트 생성으로 한도 초과 방지
    - 이벤트 생성과 같은 트랜잭션에서 호출해야 함 (commit은 호출자)
    """
    configurator = configurator or load_hosting_configurator()
    now = now or datetime.now(timezone.utc)

    with store_errors():
        initialise_hosting_config(db, user_id)
        q = db.query(UserHostingConfig).filter(UserHostingConfig.user_id == user_id)
        if lock or did_just_host:
            q = q.with_for_update()
        row = q.one()

        current = HostingState(host_count=row.host_count, last_refresh_time=row.last_refresh_time)
        updated = next_hosting_state(current, did_just_host, configurator, now)
        if updated != current:
            row.host_count = updated.host_count
            row.last_refresh_time = updated.last_refresh_time
            db.flush()

    return to_hosting_info(updated, configurator, now)
