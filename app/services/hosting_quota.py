# 호스팅 횟수 제한: 갱신 주기(refreshPeriod, 분) 안에서 maxCount 회까지만 이벤트 생성 가능
# 설정은 JSON 파일 {"maxCount": int, "refreshPeriod": int}

import json
import math
import os
from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path

from app.schemas.event import HostingConfigInfo

HOSTING_CONFIG_PATH = os.getenv("HOSTING_CONFIG_PATH", "data/hosting_config.json")


@dataclass(frozen=True)
class HostingConfigurator:
    max_count: int
    refresh_period_min: int

    @property
    def refresh_period(self) -> timedelta:
        return timedelta(minutes=self.refresh_period_min)


@dataclass(frozen=True)
class HostingState:
    host_count: int
    last_refresh_time: datetime


def load_hosting_configurator(path: str | None = None) -> HostingConfigurator:
    """요청마다 파일을 다시 읽음 → 재배포 없이 설정 변경 반영."""
    data = json.loads(Path(path or HOSTING_CONFIG_PATH).read_text(encoding="utf-8"))
    return HostingConfigurator(max_count=int(data["maxCount"]), refresh_period_min=int(data["refreshPeriod"]))


def next_hosting_state(
    current: HostingState,
    did_just_host: bool,
    configurator: HostingConfigurator,
    now: datetime,
) -> HostingState:
    """
    - 주기 경과: host_count 0(이번 호출이 호스팅이면 1), last_refresh_time = now
    - 주기 내 + 호스팅: host_count + 1 (last_refresh_time 유지)
    - 그 외: 그대로
    """
    if now - current.last_refresh_time >= configurator.refresh_period:
        return HostingState(host_count=1 if did_just_host else 0, last_refresh_time=now)
    if did_just_host:
        return HostingState(host_count=current.host_count + 1, last_refresh_time=current.last_refresh_time)
    return current


def to_hosting_info(state: HostingState, configurator: HostingConfigurator, now: datetime) -> HostingConfigInfo:
    remaining = state.last_refresh_time + configurator.refresh_period - now
    refresh_in_min = max(0, math.floor(remaining.total_seconds() / 60))
    return HostingConfigInfo(
        host_count=state.host_count,
        max_host_count=configurator.max_count,
        refresh_in_min=refresh_in_min,
        status="VALID" if state.host_count < configurator.max_count else "INVALID",
    )
