# 페이지네이션 커서: 서버에 저장하지 않고 클라이언트가 들고 다니는 불투명 토큰
# JSON 직렬화 → URL-safe base64 (패딩 제거). 필드 추가에 대비해 스키마 버전(v) 포함.

import base64
import binascii
import json
import math
from dataclasses import dataclass, field
from typing import List, Optional

from app.errors import MalformedCursorError

CURSOR_VERSION = 1
# visitedEventIndex 는 DB BIGINT 범위 안이어야 함
ID_MIN = -(2 ** 63)
ID_MAX = 2 ** 63 - 1


@dataclass
class Cursor:
    """
    last_distance: 직전 페이지의 가장 먼 거리(m). 첫 페이지는 None.
    visited_event_index: last_distance와 거리가 정확히 같은, 이미 보여준 이벤트 id (동점 처리용).
    is_next: 방향. 이 설계는 정방향만 지원.
    """

    last_distance: Optional[float] = None
    visited_event_index: List[int] = field(default_factory=list)
    is_next: bool = True


def empty_cursor() -> Cursor:
    return Cursor()


def encode_cursor(cursor: Cursor) -> str:
    payload = {
        "v": CURSOR_VERSION,
        "lastDistance": cursor.last_distance,
        "visitedEventIndex": list(cursor.visited_event_index),
        "isNext": cursor.is_next,
    }
    raw = json.dumps(payload, separators=(",", ":"), allow_nan=False).encode("utf-8")
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def decode_cursor(token: str) -> Cursor:
    """encode_cursor 결과를 복원. 인코딩/JSON 형태가 맞지 않으면 MalformedCursorError."""
    try:
        padded = token + "=" * (-len(token) % 4)
        raw = base64.urlsafe_b64decode(padded.encode("ascii"))
        payload = json.loads(raw.decode("utf-8"))
    except (ValueError, UnicodeError, binascii.Error) as exc:
        raise MalformedCursorError("Malformed cursor") from exc

    if not isinstance(payload, dict):
        raise MalformedCursorError("Malformed cursor")
    if payload.get("v") != CURSOR_VERSION:
        raise MalformedCursorError(f"Unsupported cursor version: {payload.get('v')!r}")

    last_distance = payload.get("lastDistance")
    visited = payload.get("visitedEventIndex", [])
    is_next = payload.get("isNext")

    # bool은 int의 하위 타입이라 따로 걸러야 함
    if last_distance is not None and (
        isinstance(last_distance, bool) or not isinstance(last_distance, (int, float))
    ):
        raise MalformedCursorError("Malformed cursor: lastDistance")
    if last_distance is not None:
        try:
            last_distance = float(last_distance)
        except OverflowError as exc:
            raise MalformedCursorError("Malformed cursor: lastDistance") from exc
        if not math.isfinite(last_distance):
            raise MalformedCursorError("Malformed cursor: lastDistance")
    if not isinstance(visited, list) or any(
        isinstance(v, bool) or not isinstance(v, int) or not ID_MIN <= v <= ID_MAX for v in visited
    ):
        raise MalformedCursorError("Malformed cursor: visitedEventIndex")
    if not isinstance(is_next, bool):
        raise MalformedCursorError("Malformed cursor: isNext")

    return Cursor(
        last_distance=last_distance,
        visited_event_index=visited,
        is_next=is_next,
    )
