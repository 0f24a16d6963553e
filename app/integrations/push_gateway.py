# 푸시 발송 게이트웨이 연동 (FCM 호환 HTTP 멀티캐스트: registration_ids + data)

import os
from dataclasses import dataclass
from typing import Dict, List, Optional

import httpx

PUSH_GATEWAY_URL = os.getenv("PUSH_GATEWAY_URL", "https://fcm.googleapis.com/fcm/send")
PUSH_SERVER_KEY = os.getenv("PUSH_SERVER_KEY", "")
PUSH_TIMEOUT_SEC = float(os.getenv("PUSH_TIMEOUT_SEC", "10"))
# 멀티캐스트 한 번에 보낼 수 있는 최대 토큰 수
MAX_TOKENS_PER_REQUEST = 500


class PushGatewayError(RuntimeError):
    pass


@dataclass
class PushResult:
    success_count: int = 0
    failure_count: int = 0


def _chunks(tokens: List[str], size: int) -> List[List[str]]:
    return [tokens[i:i + size] for i in range(0, len(tokens), size)]


async def send_multicast(
    tokens: List[str],
    data: Dict[str, str],
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> PushResult:
    """
    토큰 목록에 data 메시지 발송. 500개 단위로 나눠 요청.
    HTTP 오류는 PushGatewayError (호출자가 로깅 후 무시).
    """
    if not PUSH_SERVER_KEY:
        raise PushGatewayError("PUSH_SERVER_KEY가 설정되지 않았습니다.")
    result = PushResult()
    if not tokens:
        return result

    headers = {"Authorization": f"key={PUSH_SERVER_KEY}"}
    async with httpx.AsyncClient(timeout=PUSH_TIMEOUT_SEC, transport=transport) as client:
        for batch in _chunks(tokens, MAX_TOKENS_PER_REQUEST):
            resp = await client.post(
                PUSH_GATEWAY_URL,
                json={"registration_ids": batch, "data": data},
                headers=headers,
            )
            if resp.status_code != 200:
                raise PushGatewayError(f"Push gateway error: HTTP {resp.status_code}")
            body = resp.json()
            result.success_count += int(body.get("success") or 0)
            result.failure_count += int(body.get("failure") or 0)
    return result
