# 도메인 예외: 라우터가 HTTP 응답으로 변환 (message, status_code, error_code)


class EventServiceError(Exception):
    """모든 도메인 예외의 기반. error_code는 클라이언트가 분기할 수 있는 고정 숫자."""

    status_code = 500
    error_code = 2000

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(EventServiceError):
    """필터/커서/입력 형식 오류 (4xx)."""

    status_code = 400
    error_code = 2001


class MalformedCursorError(ValidationError):
    """커서 토큰 디코딩 실패 또는 JSON 형태 불일치."""

    error_code = 2002


class StaleInfoError(EventServiceError):
    """정원 경쟁에서 짐. 클라이언트가 이벤트를 새로고침 후 재시도해야 함."""

    status_code = 409
    error_code = 2003


class NotFoundError(EventServiceError):
    status_code = 404
    error_code = 2004


class AlreadyJoinedError(EventServiceError):
    status_code = 409
    error_code = 2005


class ConflictError(EventServiceError):
    # 예약: 아직 사용하는 곳 없음
    status_code = 409
    error_code = 2006


class HostingQuotaExceededError(EventServiceError):
    """호스팅 가능 횟수 초과 (갱신 주기 내)."""

    status_code = 403
    error_code = 2007


class SportConfigNotFoundError(EventServiceError):
    status_code = 500
    error_code = 2008


class TransientStoreError(EventServiceError):
    """DB 연결/타임아웃. 내부 재시도 없음, 클라이언트가 재요청."""

    status_code = 503
    error_code = 2009
