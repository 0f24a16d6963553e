# 참여/취소, 푸시 토큰 등록 스키마

from pydantic import Field

from app.schemas.event import CamelModel


class ParticipationResponse(CamelModel):
    message: str
    event_id: int


class PushTokenBody(CamelModel):
    token: str = Field(..., min_length=1, max_length=512)
