import logging
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.errors import EventServiceError
from app.logging_config import setup_logging
from app.models import event, hosting, participation, push_token, user  # noqa: F401 (테이블 메타데이터 등록용)
from app.routers.events import router as events_router
from app.routers.users import router as users_router
from app.services.notification_service import cancel_pending

setup_logging()
logger = logging.getLogger(__name__)


def _run_alembic_upgrade() -> None:
    """앱 기동 시 DB 마이그레이션 자동 적용."""
    from alembic import command
    from alembic.config import Config

    root = Path(__file__).resolve().parent.parent
    cfg = Config(str(root / "alembic.ini"))
    cfg.attributes["configure_logger"] = False
    command.upgrade(cfg, "head")


app = FastAPI(
    title="Sportgether API",
    description="주변 스포츠 모임 탐색/참여 플랫폼 Sportgether의 백엔드 API",
    version="0.1.0",
)


@app.on_event("startup")
def _startup_migrate() -> None:
    try:
        _run_alembic_upgrade()
    except Exception:
        # DB 미기동 등 실패 시에도 앱은 기동 (예: 로컬에서 DB 없이 실행 시)
        logger.warning("Alembic upgrade failed at startup", exc_info=True)


@app.on_event("shutdown")
async def _shutdown_notifications() -> None:
    """진행 중인 푸시 발송 작업 취소 (전달 보장 없음)."""
    await cancel_pending()


@app.exception_handler(EventServiceError)
async def _event_service_error_handler(request: Request, exc: EventServiceError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": {"errorCode": exc.error_code, "message": exc.message}},
    )


# ✅ 라우터 등록은 app 생성 후에!
app.include_router(events_router)
app.include_router(users_router)

# CORS 설정
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # TODO: 운영 시 모바일 앱 웹뷰 도메인으로 제한
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health", tags=["Health"])
async def health_check() -> dict:
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("app.main:app", host="0.0.0.0", port=8000, reload=True)
