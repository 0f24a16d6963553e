# 종목 → 대표 이미지 URL 매핑 (원격 설정 JSON 파일)

import json
import logging
import os
from pathlib import Path
from typing import Dict

from app.errors import SportConfigNotFoundError, ValidationError

logger = logging.getLogger(__name__)

SPORTS_CONFIG_PATH = os.getenv("SPORTS_CONFIG_PATH", "data/available_sports_detail.json")
# 카탈로그에서 빠진 종목(설정 변경 전 생성된 이벤트 등)에 쓰는 이미지
DEFAULT_SPORT_IMAGE_URL = os.getenv("DEFAULT_SPORT_IMAGE_URL", "")


def load_sport_images(path: str | None = None) -> Dict[str, str]:
    data = json.loads(Path(path or SPORTS_CONFIG_PATH).read_text(encoding="utf-8"))
    return {item["sport"]: item["imageUrl"] for item in data.get("sports", [])}


def sport_image_url(sport: str, images: Dict[str, str]) -> str:
    try:
        return images[sport]
    except KeyError:
        raise SportConfigNotFoundError(f"Sport config not found: {sport}")


def sport_image_url_or_default(sport: str, images: Dict[str, str]) -> str:
    """목록 조회용: 한 이벤트의 종목 설정 누락이 전체 목록 실패로 번지지 않도록."""
    try:
        return sport_image_url(sport, images)
    except SportConfigNotFoundError:
        logger.warning("No image configured for sport %r, using default", sport)
        return DEFAULT_SPORT_IMAGE_URL


def ensure_known_sport(sport: str, images: Dict[str, str]) -> None:
    """이벤트 생성 시 카탈로그에 있는 종목만 허용."""
    if sport not in images:
        raise ValidationError(f"Unsupported eventType: {sport}")
