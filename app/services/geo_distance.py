# 구면 거리(미터): 탐색 정렬의 유일한 키
# SQL 쪽은 PostGIS ST_DistanceSphere, 파이썬 쪽 근사는 같은 구 반지름을 사용해 값이 맞도록 함

import math

from sqlalchemy import func
from sqlalchemy.sql.elements import ColumnElement

from app.models.event import Event

SRID = 4326
SPHERE_RADIUS_M = 6370986.0  # ST_DistanceSphere가 쓰는 구 반지름


def haversine_m(lng1: float, lat1: float, lng2: float, lat2: float) -> float:
    """두 (경도, 위도) 사이 대원 거리(미터)."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlam = math.radians(lng2 - lng1)
    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlam / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return SPHERE_RADIUS_M * c


def reference_point(longitude: float, latitude: float) -> ColumnElement:
    """주의: ST_MakePoint(x=경도, y=위도) 순서."""
    return func.ST_SetSRID(func.ST_MakePoint(longitude, latitude), SRID)


def distance_from(longitude: float, latitude: float) -> ColumnElement:
    """기준점 → events.long_lat 구면 거리(m) SQL 식."""
    return func.ST_DistanceSphere(reference_point(longitude, latitude), Event.long_lat)
