import pytest
from sqlalchemy.dialects import postgresql

from app.services.geo_distance import distance_from, haversine_m


def test_same_point_is_zero():
    assert haversine_m(103.85, 1.29, 103.85, 1.29) == 0.0


def test_one_degree_of_latitude():
    # 구 반지름 6370986m 기준 위도 1도 ≈ 111.2km
    assert haversine_m(0.0, 0.0, 0.0, 1.0) == pytest.approx(111_194.0, rel=1e-3)


def test_symmetric():
    a = haversine_m(126.978, 37.5665, 129.0756, 35.1796)
    b = haversine_m(129.0756, 35.1796, 126.978, 37.5665)
    assert a == pytest.approx(b)
    assert 320_000 < a < 330_000  # 서울-부산 직선거리


def test_sql_expression_uses_sphere_distance_with_lon_lat_order():
    sql = str(distance_from(103.85, 1.29).compile(dialect=postgresql.dialect()))
    assert "ST_DistanceSphere" in sql
    assert "ST_MakePoint" in sql
    assert "events.long_lat" in sql
