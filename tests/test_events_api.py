from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from app.database import get_db
from app.dependencies import get_current_user
from app.errors import AlreadyJoinedError, StaleInfoError
from app.main import app
from app.routers import events as events_router
from app.routers import users as users_router
from app.schemas.event import HostingConfigInfo

from conftest import make_row

USER = SimpleNamespace(id=1, username="user1")


@pytest.fixture
def db():
    return MagicMock()


@pytest.fixture
def client(db):
    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[get_current_user] = lambda: USER
    # startup(마이그레이션) 실행하지 않도록 컨텍스트 매니저 없이 사용
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def published(monkeypatch):
    calls = []

    async def fake_publish(event_id, change_type, extra=None):
        calls.append((event_id, change_type))

    monkeypatch.setattr(events_router, "publish_event_change", fake_publish)
    return calls


@pytest.fixture
def notified(monkeypatch):
    calls = []
    monkeypatch.setattr(events_router, "notify_event_joined", lambda event_id, name: calls.append(("joined", event_id, name)))
    monkeypatch.setattr(
        events_router, "notify_event_cancelled", lambda event_id, name: calls.append(("cancelled", event_id, name))
    )
    monkeypatch.setattr(events_router, "get_preferred_name", lambda db, user_id: "User 1")
    return calls


def test_join_success(client, db, published, notified, monkeypatch):
    monkeypatch.setattr(events_router, "join_event", lambda db, event_id, user_id: None)

    res = client.post("/events/5/join")

    assert res.status_code == 200
    assert res.json() == {"message": "joined", "eventId": 5}
    db.commit.assert_called_once()
    assert notified == [("joined", 5, "User 1")]
    assert published == [(5, "participant_joined")]


def test_join_lost_capacity_race_is_409_stale(client, db, published, notified, monkeypatch):
    def full(db, event_id, user_id):
        raise StaleInfoError("Event is full. Please refresh and try again")

    monkeypatch.setattr(events_router, "join_event", full)

    res = client.post("/events/5/join")

    assert res.status_code == 409
    assert res.json()["error"]["errorCode"] == 2003
    db.rollback.assert_called_once()
    db.commit.assert_not_called()
    assert notified == []
    assert published == []


def test_join_twice_is_409_already_joined(client, db, published, notified, monkeypatch):
    def again(db, event_id, user_id):
        raise AlreadyJoinedError("Already joined this event")

    monkeypatch.setattr(events_router, "join_event", again)
    res = client.post("/events/5/join")
    assert res.status_code == 409
    assert res.json()["error"]["errorCode"] == 2005


def test_unexpected_failure_is_opaque_500(client, db, published, notified, monkeypatch):
    def broken(db, event_id, user_id):
        raise RuntimeError("driver exploded")

    monkeypatch.setattr(events_router, "join_event", broken)
    res = client.post("/events/5/join")
    assert res.status_code == 500
    assert res.json() == {"error": {"errorCode": 2000, "message": "Failed to join event"}}
    db.rollback.assert_called_once()


def test_quit_twice_is_ok_and_publishes_once(client, db, published, monkeypatch):
    results = iter([True, False])
    monkeypatch.setattr(events_router, "quit_event", lambda db, event_id, user_id: next(results))

    first = client.delete("/events/5/join")
    second = client.delete("/events/5/join")

    assert first.status_code == second.status_code == 200
    assert second.json() == {"message": "left", "eventId": 5}
    assert published == [(5, "participant_left")]


def test_list_events_malformed_cursor(client):
    res = client.get("/events", params={"longitude": 103.8, "latitude": 1.3, "cursorId": "%%%"})
    assert res.status_code == 400
    assert res.json()["error"]["errorCode"] == 2002


def test_list_events_rejects_backward_paging(client):
    res = client.get("/events", params={"longitude": 103.8, "latitude": 1.3, "prevCursorId": "abc"})
    assert res.status_code == 400
    assert res.json()["error"]["errorCode"] == 2001


def test_list_events_page_shape(client, monkeypatch):
    from app.crud import event_crud

    rows = [make_row(1, distance=12.5, participant_id=1), make_row(1, distance=12.5, participant_id=2)]
    monkeypatch.setattr(event_crud, "_fetch_page_rows", lambda *a: rows)

    res = client.get(
        "/events",
        params=[("longitude", 103.8), ("latitude", 1.3), ("eventTypes", "Badminton"), ("pageSize", 5)],
    )

    assert res.status_code == 200
    body = res.json()
    assert body["nextCursorId"]
    (event,) = body["events"]
    assert event["distance"] == 12.5
    assert event["isHost"] is True
    assert event["isJoined"] is True
    assert [p["userId"] for p in event["participants"]] == [1, 2]


def test_list_events_rejects_out_of_range_location(client):
    res = client.get("/events", params={"longitude": 181, "latitude": 1.3})
    assert res.status_code == 422


def test_missing_user_header_is_401(db):
    app.dependency_overrides[get_db] = lambda: db
    try:
        res = TestClient(app).post("/events/5/join")
    finally:
        app.dependency_overrides.clear()
    assert res.status_code == 401


def test_delete_event_notifies_participants(client, db, published, notified, monkeypatch):
    monkeypatch.setattr(
        events_router, "delete_event", lambda db, event_id, host_id: SimpleNamespace(event_name="Sunday Hoops")
    )
    monkeypatch.setattr(
        events_router,
        "get_event_by_id",
        lambda db, event_id, user_id: events_router.EventDetail.model_validate(
            {
                "id": event_id,
                "eventName": "Sunday Hoops",
                "startTime": "2026-06-01T09:00:00",
                "endTime": "2026-06-01T11:00:00",
                "destination": "Riverside Court",
                "longLat": {"longitude": 103.85, "latitude": 1.29},
                "eventType": "Basketball",
                "maxParticipantCount": 4,
                "host": {"userId": 1, "username": "user1"},
                "isHost": True,
                "status": "CANCEL",
            }
        ),
    )

    res = client.delete("/events/5")

    assert res.status_code == 200
    assert res.json()["status"] == "CANCEL"
    assert notified == [("cancelled", 5, "Sunday Hoops")]
    assert published == [(5, "event_cancelled")]


def test_hosting_config_endpoint_commits(client, db, monkeypatch):
    info = HostingConfigInfo(host_count=1, max_host_count=3, refresh_in_min=30, status="VALID")
    monkeypatch.setattr(users_router, "get_or_update_hosting_config", lambda db, user_id, did_just_host: info)

    res = client.get("/users/me/hosting-config")

    assert res.status_code == 200
    assert res.json() == {"hostCount": 1, "maxHostCount": 3, "refreshInMin": 30, "status": "VALID"}
    db.commit.assert_called_once()


def test_counts_endpoints(client, monkeypatch):
    monkeypatch.setattr(users_router, "get_joined_event_count", lambda db, user_id: 4)
    monkeypatch.setattr(users_router, "get_mutual_joined_event_count", lambda db, user_id, other: 2)

    assert client.get("/users/me/joined-count").json() == {"count": 4}
    assert client.get("/users/9/mutual-count").json() == {"count": 2}


def test_history_rejects_oversized_page(client):
    res = client.get("/users/me/history", params={"pageSize": 101})
    assert res.status_code == 422


def test_register_push_token(client, db, monkeypatch):
    saved = []
    monkeypatch.setattr(users_router, "register_push_token", lambda db, user_id, token: saved.append((user_id, token)))

    res = client.put("/users/me/push-token", json={"token": "device-token"})

    assert res.status_code == 204
    assert saved == [(1, "device-token")]
    db.commit.assert_called_once()
