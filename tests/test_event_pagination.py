from datetime import datetime
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from app.crud import event_crud
from app.errors import MalformedCursorError, TransientStoreError, ValidationError
from app.schemas.event import GeoPoint
from app.services.cursor_codec import Cursor, decode_cursor, encode_cursor
from app.services.event_aggregation import fold_event_rows
from app.services.event_pagination import NO_MATCH_EVENT_TYPE, EventFilter, advance_cursor

from conftest import make_row

NOW = datetime(2026, 5, 1, 12, 0)
HERE = GeoPoint(longitude=103.85, latitude=1.29)


def _filter(**kwargs) -> EventFilter:
    kwargs.setdefault("event_types", ["Badminton"])
    kwargs.setdefault("page_size", 3)
    return EventFilter(from_location=HERE, **kwargs)


class FakeEventStore:
    """
    _fetch_page_rows 대역: DB가 하는 일(후보 필터, distance >= last AND id NOT IN visited,
    거리순 LIMIT, 참여자 팬아웃)을 메모리에서 재현.
    동점 정렬은 저장 순서에 의존하지 않도록 일부러 섞어서 반환.
    """

    def __init__(self, events):
        self.events = events  # dict(id, distance, event_type, deleted, started, participants)
        self.calls = 0

    def __call__(self, db, event_filter, cursor, now):
        self.calls += 1
        types = event_filter.event_type_values()
        candidates = [
            e for e in self.events
            if e["event_type"] in types and not e["deleted"] and not e["started"]
        ]
        if cursor.last_distance is not None:
            candidates = [
                e for e in candidates
                if e["distance"] >= cursor.last_distance and e["id"] not in cursor.visited_event_index
            ]
        # 거리 동점은 순서 불안정 → id 역순으로 흔들어 둠
        candidates.sort(key=lambda e: -e["id"])
        candidates.sort(key=lambda e: e["distance"])
        page = candidates[: event_filter.page_size]

        rows = []
        for e in page:
            participants = e.get("participants") or [None]
            for pid in participants:
                rows.append(make_row(e["id"], distance=e["distance"], participant_id=pid))
        # 팬아웃 행 순서도 보장되지 않음
        rows.reverse()
        return rows


def _event(event_id, distance, event_type="Badminton", deleted=False, started=False, participants=(1,)):
    return {
        "id": event_id,
        "distance": distance,
        "event_type": event_type,
        "deleted": deleted,
        "started": started,
        "participants": list(participants),
    }


def _walk(store, monkeypatch, page_size=3, event_types=("Badminton",), max_pages=50):
    monkeypatch.setattr(event_crud, "_fetch_page_rows", store)
    seen, pages, cursor_id = [], [], None
    for _ in range(max_pages):
        res = event_crud.get_events(
            MagicMock(), _filter(page_size=page_size, event_types=list(event_types), cursor_id=cursor_id), 1, NOW
        )
        pages.append(res)
        if not res.events:
            assert res.next_cursor_id == cursor_id or cursor_id is None
            break
        seen.extend(res.events)
        cursor_id = res.next_cursor_id
    return seen, pages


def test_exhaustive_exactly_once_with_heavy_ties(monkeypatch):
    distances = [5.0, 10.0, 10.0, 10.0, 10.0, 10.0, 10.0, 10.0, 20.0, 20.0, 30.0]
    store = FakeEventStore([_event(i + 1, d) for i, d in enumerate(distances)])

    seen, _ = _walk(store, monkeypatch, page_size=3)

    ids = [e.id for e in seen]
    assert sorted(ids) == list(range(1, len(distances) + 1))
    assert len(ids) == len(set(ids))
    assert [e.distance for e in seen] == sorted(e.distance for e in seen)


@pytest.mark.parametrize("page_size", [1, 2, 4, 7])
def test_exhaustive_for_various_page_sizes(monkeypatch, page_size):
    distances = [3.0, 3.0, 3.0, 8.0, 8.0, 9.5, 9.5, 9.5, 9.5, 12.0]
    store = FakeEventStore([_event(i + 1, d) for i, d in enumerate(distances)])

    seen, pages = _walk(store, monkeypatch, page_size=page_size)

    assert sorted(e.id for e in seen) == list(range(1, 11))
    for res in pages:
        assert len(res.events) <= page_size
        ds = [e.distance for e in res.events]
        assert ds == sorted(ds)


def test_excluded_events_never_shown(monkeypatch):
    store = FakeEventStore(
        [
            _event(1, 1.0),
            _event(2, 2.0, deleted=True),
            _event(3, 3.0, started=True),
            _event(4, 4.0, event_type="Tennis"),
            _event(5, 5.0),
        ]
    )
    seen, _ = _walk(store, monkeypatch, page_size=2)
    assert [e.id for e in seen] == [1, 5]


def test_empty_event_type_filter_shows_nothing(monkeypatch):
    store = FakeEventStore([_event(1, 1.0, event_type=NO_MATCH_EVENT_TYPE + "x")])
    monkeypatch.setattr(event_crud, "_fetch_page_rows", store)
    res = event_crud.get_events(MagicMock(), _filter(event_types=[]), 1, NOW)
    assert res.events == []
    assert _filter(event_types=[]).event_type_values() == [NO_MATCH_EVENT_TYPE]


def test_empty_page_does_not_advance_cursor(monkeypatch):
    monkeypatch.setattr(event_crud, "_fetch_page_rows", lambda *a: [])
    token = encode_cursor(Cursor(last_distance=42.0, visited_event_index=[3, 4]))
    res = event_crud.get_events(MagicMock(), _filter(cursor_id=token), 1, NOW)
    assert res.events == []
    assert decode_cursor(res.next_cursor_id) == decode_cursor(token)


def test_page_events_are_resorted_by_distance(monkeypatch):
    rows = [
        make_row(2, distance=30.0, participant_id=1),
        make_row(1, distance=10.0, participant_id=1),
        make_row(3, distance=20.0, participant_id=1),
    ]
    monkeypatch.setattr(event_crud, "_fetch_page_rows", lambda *a: rows)
    res = event_crud.get_events(MagicMock(), _filter(), 1, NOW)
    assert [e.id for e in res.events] == [1, 3, 2]


def test_store_outage_aborts_page(monkeypatch):
    def boom(*a):
        raise OperationalError("SELECT 1", {}, Exception("connection refused"))

    monkeypatch.setattr(event_crud, "_fetch_page_rows", boom)
    with pytest.raises(TransientStoreError):
        event_crud.get_events(MagicMock(), _filter(), 1, NOW)


class TestAdvanceCursor:
    def _page(self, *pairs):
        return fold_event_rows([make_row(i, distance=d) for i, d in pairs], user_id=None)

    def test_first_page_records_boundary_ties(self):
        nxt = advance_cursor(Cursor(), self._page((1, 5.0), (2, 9.0), (3, 9.0)))
        assert nxt.last_distance == 9.0
        assert nxt.visited_event_index == [2, 3]
        assert nxt.is_next is True

    def test_same_farthest_distance_extends_visited(self):
        prev = Cursor(last_distance=9.0, visited_event_index=[2, 3])
        nxt = advance_cursor(prev, self._page((4, 9.0), (5, 9.0)))
        assert nxt.visited_event_index == [2, 3, 4, 5]

    def test_new_farthest_distance_resets_visited(self):
        prev = Cursor(last_distance=9.0, visited_event_index=[2, 3])
        nxt = advance_cursor(prev, self._page((4, 9.0), (6, 11.0)))
        assert nxt.last_distance == 11.0
        assert nxt.visited_event_index == [6]

    def test_visited_only_holds_ids_at_last_distance(self):
        page = self._page((1, 1.0), (2, 2.0), (3, 3.0))
        nxt = advance_cursor(Cursor(), page)
        assert nxt.visited_event_index == [3]


class TestEventFilter:
    def test_rejects_both_cursors(self):
        with pytest.raises(ValidationError):
            _filter(cursor_id="a", prev_cursor_id="b").validate()

    def test_rejects_backward_paging(self):
        with pytest.raises(ValidationError):
            _filter(prev_cursor_id="b").validate()

    @pytest.mark.parametrize("size", [0, -1, 101])
    def test_rejects_bad_page_size(self, size):
        with pytest.raises(ValidationError):
            _filter(page_size=size).validate()

    def test_rejects_backward_cursor_token(self):
        token = encode_cursor(Cursor(last_distance=1.0, visited_event_index=[1], is_next=False))
        with pytest.raises(ValidationError):
            _filter(cursor_id=token).resolve_cursor()

    def test_malformed_token(self):
        with pytest.raises(MalformedCursorError):
            _filter(cursor_id="%%%").resolve_cursor()

    def test_no_cursor_is_first_page(self):
        assert _filter().resolve_cursor() == Cursor()
