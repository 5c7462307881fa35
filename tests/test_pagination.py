import uuid
from datetime import datetime

import pytest

from vidtube.core.errors import BadRequest
from vidtube.core.pagination import Cursor, Keyset, Page, SortDirection, build_page
from vidtube.models.video import Video


def make_keyset(field="views", column=Video.view_count, direction=SortDirection.desc):
    return Keyset(field, column, Video.id, direction)


def test_cursor_keeps_datetime_and_id():
    row_id = uuid.uuid4()
    cursor = Cursor("createdAt", SortDirection.asc, datetime(2024, 5, 1, 12, 30, 15, 250), row_id)
    decoded = Cursor.decode(cursor.encode())
    assert decoded == cursor
    assert isinstance(decoded.value, datetime)


def test_cursor_token_is_url_safe():
    token = Cursor("title", SortDirection.desc, "a/b+c?", uuid.uuid4()).encode()
    assert "=" not in token
    assert "/" not in token and "+" not in token


@pytest.mark.parametrize("token", ["not-a-cursor", "", "e30", "eyJmIjoidmlld3MifQ"])
def test_malformed_cursor_is_bad_request(token):
    with pytest.raises(BadRequest):
        Cursor.decode(token)


def test_cursor_for_other_ordering_is_rejected():
    keyset = make_keyset()
    cursor = Cursor("views", SortDirection.asc, 3, uuid.uuid4())
    with pytest.raises(BadRequest):
        keyset.check(cursor)
    with pytest.raises(BadRequest):
        keyset.check(Cursor("title", SortDirection.desc, "x", uuid.uuid4()))


def test_cursor_value_must_fit_the_sort_column():
    with pytest.raises(BadRequest):
        make_keyset().check(Cursor("views", SortDirection.desc, "1 OR 1=1", uuid.uuid4()))
    with pytest.raises(BadRequest):
        make_keyset().check(Cursor("views", SortDirection.desc, True, uuid.uuid4()))
    created = make_keyset("createdAt", Video.created_at)
    with pytest.raises(BadRequest):
        created.check(Cursor("createdAt", SortDirection.desc, 1700000000, uuid.uuid4()))

    assert make_keyset().check(Cursor("views", SortDirection.desc, 7, uuid.uuid4())).value == 7
    assert created.check(Cursor("createdAt", SortDirection.desc, datetime(2024, 1, 1), uuid.uuid4()))
    duration = make_keyset("duration", Video.duration)
    assert duration.check(Cursor("duration", SortDirection.desc, 12, uuid.uuid4())).value == 12


def test_order_by_breaks_ties_on_id_in_same_direction():
    clauses = [str(clause) for clause in make_keyset().order_by()]
    assert clauses == ["video.view_count DESC", "video.id DESC"]
    clauses = [str(clause) for clause in make_keyset(direction=SortDirection.asc).order_by()]
    assert clauses == ["video.view_count ASC", "video.id ASC"]


def test_build_page_of_empty_batch():
    page = build_page([], make_keyset(), 10, "view_count")
    assert page == Page()
    assert page.as_response() == {"data": [], "hasMore": False, "cursor": None}


def test_build_page_cursor_points_at_last_row():
    rows = [{"id": uuid.uuid4(), "view_count": 9 - i} for i in range(3)]
    page = build_page(rows, make_keyset(), 3, "view_count")
    assert page.has_more
    cursor = Cursor.decode(page.next_cursor)
    assert cursor.id == rows[-1]["id"]
    assert cursor.value == 7

    short = build_page(rows[:2], make_keyset(), 3, "view_count")
    assert not short.has_more


def test_video_page_response_keys():
    page = Page(items=[1], has_more=True, next_cursor="abc", total=4)
    body = page.as_response(cursor_key="lastVideoId", total_key="totalVideos")
    assert body == {"data": [1], "hasMore": True, "lastVideoId": "abc", "cursor": "abc", "totalVideos": 4}
