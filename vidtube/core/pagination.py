# vidtube/core/pagination.py
"""
Keyset (cursor) pagination over a composite ``(sort field, id)`` ordering.

A cursor carries the sort key value of the last row it points at together with
that row's id, so resuming a feed never has to re-read the anchor row. Deleting
the anchor between page fetches therefore does not invalidate the cursor.
"""
import base64
import binascii
import json
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Callable, List, Optional

from sqlalchemy import and_, or_

from vidtube.core.errors import BadRequest


class SortDirection(str, Enum):
    asc = "asc"
    desc = "desc"


def _dump_value(value: Any) -> Any:
    if isinstance(value, datetime):
        return {"dt": value.isoformat()}
    if isinstance(value, uuid.UUID):
        return {"uuid": str(value)}
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    raise TypeError(f"Cannot encode cursor value of type {type(value).__name__}")


def _load_value(raw: Any) -> Any:
    if isinstance(raw, dict):
        if "dt" in raw:
            return datetime.fromisoformat(raw["dt"])
        if "uuid" in raw:
            return uuid.UUID(raw["uuid"])
        raise ValueError("Unknown cursor value tag")
    if isinstance(raw, list):
        raise ValueError("Cursor value cannot be a list")
    return raw


@dataclass(frozen=True)
class Cursor:
    field: str
    direction: SortDirection
    value: Any
    id: uuid.UUID

    def encode(self) -> str:
        payload = {"f": self.field, "d": self.direction.value, "v": _dump_value(self.value), "id": str(self.id)}
        raw = json.dumps(payload, separators=(",", ":")).encode("utf-8")
        return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")

    @classmethod
    def decode(cls, token: str) -> "Cursor":
        try:
            padded = token + "=" * (-len(token) % 4)
            payload = json.loads(base64.urlsafe_b64decode(padded.encode("ascii")))
            return cls(
                field=payload["f"],
                direction=SortDirection(payload["d"]),
                value=_load_value(payload["v"]),
                id=uuid.UUID(payload["id"]),
            )
        except (ValueError, KeyError, TypeError, binascii.Error) as e:
            raise BadRequest("Malformed pagination cursor") from e


class Keyset:
    """Ordering and "strictly after" predicate for one sort field with an id tie-break."""

    def __init__(self, field: str, column, id_column, direction: SortDirection):
        self.field = field
        self.column = column
        self.id_column = id_column
        self.direction = SortDirection(direction)

    @property
    def ascending(self) -> bool:
        return self.direction is SortDirection.asc

    def order_by(self) -> list:
        if self.ascending:
            return [self.column.asc(), self.id_column.asc()]
        return [self.column.desc(), self.id_column.desc()]

    def after(self, cursor: Cursor):
        if self.ascending:
            return or_(self.column > cursor.value,
                       and_(self.column == cursor.value, self.id_column > cursor.id))
        return or_(self.column < cursor.value,
                   and_(self.column == cursor.value, self.id_column < cursor.id))

    def check(self, cursor: Cursor) -> Cursor:
        if cursor.field != self.field or cursor.direction is not self.direction:
            raise BadRequest("Pagination cursor does not match the requested ordering")
        if cursor.value is not None and not self._accepts(cursor.value):
            raise BadRequest("Pagination cursor value does not fit the sort field")
        return cursor

    def _accepts(self, value: Any) -> bool:
        try:
            column_type = self.column.type
            expected = getattr(column_type, "impl_instance", column_type).python_type
        except NotImplementedError:
            return True
        if isinstance(value, bool):
            return expected is bool
        if expected is float:
            return isinstance(value, (int, float))
        return isinstance(value, expected)

    def cursor_for(self, value: Any, row_id: uuid.UUID) -> Cursor:
        return Cursor(field=self.field, direction=self.direction, value=value, id=row_id)


@dataclass
class Page:
    items: List[Any] = field(default_factory=list)
    has_more: bool = False
    next_cursor: Optional[str] = None
    total: Optional[int] = None

    def map(self, fn: Callable[[Any], Any]) -> "Page":
        return replace(self, items=[fn(item) for item in self.items])

    def as_response(self, cursor_key: str = "cursor", total_key: str = "total") -> dict:
        body = {"data": self.items, "hasMore": self.has_more, cursor_key: self.next_cursor}
        if cursor_key != "cursor":
            body["cursor"] = self.next_cursor
        if self.total is not None:
            body[total_key] = self.total
        return body


def build_page(rows: List[dict], keyset: Keyset, limit: int, value_key: str) -> Page:
    """Cut a fetched batch into a page; ``hasMore`` may be a false positive on an exact-limit tail."""
    if not rows:
        return Page()
    last = rows[-1]
    cursor = keyset.cursor_for(last[value_key], last["id"])
    return Page(items=list(rows), has_more=limit > 0 and len(rows) == limit, next_cursor=cursor.encode())
