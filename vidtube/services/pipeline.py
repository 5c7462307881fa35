# vidtube/services/pipeline.py
"""
Read pipelines: match -> sort -> paginate -> joins -> project.

A ``Pipeline`` is declared against one root table. Whatever order the builder
methods are called in, ``stages()`` runs them in that fixed order, so joins
only ever see the already bounded page and the per-request cost does not grow
with the collection.

Root rows and joined child rows are plain dicts ("documents"). A join stage
attaches its result under its ``as_`` key; the projector then turns the joined
documents into response shapes.
"""
import logging
from collections import defaultdict
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from sqlalchemy import func, select
from sqlmodel import Session

from vidtube.core.errors import BadRequest
from vidtube.core.pagination import Cursor, Keyset, Page, SortDirection, build_page
from vidtube.core.security import Principal
from vidtube.services.projector import Shape

logger = logging.getLogger(__name__)

KEY = "_key"
RANK = "_rank"


def escape_like(text: str) -> str:
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _unique(names: Iterable[str]) -> List[str]:
    seen: List[str] = []
    for name in names:
        if name not in seen:
            seen.append(name)
    return seen


def _fetch(session: Session, stmt) -> List[Dict[str, Any]]:
    return [dict(row) for row in session.exec(stmt).mappings()]


def natural_order(model) -> list:
    """Storage order used to pick "the first" of several matches deterministically."""
    columns = []
    if hasattr(model, "created_at"):
        columns.append(model.created_at.asc())
    columns.append(model.id.asc())
    return columns


class Stage:
    name = "stage"

    def apply(self, session: Session, docs: List[dict]) -> None:
        raise NotImplementedError


class Match(Stage):
    name = "match"

    def __init__(self, clauses: Sequence[Any]):
        self.clauses = list(clauses)


class Sort(Stage):
    name = "sort"

    def __init__(self, keyset: Keyset, attr: str):
        self.keyset = keyset
        self.attr = attr


class Paginate(Stage):
    name = "paginate"

    def __init__(self, limit: int, cursor: Optional[Cursor]):
        self.limit = limit
        self.cursor = cursor


class Project(Stage):
    name = "project"

    def __init__(self, shape: Shape, principal: Optional[Principal]):
        self.shape = shape
        self.principal = principal

    def apply(self, session: Session, docs: List[dict]) -> None:
        docs[:] = [self.shape.project(doc, self.principal) for doc in docs]


class Lookup(Stage):
    """
    Attach the child rows of ``model`` whose ``foreign_field`` equals the
    parent's ``local_field``. With ``one=True`` at most the first match (by
    ``order_by``, natural storage order by default) is kept; a dangling
    reference yields ``[]``.

    ``per_key`` caps the children fetched for each parent inside the query
    (``row_number()`` over the foreign key), so a parent with a huge child set
    costs the same as one with a few. ``one=True`` implies ``per_key=1``.
    """

    name = "lookup"

    def __init__(self, as_: str, model, foreign_field: str, fields: Sequence[str] = (),
                 local_field: str = "id", one: bool = False, where: Sequence[Any] = (),
                 order_by: Optional[Sequence[Any]] = None, lookups: Sequence[Stage] = (),
                 per_key: Optional[int] = None):
        self.as_ = as_
        self.model = model
        self.foreign_field = foreign_field
        self.fields = _unique(["id", *fields])
        self.local_field = local_field
        self.one = one
        self.per_key = 1 if one else per_key
        self.where = list(where)
        self.order_by = list(order_by) if order_by is not None else natural_order(model)
        self.lookups = [stage for stage in lookups if stage is not None]

    def statement(self, keys: Iterable[Any]):
        fk = getattr(self.model, self.foreign_field)
        columns = [fk.label(KEY)] + [getattr(self.model, name).label(name) for name in self.fields]
        stmt = select(*columns).where(fk.in_(list(keys)), *self.where)
        # primary key lookups match at most one row per key already
        if self.per_key is None or self.foreign_field == "id":
            return stmt.order_by(*self.order_by)
        rank = func.row_number().over(partition_by=fk, order_by=self.order_by).label(RANK)
        ranked = stmt.add_columns(rank).subquery()
        return (
            select(*[ranked.c[name] for name in [KEY, *self.fields]])
            .where(ranked.c[RANK] <= self.per_key)
            .order_by(ranked.c[KEY], ranked.c[RANK])
        )

    def apply(self, session: Session, docs: List[dict]) -> None:
        keys = {doc.get(self.local_field) for doc in docs} - {None}
        children: List[dict] = _fetch(session, self.statement(keys)) if keys else []
        for stage in self.lookups:
            stage.apply(session, children)
        grouped: Dict[Any, List[dict]] = defaultdict(list)
        for child in children:
            grouped[child.pop(KEY)].append(child)
        for doc in docs:
            matches = grouped.get(doc.get(self.local_field), [])
            doc[self.as_] = list(matches[:self.per_key]) if self.per_key is not None else list(matches)


class Accumulate(Stage):
    """
    Count (or sum ``value``) over the child rows joined by ``key``, computed at
    read time for the page's parents. Parents without children get ``0``.
    """

    name = "accumulate"

    def __init__(self, as_: str, key, value=None, local_field: str = "id", where: Sequence[Any] = (),
                 select_from=None, joins: Sequence[Tuple[Any, Any]] = ()):
        self.as_ = as_
        self.key = key
        self.value = value
        self.local_field = local_field
        self.where = list(where)
        self.select_from = select_from
        self.joins = list(joins)

    def statement(self, keys: Iterable[Any]):
        aggregate = func.count() if self.value is None else func.coalesce(func.sum(self.value), 0)
        stmt = select(self.key.label(KEY), aggregate.label("value"))
        if self.select_from is not None:
            stmt = stmt.select_from(self.select_from)
        for target, onclause in self.joins:
            stmt = stmt.join(target, onclause)
        return stmt.where(self.key.in_(list(keys)), *self.where).group_by(self.key)

    def apply(self, session: Session, docs: List[dict]) -> None:
        keys = {doc.get(self.local_field) for doc in docs} - {None}
        totals = {row[KEY]: row["value"] for row in _fetch(session, self.statement(keys))} if keys else {}
        for doc in docs:
            doc[self.as_] = totals.get(doc.get(self.local_field), 0)


class Pipeline:
    def __init__(self, model, fields: Sequence[str], sortable: Optional[Mapping[str, str]] = None):
        self.model = model
        self.fields = _unique(["id", *fields])
        self.sortable = dict(sortable or {})
        self._match: List[Any] = []
        self._sort: Optional[Sort] = None
        self._paginate: Optional[Paginate] = None
        self._joins: List[Stage] = []
        self._project: Optional[Project] = None

    # --- filtering ---

    def match(self, *clauses) -> "Pipeline":
        self._match.extend(clause for clause in clauses if clause is not None)
        return self

    def equals(self, field: str, value: Any) -> "Pipeline":
        if value is not None:
            self._match.append(getattr(self.model, field) == value)
        return self

    def search(self, field: str, text: Optional[str]) -> "Pipeline":
        """Case-insensitive substring match; LIKE wildcards in ``text`` are literal."""
        if text and text.strip():
            pattern = f"%{escape_like(text.strip())}%"
            self._match.append(getattr(self.model, field).ilike(pattern, escape="\\"))
        return self

    # --- ordering and paging ---

    def sort(self, by: str, direction: SortDirection = SortDirection.desc) -> "Pipeline":
        attr = self.sortable.get(by)
        if attr is None:
            allowed = ", ".join(sorted(self.sortable)) or "nothing"
            raise BadRequest(f"Cannot sort by '{by}'. Allowed: {allowed}")
        keyset = Keyset(by, getattr(self.model, attr), self.model.id, direction)
        self._sort = Sort(keyset, attr)
        return self

    def paginate(self, limit: int, cursor: Optional[str] = None) -> "Pipeline":
        if self._sort is None:
            raise RuntimeError("paginate() needs a sort order; call sort() first")
        if limit < 0:
            raise BadRequest("limit must not be negative")
        decoded = self._sort.keyset.check(Cursor.decode(cursor)) if cursor else None
        self._paginate = Paginate(limit, decoded)
        return self

    # --- joins ---

    def join(self, stage: Optional[Stage]) -> "Pipeline":
        if stage is not None:
            self._joins.append(stage)
        return self

    def lookup(self, as_: str, model, foreign_field: str, **kwargs) -> "Pipeline":
        return self.join(Lookup(as_, model, foreign_field, **kwargs))

    def accumulate(self, as_: str, key, **kwargs) -> "Pipeline":
        return self.join(Accumulate(as_, key, **kwargs))

    def project(self, shape: Shape, principal: Optional[Principal] = None) -> "Pipeline":
        self._project = Project(shape, principal)
        return self

    # --- execution ---

    def stages(self) -> List[Stage]:
        stages: List[Stage] = [Match(self._match)]
        if self._sort is not None:
            stages.append(self._sort)
        if self._paginate is not None:
            stages.append(self._paginate)
        stages.extend(self._joins)
        if self._project is not None:
            stages.append(self._project)
        return stages

    def statement(self):
        names = list(self.fields)
        if self._sort is not None and self._sort.attr not in names:
            names.append(self._sort.attr)
        stmt = select(*[getattr(self.model, name).label(name) for name in names]).where(*self._match)
        if self._sort is not None:
            if self._paginate is not None and self._paginate.cursor is not None:
                stmt = stmt.where(self._sort.keyset.after(self._paginate.cursor))
            stmt = stmt.order_by(*self._sort.keyset.order_by())
        if self._paginate is not None:
            stmt = stmt.limit(self._paginate.limit)
        return stmt

    def _run(self, session: Session) -> Tuple[List[dict], Optional[Page]]:
        if self._paginate is not None and self._paginate.limit == 0:
            return [], Page()
        docs = _fetch(session, self.statement())
        page = None
        if self._paginate is not None:
            page = build_page(docs, self._sort.keyset, self._paginate.limit, self._sort.attr)
        for stage in self.stages():
            if isinstance(stage, (Match, Sort, Paginate)):
                continue
            stage.apply(session, docs)
        return docs, page

    def all(self, session: Session) -> List[dict]:
        docs, _ = self._run(session)
        return docs

    def first(self, session: Session) -> Optional[dict]:
        docs = self.all(session)
        return docs[0] if docs else None

    def page(self, session: Session, include_total: bool = False) -> Page:
        if self._paginate is None:
            raise RuntimeError("page() needs paginate()")
        docs, page = self._run(session)
        page.items = docs
        if include_total:
            page.total = self.count(session)
        return page

    def count(self, session: Session) -> int:
        """Size of the filtered set, ignoring the cursor. A full scan; only run on request."""
        stmt = select(func.count()).select_from(self.model).where(*self._match)
        return session.exec(stmt).scalar_one()
