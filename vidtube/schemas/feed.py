# vidtube/schemas/feed.py
import uuid
from typing import Callable, Optional

from fastapi import Query
from pydantic import BaseModel

from vidtube.core.config import settings
from vidtube.core.pagination import SortDirection


class FeedRequest(BaseModel):
    limit: int = 10
    sort_by: str
    sort_type: SortDirection = SortDirection.desc
    query: Optional[str] = None
    owner_id: Optional[uuid.UUID] = None
    cursor: Optional[str] = None
    include_total: bool = False


def feed_params(default_sort: str,
                default_direction: SortDirection = SortDirection.desc) -> Callable[..., FeedRequest]:
    """Build a dependency parsing the common feed query string with a per-feed default sort."""

    def dependency(
        limit: int = Query(settings.default_page_size, ge=0, le=settings.max_page_size),
        sort_by: str = Query(default_sort, alias="sortBy"),
        sort_type: SortDirection = Query(default_direction, alias="sortType"),
        query: Optional[str] = Query(None, max_length=200),
        owner_filter: Optional[uuid.UUID] = Query(None, alias="userId"),
        cursor: Optional[str] = Query(None),
        last_video_id: Optional[str] = Query(None, alias="lastVideoId"),
        include_total: bool = Query(False, alias="includeTotal"),
    ) -> FeedRequest:
        return FeedRequest(
            limit=limit,
            sort_by=sort_by,
            sort_type=sort_type,
            query=query,
            owner_id=owner_filter,
            cursor=cursor or last_video_id,
            include_total=include_total,
        )

    return dependency
