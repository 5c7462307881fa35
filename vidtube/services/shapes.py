# vidtube/services/shapes.py
"""Shapes and joins shared by several feeds."""
from typing import Optional, Sequence

from sqlalchemy import select

from vidtube.core.security import Principal
from vidtube.models.like import Like, LikedItem, LikeTarget
from vidtube.models.subscription import Subscription
from vidtube.models.user import User
from vidtube.services.pipeline import Accumulate, Lookup, Stage
from vidtube.services.projector import Field, One, Shape

OWNER_FIELDS = ["username", "full_name", "avatar"]

OWNER = Shape(
    _id=Field("id"),
    username=Field("username"),
    fullName=Field("full_name"),
    avatar=Field("avatar"),
)

VIDEO_FIELDS = [
    "owner_id", "title", "description", "duration", "view_count",
    "is_published", "video_file", "thumbnail", "created_at",
]

VIDEO = Shape(
    _id=Field("id"),
    title=Field("title"),
    description=Field("description"),
    thumbnail=Field("thumbnail"),
    videoFile=Field("video_file"),
    duration=Field("duration", 0),
    views=Field("view_count", 0),
    isPublished=Field("is_published"),
    createdAt=Field("created_at"),
)

VIDEO_CARD = VIDEO.extend(owner=One("owner", OWNER))

VIDEO_SORTS = {
    "views": "view_count",
    "createdAt": "created_at",
    "duration": "duration",
    "title": "title",
}

CREATED_SORTS = {"createdAt": "created_at"}


def owner_lookup(local_field: str = "owner_id", as_: str = "owner", fields: Sequence[str] = OWNER_FIELDS,
                 lookups: Sequence[Stage] = ()) -> Lookup:
    return Lookup(as_, User, "id", fields=fields, local_field=local_field, one=True, lookups=lookups)


def like_count(kind: LikeTarget, as_: str = "likes") -> Accumulate:
    return Accumulate(as_, LikedItem.target_id, where=[LikedItem.kind == kind.value])


def liked_by(kind: LikeTarget, principal: Optional[Principal], as_: str = "liked") -> Optional[Lookup]:
    """The requester's own like on each parent, if any; ``None`` for anonymous reads."""
    if principal is None:
        return None
    like_id = select(Like.id).where(Like.liked_by == principal.id).scalar_subquery()
    return Lookup(as_, LikedItem, "target_id", fields=["like_id"], one=True,
                  where=[LikedItem.kind == kind.value, LikedItem.like_id == like_id])


def subscriber_count(as_: str = "subscribers_count") -> Accumulate:
    return Accumulate(as_, Subscription.channel_id)


def subscribed_by(principal: Optional[Principal], as_: str = "subscribed") -> Optional[Lookup]:
    """The requester's subscription to each parent channel; pair with ``Member(as_, "subscriber_id")``."""
    if principal is None:
        return None
    return Lookup(as_, Subscription, "channel_id", fields=["subscriber_id"],
                  where=[Subscription.subscriber_id == principal.id])


def feed_page(session, pipeline, request):
    """Apply a parsed feed request's ordering and paging to ``pipeline`` and run it."""
    return (
        pipeline.sort(request.sort_by, request.sort_type)
        .paginate(request.limit, request.cursor)
        .page(session, include_total=request.include_total)
    )
