# vidtube/services/dashboard.py
from sqlalchemy import and_
from sqlmodel import Session

from vidtube.core.errors import NotFound
from vidtube.core.security import Principal
from vidtube.models.like import LikedItem, LikeTarget
from vidtube.models.subscription import Subscription
from vidtube.models.user import User
from vidtube.models.video import Video
from vidtube.schemas.feed import FeedRequest
from vidtube.services.pipeline import Accumulate, Pipeline
from vidtube.services.projector import Field, Shape
from vidtube.services.shapes import VIDEO, VIDEO_FIELDS, VIDEO_SORTS, feed_page, like_count, subscriber_count

CHANNEL_STATS = Shape(
    _id=Field("id"),
    username=Field("username"),
    subscribersCount=Field("subscribers_count", 0),
    subscribedToCount=Field("subscribed_to_count", 0),
    totalVideos=Field("total_videos", 0),
    totalViews=Field("total_views", 0),
    totalLikes=Field("total_likes", 0),
)

MY_VIDEO = VIDEO.extend(totalLikes=Field("likes", 0))


def channel_stats(session: Session, principal: Principal) -> dict:
    """Totals for the requester's channel, all computed at read time."""
    stats = (
        Pipeline(User, fields=["username"])
        .equals("id", principal.id)
        .join(subscriber_count())
        .join(Accumulate("subscribed_to_count", Subscription.subscriber_id))
        .join(Accumulate("total_videos", Video.owner_id))
        .join(Accumulate("total_views", Video.owner_id, value=Video.view_count))
        .join(Accumulate("total_likes", Video.owner_id, select_from=LikedItem,
                         joins=[(Video, and_(Video.id == LikedItem.target_id,
                                             LikedItem.kind == LikeTarget.video.value))]))
        .project(CHANNEL_STATS, principal)
        .first(session)
    )
    if stats is None:
        raise NotFound("Channel does not exist")
    return stats


def my_videos(session: Session, principal: Principal, request: FeedRequest):
    """Every video of the requester, unpublished ones included."""
    pipeline = (
        Pipeline(Video, fields=VIDEO_FIELDS, sortable=VIDEO_SORTS)
        .equals("owner_id", principal.id)
        .search("title", request.query)
        .join(like_count(LikeTarget.video))
        .project(MY_VIDEO, principal)
    )
    return feed_page(session, pipeline, request)
