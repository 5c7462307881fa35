# vidtube/services/subscriptions.py
import logging
import uuid
from typing import Optional

from sqlalchemy import delete
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from vidtube.core.errors import BadRequest, NotFound
from vidtube.core.security import Principal
from vidtube.models.subscription import Subscription
from vidtube.models.user import User
from vidtube.models.video import Video
from vidtube.schemas.feed import FeedRequest
from vidtube.services.pipeline import Lookup, Pipeline
from vidtube.services.projector import Field, Member, One, Shape
from vidtube.services.shapes import OWNER, OWNER_FIELDS, VIDEO, VIDEO_FIELDS, feed_page, subscribed_by, subscriber_count

logger = logging.getLogger(__name__)

SUBSCRIPTION_SORTS = {"subscribedAt": "created_at"}

CHANNEL_CARD = OWNER.extend(
    subscribersCount=Field("subscribers_count", 0),
    isSubscribed=Member("subscribed", "subscriber_id"),
)

SUBSCRIBER = Shape(
    subscribedAt=Field("created_at"),
    subscriber=One("subscriber", CHANNEL_CARD),
)

SUBSCRIBED_CHANNEL = Shape(
    subscribedAt=Field("created_at"),
    channel=One("channel", CHANNEL_CARD.extend(latestVideo=One("latest_video", VIDEO))),
)


def _require_channel(session: Session, channel_id: uuid.UUID) -> User:
    channel = session.get(User, channel_id)
    if channel is None:
        raise NotFound("Channel does not exist")
    return channel


def toggle_subscription(session: Session, principal: Principal, channel_id: uuid.UUID) -> bool:
    """Subscribe to or unsubscribe from a channel; returns whether subscribed afterwards."""
    if channel_id == principal.id:
        raise BadRequest("You cannot subscribe to your own channel")
    _require_channel(session, channel_id)

    removed = session.connection().execute(
        delete(Subscription).where(Subscription.subscriber_id == principal.id, Subscription.channel_id == channel_id)
    )
    if removed.rowcount:
        session.commit()
        logger.info(f"User {principal.id} unsubscribed from {channel_id}")
        return False

    session.add(Subscription(subscriber_id=principal.id, channel_id=channel_id))
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
    logger.info(f"User {principal.id} subscribed to {channel_id}")
    return True


def _user_lookup(as_: str, local_field: str, principal: Optional[Principal], lookups=()) -> Lookup:
    return Lookup(as_, User, "id", fields=OWNER_FIELDS, local_field=local_field, one=True,
                  lookups=[subscriber_count(), subscribed_by(principal), *lookups])


def channel_subscribers(session: Session, channel_id: uuid.UUID, request: FeedRequest,
                        principal: Optional[Principal] = None):
    _require_channel(session, channel_id)
    pipeline = (
        Pipeline(Subscription, fields=["subscriber_id", "created_at"], sortable=SUBSCRIPTION_SORTS)
        .equals("channel_id", channel_id)
        .join(_user_lookup("subscriber", "subscriber_id", principal))
        .project(SUBSCRIBER, principal)
    )
    return feed_page(session, pipeline, request)


def latest_video_lookup() -> Lookup:
    """Newest published video of each channel; one row per channel."""
    return Lookup("latest_video", Video, "owner_id", fields=VIDEO_FIELDS, one=True,
                  where=[Video.is_published.is_(True)],
                  order_by=[Video.created_at.desc(), Video.id.desc()])


def subscribed_channels(session: Session, subscriber_id: uuid.UUID, request: FeedRequest,
                        principal: Optional[Principal] = None):
    """Channels a user follows, each with its newest published video."""
    if session.get(User, subscriber_id) is None:
        raise NotFound("User not found")
    pipeline = (
        Pipeline(Subscription, fields=["channel_id", "created_at"], sortable=SUBSCRIPTION_SORTS)
        .equals("subscriber_id", subscriber_id)
        .join(_user_lookup("channel", "channel_id", principal, lookups=[latest_video_lookup()]))
        .project(SUBSCRIBED_CHANNEL, principal)
    )
    return feed_page(session, pipeline, request)


def is_subscribed(session: Session, principal: Principal, channel_id: uuid.UUID) -> bool:
    _require_channel(session, channel_id)
    found = session.exec(
        select(Subscription.id).where(Subscription.subscriber_id == principal.id,
                                      Subscription.channel_id == channel_id)
    ).first()
    return found is not None
