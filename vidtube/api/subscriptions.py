# vidtube/api/subscriptions.py
import uuid

from fastapi import APIRouter, Depends

from vidtube.api.auth import OptionalPrincipal, PrincipalDep
from vidtube.core.database import SessionDep
from vidtube.core.responses import respond
from vidtube.schemas.feed import FeedRequest, feed_params
from vidtube.services import subscriptions as subscription_service

router = APIRouter()


@router.post("/t-subscribe/{channel_id}")
async def toggle_subscription(channel_id: uuid.UUID, principal: PrincipalDep, session: SessionDep):
    subscribed = subscription_service.toggle_subscription(session, principal, channel_id)
    message = "Subscribed successfully" if subscribed else "Unsubscribed successfully"
    return respond({"subscribed": subscribed}, message)


@router.get("/subscribers/{channel_id}")
async def get_channel_subscribers(
    channel_id: uuid.UUID,
    session: SessionDep,
    principal: OptionalPrincipal,
    feed: FeedRequest = Depends(feed_params("subscribedAt")),
):
    page = subscription_service.channel_subscribers(session, channel_id, feed, principal)
    return respond(page.as_response(), "Subscribers fetched successfully")


@router.get("/subscribed-channels/{subscriber_id}")
async def get_subscribed_channels(
    subscriber_id: uuid.UUID,
    session: SessionDep,
    principal: OptionalPrincipal,
    feed: FeedRequest = Depends(feed_params("subscribedAt")),
):
    page = subscription_service.subscribed_channels(session, subscriber_id, feed, principal)
    return respond(page.as_response(), "Subscribed channels fetched successfully")


@router.get("/channel-is-subscribed/{channel_id}")
async def channel_is_subscribed(channel_id: uuid.UUID, principal: PrincipalDep, session: SessionDep):
    subscribed = subscription_service.is_subscribed(session, principal, channel_id)
    return respond({"isSubscribed": subscribed}, "Subscription status fetched successfully")
