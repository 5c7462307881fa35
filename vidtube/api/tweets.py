# vidtube/api/tweets.py
import uuid

from fastapi import APIRouter, Depends, status

from vidtube.api.auth import OptionalPrincipal, PrincipalDep
from vidtube.core.database import SessionDep
from vidtube.core.responses import respond
from vidtube.schemas.content import ContentBody
from vidtube.schemas.feed import FeedRequest, feed_params
from vidtube.services import tweets as tweet_service

router = APIRouter()


@router.post("/create-tweet", status_code=201)
async def create_tweet(body: ContentBody, principal: PrincipalDep, session: SessionDep):
    tweet = tweet_service.create_tweet(session, principal, body.content)
    return respond(tweet, "Tweet created successfully", status.HTTP_201_CREATED)


@router.get("/user-tweets")
async def get_my_tweets(
    principal: PrincipalDep,
    session: SessionDep,
    feed: FeedRequest = Depends(feed_params("createdAt")),
):
    page = tweet_service.user_tweets(session, principal.id, feed, principal)
    return respond(page.as_response(), "Tweets fetched successfully")


@router.get("/user/{user_id}")
async def get_user_tweets(
    user_id: uuid.UUID,
    session: SessionDep,
    principal: OptionalPrincipal,
    feed: FeedRequest = Depends(feed_params("createdAt")),
):
    page = tweet_service.user_tweets(session, user_id, feed, principal)
    return respond(page.as_response(), "Tweets fetched successfully")


@router.patch("/update-tweet/{tweet_id}")
async def update_tweet(tweet_id: uuid.UUID, body: ContentBody, principal: PrincipalDep, session: SessionDep):
    tweet = tweet_service.update_tweet(session, principal, tweet_id, body.content)
    return respond(tweet, "Tweet updated successfully")


@router.delete("/delete-tweet/{tweet_id}")
async def delete_tweet(tweet_id: uuid.UUID, principal: PrincipalDep, session: SessionDep):
    tweet_service.delete_tweet(session, principal, tweet_id)
    return respond({}, "Tweet deleted successfully")
