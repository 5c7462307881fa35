# vidtube/services/tweets.py
import uuid
from typing import Optional

from sqlalchemy import delete
from sqlmodel import Session

from vidtube.core.errors import BadRequest, Forbidden, NotFound
from vidtube.core.security import Principal
from vidtube.models.like import LikedItem, LikeTarget
from vidtube.models.tweet import Tweet
from vidtube.models.user import User, utcnow
from vidtube.schemas.feed import FeedRequest
from vidtube.services.pipeline import Pipeline
from vidtube.services.projector import Exists, Field, One, Shape
from vidtube.services.shapes import CREATED_SORTS, OWNER, feed_page, like_count, liked_by, owner_lookup

TWEET = Shape(
    _id=Field("id"),
    content=Field("content"),
    owner=Field("owner_id"),
    createdAt=Field("created_at"),
    updatedAt=Field("updated_at"),
)

TWEET_CARD = TWEET.extend(
    owner=One("owner", OWNER),
    totalLikes=Field("likes", 0),
    isLiked=Exists("liked"),
)


def _content(text: Optional[str]) -> str:
    text = (text or "").strip()
    if not text:
        raise BadRequest("Tweet content is required")
    return text


def _owned_tweet(session: Session, principal: Principal, tweet_id: uuid.UUID) -> Tweet:
    tweet = session.get(Tweet, tweet_id)
    if tweet is None:
        raise NotFound("Tweet not found")
    if tweet.owner_id != principal.id:
        raise Forbidden("You are not the owner of this tweet")
    return tweet


def create_tweet(session: Session, principal: Principal, content: str) -> dict:
    tweet = Tweet(owner_id=principal.id, content=_content(content))
    session.add(tweet)
    session.commit()
    session.refresh(tweet)
    return TWEET.project(tweet.model_dump())


def user_tweets(session: Session, user_id: uuid.UUID, request: FeedRequest, principal: Optional[Principal] = None):
    if session.get(User, user_id) is None:
        raise NotFound("User not found")
    pipeline = (
        Pipeline(Tweet, fields=["owner_id", "content", "created_at", "updated_at"], sortable=CREATED_SORTS)
        .equals("owner_id", user_id)
        .join(owner_lookup())
        .join(like_count(LikeTarget.tweet))
        .join(liked_by(LikeTarget.tweet, principal))
        .project(TWEET_CARD, principal)
    )
    return feed_page(session, pipeline, request)


def update_tweet(session: Session, principal: Principal, tweet_id: uuid.UUID, content: str) -> dict:
    content = _content(content)
    tweet = _owned_tweet(session, principal, tweet_id)
    tweet.content = content
    tweet.updated_at = utcnow()
    session.add(tweet)
    session.commit()
    session.refresh(tweet)
    return TWEET.project(tweet.model_dump())


def delete_tweet(session: Session, principal: Principal, tweet_id: uuid.UUID) -> None:
    tweet = _owned_tweet(session, principal, tweet_id)
    session.connection().execute(
        delete(LikedItem).where(LikedItem.kind == LikeTarget.tweet.value, LikedItem.target_id == tweet_id)
    )
    session.delete(tweet)
    session.commit()
