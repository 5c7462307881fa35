# vidtube/api/likes.py
import uuid

from fastapi import APIRouter, Depends

from vidtube.api.auth import PrincipalDep
from vidtube.core.database import SessionDep
from vidtube.core.responses import respond
from vidtube.models.like import LikeTarget
from vidtube.schemas.feed import FeedRequest, feed_params
from vidtube.services import likes as like_service

router = APIRouter()


def _toggle(session, principal, kind: LikeTarget, target_id: uuid.UUID):
    liked = like_service.toggle_like(session, principal, kind, target_id)
    label = kind.value.capitalize()
    message = f"{label} liked successfully" if liked else f"{label} unliked successfully"
    return respond({"isLiked": liked}, message)


@router.patch("/like-video/{video_id}")
async def toggle_video_like(video_id: uuid.UUID, principal: PrincipalDep, session: SessionDep):
    return _toggle(session, principal, LikeTarget.video, video_id)


@router.patch("/like-comment/{comment_id}")
async def toggle_comment_like(comment_id: uuid.UUID, principal: PrincipalDep, session: SessionDep):
    return _toggle(session, principal, LikeTarget.comment, comment_id)


@router.patch("/like-tweet/{tweet_id}")
async def toggle_tweet_like(tweet_id: uuid.UUID, principal: PrincipalDep, session: SessionDep):
    return _toggle(session, principal, LikeTarget.tweet, tweet_id)


@router.get("/all-videos")
async def get_liked_videos(
    principal: PrincipalDep,
    session: SessionDep,
    feed: FeedRequest = Depends(feed_params("likedAt")),
):
    page = like_service.liked_videos(session, principal, feed)
    return respond(page.as_response(), "Liked videos fetched successfully")
