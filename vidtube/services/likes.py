# vidtube/services/likes.py
"""
Likes are stored as one ``Like`` record per user plus one ``LikedItem`` row per
liked video, comment or tweet. Toggling never reads the current state first:
it tries to remove the item and adds it only when nothing was removed.
"""
import logging
import uuid

from sqlalchemy import delete
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from vidtube.core.errors import NotFound
from vidtube.core.security import Principal
from vidtube.models.comment import Comment
from vidtube.models.like import Like, LikedItem, LikeTarget
from vidtube.models.tweet import Tweet
from vidtube.models.video import Video
from vidtube.schemas.feed import FeedRequest
from vidtube.services.pipeline import Lookup, Pipeline
from vidtube.services.projector import Field, One, Shape
from vidtube.services.shapes import VIDEO_CARD, VIDEO_FIELDS, feed_page, owner_lookup
from vidtube.services.videos import visible_video

logger = logging.getLogger(__name__)

TARGETS = {
    LikeTarget.video: Video,
    LikeTarget.comment: Comment,
    LikeTarget.tweet: Tweet,
}

LIKED_VIDEO = Shape(
    likedAt=Field("created_at"),
    video=One("video", VIDEO_CARD),
)


def ensure_like(session: Session, principal: Principal) -> uuid.UUID:
    """Id of the requester's like record, created on first use."""
    like_id = session.exec(select(Like.id).where(Like.liked_by == principal.id)).first()
    if like_id is not None:
        return like_id
    like = Like(liked_by=principal.id)
    session.add(like)
    try:
        session.commit()
    except IntegrityError:
        # created by a concurrent request
        session.rollback()
        return session.exec(select(Like.id).where(Like.liked_by == principal.id)).one()
    return like.id


def toggle_like(session: Session, principal: Principal, kind: LikeTarget, target_id: uuid.UUID) -> bool:
    """Flip the requester's like on a target; returns whether it is liked afterwards."""
    if kind is LikeTarget.video:
        visible_video(session, principal, target_id)
    elif session.get(TARGETS[kind], target_id) is None:
        raise NotFound(f"{kind.value.capitalize()} not found")
    like_id = ensure_like(session, principal)

    removed = session.connection().execute(
        delete(LikedItem).where(
            LikedItem.like_id == like_id, LikedItem.kind == kind.value, LikedItem.target_id == target_id
        )
    )
    if removed.rowcount:
        session.commit()
        logger.debug(f"User {principal.id} unliked {kind.value} {target_id}")
        return False

    session.add(LikedItem(like_id=like_id, kind=kind.value, target_id=target_id))
    try:
        session.commit()
    except IntegrityError:
        # a concurrent request added it first
        session.rollback()
    logger.debug(f"User {principal.id} liked {kind.value} {target_id}")
    return True


def liked_videos(session: Session, principal: Principal, request: FeedRequest):
    """The requester's liked videos, most recently liked first; deleted or unpublished ones are skipped."""
    like_id = select(Like.id).where(Like.liked_by == principal.id).scalar_subquery()
    pipeline = (
        Pipeline(LikedItem, fields=["target_id", "created_at"], sortable={"likedAt": "created_at"})
        .match(LikedItem.like_id == like_id, LikedItem.kind == LikeTarget.video.value)
        .join(Lookup("video", Video, "id", fields=VIDEO_FIELDS, local_field="target_id", one=True,
                     where=[Video.is_published.is_(True)], lookups=[owner_lookup()]))
        .project(LIKED_VIDEO, principal)
    )
    page = feed_page(session, pipeline, request)
    page.items = [item for item in page.items if item["video"] is not None]
    return page
