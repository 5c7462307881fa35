# vidtube/services/comments.py
import logging
import uuid
from typing import Optional

from sqlalchemy import delete
from sqlmodel import Session

from vidtube.core.errors import BadRequest, Forbidden, NotFound
from vidtube.core.security import Principal
from vidtube.models.comment import Comment
from vidtube.models.like import LikedItem, LikeTarget
from vidtube.models.user import utcnow
from vidtube.models.video import Video
from vidtube.schemas.feed import FeedRequest
from vidtube.services.pipeline import Pipeline
from vidtube.services.projector import Exists, Field, One, Shape
from vidtube.services.shapes import CREATED_SORTS, OWNER, feed_page, like_count, liked_by, owner_lookup

logger = logging.getLogger(__name__)

COMMENT_FIELDS = ["video_id", "owner_id", "content", "created_at", "updated_at"]

COMMENT = Shape(
    _id=Field("id"),
    content=Field("content"),
    video=Field("video_id"),
    owner=Field("owner_id"),
    createdAt=Field("created_at"),
    updatedAt=Field("updated_at"),
)

COMMENT_CARD = COMMENT.extend(
    owner=One("owner", OWNER),
    totalLikes=Field("likes", 0),
    isLiked=Exists("liked"),
)


def _content(text: Optional[str]) -> str:
    text = (text or "").strip()
    if not text:
        raise BadRequest("Comment content is required")
    return text


def _owned_comment(session: Session, principal: Principal, comment_id: uuid.UUID) -> Comment:
    comment = session.get(Comment, comment_id)
    if comment is None:
        raise NotFound("Comment not found")
    if comment.owner_id != principal.id:
        raise Forbidden("You are not the owner of this comment")
    return comment


def add_comment(session: Session, principal: Principal, video_id: uuid.UUID, content: str) -> dict:
    content = _content(content)
    if session.get(Video, video_id) is None:
        raise NotFound("Video not found")
    comment = Comment(video_id=video_id, owner_id=principal.id, content=content)
    session.add(comment)
    session.commit()
    session.refresh(comment)
    return COMMENT.project(comment.model_dump())


def video_comments(session: Session, video_id: uuid.UUID, request: FeedRequest,
                   principal: Optional[Principal] = None):
    if session.get(Video, video_id) is None:
        raise NotFound("Video not found")
    pipeline = (
        Pipeline(Comment, fields=COMMENT_FIELDS, sortable=CREATED_SORTS)
        .equals("video_id", video_id)
        .join(owner_lookup())
        .join(like_count(LikeTarget.comment))
        .join(liked_by(LikeTarget.comment, principal))
        .project(COMMENT_CARD, principal)
    )
    return feed_page(session, pipeline, request)


def update_comment(session: Session, principal: Principal, comment_id: uuid.UUID, content: str) -> dict:
    content = _content(content)
    comment = _owned_comment(session, principal, comment_id)
    comment.content = content
    comment.updated_at = utcnow()
    session.add(comment)
    session.commit()
    session.refresh(comment)
    return COMMENT.project(comment.model_dump())


def delete_comment(session: Session, principal: Principal, comment_id: uuid.UUID) -> None:
    comment = _owned_comment(session, principal, comment_id)
    session.connection().execute(
        delete(LikedItem).where(LikedItem.kind == LikeTarget.comment.value, LikedItem.target_id == comment_id)
    )
    session.delete(comment)
    session.commit()
    logger.info(f"User {principal.id} deleted comment {comment_id}")
