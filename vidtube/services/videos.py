# vidtube/services/videos.py
import logging
import uuid
from typing import Optional, Tuple

from sqlalchemy import delete, not_, update
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from vidtube.core.errors import BadRequest, Forbidden, Internal, NotFound
from vidtube.core.media import MediaStore, UploadBatch, discard_asset
from vidtube.core.security import Principal
from vidtube.models.comment import Comment
from vidtube.models.like import LikedItem, LikeTarget
from vidtube.models.playlist import PlaylistEntry
from vidtube.models.user import User, WatchHistoryEntry, utcnow
from vidtube.models.video import Video, VideoView
from vidtube.schemas.feed import FeedRequest
from vidtube.services.pipeline import Pipeline
from vidtube.services.projector import Exists, Field, Member, One
from vidtube.services.shapes import (OWNER, VIDEO, VIDEO_CARD, VIDEO_FIELDS, VIDEO_SORTS, feed_page, like_count,
                                     liked_by, owner_lookup, subscribed_by, subscriber_count)

logger = logging.getLogger(__name__)

VIDEO_RECORD = VIDEO.extend(owner=Field("owner_id"))

VIDEO_DETAIL = VIDEO.extend(
    owner=One("owner", OWNER.extend(
        subscribersCount=Field("subscribers_count", 0),
        isSubscribed=Member("subscribed", "subscriber_id"),
    )),
    totalLikes=Field("likes", 0),
    isLiked=Exists("liked"),
)


def video_record(video: Video) -> dict:
    return VIDEO_RECORD.project(video.model_dump())


def owned_video(session: Session, principal: Principal, video_id: uuid.UUID) -> Video:
    video = session.get(Video, video_id)
    if video is None:
        raise NotFound("Video not found")
    if video.owner_id != principal.id:
        raise Forbidden("You are not the owner of this video")
    return video


def visible_video(session: Session, principal: Optional[Principal], video_id: uuid.UUID) -> Video:
    """Unpublished videos exist only for their owner."""
    video = session.get(Video, video_id)
    if video is None or not (video.is_published or (principal is not None and video.owner_id == principal.id)):
        raise NotFound("Video not found")
    return video


def video_feed(session: Session, request: FeedRequest, principal: Optional[Principal] = None):
    """Public feed of published videos, each with its owner card."""
    pipeline = (
        Pipeline(Video, fields=VIDEO_FIELDS, sortable=VIDEO_SORTS)
        .equals("is_published", True)
        .equals("owner_id", request.owner_id)
        .search("title", request.query)
        .join(owner_lookup())
        .project(VIDEO_CARD, principal)
    )
    return feed_page(session, pipeline, request)


def channel_videos(session: Session, channel_id: uuid.UUID, request: FeedRequest,
                   principal: Optional[Principal] = None):
    if session.get(User, channel_id) is None:
        raise NotFound("Channel does not exist")
    return video_feed(session, request.model_copy(update={"owner_id": channel_id}), principal)


async def publish_video(session: Session, media: MediaStore, principal: Principal, title: str, description: str,
                        video_path: Optional[str], thumbnail_path: Optional[str]) -> dict:
    title, description = (title or "").strip(), (description or "").strip()
    if not (title and description):
        raise BadRequest("Title and description are required")
    if not video_path:
        raise BadRequest("Video file is required")
    if not thumbnail_path:
        raise BadRequest("Thumbnail is required")

    async with UploadBatch(media) as batch:
        video_asset = await batch.upload(video_path, "video")
        thumbnail_asset = await batch.upload(thumbnail_path, "image")
        video = Video(
            owner_id=principal.id,
            title=title,
            description=description,
            duration=video_asset.duration or 0,
            video_file=video_asset.url,
            video_public_id=video_asset.public_id,
            thumbnail=thumbnail_asset.url,
            thumbnail_public_id=thumbnail_asset.public_id,
        )
        session.add(video)
        try:
            session.commit()
        except IntegrityError as e:
            session.rollback()
            raise Internal("Failed to save the uploaded video") from e
    session.refresh(video)
    logger.info(f"User {principal.id} published video {video.id}")
    return video_record(video)


def video_detail(session: Session, video_id: uuid.UUID, principal: Optional[Principal] = None) -> dict:
    """
    One video with its owner's channel card, like total and the requester's
    like/subscription flags. Unpublished videos are visible to their owner only.
    """
    detail = (
        Pipeline(Video, fields=VIDEO_FIELDS)
        .equals("id", video_id)
        .join(owner_lookup(lookups=[subscriber_count(), subscribed_by(principal)]))
        .join(like_count(LikeTarget.video))
        .join(liked_by(LikeTarget.video, principal))
        .project(VIDEO_DETAIL, principal)
        .first(session)
    )
    if detail is None:
        raise NotFound("Video not found")
    if not detail["isPublished"]:
        owner = detail["owner"] or {}
        if principal is None or owner.get("_id") != principal.id:
            raise NotFound("Video not found")
    return detail


def update_details(session: Session, principal: Principal, video_id: uuid.UUID,
                   title: Optional[str], description: Optional[str]) -> dict:
    title, description = (title or "").strip(), (description or "").strip()
    if not (title or description):
        raise BadRequest("Title or description are required")
    video = owned_video(session, principal, video_id)
    if title:
        video.title = title
    if description:
        video.description = description
    video.updated_at = utcnow()
    session.add(video)
    session.commit()
    session.refresh(video)
    return video_record(video)


async def replace_thumbnail(session: Session, media: MediaStore, principal: Principal, video_id: uuid.UUID,
                            path: Optional[str]) -> dict:
    if not path:
        raise BadRequest("Thumbnail is required")
    video = owned_video(session, principal, video_id)
    previous = video.thumbnail_public_id
    async with UploadBatch(media) as batch:
        asset = await batch.upload(path, "image")
        video.thumbnail = asset.url
        video.thumbnail_public_id = asset.public_id
        video.updated_at = utcnow()
        session.add(video)
        session.commit()
    await discard_asset(media, previous, "image")
    session.refresh(video)
    return video_record(video)


def _delete_dependents(session: Session, video_id: uuid.UUID) -> None:
    conn = session.connection()
    comment_ids = select(Comment.id).where(Comment.video_id == video_id)
    conn.execute(delete(LikedItem).where(LikedItem.kind == LikeTarget.comment.value,
                                         LikedItem.target_id.in_(comment_ids)))
    conn.execute(delete(LikedItem).where(LikedItem.kind == LikeTarget.video.value, LikedItem.target_id == video_id))
    conn.execute(delete(Comment).where(Comment.video_id == video_id))
    conn.execute(delete(VideoView).where(VideoView.video_id == video_id))
    conn.execute(delete(PlaylistEntry).where(PlaylistEntry.video_id == video_id))
    conn.execute(delete(WatchHistoryEntry).where(WatchHistoryEntry.video_id == video_id))


async def delete_video(session: Session, media: MediaStore, principal: Principal, video_id: uuid.UUID) -> None:
    """Delete the video with its comments, likes, views and list entries, then drop its assets."""
    video = owned_video(session, principal, video_id)
    assets = [(video.video_public_id, "video"), (video.thumbnail_public_id, "image")]
    _delete_dependents(session, video_id)
    session.delete(video)
    session.commit()
    logger.info(f"User {principal.id} deleted video {video_id}")
    for public_id, resource_type in assets:
        await discard_asset(media, public_id, resource_type)


def toggle_publish(session: Session, principal: Principal, video_id: uuid.UUID) -> bool:
    owned_video(session, principal, video_id)
    session.connection().execute(
        update(Video)
        .where(Video.id == video_id)
        .values(is_published=not_(Video.is_published), updated_at=utcnow())
    )
    session.commit()
    return session.exec(select(Video.is_published).where(Video.id == video_id)).one()


def register_view(session: Session, principal: Principal, video_id: uuid.UUID) -> Tuple[int, bool]:
    """
    Count one view per viewer. The ``video_view`` unique constraint decides
    whether this viewer is new; the counter is bumped in the same transaction.
    Returns the current view count and whether this call counted.
    """
    visible_video(session, principal, video_id)
    counted = True
    session.add(VideoView(video_id=video_id, viewer_id=principal.id))
    try:
        session.flush()
        session.connection().execute(
            update(Video).where(Video.id == video_id).values(view_count=Video.view_count + 1)
        )
        session.commit()
    except IntegrityError:
        session.rollback()
        counted = False
    views = session.exec(select(Video.view_count).where(Video.id == video_id)).one()
    return views, counted
