# vidtube/services/playlists.py
import logging
import uuid
from typing import Optional

from sqlalchemy import delete, func
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from vidtube.core.config import settings
from vidtube.core.errors import BadRequest, Conflict, Forbidden, NotFound
from vidtube.core.security import Principal
from vidtube.models.playlist import Playlist, PlaylistEntry
from vidtube.models.user import User, utcnow
from vidtube.models.video import Video
from vidtube.schemas.feed import FeedRequest
from vidtube.services.pipeline import Accumulate, Lookup, Pipeline
from vidtube.services.projector import Field, Many, One, Shape
from vidtube.services.shapes import OWNER, VIDEO_CARD, VIDEO_FIELDS, feed_page, owner_lookup

logger = logging.getLogger(__name__)

PLAYLIST_FIELDS = ["owner_id", "name", "description", "created_at", "updated_at"]

PLAYLIST_SORTS = {"createdAt": "created_at", "updatedAt": "updated_at", "name": "name"}

PLAYLIST = Shape(
    _id=Field("id"),
    name=Field("name"),
    description=Field("description"),
    owner=Field("owner_id"),
    totalVideos=Field("video_count", 0),
    createdAt=Field("created_at"),
    updatedAt=Field("updated_at"),
)

PLAYLIST_DETAIL = PLAYLIST.extend(
    owner=One("owner", OWNER),
    videos=Many("entries", VIDEO_CARD, unwrap="video"),
)

PLAYLIST_ITEM = Shape(
    position=Field("position"),
    addedAt=Field("added_at"),
    video=One("video", VIDEO_CARD),
)


def _video_lookup() -> Lookup:
    # unpublished videos stay in the list but are not shown
    return Lookup("video", Video, "id", fields=VIDEO_FIELDS, local_field="video_id", one=True,
                  where=[Video.is_published.is_(True)], lookups=[owner_lookup()])


def _video_count() -> Accumulate:
    return Accumulate("video_count", PlaylistEntry.playlist_id)


def _owned_playlist(session: Session, principal: Principal, playlist_id: uuid.UUID) -> Playlist:
    playlist = session.get(Playlist, playlist_id)
    if playlist is None:
        raise NotFound("Playlist not found")
    if playlist.owner_id != principal.id:
        raise Forbidden("You are not the owner of this playlist")
    return playlist


def _summary(session: Session, playlist_id: uuid.UUID) -> dict:
    return (
        Pipeline(Playlist, fields=PLAYLIST_FIELDS)
        .equals("id", playlist_id)
        .join(_video_count())
        .project(PLAYLIST)
        .first(session)
    )


def create_playlist(session: Session, principal: Principal, name: str, description: str) -> dict:
    name, description = (name or "").strip(), (description or "").strip()
    if not (name and description):
        raise BadRequest("Name and description are required")
    playlist = Playlist(owner_id=principal.id, name=name, description=description)
    session.add(playlist)
    session.commit()
    session.refresh(playlist)
    logger.info(f"User {principal.id} created playlist {playlist.id}")
    return _summary(session, playlist.id)


def user_playlists(session: Session, user_id: uuid.UUID, request: FeedRequest):
    if session.get(User, user_id) is None:
        raise NotFound("User not found")
    pipeline = (
        Pipeline(Playlist, fields=PLAYLIST_FIELDS, sortable=PLAYLIST_SORTS)
        .equals("owner_id", user_id)
        .search("name", request.query)
        .join(_video_count())
        .project(PLAYLIST)
    )
    return feed_page(session, pipeline, request)


def playlist_detail(session: Session, playlist_id: uuid.UUID, principal: Optional[Principal] = None) -> dict:
    detail = (
        Pipeline(Playlist, fields=PLAYLIST_FIELDS)
        .equals("id", playlist_id)
        .join(owner_lookup())
        .join(_video_count())
        .join(Lookup("entries", PlaylistEntry, "playlist_id", fields=["video_id", "position", "added_at"],
                     order_by=[PlaylistEntry.position.asc(), PlaylistEntry.id.asc()],
                     lookups=[_video_lookup()], per_key=settings.playlist_preview_size))
        .project(PLAYLIST_DETAIL, principal)
        .first(session)
    )
    if detail is None:
        raise NotFound("Playlist not found")
    return detail


def playlist_videos(session: Session, playlist_id: uuid.UUID, request: FeedRequest,
                    principal: Optional[Principal] = None):
    """Cursor paginated entries of one playlist, in list order by default."""
    if session.get(Playlist, playlist_id) is None:
        raise NotFound("Playlist not found")
    pipeline = (
        Pipeline(PlaylistEntry, fields=["video_id", "position", "added_at"],
                 sortable={"position": "position", "addedAt": "added_at"})
        .equals("playlist_id", playlist_id)
        .join(_video_lookup())
        .project(PLAYLIST_ITEM, principal)
    )
    page = feed_page(session, pipeline, request)
    page.items = [item for item in page.items if item["video"] is not None]
    return page


def add_video(session: Session, principal: Principal, playlist_id: uuid.UUID, video_id: uuid.UUID) -> dict:
    playlist = _owned_playlist(session, principal, playlist_id)
    if session.get(Video, video_id) is None:
        raise NotFound("Video not found")
    last = session.exec(
        select(func.max(PlaylistEntry.position)).where(PlaylistEntry.playlist_id == playlist_id)
    ).one()
    session.add(PlaylistEntry(playlist_id=playlist_id, video_id=video_id, position=(last or 0) + 1))
    playlist.updated_at = utcnow()
    session.add(playlist)
    try:
        session.commit()
    except IntegrityError as e:
        session.rollback()
        raise Conflict("Video is already in the playlist") from e
    return _summary(session, playlist_id)


def remove_video(session: Session, principal: Principal, playlist_id: uuid.UUID, video_id: uuid.UUID) -> dict:
    playlist = _owned_playlist(session, principal, playlist_id)
    removed = session.connection().execute(
        delete(PlaylistEntry).where(PlaylistEntry.playlist_id == playlist_id, PlaylistEntry.video_id == video_id)
    )
    if not removed.rowcount:
        session.rollback()
        raise NotFound("Video is not in the playlist")
    playlist.updated_at = utcnow()
    session.add(playlist)
    session.commit()
    return _summary(session, playlist_id)


def delete_playlist(session: Session, principal: Principal, playlist_id: uuid.UUID) -> None:
    playlist = _owned_playlist(session, principal, playlist_id)
    session.connection().execute(delete(PlaylistEntry).where(PlaylistEntry.playlist_id == playlist_id))
    session.delete(playlist)
    session.commit()
    logger.info(f"User {principal.id} deleted playlist {playlist_id}")


def update_playlist(session: Session, principal: Principal, playlist_id: uuid.UUID,
                    name: Optional[str], description: Optional[str]) -> dict:
    name, description = (name or "").strip(), (description or "").strip()
    if not (name or description):
        raise BadRequest("Name or description is required")
    playlist = _owned_playlist(session, principal, playlist_id)
    if name:
        playlist.name = name
    if description:
        playlist.description = description
    playlist.updated_at = utcnow()
    session.add(playlist)
    session.commit()
    return _summary(session, playlist_id)
