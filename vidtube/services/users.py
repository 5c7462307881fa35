# vidtube/services/users.py
import logging
import uuid
from typing import Optional, Tuple

from sqlalchemy import delete, or_
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from vidtube.core.config import settings
from vidtube.core.errors import BadRequest, Conflict, Internal, NotFound, Unauthorized
from vidtube.core.media import MediaStore, UploadBatch, discard_asset
from vidtube.core.security import (Principal, create_access_token, create_refresh_token, decode_token,
                                   get_password_hash, verify_password)
from vidtube.models.subscription import Subscription
from vidtube.models.user import User, WatchHistoryEntry, utcnow
from vidtube.models.video import Video
from vidtube.schemas.feed import FeedRequest
from vidtube.services.pipeline import Accumulate, Lookup, Pipeline
from vidtube.services.projector import Field, Member, One, Shape
from vidtube.services.shapes import (VIDEO_CARD, VIDEO_FIELDS, feed_page, owner_lookup, subscribed_by,
                                     subscriber_count)

logger = logging.getLogger(__name__)

# never includes password_hash or refresh_token
USER = Shape(
    _id=Field("id"),
    username=Field("username"),
    email=Field("email"),
    fullName=Field("full_name"),
    avatar=Field("avatar"),
    coverImage=Field("cover_image", ""),
    createdAt=Field("created_at"),
    updatedAt=Field("updated_at"),
)

CHANNEL_PROFILE = Shape(
    _id=Field("id"),
    username=Field("username"),
    fullName=Field("full_name"),
    avatar=Field("avatar"),
    coverImage=Field("cover_image", ""),
    subscribersCount=Field("subscribers_count", 0),
    channelsSubscribedToCount=Field("subscribed_to_count", 0),
    isSubscribed=Member("subscribed", "subscriber_id"),
)

WATCH_HISTORY_ENTRY = Shape(
    watchedAt=Field("watched_at"),
    video=One("video", VIDEO_CARD),
)


def user_view(user: User) -> dict:
    return USER.project(user.model_dump())


def _normalise(value: Optional[str]) -> str:
    return (value or "").strip()


async def register_user(session: Session, media: MediaStore, full_name: str, email: str, username: str,
                        password: str, avatar_path: Optional[str], cover_path: Optional[str]) -> dict:
    full_name, email, username = _normalise(full_name), _normalise(email).lower(), _normalise(username).lower()
    if not all([full_name, email, username, password]):
        raise BadRequest("All fields are required")
    if not avatar_path:
        raise BadRequest("Avatar is required")

    existing = session.exec(select(User).where(or_(User.email == email, User.username == username))).first()
    if existing:
        raise Conflict("User with this email or username already exists")

    async with UploadBatch(media) as batch:
        avatar = await batch.upload(avatar_path, "image")
        cover = await batch.upload(cover_path, "image") if cover_path else None
        user = User(
            full_name=full_name,
            email=email,
            username=username,
            password_hash=get_password_hash(password),
            avatar=avatar.url,
            avatar_public_id=avatar.public_id,
            cover_image=cover.url if cover else "",
            cover_image_public_id=cover.public_id if cover else None,
        )
        session.add(user)
        try:
            session.commit()
        except IntegrityError as e:
            session.rollback()
            raise Conflict("User with this email or username already exists") from e
    session.refresh(user)
    logger.info(f"User {user.id} ({user.username}) registered")
    return user_view(user)


def _issue_tokens(session: Session, user: User) -> Tuple[str, str]:
    access_token = create_access_token(user.id, user.email, user.username, user.full_name)
    refresh_token = create_refresh_token(user.id)
    user.refresh_token = refresh_token
    session.add(user)
    session.commit()
    session.refresh(user)
    return access_token, refresh_token


def login_user(session: Session, email: Optional[str], username: Optional[str], password: str) -> Tuple[dict, str, str]:
    clauses = []
    if email:
        clauses.append(User.email == email.strip().lower())
    if username:
        clauses.append(User.username == username.strip().lower())
    user = session.exec(select(User).where(or_(*clauses))).first()
    if user is None:
        raise NotFound("User does not exist")
    if not verify_password(password, user.password_hash):
        raise Unauthorized("Invalid user credentials")
    access_token, refresh_token = _issue_tokens(session, user)
    logger.info(f"User {user.id} logged in")
    return user_view(user), access_token, refresh_token


def logout_user(session: Session, user: User) -> None:
    user.refresh_token = None
    session.add(user)
    session.commit()


def refresh_tokens(session: Session, incoming: Optional[str]) -> Tuple[str, str]:
    if not incoming:
        raise Unauthorized("Unauthorized request")
    payload = decode_token(incoming, settings.refresh_token_secret)
    if payload is None:
        raise Unauthorized("Invalid refresh token")
    try:
        user = session.get(User, uuid.UUID(payload.get("sub")))
    except (ValueError, TypeError):
        raise Unauthorized("Invalid refresh token")
    if user is None:
        raise Unauthorized("Invalid refresh token")
    if incoming != user.refresh_token:
        raise Unauthorized("Refresh token is expired or used")
    return _issue_tokens(session, user)


def change_password(session: Session, user: User, old_password: str, new_password: str) -> None:
    if not verify_password(old_password, user.password_hash):
        raise BadRequest("Invalid old password")
    user.password_hash = get_password_hash(new_password)
    user.updated_at = utcnow()
    session.add(user)
    session.commit()


def update_account(session: Session, user: User, full_name: Optional[str], email: Optional[str]) -> dict:
    full_name, email = _normalise(full_name), _normalise(email).lower()
    if not (full_name or email):
        raise BadRequest("fullName or email is required")
    if full_name:
        user.full_name = full_name
    if email and email != user.email:
        taken = session.exec(select(User.id).where(User.email == email)).first()
        if taken is not None:
            raise Conflict("Email is already in use")
        user.email = email
    user.updated_at = utcnow()
    session.add(user)
    try:
        session.commit()
    except IntegrityError as e:
        session.rollback()
        raise Conflict("Email is already in use") from e
    session.refresh(user)
    return user_view(user)


async def replace_image(session: Session, media: MediaStore, user: User, path: Optional[str], kind: str) -> dict:
    """Swap the avatar or cover image; the previous asset is destroyed once the new one is saved."""
    if not path:
        raise BadRequest(f"{kind} file is missing")
    url_attr, id_attr = ("avatar", "avatar_public_id") if kind == "avatar" else ("cover_image", "cover_image_public_id")
    previous = getattr(user, id_attr)
    async with UploadBatch(media) as batch:
        asset = await batch.upload(path, "image")
        setattr(user, url_attr, asset.url)
        setattr(user, id_attr, asset.public_id)
        user.updated_at = utcnow()
        session.add(user)
        try:
            session.commit()
        except IntegrityError as e:
            session.rollback()
            raise Internal(f"Failed to update {kind}") from e
    await discard_asset(media, previous, "image")
    session.refresh(user)
    return user_view(user)


def channel_profile(session: Session, username: str, principal: Optional[Principal]) -> dict:
    username = _normalise(username).lower()
    if not username:
        raise BadRequest("username is missing")
    pipeline = (
        Pipeline(User, fields=["username", "full_name", "avatar", "cover_image"])
        .equals("username", username)
        .join(subscriber_count())
        .join(Accumulate("subscribed_to_count", Subscription.subscriber_id))
        .join(subscribed_by(principal))
        .project(CHANNEL_PROFILE, principal)
    )
    profile = pipeline.first(session)
    if profile is None:
        raise NotFound("Channel does not exist")
    return profile


def record_watch(session: Session, principal: Principal, video_id: uuid.UUID) -> None:
    """Put ``video_id`` at the head of the requester's watch history."""
    if session.get(Video, video_id) is None:
        raise NotFound("Video not found")
    session.connection().execute(
        delete(WatchHistoryEntry).where(
            WatchHistoryEntry.user_id == principal.id, WatchHistoryEntry.video_id == video_id
        )
    )
    session.add(WatchHistoryEntry(user_id=principal.id, video_id=video_id))
    try:
        session.commit()
    except IntegrityError:
        # a concurrent request recorded the same watch
        session.rollback()


def watch_history(session: Session, principal: Principal, request: FeedRequest):
    pipeline = (
        Pipeline(WatchHistoryEntry, fields=["video_id", "watched_at"], sortable={"watchedAt": "watched_at"})
        .equals("user_id", principal.id)
        .join(Lookup("video", Video, "id", fields=VIDEO_FIELDS, local_field="video_id", one=True,
                     lookups=[owner_lookup()]))
        .project(WATCH_HISTORY_ENTRY, principal)
    )
    return feed_page(session, pipeline, request)
