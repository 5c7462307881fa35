# vidtube/models/user.py
from typing import Optional
import uuid
from datetime import datetime, timezone
from sqlmodel import Field, SQLModel, UniqueConstraint


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(SQLModel, table=True):
    id: uuid.UUID = Field(
        default_factory=uuid.uuid4, primary_key=True, index=True, nullable=False
    )
    username: str = Field(index=True, unique=True)
    email: str = Field(index=True, unique=True)
    full_name: str = Field(index=True)
    avatar: str  # media host url
    avatar_public_id: Optional[str] = None
    cover_image: str = Field(default="")
    cover_image_public_id: Optional[str] = None
    password_hash: str = Field()
    refresh_token: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class WatchHistoryEntry(SQLModel, table=True):
    __tablename__ = "watch_history_entry"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True, nullable=False)
    user_id: uuid.UUID = Field(foreign_key="user.id", index=True)
    video_id: uuid.UUID = Field(index=True)
    watched_at: datetime = Field(default_factory=utcnow, index=True)

    # re-watching moves the entry instead of duplicating it
    __table_args__ = (
        UniqueConstraint("user_id", "video_id"),
    )
