# vidtube/models/like.py
import uuid
from datetime import datetime
from enum import Enum
from sqlmodel import Field, SQLModel, UniqueConstraint

from vidtube.models.user import utcnow


class LikeTarget(str, Enum):
    video = "video"
    comment = "comment"
    tweet = "tweet"


class Like(SQLModel, table=True):
    """A user's like record; its liked items form the video, comment and tweet sets."""
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True, nullable=False)
    liked_by: uuid.UUID = Field(foreign_key="user.id", unique=True, index=True)
    created_at: datetime = Field(default_factory=utcnow)


class LikedItem(SQLModel, table=True):
    __tablename__ = "liked_item"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True, nullable=False)
    like_id: uuid.UUID = Field(foreign_key="like.id", index=True)
    kind: str = Field(index=True, max_length=16)
    target_id: uuid.UUID = Field(index=True)
    created_at: datetime = Field(default_factory=utcnow)

    __table_args__ = (
        UniqueConstraint("like_id", "kind", "target_id"),
    )
