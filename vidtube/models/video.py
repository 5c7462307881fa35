# vidtube/models/video.py
import uuid
from datetime import datetime
from sqlmodel import Field, SQLModel, UniqueConstraint

from vidtube.models.user import utcnow


class Video(SQLModel, table=True):
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True, index=True, nullable=False)
    owner_id: uuid.UUID = Field(foreign_key="user.id", index=True)
    title: str = Field(index=True)
    description: str
    duration: float = Field(default=0)  # seconds
    view_count: int = Field(default=0, index=True)
    is_published: bool = Field(default=True, index=True)
    video_file: str  # media host url
    video_public_id: str
    thumbnail: str
    thumbnail_public_id: str
    created_at: datetime = Field(default_factory=utcnow, index=True)
    updated_at: datetime = Field(default_factory=utcnow)


class VideoView(SQLModel, table=True):
    """Membership row of a video's ``viewedBy`` set; one per (video, viewer)."""
    __tablename__ = "video_view"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True, nullable=False)
    video_id: uuid.UUID = Field(foreign_key="video.id", index=True)
    viewer_id: uuid.UUID = Field(foreign_key="user.id", index=True)
    created_at: datetime = Field(default_factory=utcnow)

    __table_args__ = (
        UniqueConstraint("video_id", "viewer_id"),
    )
