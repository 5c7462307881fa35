# vidtube/models/playlist.py
import uuid
from datetime import datetime
from sqlmodel import Field, SQLModel, UniqueConstraint

from vidtube.models.user import utcnow


class Playlist(SQLModel, table=True):
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True, nullable=False)
    owner_id: uuid.UUID = Field(foreign_key="user.id", index=True)
    name: str = Field(index=True)
    description: str
    created_at: datetime = Field(default_factory=utcnow, index=True)
    updated_at: datetime = Field(default_factory=utcnow)


class PlaylistEntry(SQLModel, table=True):
    __tablename__ = "playlist_entry"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True, nullable=False)
    playlist_id: uuid.UUID = Field(foreign_key="playlist.id", index=True)
    video_id: uuid.UUID = Field(index=True)
    position: int = Field(default=0)
    added_at: datetime = Field(default_factory=utcnow)

    # Составной уникальный индекс, чтобы не хранить дубли
    __table_args__ = (
        UniqueConstraint("playlist_id", "video_id"),
    )
