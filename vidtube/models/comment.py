# vidtube/models/comment.py
import uuid
from datetime import datetime
from sqlmodel import Field, SQLModel

from vidtube.models.user import utcnow


class Comment(SQLModel, table=True):
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True, nullable=False)
    video_id: uuid.UUID = Field(foreign_key="video.id", index=True)
    owner_id: uuid.UUID = Field(foreign_key="user.id", index=True)
    content: str
    created_at: datetime = Field(default_factory=utcnow, index=True)
    updated_at: datetime = Field(default_factory=utcnow)
