# vidtube/models/subscription.py
import uuid
from datetime import datetime
from sqlmodel import Field, SQLModel, UniqueConstraint

from vidtube.models.user import utcnow


class Subscription(SQLModel, table=True):
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True, nullable=False)
    subscriber_id: uuid.UUID = Field(foreign_key="user.id", index=True)
    channel_id: uuid.UUID = Field(foreign_key="user.id", index=True)
    created_at: datetime = Field(default_factory=utcnow, index=True)

    __table_args__ = (
        UniqueConstraint("subscriber_id", "channel_id"),
    )
