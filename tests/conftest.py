import os
import tempfile
import uuid

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["UPLOAD_TMP_DIR"] = tempfile.mkdtemp(prefix="vidtube-uploads-")
os.environ.pop("REDIS_URL", None)

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import event, insert
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from vidtube.core.database import get_db
from vidtube.core.media import MediaAsset, MediaError, get_media_store
from vidtube.core.redis_client import get_redis_client
from vidtube.core.security import Principal, create_access_token, get_password_hash
from vidtube.main import app
from vidtube.models.user import User, utcnow
from vidtube.models.video import Video

PASSWORD = "password123"
PASSWORD_HASH = get_password_hash(PASSWORD)


class FakeMediaStore:
    """In-memory media host; ``fail_after`` makes the n-th and later uploads fail."""

    def __init__(self):
        self.uploaded = []
        self.destroyed = []
        self.fail_after = None

    async def upload(self, path, resource_type="auto"):
        if self.fail_after is not None and len(self.uploaded) >= self.fail_after:
            raise MediaError("Media host upload failed")
        public_id = f"asset-{len(self.uploaded) + 1}"
        self.uploaded.append(public_id)
        return MediaAsset(
            url=f"https://media.example.com/{public_id}",
            public_id=public_id,
            resource_type="video" if resource_type == "video" else "image",
            duration=12.5 if resource_type == "video" else None,
        )

    async def destroy(self, public_id, resource_type="image"):
        self.destroyed.append(public_id)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def engine():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def media():
    return FakeMediaStore()


@pytest.fixture
def client(engine, media):
    def override_get_db():
        with Session(engine) as session:
            yield session

    async def override_get_redis_client():
        yield None

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_media_store] = lambda: media
    app.dependency_overrides[get_redis_client] = override_get_redis_client
    yield TestClient(app)
    app.dependency_overrides.clear()


def make_user(session, username, full_name=None):
    user = User(
        username=username,
        email=f"{username}@example.com",
        full_name=full_name or username.capitalize(),
        avatar=f"https://media.example.com/{username}.png",
        avatar_public_id=f"{username}-avatar",
        password_hash=PASSWORD_HASH,
    )
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


def make_video(session, owner, title="Video", **fields):
    video = Video(
        owner_id=owner.id if owner is not None else fields.pop("owner_id"),
        title=title,
        description=fields.pop("description", f"About {title}"),
        video_file=f"https://media.example.com/{title}.mp4",
        video_public_id=fields.pop("video_public_id", f"{title}-video"),
        thumbnail=f"https://media.example.com/{title}.jpg",
        thumbnail_public_id=fields.pop("thumbnail_public_id", f"{title}-thumb"),
        **fields,
    )
    session.add(video)
    session.commit()
    session.refresh(video)
    return video


def principal_of(user):
    return Principal(id=user.id, username=user.username)


def auth_headers(user):
    token = create_access_token(user.id, user.email, user.username, user.full_name)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def alice(session):
    return make_user(session, "alice")


@pytest.fixture
def bob(session):
    return make_user(session, "bob")


def insert_before_flush(session, model, **values):
    """Write a conflicting ``model`` row on the session's connection right before it flushes a new one."""
    written = []

    @event.listens_for(session, "before_flush")
    def write_conflicting_row(sess, flush_context, instances):
        if written or not any(isinstance(obj, model) for obj in sess.new):
            return
        written.append(True)
        sess.connection().execute(insert(model).values(id=uuid.uuid4(), created_at=utcnow(), **values))

    return written
