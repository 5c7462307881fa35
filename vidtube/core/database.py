# vidtube/core/database.py
from sqlmodel import create_engine, SQLModel, Session
from vidtube.core.config import settings
from typing import Generator, Annotated
from fastapi import Depends


def _engine_options(url: str) -> dict:
    # Every store round trip has to be bounded: sqlite waits on its file lock,
    # network databases on connect and on a free pooled connection.
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False, "timeout": settings.db_timeout_seconds}}
    return {
        "connect_args": {"connect_timeout": int(settings.db_timeout_seconds)},
        "pool_timeout": settings.db_timeout_seconds,
        "pool_pre_ping": True,
    }


engine = create_engine(settings.database_url, echo=settings.db_echo, **_engine_options(settings.database_url))


def get_db() -> Generator:
    with Session(engine) as session:
        yield session


def init_db():
    SQLModel.metadata.create_all(engine)


SessionDep = Annotated[Session, Depends(get_db)]
