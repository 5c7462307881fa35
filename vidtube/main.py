# vidtube/main.py
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from vidtube.api import comments, dashboard, health, likes, playlists, subscriptions, tweets, users, videos
from vidtube.core.config import settings
from vidtube.core.database import init_db
from vidtube.core.errors import register_exception_handlers
from vidtube.core.redis_client import close_redis_pool, create_redis_pool

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Создаем таблицы и пул Redis при старте приложения
    logger.info("Starting up: creating tables and Redis pool")
    init_db()
    create_redis_pool()
    yield
    await close_redis_pool()
    logger.info("Shut down complete")


app = FastAPI(title=settings.app_name, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[origin.strip() for origin in settings.cors_origin.split(",")],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# Подключаем роутеры
prefix = settings.api_prefix
app.include_router(health.router, prefix=f"{prefix}/healthcheck", tags=["healthcheck"])
app.include_router(users.router, prefix=f"{prefix}/users", tags=["users"])
app.include_router(videos.router, prefix=f"{prefix}/videos", tags=["videos"])
app.include_router(comments.router, prefix=f"{prefix}/comments", tags=["comments"])
app.include_router(likes.router, prefix=f"{prefix}/likes", tags=["likes"])
app.include_router(playlists.router, prefix=f"{prefix}/playlists", tags=["playlists"])
app.include_router(subscriptions.router, prefix=f"{prefix}/subscriptions", tags=["subscriptions"])
app.include_router(tweets.router, prefix=f"{prefix}/tweets", tags=["tweets"])
app.include_router(dashboard.router, prefix=f"{prefix}/dashboard", tags=["dashboard"])
