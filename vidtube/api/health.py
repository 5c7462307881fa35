# vidtube/api/health.py
import logging
import time
from datetime import datetime, timezone

from fastapi import APIRouter
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from vidtube.core.database import SessionDep
from vidtube.core.errors import Internal
from vidtube.core.responses import respond

logger = logging.getLogger(__name__)

router = APIRouter()

STARTED_AT = time.monotonic()


@router.get("")
async def healthcheck(session: SessionDep):
    """Проверка живости сервиса и доступности базы."""
    try:
        session.connection().execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error(f"Healthcheck database ping failed: {e}")
        raise Internal("Database is unreachable") from e
    return respond(
        {
            "uptime": round(time.monotonic() - STARTED_AT, 3),
            "message": "OK",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
        "Health check passed",
    )
