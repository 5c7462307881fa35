# vidtube/core/security.py
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

from vidtube.core.config import settings

# Контекст для хеширования паролей (bcrypt)
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


@dataclass(frozen=True)
class Principal:
    """The authenticated requester, passed explicitly into reads that depend on who is asking."""
    id: uuid.UUID
    username: str


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def _encode(claims: dict, secret: str, expires_delta: timedelta) -> str:
    to_encode = claims.copy()
    to_encode["exp"] = datetime.now(timezone.utc) + expires_delta
    return jwt.encode(to_encode, secret, algorithm=settings.algorithm)


def create_access_token(user_id: uuid.UUID, email: str, username: str, full_name: str,
                        expires_delta: Optional[timedelta] = None) -> str:
    claims = {"sub": str(user_id), "email": email, "username": username, "fullName": full_name}
    return _encode(
        claims,
        settings.access_token_secret,
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes),
    )


def create_refresh_token(user_id: uuid.UUID, expires_delta: Optional[timedelta] = None) -> str:
    # jti keeps two refresh tokens issued within the same second distinct
    claims = {"sub": str(user_id), "jti": uuid.uuid4().hex}
    return _encode(
        claims,
        settings.refresh_token_secret,
        expires_delta or timedelta(days=settings.refresh_token_expire_days),
    )


def decode_token(token: str, secret: str) -> Optional[dict]:
    try:
        return jwt.decode(token, secret, algorithms=[settings.algorithm])
    except JWTError:
        return None
