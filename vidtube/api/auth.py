# vidtube/api/auth.py
import logging
import uuid
from typing import Annotated, Optional

from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer

from vidtube.core.config import settings
from vidtube.core.database import SessionDep
from vidtube.core.errors import Unauthorized
from vidtube.core.security import Principal, decode_token
from vidtube.models.user import User

logger = logging.getLogger(__name__)

ACCESS_COOKIE = "accessToken"
REFRESH_COOKIE = "refreshToken"

oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.api_prefix}/users/login", auto_error=False)


def get_access_token(request: Request, bearer: Optional[str] = Depends(oauth2_scheme)) -> Optional[str]:
    """Access token from the cookie, falling back to the Authorization header."""
    return request.cookies.get(ACCESS_COOKIE) or bearer


def _resolve_user(session, token: str) -> Optional[User]:
    payload = decode_token(token, settings.access_token_secret)
    if payload is None:
        logger.debug("Access token failed validation")
        return None
    try:
        user_id = uuid.UUID(payload.get("sub"))
    except (ValueError, TypeError):
        logger.error(f"Invalid user ID format in access token 'sub': {payload.get('sub')}")
        return None
    return session.get(User, user_id)


def get_current_user(session: SessionDep, token: Optional[str] = Depends(get_access_token)) -> User:
    if not token:
        raise Unauthorized("Unauthorized request")
    user = _resolve_user(session, token)
    if user is None:
        raise Unauthorized("Invalid access token")
    return user


def get_principal(user: User = Depends(get_current_user)) -> Principal:
    return Principal(id=user.id, username=user.username)


def get_optional_principal(session: SessionDep, token: Optional[str] = Depends(get_access_token)) -> Optional[Principal]:
    """Requester on public routes; anonymous (``None``) when no valid token was sent."""
    if not token:
        return None
    user = _resolve_user(session, token)
    if user is None:
        return None
    return Principal(id=user.id, username=user.username)


CurrentUser = Annotated[User, Depends(get_current_user)]
PrincipalDep = Annotated[Principal, Depends(get_principal)]
OptionalPrincipal = Annotated[Optional[Principal], Depends(get_optional_principal)]
