# vidtube/api/users.py
import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile, status
from fastapi.responses import JSONResponse

from vidtube.api.auth import ACCESS_COOKIE, REFRESH_COOKIE, CurrentUser, OptionalPrincipal, PrincipalDep
from vidtube.core.config import settings
from vidtube.core.database import SessionDep
from vidtube.core.media import MediaStore, get_media_store, staged_upload
from vidtube.core.responses import respond
from vidtube.schemas.feed import FeedRequest, feed_params
from vidtube.schemas.user import AccountUpdate, ChangePasswordRequest, LoginRequest, RefreshRequest
from vidtube.services import users as user_service

logger = logging.getLogger(__name__)

router = APIRouter()


def set_auth_cookies(response: JSONResponse, access_token: str, refresh_token: str) -> JSONResponse:
    response.set_cookie(
        key=ACCESS_COOKIE,
        value=access_token,
        httponly=True,
        secure=settings.secure_cookies,
        samesite="lax",
        max_age=settings.access_token_expire_minutes * 60,
    )
    response.set_cookie(
        key=REFRESH_COOKIE,
        value=refresh_token,
        httponly=True,
        secure=settings.secure_cookies,
        samesite="lax",
        max_age=settings.refresh_token_expire_days * 24 * 60 * 60,
    )
    return response


def clear_auth_cookies(response: JSONResponse) -> JSONResponse:
    response.delete_cookie(ACCESS_COOKIE, path="/")
    response.delete_cookie(REFRESH_COOKIE, path="/")
    return response


@router.post("/register", status_code=201)
async def register(
    session: SessionDep,
    full_name: str = Form(..., alias="fullName"),
    email: str = Form(...),
    username: str = Form(...),
    password: str = Form(...),
    avatar: Optional[UploadFile] = File(None),
    cover_image: Optional[UploadFile] = File(None, alias="coverImage"),
    media: MediaStore = Depends(get_media_store),
):
    async with staged_upload(avatar) as avatar_path, staged_upload(cover_image) as cover_path:
        user = await user_service.register_user(
            session, media, full_name, email, username, password, avatar_path, cover_path
        )
    return respond(user, "User registered successfully", status.HTTP_201_CREATED)


@router.post("/login")
async def login(body: LoginRequest, session: SessionDep):
    user, access_token, refresh_token = user_service.login_user(session, body.email, body.username, body.password)
    response = respond(
        {"user": user, "accessToken": access_token, "refreshToken": refresh_token},
        "User logged in successfully",
    )
    return set_auth_cookies(response, access_token, refresh_token)


@router.post("/logout")
async def logout(current_user: CurrentUser, session: SessionDep):
    user_service.logout_user(session, current_user)
    logger.info(f"User {current_user.id} logged out")
    return clear_auth_cookies(respond({}, "User logged out successfully"))


@router.post("/refresh-token")
async def refresh_token(request: Request, session: SessionDep, body: Optional[RefreshRequest] = None):
    incoming = request.cookies.get(REFRESH_COOKIE) or (body.refreshToken if body else None)
    access_token, new_refresh_token = user_service.refresh_tokens(session, incoming)
    response = respond({"accessToken": access_token, "refreshToken": new_refresh_token}, "Access token refreshed")
    return set_auth_cookies(response, access_token, new_refresh_token)


@router.post("/change-password")
async def change_password(body: ChangePasswordRequest, current_user: CurrentUser, session: SessionDep):
    user_service.change_password(session, current_user, body.oldPassword, body.newPassword)
    return respond({}, "Password changed successfully")


@router.get("/current-user")
async def current_user(current_user: CurrentUser):
    return respond(user_service.user_view(current_user), "User fetched successfully")


@router.patch("/update-account-details")
async def update_account_details(body: AccountUpdate, current_user: CurrentUser, session: SessionDep):
    user = user_service.update_account(session, current_user, body.fullName, body.email)
    return respond(user, "Account details updated successfully")


@router.patch("/update-avatar")
async def update_avatar(
    current_user: CurrentUser,
    session: SessionDep,
    avatar: Optional[UploadFile] = File(None),
    media: MediaStore = Depends(get_media_store),
):
    async with staged_upload(avatar) as path:
        user = await user_service.replace_image(session, media, current_user, path, "avatar")
    return respond(user, "Avatar updated successfully")


@router.patch("/update-coverimage")
async def update_cover_image(
    current_user: CurrentUser,
    session: SessionDep,
    cover_image: Optional[UploadFile] = File(None, alias="coverImage"),
    media: MediaStore = Depends(get_media_store),
):
    async with staged_upload(cover_image) as path:
        user = await user_service.replace_image(session, media, current_user, path, "coverImage")
    return respond(user, "Cover image updated successfully")


@router.get("/channel/{username}")
async def channel_profile(username: str, session: SessionDep, principal: OptionalPrincipal):
    profile = user_service.channel_profile(session, username, principal)
    return respond(profile, "Channel fetched successfully")


@router.get("/watch-history")
async def watch_history(
    principal: PrincipalDep,
    session: SessionDep,
    feed: FeedRequest = Depends(feed_params("watchedAt")),
):
    page = user_service.watch_history(session, principal, feed)
    return respond(page.as_response(), "Watch history fetched successfully")


@router.patch("/watch-history/{video_id}")
async def add_to_watch_history(video_id: uuid.UUID, principal: PrincipalDep, session: SessionDep):
    user_service.record_watch(session, principal, video_id)
    return respond({}, "Video added to watch history")
