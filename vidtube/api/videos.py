# vidtube/api/videos.py
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile, status

from vidtube.api.auth import OptionalPrincipal, PrincipalDep
from vidtube.core.database import SessionDep
from vidtube.core.media import MediaStore, get_media_store, staged_upload
from vidtube.core.rate_limiter import rate_limit_uploads
from vidtube.core.responses import respond
from vidtube.schemas.content import VideoUpdate
from vidtube.schemas.feed import FeedRequest, feed_params
from vidtube.services import videos as video_service

router = APIRouter()

VIDEO_PAGE_KEYS = {"cursor_key": "lastVideoId", "total_key": "totalVideos"}


@router.get("")
async def get_all_videos(
    session: SessionDep,
    principal: OptionalPrincipal,
    feed: FeedRequest = Depends(feed_params("views")),
):
    """Лента опубликованных видео: фильтр, сортировка и курсор."""
    page = video_service.video_feed(session, feed, principal)
    message = "Videos fetched successfully" if page.items else "No videos found"
    return respond(page.as_response(**VIDEO_PAGE_KEYS), message)


@router.post("/upload-video", status_code=201, dependencies=[Depends(rate_limit_uploads)])
async def upload_video(
    principal: PrincipalDep,
    session: SessionDep,
    title: str = Form(...),
    description: str = Form(...),
    video_file: Optional[UploadFile] = File(None, alias="videoFile"),
    thumbnail: Optional[UploadFile] = File(None),
    media: MediaStore = Depends(get_media_store),
):
    async with staged_upload(video_file) as video_path, staged_upload(thumbnail) as thumbnail_path:
        video = await video_service.publish_video(
            session, media, principal, title, description, video_path, thumbnail_path
        )
    return respond(video, "Video uploaded successfully", status.HTTP_201_CREATED)


@router.get("/channel/{channel_id}")
async def get_channel_videos(
    channel_id: uuid.UUID,
    session: SessionDep,
    principal: OptionalPrincipal,
    feed: FeedRequest = Depends(feed_params("createdAt")),
):
    page = video_service.channel_videos(session, channel_id, feed, principal)
    return respond(page.as_response(**VIDEO_PAGE_KEYS), "Channel videos fetched successfully")


@router.get("/{video_id}")
async def get_video(video_id: uuid.UUID, session: SessionDep, principal: OptionalPrincipal):
    return respond(video_service.video_detail(session, video_id, principal), "Video fetched successfully")


@router.patch("/update/{video_id}")
async def update_video(video_id: uuid.UUID, body: VideoUpdate, principal: PrincipalDep, session: SessionDep):
    video = video_service.update_details(session, principal, video_id, body.title, body.description)
    return respond(video, "Video updated successfully")


@router.patch("/update-thumbnail/{video_id}", dependencies=[Depends(rate_limit_uploads)])
async def update_thumbnail(
    video_id: uuid.UUID,
    principal: PrincipalDep,
    session: SessionDep,
    thumbnail: Optional[UploadFile] = File(None),
    media: MediaStore = Depends(get_media_store),
):
    async with staged_upload(thumbnail) as path:
        video = await video_service.replace_thumbnail(session, media, principal, video_id, path)
    return respond(video, "Thumbnail updated successfully")


@router.delete("/delete/{video_id}")
async def delete_video(
    video_id: uuid.UUID,
    principal: PrincipalDep,
    session: SessionDep,
    media: MediaStore = Depends(get_media_store),
):
    await video_service.delete_video(session, media, principal, video_id)
    return respond({}, "Video deleted successfully")


@router.patch("/toggle-publish/{video_id}")
async def toggle_publish(video_id: uuid.UUID, principal: PrincipalDep, session: SessionDep):
    is_published = video_service.toggle_publish(session, principal, video_id)
    return respond({"isPublished": is_published}, "Video publish status updated")


@router.patch("/view/{video_id}")
async def register_view(video_id: uuid.UUID, principal: PrincipalDep, session: SessionDep):
    views, counted = video_service.register_view(session, principal, video_id)
    message = "Video view count updated successfully" if counted else "You have already viewed this video"
    return respond({"views": views}, message)
