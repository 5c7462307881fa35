# vidtube/api/playlists.py
import uuid

from fastapi import APIRouter, Depends, status

from vidtube.api.auth import OptionalPrincipal, PrincipalDep
from vidtube.core.database import SessionDep
from vidtube.core.pagination import SortDirection
from vidtube.core.responses import respond
from vidtube.schemas.content import PlaylistCreate, PlaylistUpdate
from vidtube.schemas.feed import FeedRequest, feed_params
from vidtube.services import playlists as playlist_service

router = APIRouter()


@router.post("/create-playlist", status_code=201)
async def create_playlist(body: PlaylistCreate, principal: PrincipalDep, session: SessionDep):
    playlist = playlist_service.create_playlist(session, principal, body.name, body.description)
    return respond(playlist, "Playlist created successfully", status.HTTP_201_CREATED)


@router.get("/user/{user_id}")
async def get_user_playlists(
    user_id: uuid.UUID,
    session: SessionDep,
    feed: FeedRequest = Depends(feed_params("createdAt")),
):
    page = playlist_service.user_playlists(session, user_id, feed)
    return respond(page.as_response(), "Playlists fetched successfully")


@router.get("/playlist/{playlist_id}")
async def get_playlist(playlist_id: uuid.UUID, session: SessionDep, principal: OptionalPrincipal):
    return respond(playlist_service.playlist_detail(session, playlist_id, principal), "Playlist fetched successfully")


@router.get("/playlist/{playlist_id}/videos")
async def get_playlist_videos(
    playlist_id: uuid.UUID,
    session: SessionDep,
    principal: OptionalPrincipal,
    feed: FeedRequest = Depends(feed_params("position", SortDirection.asc)),
):
    page = playlist_service.playlist_videos(session, playlist_id, feed, principal)
    return respond(page.as_response(), "Playlist videos fetched successfully")


@router.post("/{playlist_id}/add-video/{video_id}")
async def add_video(playlist_id: uuid.UUID, video_id: uuid.UUID, principal: PrincipalDep, session: SessionDep):
    playlist = playlist_service.add_video(session, principal, playlist_id, video_id)
    return respond(playlist, "Video added to playlist")


@router.post("/{playlist_id}/remove-video/{video_id}")
async def remove_video(playlist_id: uuid.UUID, video_id: uuid.UUID, principal: PrincipalDep, session: SessionDep):
    playlist = playlist_service.remove_video(session, principal, playlist_id, video_id)
    return respond(playlist, "Video removed from playlist")


@router.delete("/delete/{playlist_id}")
async def delete_playlist(playlist_id: uuid.UUID, principal: PrincipalDep, session: SessionDep):
    playlist_service.delete_playlist(session, principal, playlist_id)
    return respond({}, "Playlist deleted successfully")


@router.patch("/update/{playlist_id}")
async def update_playlist(playlist_id: uuid.UUID, body: PlaylistUpdate, principal: PrincipalDep, session: SessionDep):
    playlist = playlist_service.update_playlist(session, principal, playlist_id, body.name, body.description)
    return respond(playlist, "Playlist updated successfully")
