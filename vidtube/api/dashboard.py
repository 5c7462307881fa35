# vidtube/api/dashboard.py
from fastapi import APIRouter, Depends

from vidtube.api.auth import PrincipalDep
from vidtube.core.database import SessionDep
from vidtube.core.responses import respond
from vidtube.schemas.feed import FeedRequest, feed_params
from vidtube.services import dashboard as dashboard_service

router = APIRouter()


@router.get("/my-dashboard")
async def get_channel_stats(principal: PrincipalDep, session: SessionDep):
    return respond(dashboard_service.channel_stats(session, principal), "Channel stats fetched successfully")


@router.get("/my-videos")
async def get_channel_videos(
    principal: PrincipalDep,
    session: SessionDep,
    feed: FeedRequest = Depends(feed_params("createdAt")),
):
    page = dashboard_service.my_videos(session, principal, feed)
    return respond(page.as_response(cursor_key="lastVideoId", total_key="totalVideos"), "Channel videos fetched successfully")
