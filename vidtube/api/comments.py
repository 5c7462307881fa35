# vidtube/api/comments.py
import uuid

from fastapi import APIRouter, Depends, status

from vidtube.api.auth import OptionalPrincipal, PrincipalDep
from vidtube.core.database import SessionDep
from vidtube.core.responses import respond
from vidtube.schemas.content import ContentBody
from vidtube.schemas.feed import FeedRequest, feed_params
from vidtube.services import comments as comment_service

router = APIRouter()


@router.post("/add-comment/{video_id}", status_code=201)
async def add_comment(video_id: uuid.UUID, body: ContentBody, principal: PrincipalDep, session: SessionDep):
    comment = comment_service.add_comment(session, principal, video_id, body.content)
    return respond(comment, "Comment added successfully", status.HTTP_201_CREATED)


@router.get("/all-comments/{video_id}")
async def get_video_comments(
    video_id: uuid.UUID,
    session: SessionDep,
    principal: OptionalPrincipal,
    feed: FeedRequest = Depends(feed_params("createdAt")),
):
    page = comment_service.video_comments(session, video_id, feed, principal)
    return respond(page.as_response(), "Comments fetched successfully")


@router.put("/update-comment/{comment_id}")
async def update_comment(comment_id: uuid.UUID, body: ContentBody, principal: PrincipalDep, session: SessionDep):
    comment = comment_service.update_comment(session, principal, comment_id, body.content)
    return respond(comment, "Comment updated successfully")


@router.delete("/delete-comment/{comment_id}")
async def delete_comment(comment_id: uuid.UUID, principal: PrincipalDep, session: SessionDep):
    comment_service.delete_comment(session, principal, comment_id)
    return respond({}, "Comment deleted successfully")
