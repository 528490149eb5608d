from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from blog_api.database import get_db
from blog_api.dependencies import require
from blog_api.identity import Identity
from blog_api.policy import Action
from blog_api.schemas import CommentResponse, MessageResponse
from blog_api.services import comment_service

router = APIRouter(prefix="/api/v1/admin/comments", tags=["moderation"])


@router.get("", response_model=list[CommentResponse])
async def moderation_queue(
    _: Identity = Depends(require(Action.LIST_PENDING_COMMENTS)),
    db: AsyncSession = Depends(get_db),
):
    return await comment_service.list_pending(db)


@router.patch("/{comment_id}/approve", response_model=CommentResponse)
async def approve_comment(
    comment_id: int,
    _: Identity = Depends(require(Action.APPROVE_COMMENT)),
    db: AsyncSession = Depends(get_db),
):
    return await comment_service.approve_comment(db, comment_id)


@router.delete("/{comment_id}/reject", response_model=MessageResponse)
async def reject_comment(
    comment_id: int,
    _: Identity = Depends(require(Action.REJECT_COMMENT)),
    db: AsyncSession = Depends(get_db),
):
    await comment_service.reject_comment(db, comment_id)
    return {"message": "Comment rejected and deleted"}
