from fastapi import APIRouter, Depends
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from blog_api.cache import cache
from blog_api.database import get_db
from blog_api.dependencies import require
from blog_api.identity import Identity
from blog_api.models import Comment, CommentStatus, Like, Post, User
from blog_api.policy import Action
from blog_api.schemas import MetricsResponse

router = APIRouter(prefix="/api/v1/metrics", tags=["metrics"])


async def _count(db: AsyncSession, model, *criteria) -> int:
    q = select(func.count()).select_from(model)
    if criteria:
        q = q.where(*criteria)
    return (await db.execute(q)).scalar_one()


@router.get("", response_model=MetricsResponse)
async def get_metrics(
    _: Identity = Depends(require(Action.VIEW_METRICS)),
    db: AsyncSession = Depends(get_db),
):
    return MetricsResponse(
        total_users=await _count(db, User),
        total_posts=await _count(db, Post),
        total_comments=await _count(db, Comment),
        pending_comments=await _count(db, Comment, Comment.status == CommentStatus.PENDING),
        total_likes=await _count(db, Like),
        cache_info=cache.stats,
    )
