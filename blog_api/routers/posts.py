from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from blog_api.database import get_db
from blog_api.dependencies import PaginationParams, get_principal, require
from blog_api.errors import NotFoundError
from blog_api.identity import Identity, Principal
from blog_api.policy import Action, enforce
from blog_api.schemas import (
    CommentCreate,
    CommentResponse,
    LikeResponse,
    PaginatedResponse,
    PostCreate,
    PostDetail,
    PostResponse,
    PostUpdate,
)
from blog_api.services import comment_service, like_service, post_service

router = APIRouter(prefix="/api/v1/posts", tags=["posts"])


# ---------------------------------------------------------------------------
# Posts
# ---------------------------------------------------------------------------

@router.get("", response_model=PaginatedResponse)
async def list_posts(
    q: str | None = Query(None, min_length=1, max_length=100, description="Keyword search over title and body."),
    pagination: PaginationParams = Depends(),
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    enforce(principal, Action.SEARCH_POSTS if q else Action.LIST_POSTS)
    return await post_service.get_posts(
        db, pagination.page, pagination.page_size, pagination.sort_by, pagination.sort_order, q
    )


@router.get("/{post_id}", response_model=PostDetail)
async def get_post(
    post_id: int,
    _: Principal = Depends(require(Action.READ_POST)),
    db: AsyncSession = Depends(get_db),
):
    post = await post_service.get_post(db, post_id)
    if not post:
        raise NotFoundError("Post not found")
    return post


@router.post("", status_code=201, response_model=PostResponse)
async def create_post(
    data: PostCreate,
    admin: Identity = Depends(require(Action.CREATE_POST)),
    db: AsyncSession = Depends(get_db),
):
    return await post_service.create_post(db, admin, data)


@router.put("/{post_id}", response_model=PostResponse)
async def update_post(
    post_id: int,
    data: PostUpdate,
    _: Identity = Depends(require(Action.UPDATE_POST)),
    db: AsyncSession = Depends(get_db),
):
    post = await post_service.update_post(db, post_id, data)
    if not post:
        raise NotFoundError("Post not found")
    return post


@router.delete("/{post_id}", status_code=204)
async def delete_post(
    post_id: int,
    _: Identity = Depends(require(Action.DELETE_POST)),
    db: AsyncSession = Depends(get_db),
):
    if not await post_service.delete_post(db, post_id):
        raise NotFoundError("Post not found")


# ---------------------------------------------------------------------------
# Comments
# ---------------------------------------------------------------------------

@router.get("/{post_id}/comments", response_model=list[CommentResponse])
async def list_comments(
    post_id: int,
    _: Principal = Depends(require(Action.LIST_COMMENTS)),
    db: AsyncSession = Depends(get_db),
):
    return await comment_service.list_approved(db, post_id)


@router.post("/{post_id}/comments", status_code=201, response_model=CommentResponse)
async def create_comment(
    post_id: int,
    data: CommentCreate,
    author: Identity = Depends(require(Action.CREATE_COMMENT)),
    db: AsyncSession = Depends(get_db),
):
    return await comment_service.create_comment(db, author, post_id, data)


@router.delete("/{post_id}/comments/{comment_id}", status_code=204)
async def delete_comment(
    post_id: int,
    comment_id: int,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    # Ownership needs the comment, so the policy check runs in the service.
    await comment_service.withdraw_comment(db, principal, post_id, comment_id)


# ---------------------------------------------------------------------------
# Likes
# ---------------------------------------------------------------------------

async def _require_post(db: AsyncSession, post_id: int) -> None:
    if not await post_service.post_exists(db, post_id):
        raise NotFoundError("Post not found")


@router.post("/{post_id}/like", response_model=LikeResponse)
async def like_post(
    post_id: int,
    user: Identity = Depends(require(Action.LIKE_POST)),
    db: AsyncSession = Depends(get_db),
):
    await _require_post(db, post_id)
    result = await like_service.like(db, user.id, post_id)
    return LikeResponse(
        post_id=post_id,
        liked=True,
        already_liked=result.already_liked,
        likes_count=await like_service.count_likes(db, post_id),
    )


@router.delete("/{post_id}/like", response_model=LikeResponse)
async def unlike_post(
    post_id: int,
    user: Identity = Depends(require(Action.UNLIKE_POST)),
    db: AsyncSession = Depends(get_db),
):
    await _require_post(db, post_id)
    result = await like_service.unlike(db, user.id, post_id)
    return LikeResponse(
        post_id=post_id,
        liked=False,
        removed=result.removed,
        likes_count=await like_service.count_likes(db, post_id),
    )
