"""
Post service — business logic for the Post aggregate.

Design notes
------------
- List and detail reads go through the cache-aside pattern (Redis, then
  the database).  List keys encode every dimension that affects the
  result, including the search keyword.
- ``likes_count`` is added to the detail view after the cache lookup so a
  like never has to invalidate a cached post.
- The author is eager-loaded with ``joinedload``; every relationship is
  ``noload`` by default.
- Service functions flush but do not commit; the transaction boundary is
  owned by the ``get_db`` dependency in the router layer.
- Authorization happens before these functions are called; they assume
  the caller is allowed to perform the operation.
"""
import logging
import math

from sqlalchemy import asc, delete, desc, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload

from blog_api.cache import cache, post_detail_key, post_list_key
from blog_api.config import settings
from blog_api.identity import Identity
from blog_api.models import Comment, Like, Post
from blog_api.schemas import PaginatedResponse, PostCreate, PostUpdate
from blog_api.services import like_service

logger = logging.getLogger(__name__)

# Columns that are safe to sort by; guards against arbitrary attribute access.
_SORTABLE_COLUMNS: frozenset[str] = frozenset({"created_at", "title"})


def _resolve_sort_column(sort_by: str):
    if sort_by in _SORTABLE_COLUMNS:
        return getattr(Post, sort_by)
    return Post.created_at


def _keyword_filter(query: str):
    return or_(
        Post.title.icontains(query, autoescape=True),
        Post.body.icontains(query, autoescape=True),
    )


# ---------------------------------------------------------------------------
# Serialisation helpers
# ---------------------------------------------------------------------------

def _serialize_author(author) -> dict | None:
    if author is None:
        return None
    return {"id": author.id, "username": author.username}


def _post_to_dict(post: Post) -> dict:
    return {
        "id": post.id,
        "title": post.title,
        "body": post.body,
        "user_id": post.user_id,
        "created_at": post.created_at.isoformat() if post.created_at else None,
        "author": _serialize_author(post.author),
    }


async def _load_post(db: AsyncSession, post_id: int) -> Post | None:
    q = (
        select(Post)
        .where(Post.id == post_id)
        .options(joinedload(Post.author))
        .execution_options(populate_existing=True)
    )
    result = await db.execute(q)
    return result.unique().scalar_one_or_none()


async def post_exists(db: AsyncSession, post_id: int) -> bool:
    result = await db.execute(select(Post.id).where(Post.id == post_id))
    return result.scalar_one_or_none() is not None


# ---------------------------------------------------------------------------
# Public service functions
# ---------------------------------------------------------------------------

async def get_posts(
    db: AsyncSession,
    page: int = 1,
    page_size: int = 20,
    sort_by: str = "created_at",
    sort_order: str = "desc",
    query: str | None = None,
) -> PaginatedResponse:
    """
    Return a page of posts, optionally restricted to those whose title or
    body contains *query* (case-insensitive).
    """
    cache_key = post_list_key(page, page_size, sort_by, sort_order, query)
    cached = await cache.get(cache_key)
    if cached:
        return PaginatedResponse(**cached)

    count_q = select(func.count()).select_from(Post)
    posts_q = select(Post).options(joinedload(Post.author))
    if query:
        count_q = count_q.where(_keyword_filter(query))
        posts_q = posts_q.where(_keyword_filter(query))

    total: int = (await db.execute(count_q)).scalar_one()

    sort_col = _resolve_sort_column(sort_by)
    order_expr = desc(sort_col) if sort_order == "desc" else asc(sort_col)
    posts_q = (
        posts_q.order_by(order_expr, desc(Post.id))
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    result = await db.execute(posts_q)
    posts = result.unique().scalars().all()

    response = PaginatedResponse(
        items=[_post_to_dict(p) for p in posts],
        total=total,
        page=page,
        page_size=page_size,
        pages=math.ceil(total / page_size) if total > 0 else 0,
    )
    await cache.set(cache_key, response.model_dump(), ttl=settings.CACHE_TTL_LIST)
    return response


async def get_post(db: AsyncSession, post_id: int) -> dict | None:
    """Return the detail dict for *post_id* with its live like count, or None."""
    cache_key = post_detail_key(post_id)
    data = await cache.get(cache_key)
    if data is None:
        post = await _load_post(db, post_id)
        if post is None:
            return None
        data = _post_to_dict(post)
        await cache.set(cache_key, data, ttl=settings.CACHE_TTL_DETAIL)

    data["likes_count"] = await like_service.count_likes(db, post_id)
    return data


async def create_post(db: AsyncSession, author: Identity, data: PostCreate) -> dict:
    post = Post(title=data.title, body=data.body, user_id=author.id)
    db.add(post)
    await db.flush()

    post = await _load_post(db, post.id)
    await cache.invalidate_post()
    logger.info("Post %d created by user %d", post.id, author.id)
    return _post_to_dict(post)


async def update_post(db: AsyncSession, post_id: int, data: PostUpdate) -> dict | None:
    """
    Partially update a post; only fields present in the payload change.

    Returns None when the post does not exist.
    """
    post = await db.get(Post, post_id)
    if post is None:
        return None

    for field, value in data.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(post, field, value)
    await db.flush()

    post = await _load_post(db, post_id)
    await cache.invalidate_post(post_id)
    return _post_to_dict(post)


async def delete_post(db: AsyncSession, post_id: int) -> bool:
    """Delete a post together with its comments and likes."""
    post = await db.get(Post, post_id)
    if post is None:
        return False

    await db.execute(delete(Like).where(Like.post_id == post_id))
    await db.execute(delete(Comment).where(Comment.post_id == post_id))
    await db.delete(post)
    await db.flush()
    await cache.invalidate_post(post_id)
    logger.info("Post %d deleted", post_id)
    return True
