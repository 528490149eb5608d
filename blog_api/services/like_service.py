"""
Like service — idempotent like / unlike for a (user, post) pair.

A like is a presence/absence relation.  The ``uq_likes_post_id_user_id``
unique constraint is what keeps it that way: ``like`` inserts first and
treats a uniqueness conflict as "already liked", so two requests racing
on different workers still leave exactly one row and neither fails.
There is no read-then-insert step whose correctness depends on timing.

The insert runs inside a SAVEPOINT so a conflict only rolls back the
insert, not the caller's request transaction.
"""
import logging
from dataclasses import dataclass

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from blog_api.models import Like

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LikeResult:
    already_liked: bool


@dataclass(frozen=True)
class UnlikeResult:
    removed: bool


async def like(db: AsyncSession, user_id: int, post_id: int) -> LikeResult:
    """
    Ensure *user_id* likes *post_id*.

    Repeating the call is harmless: the second and later calls report
    ``already_liked=True`` and change nothing.  The post must exist; the
    caller checks that first.
    """
    try:
        async with db.begin_nested():
            db.add(Like(post_id=post_id, user_id=user_id))
            await db.flush()
    except IntegrityError:
        logger.debug("Like (post=%d, user=%d) already present", post_id, user_id)
        return LikeResult(already_liked=True)

    logger.info("User %d liked post %d", user_id, post_id)
    return LikeResult(already_liked=False)


async def unlike(db: AsyncSession, user_id: int, post_id: int) -> UnlikeResult:
    """
    Remove the like of *user_id* on *post_id* if there is one.

    Unliking something that is not liked reports ``removed=False`` and is
    not an error.
    """
    result = await db.execute(
        delete(Like).where(Like.post_id == post_id, Like.user_id == user_id)
    )
    removed = result.rowcount > 0
    if removed:
        logger.info("User %d unliked post %d", user_id, post_id)
    return UnlikeResult(removed=removed)


async def count_likes(db: AsyncSession, post_id: int) -> int:
    result = await db.execute(
        select(func.count()).select_from(Like).where(Like.post_id == post_id)
    )
    return result.scalar_one()
