"""
Comment service — the moderation state machine.

    create ──> pending ──approve──> approved
                  │
                  └──reject──> (deleted)

    withdraw: author or admin deletes the comment in any state.

A comment leaves ``pending`` exactly once.  ``approve`` and ``reject`` are
conditional statements (``WHERE status = 'pending'``), so two admins
moderating the same comment at the same time cannot both succeed: the
loser gets ``InvalidTransition``.  Rejection removes the row; there is no
persisted "rejected" status.

Only ``approved`` comments are visible on the public listing; the pending
queue is an admin view.
"""
import logging

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload

from blog_api import policy
from blog_api.errors import InvalidTransition, NotFoundError
from blog_api.identity import Identity, Principal
from blog_api.models import Comment, CommentStatus
from blog_api.policy import Action
from blog_api.schemas import CommentCreate
from blog_api.services.post_service import post_exists

logger = logging.getLogger(__name__)


def _comment_to_dict(comment: Comment) -> dict:
    author = comment.author
    return {
        "id": comment.id,
        "post_id": comment.post_id,
        "user_id": comment.user_id,
        "body": comment.body,
        "status": CommentStatus(comment.status).value,
        "created_at": comment.created_at.isoformat() if comment.created_at else None,
        "author": {"id": author.id, "username": author.username} if author is not None else None,
    }


async def _load_comment(db: AsyncSession, comment_id: int) -> Comment | None:
    q = (
        select(Comment)
        .where(Comment.id == comment_id)
        .options(joinedload(Comment.author))
        .execution_options(populate_existing=True)
    )
    result = await db.execute(q)
    return result.unique().scalar_one_or_none()


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

async def list_approved(db: AsyncSession, post_id: int) -> list[dict]:
    """Approved comments on *post_id*, oldest first.  Raises NotFoundError for a missing post."""
    if not await post_exists(db, post_id):
        raise NotFoundError("Post not found")

    q = (
        select(Comment)
        .where(Comment.post_id == post_id, Comment.status == CommentStatus.APPROVED)
        .options(joinedload(Comment.author))
        .order_by(Comment.created_at.asc(), Comment.id.asc())
    )
    result = await db.execute(q)
    return [_comment_to_dict(c) for c in result.unique().scalars().all()]


async def list_pending(db: AsyncSession) -> list[dict]:
    """The moderation queue: every pending comment, oldest first."""
    q = (
        select(Comment)
        .where(Comment.status == CommentStatus.PENDING)
        .options(joinedload(Comment.author))
        .order_by(Comment.created_at.asc(), Comment.id.asc())
    )
    result = await db.execute(q)
    return [_comment_to_dict(c) for c in result.unique().scalars().all()]


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------

async def create_comment(
    db: AsyncSession, author: Identity, post_id: int, data: CommentCreate
) -> dict:
    """Submit a comment for moderation.  It always starts out ``pending``."""
    if not await post_exists(db, post_id):
        raise NotFoundError("Post not found")

    comment = Comment(
        body=data.body,
        post_id=post_id,
        user_id=author.id,
        status=CommentStatus.PENDING,
    )
    db.add(comment)
    await db.flush()

    logger.info("Comment %d on post %d submitted by user %d", comment.id, post_id, author.id)
    return _comment_to_dict(await _load_comment(db, comment.id))


async def approve_comment(db: AsyncSession, comment_id: int) -> dict:
    """``pending -> approved``.  Approving twice is an ``InvalidTransition``."""
    if await db.get(Comment, comment_id) is None:
        raise NotFoundError("Comment not found")

    result = await db.execute(
        update(Comment)
        .where(Comment.id == comment_id, Comment.status == CommentStatus.PENDING)
        .values(status=CommentStatus.APPROVED)
    )
    if result.rowcount == 0:
        raise InvalidTransition("Comment is already approved")

    logger.info("Comment %d approved", comment_id)
    return _comment_to_dict(await _load_comment(db, comment_id))


async def reject_comment(db: AsyncSession, comment_id: int) -> None:
    """``pending -> (deleted)``.  Approved comments cannot be rejected."""
    if await db.get(Comment, comment_id) is None:
        raise NotFoundError("Comment not found")

    result = await db.execute(
        delete(Comment).where(Comment.id == comment_id, Comment.status == CommentStatus.PENDING)
    )
    if result.rowcount == 0:
        raise InvalidTransition("Only pending comments can be rejected")

    logger.info("Comment %d rejected and deleted", comment_id)


async def withdraw_comment(
    db: AsyncSession, principal: Principal, post_id: int, comment_id: int
) -> None:
    """
    Delete a comment in any state.  Only its author or an admin may do so.

    Ownership is checked before existence, so a non-owner cannot probe
    which comment ids exist.
    """
    comment = await db.get(Comment, comment_id)
    if comment is not None and comment.post_id != post_id:
        comment = None

    policy.enforce(
        principal,
        Action.DELETE_COMMENT,
        owner_id=comment.user_id if comment is not None else None,
    )
    if comment is None:
        raise NotFoundError("Comment not found")

    await db.delete(comment)
    await db.flush()
    logger.info("Comment %d withdrawn by user %d", comment_id, principal.id)
