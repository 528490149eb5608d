"""
Direct service-layer tests — exercises business logic without HTTP overhead.

These tests call service functions directly with a database session, so
the SQLAlchemy query paths and the moderation state machine are covered
independently of routing and authentication.
"""
import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from blog_api.cache import post_list_key
from blog_api.errors import DuplicateAccount, InvalidCredentials, InvalidTransition, NotFoundError
from blog_api.identity import ANONYMOUS, Identity
from blog_api.models import Comment, CommentStatus, Role, User
from blog_api.policy import AccessDenied
from blog_api.schemas import CommentCreate, LoginRequest, PostCreate, PostUpdate, SignupRequest
from blog_api.services import comment_service, post_service, user_service
from blog_api.tokens import TokenCodec

CODEC = TokenCodec("service-test-secret-that-is-long-enough")


class NullNotifier:
    def __init__(self) -> None:
        self.calls = 0

    async def send_verification(self, email: str, username: str, token: str) -> None:
        self.calls += 1


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

async def _create_user(db: AsyncSession, username: str = "svcuser", role: Role = Role.REGULAR) -> Identity:
    user = User(
        username=username,
        email=f"{username}@example.com",
        password_hash=user_service.hash_password("password123"),
        role=role,
        email_verified=True,
    )
    db.add(user)
    await db.flush()
    return Identity.from_user(user)


async def _create_post(db: AsyncSession, author: Identity, title: str = "Service test post") -> dict:
    return await post_service.create_post(db, author, PostCreate(title=title, body="Body"))


# ---------------------------------------------------------------------------
# post_service
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_get_posts_empty(db_session: AsyncSession):
    result = await post_service.get_posts(db_session)
    assert result.total == 0
    assert result.items == []
    assert result.pages == 0


@pytest.mark.asyncio
async def test_create_update_delete_post(db_session: AsyncSession):
    admin = await _create_user(db_session, "svcadmin", Role.ADMIN)
    created = await _create_post(db_session, admin)
    assert created["author"] == {"id": admin.id, "username": "svcadmin"}

    updated = await post_service.update_post(db_session, created["id"], PostUpdate(body="New body"))
    assert updated["title"] == "Service test post"
    assert updated["body"] == "New body"

    assert await post_service.delete_post(db_session, created["id"]) is True
    assert await post_service.get_post(db_session, created["id"]) is None
    assert await post_service.delete_post(db_session, created["id"]) is False


@pytest.mark.asyncio
async def test_update_missing_post(db_session: AsyncSession):
    assert await post_service.update_post(db_session, 404, PostUpdate(title="Nothing here")) is None


@pytest.mark.asyncio
async def test_sort_by_unknown_column_falls_back(db_session: AsyncSession):
    admin = await _create_user(db_session, "svcadmin", Role.ADMIN)
    await _create_post(db_session, admin)
    result = await post_service.get_posts(db_session, sort_by="password_hash")
    assert result.total == 1


def test_list_cache_key_includes_query():
    assert post_list_key(1, 20, "created_at", "desc", None) != post_list_key(1, 20, "created_at", "desc", "python")


# ---------------------------------------------------------------------------
# comment_service
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_comment_state_machine(db_session: AsyncSession):
    admin = await _create_user(db_session, "svcadmin", Role.ADMIN)
    reader = await _create_user(db_session, "reader")
    post = await _create_post(db_session, admin)

    comment = await comment_service.create_comment(db_session, reader, post["id"], CommentCreate(body="Hello"))
    assert comment["status"] == "pending"
    assert await comment_service.list_approved(db_session, post["id"]) == []
    assert [c["id"] for c in await comment_service.list_pending(db_session)] == [comment["id"]]

    approved = await comment_service.approve_comment(db_session, comment["id"])
    assert approved["status"] == "approved"
    assert [c["id"] for c in await comment_service.list_approved(db_session, post["id"])] == [comment["id"]]

    with pytest.raises(InvalidTransition):
        await comment_service.approve_comment(db_session, comment["id"])
    with pytest.raises(InvalidTransition):
        await comment_service.reject_comment(db_session, comment["id"])


@pytest.mark.asyncio
async def test_reject_deletes_comment(db_session: AsyncSession):
    admin = await _create_user(db_session, "svcadmin", Role.ADMIN)
    post = await _create_post(db_session, admin)
    comment = await comment_service.create_comment(db_session, admin, post["id"], CommentCreate(body="Spam"))

    await comment_service.reject_comment(db_session, comment["id"])

    assert await db_session.get(Comment, comment["id"]) is None
    with pytest.raises(NotFoundError):
        await comment_service.reject_comment(db_session, comment["id"])


@pytest.mark.asyncio
async def test_comment_on_missing_post(db_session: AsyncSession):
    reader = await _create_user(db_session, "reader")
    with pytest.raises(NotFoundError):
        await comment_service.create_comment(db_session, reader, 999, CommentCreate(body="Hello"))


@pytest.mark.asyncio
async def test_withdraw_checks_ownership(db_session: AsyncSession):
    admin = await _create_user(db_session, "svcadmin", Role.ADMIN)
    alice = await _create_user(db_session, "alice")
    bob = await _create_user(db_session, "bob")
    post = await _create_post(db_session, admin)
    comment = await comment_service.create_comment(db_session, alice, post["id"], CommentCreate(body="Mine"))

    with pytest.raises(AccessDenied):
        await comment_service.withdraw_comment(db_session, bob, post["id"], comment["id"])
    with pytest.raises(AccessDenied):
        await comment_service.withdraw_comment(db_session, ANONYMOUS, post["id"], comment["id"])

    await comment_service.withdraw_comment(db_session, alice, post["id"], comment["id"])
    row = await db_session.get(Comment, comment["id"])
    assert row is None


@pytest.mark.asyncio
async def test_pending_status_stored_as_value(db_session: AsyncSession):
    admin = await _create_user(db_session, "svcadmin", Role.ADMIN)
    post = await _create_post(db_session, admin)
    created = await comment_service.create_comment(db_session, admin, post["id"], CommentCreate(body="x"))
    comment = await db_session.get(Comment, created["id"])
    assert comment.status is CommentStatus.PENDING


# ---------------------------------------------------------------------------
# user_service
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_signup_hashes_password(db_session: AsyncSession):
    notifier = NullNotifier()
    result = await user_service.signup(
        db_session, CODEC, notifier,
        SignupRequest(username="carol", email="carol@example.com", password="secret123"),
    )
    user = await db_session.get(User, result["user"]["id"])
    assert user.password_hash != "secret123"
    assert user_service.verify_password("secret123", user.password_hash)
    assert notifier.calls == 1
    assert CODEC.verify(result["token"]).subject_id == user.id


@pytest.mark.asyncio
async def test_signup_duplicate_raises(db_session: AsyncSession):
    await _create_user(db_session, "carol")
    with pytest.raises(DuplicateAccount):
        await user_service.signup(
            db_session, CODEC, NullNotifier(),
            SignupRequest(username="carol", email="someone@example.com", password="secret123"),
        )


@pytest.mark.asyncio
async def test_login_wrong_password(db_session: AsyncSession):
    await _create_user(db_session, "carol")
    with pytest.raises(InvalidCredentials):
        await user_service.login(db_session, CODEC, LoginRequest(email="carol@example.com", password="nope"))
