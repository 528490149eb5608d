"""
Test infrastructure for the Blog API.

Strategy
--------
- SQLite in-memory via aiosqlite, shared across tasks with StaticPool
  (an in-memory database is connection-scoped).
- ``get_db`` is overridden so every request uses the test session factory.
- ``get_token_codec`` is overridden with a codec built from a fixed test
  secret, and ``get_notifier`` with a recorder, so tests can mint tokens
  and read the verification links the API "sends".
- Tables are created before and dropped after each test.
- The Redis cache is disabled by setting ``cache._redis = None``; the
  CacheManager treats that as a permanent miss.
"""
from datetime import timedelta

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from blog_api.cache import cache
from blog_api.database import Base, build_engine, get_db
from blog_api.dependencies import get_token_codec
from blog_api.main import app
from blog_api.models import Post, Role, User
from blog_api.notifier import get_notifier
from blog_api.services.user_service import hash_password
from blog_api.tokens import TokenCodec

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
TEST_SECRET = "test-secret-key-that-is-long-enough-for-hs256"
DEFAULT_PASSWORD = "password123"

engine_test = build_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

async_session_test = async_sessionmaker(
    engine_test,
    class_=AsyncSession,
    expire_on_commit=False,
)

test_codec = TokenCodec(TEST_SECRET, default_ttl=timedelta(hours=24))


class RecordingNotifier:
    """Keeps every verification message instead of delivering it."""

    def __init__(self) -> None:
        self.sent: list[dict] = []

    async def send_verification(self, email: str, username: str, token: str) -> None:
        self.sent.append({"email": email, "username": username, "token": token})


recording_notifier = RecordingNotifier()


# ---------------------------------------------------------------------------
# Dependency overrides
# ---------------------------------------------------------------------------

async def override_get_db():
    async with async_session_test() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


app.dependency_overrides[get_db] = override_get_db
app.dependency_overrides[get_token_codec] = lambda: test_codec
app.dependency_overrides[get_notifier] = lambda: recording_notifier


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture(autouse=True)
async def setup_db():
    """Create all tables before each test, drop after to guarantee isolation."""
    recording_notifier.sent.clear()
    async with engine_test.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine_test.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture
async def db_session() -> AsyncSession:
    """A live session for tests that call services directly."""
    async with async_session_test() as session:
        yield session


@pytest_asyncio.fixture
async def async_client() -> AsyncClient:
    cache._redis = None
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def codec() -> TokenCodec:
    return test_codec


@pytest.fixture
def outbox() -> list[dict]:
    return recording_notifier.sent


@pytest.fixture
def create_user():
    """
    Factory that commits a user and returns it.

    Usage: ``user = await create_user("alice", role=Role.ADMIN, verified=False)``
    """

    async def _create(
        username: str,
        email: str | None = None,
        role: Role = Role.REGULAR,
        verified: bool = True,
        password: str = DEFAULT_PASSWORD,
    ) -> User:
        async with async_session_test() as session:
            user = User(
                username=username,
                email=email or f"{username}@example.com",
                password_hash=hash_password(password),
                role=role,
                email_verified=verified,
            )
            session.add(user)
            await session.commit()
            await session.refresh(user)
            return user

    return _create


@pytest.fixture
def create_post():
    async def _create(author: User, title: str = "A post worth reading", body: str = "Body") -> Post:
        async with async_session_test() as session:
            post = Post(title=title, body=body, user_id=author.id)
            session.add(post)
            await session.commit()
            await session.refresh(post)
            return post

    return _create


@pytest.fixture
def auth_headers():
    """Build an ``Authorization`` header carrying a fresh access token for *user*."""

    def _headers(user: User) -> dict:
        return {"Authorization": f"Bearer {test_codec.issue(user.id)}"}

    return _headers
