from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from blog_api.config import settings
from blog_api.middleware import install_query_counter


def build_engine(url: str, **kwargs) -> AsyncEngine:
    """
    Create an async engine with the per-request query counter attached.

    SQLite connections get ``PRAGMA foreign_keys=ON`` so the ``ON DELETE
    CASCADE`` clauses on comments and likes behave the same way they do
    on PostgreSQL.
    """
    engine = create_async_engine(url, **kwargs)
    install_query_counter(engine)

    if engine.dialect.name == "sqlite":
        @event.listens_for(engine.sync_engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return engine


# Module-level engine variable allows tests to override with a test engine.
engine = build_engine(settings.DATABASE_URL, echo=settings.DEBUG, pool_pre_ping=True)

async_session = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    pass


async def get_db():
    """Request-scoped session; the transaction commits only if the handler succeeds."""
    async with async_session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
