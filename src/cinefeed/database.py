"""Database engine and session factory.

Services receive ``session_factory`` and own their transactions. API routes
only read, through ``get_session``.
"""

from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from cinefeed.config import settings

engine = create_async_engine(settings.database_url, pool_pre_ping=True)

session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency: a read-only session. Nothing is committed."""
    async with session_factory() as session:
        yield session
