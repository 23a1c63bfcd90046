from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from config.settings import settings


engine: AsyncEngine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    pool_size=20,
    max_overflow=10,
)

# Settlement needs READ COMMITTED + explicit row locks (SELECT ... FOR UPDATE),
# which is the PostgreSQL default; do not raise the isolation level here.
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency: one session per request, closed afterwards.

    Services own the transaction boundary (see sx_common.result.run_atomic).
    """
    async with async_session_factory() as session:
        yield session
