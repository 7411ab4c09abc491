from sqlalchemy.ext.asyncio import AsyncSession, AsyncEngine, create_async_engine, async_sessionmaker
from .config import settings
from typing import AsyncGenerator, Optional

# Engine and session factory exist only when DATABASE_URL is set
engine: Optional[AsyncEngine] = None
AsyncSessionLocal: Optional[async_sessionmaker] = None

if settings.database_url:
    engine = create_async_engine(
        settings.database_url,
        echo=settings.database_echo,
        pool_pre_ping=True,
        pool_recycle=300,
    )
    # Rows stay readable after commit; the ledger services refresh what they change
    AsyncSessionLocal = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

def get_session_maker() -> async_sessionmaker:
    """Session factory for the API and the maintenance scripts"""
    if not AsyncSessionLocal:
        raise RuntimeError(
            "Database not configured. Set DATABASE_URL (postgresql+asyncpg://...) in your .env file."
        )
    return AsyncSessionLocal

async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency to get a database session per request"""
    async with get_session_maker()() as session:
        yield session
