from typing import Any, AsyncGenerator, Dict

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from app.core.config import settings


def _engine_options(url: str) -> Dict[str, Any]:
    """
    PostgreSQL (asyncpg): pre-ping and recycle pooled connections so idle ones closed
    by the server or network are replaced instead of failing the request.
    SQLite (aiosqlite, local runs and tests): one file shared across the event loop.
    """
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {"pool_pre_ping": True, "pool_recycle": 300}


engine = create_async_engine(
    settings.database_url,
    echo=False,
    future=True,
    **_engine_options(settings.database_url),
)

# expire_on_commit=False: services build responses from objects after committing
AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

Base = declarative_base()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """One session per request; anything left uncommitted by a failed request is rolled back."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


async def create_tables() -> None:
    """Create all tables registered on Base.metadata (idempotent)."""
    import app.core.models  # noqa: F401  (registers models on Base)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
