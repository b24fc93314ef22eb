from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from branchweaver.config import get_settings


def build_engine(database_url: str) -> AsyncEngine:
    """Async engine for ``database_url``.

    In-memory sqlite gets a single shared connection, otherwise every
    session would see its own empty database.
    """
    if database_url.startswith("sqlite") and ":memory:" in database_url:
        return create_async_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_async_engine(database_url, echo=False)


def build_sessionmaker(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=bind, class_=AsyncSession, expire_on_commit=False, autoflush=False)


engine = build_engine(get_settings().database_url)
AsyncSessionLocal = build_sessionmaker(engine)


async def get_db():
    """Dependency for providing database sessions."""
    async with AsyncSessionLocal() as session:
        yield session


async def init_models(bind: AsyncEngine = None) -> None:
    """Create every table that does not exist yet."""
    from branchweaver.models import Base
    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
