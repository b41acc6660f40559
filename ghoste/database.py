from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from .config import settings

# Create Async Engine
engine = create_async_engine(settings.DATABASE_URL, echo=settings.SQL_ECHO, future=True)

# Shared session factory; the context resolver opens one session per sub-query
async_session_factory = sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)


async def init_db():
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)


async def get_session() -> AsyncSession:
    async with async_session_factory() as session:
        yield session


def get_session_factory():
    """For services that open their own sessions (context resolver, audit log)."""
    return async_session_factory
