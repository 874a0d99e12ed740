from datetime import datetime, timezone
from typing import Annotated, AsyncGenerator

from fastapi import Depends

from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession
from sqlalchemy.orm import declarative_base, sessionmaker

from .config import settings

Base = declarative_base()


def _connect_args() -> dict:
    # asyncpg understands "ssl"; sqlite drivers reject unknown keywords
    if settings.DATABASE_URL.startswith("postgresql"):
        return {"ssl": settings.POSTGRES_SSLMODE == "require"}
    return {}


engine = create_async_engine(
    settings.DATABASE_URL,
    pool_pre_ping=True,
    pool_recycle=1800,
    connect_args=_connect_args(),
)

async_session_factory = sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_factory() as sess:
        yield sess

# `db: SessionDep` injects a request-scoped session.
SessionDep = Annotated[AsyncSession, Depends(get_db)]
