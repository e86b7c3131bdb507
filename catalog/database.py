from typing import Tuple
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def create_engine_and_session(
    database_url: str,
    echo: bool = False
) -> Tuple[AsyncEngine, async_sessionmaker]:
    """Create an async engine and the sessionmaker bound to it."""
    engine = create_async_engine(
        database_url,
        echo=echo,
        pool_pre_ping=True,
    )
    async_session = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    return engine, async_session
