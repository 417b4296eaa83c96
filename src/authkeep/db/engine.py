"""Async SQLAlchemy engine and session factory.

Learn: SQLAlchemy 2.0 async mode. create_async_engine for connection pooling,
async_sessionmaker for short-lived sessions. The engine is built from the
Settings passed to create_app(), not at import time, so tests that swap in
an in-memory identity store never open a connection.
"""

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)


def build_engine(database_url: str, debug: bool = False) -> AsyncEngine:
    # echo=True in debug to see SQL queries.
    return create_async_engine(
        database_url,
        echo=debug,
        pool_size=5,
        max_overflow=15,
        pool_pre_ping=True,
    )


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
