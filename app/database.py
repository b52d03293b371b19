"""Database engine, session factory and declarative base"""

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from app.config import settings

Base = declarative_base()


def configure_sqlite_locking(engine: AsyncEngine) -> None:
    """
    Make SQLite take the writer lock when a transaction starts.

    The driver's own BEGIN is disabled and replaced with BEGIN IMMEDIATE, so a
    conflict check and the insert that follows it cannot interleave with another
    writer.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _disable_driver_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def build_engine(url: str, **kwargs) -> AsyncEngine:
    """Create an async engine with the isolation the booking engine relies on"""
    if url.startswith("sqlite"):
        engine = create_async_engine(url, **kwargs)
        configure_sqlite_locking(engine)
        return engine

    kwargs.setdefault("isolation_level", settings.database_isolation_level)
    kwargs.setdefault("pool_pre_ping", True)
    return create_async_engine(url, **kwargs)


engine = build_engine(settings.database_url, echo=settings.database_echo)

SessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_db():
    """Request-scoped database session"""
    async with SessionLocal() as session:
        yield session
