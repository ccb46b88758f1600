from typing import Optional

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from foodexpiry.config.settings import settings


def create_engine_for_url(database_url: str, **kwargs) -> AsyncEngine:
    """Create an async engine; SQLite connections get foreign keys switched on."""
    engine = create_async_engine(database_url, pool_pre_ping=True, echo=False, **kwargs)

    if engine.dialect.name == "sqlite":

        @event.listens_for(engine.sync_engine, "connect")
        def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return engine


def create_session_factory(
    engine: Optional[AsyncEngine] = None,
) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=engine or get_engine(), class_=AsyncSession, expire_on_commit=False
    )


_engine: Optional[AsyncEngine] = None


def get_engine() -> AsyncEngine:
    """Process-wide engine built lazily from ``settings.DATABASE_URL``."""
    global _engine
    if _engine is None:
        _engine = create_engine_for_url(str(settings.DATABASE_URL))
    return _engine
