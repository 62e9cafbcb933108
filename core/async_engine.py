from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from core.settings import settings


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _is_memory_database(database_uri: str) -> bool:
    return database_uri.endswith("://") or ":memory:" in database_uri or "mode=memory" in database_uri


def build_engine(database_uri: str):
    if database_uri.startswith("sqlite"):
        sqlite_args = {"connect_args": {"check_same_thread": False}}
        if _is_memory_database(database_uri):
            # a single shared connection keeps in-memory databases alive between sessions
            sqlite_args["poolclass"] = StaticPool
        engine = create_async_engine(database_uri, **sqlite_args)
        event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
        return engine

    return create_async_engine(
        database_uri,
        pool_pre_ping=True,
        pool_size=settings.POSTGRES_POOL_SIZE,
        max_overflow=settings.POSTGRES_MAX_OVERFLOW,
        pool_recycle=600,
        pool_use_lifo=True,
    )


async_engine = build_engine(settings.SQLALCHEMY_DATABASE_URI)
AsyncSessionLocal = async_sessionmaker(async_engine, autocommit=False, expire_on_commit=False)
