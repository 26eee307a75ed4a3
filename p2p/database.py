from sqlalchemy.ext.asyncio import (
    AsyncSession,
    AsyncEngine,
    create_async_engine,
    async_sessionmaker,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy import event, text
from p2p.config import settings
import structlog

logger = structlog.get_logger()


class Base(DeclarativeBase):
    pass


def _get_db_url() -> str:
    """Strip sslmode from URL since asyncpg uses connect_args for SSL."""
    url = settings.DATABASE_URL
    url = url.replace("?sslmode=require", "").replace("&sslmode=require", "")
    return url


def _engine_kwargs() -> dict:
    kwargs: dict = {"echo": settings.DEBUG}
    if settings.is_sqlite:
        # aiosqlite serializes on one thread per connection; pool sizing does not apply
        return kwargs
    kwargs.update(
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_timeout=30,
        pool_recycle=settings.DB_POOL_RECYCLE,
        pool_pre_ping=True,
    )
    if settings.DATABASE_SSL:
        kwargs["connect_args"] = {"ssl": "require"}
    return kwargs


def configure_sqlite(async_engine: AsyncEngine) -> None:
    """WAL so readers never block the writer; SQLite leaves FKs off by default."""

    @event.listens_for(async_engine.sync_engine, "connect")
    def _sqlite_pragmas(dbapi_conn, _record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.execute("PRAGMA busy_timeout=5000")
        cursor.close()


engine: AsyncEngine = create_async_engine(_get_db_url(), **_engine_kwargs())
if settings.is_sqlite:
    configure_sqlite(engine)

AsyncSessionLocal = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)


async def get_db():
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db(create_tables: bool = False):
    async with engine.begin() as conn:
        await conn.execute(text("SELECT 1"))
        if create_tables:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("db_connected", create_tables=create_tables)


async def close_db():
    await engine.dispose()
    logger.info("db_disconnected")
