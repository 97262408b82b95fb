from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase
from config import get_settings
from db.target_store import TargetStore


class Base(DeclarativeBase):
    pass


def enable_sqlite_foreign_keys(engine: AsyncEngine) -> None:
    """SQLite ignores REFERENCES clauses unless asked per connection."""

    @event.listens_for(engine.sync_engine, "connect")
    def _set_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def make_engine(url: str, echo: bool = False) -> AsyncEngine:
    engine = create_async_engine(url, echo=echo)
    if engine.dialect.name == "sqlite":
        enable_sqlite_foreign_keys(engine)
    return engine


settings = get_settings()
# Two independent stores, no shared transaction boundary between them
target_engine = make_engine(settings.target_database_url, echo=settings.sql_echo)
vault_engine = make_engine(settings.vault_database_url, echo=settings.sql_echo)
vault_session = async_sessionmaker(vault_engine, class_=AsyncSession, expire_on_commit=False)


async def init_db():
    # Only the vault schema is ours; the target schema belongs to the web app
    from db import models  # noqa: F401

    async with vault_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def get_vault_db():
    async with vault_session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


def get_target_store() -> TargetStore:
    return TargetStore(target_engine)
