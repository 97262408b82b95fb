from __future__ import annotations

import os
from datetime import datetime

import pytest
import pytest_asyncio

# Point both stores at throwaway SQLite before config is first imported
os.environ.setdefault("TARGET_DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("VAULT_DATABASE_URL", "sqlite+aiosqlite:///:memory:")

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker  # noqa: E402

from db.database import Base, make_engine  # noqa: E402
from db import models  # noqa: E402,F401
from db.target_store import TargetStore  # noqa: E402
from disguiser.context import DisguiseContext  # noqa: E402

TARGET_SCHEMA = [
    """
    CREATE TABLE contact_info (
        contact_id INTEGER PRIMARY KEY,
        name VARCHAR(100) NOT NULL,
        email VARCHAR(255),
        last_login TIMESTAMP NOT NULL
    )
    """,
    """
    CREATE TABLE review (
        review_id INTEGER PRIMARY KEY,
        contact_id INTEGER NOT NULL REFERENCES contact_info (contact_id),
        content TEXT NOT NULL,
        created_at TIMESTAMP NOT NULL
    )
    """,
]

TARGET_SEED = [
    # contact 0 is the anonymised placeholder decorrelated reviews point to; it
    # is kept fresh so age-based policies never select it
    "INSERT INTO contact_info VALUES (0, 'placeholder', NULL, '2026-10-18 00:00:00')",
    "INSERT INTO contact_info VALUES (19, 'Bea', 'bea@mail.com', '2015-03-01 09:30:00')",
    "INSERT INTO contact_info VALUES (20, 'Cal', 'cal@mail.com', '2026-10-01 12:00:00')",
    "INSERT INTO review VALUES (1, 19, 'Great place, would visit again', '2015-04-02 18:00:00')",
    "INSERT INTO review VALUES (2, 19, 'It''s fine: nothing special', '2015-05-03 08:15:00')",
    "INSERT INTO review VALUES (3, 20, 'Meh', '2026-10-02 10:00:00')",
]

# Fixed "now" for anything age-based: contact 19 is 11 years stale, 0 and 20 are fresh
NOW = datetime(2026, 10, 19, 12, 0, 0)


@pytest_asyncio.fixture
async def target_engine(tmp_path):
    engine = make_engine(f"sqlite+aiosqlite:///{tmp_path / 'target.db'}")
    async with engine.begin() as conn:
        for statement in TARGET_SCHEMA + TARGET_SEED:
            await conn.exec_driver_sql(statement)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def target_store(target_engine) -> TargetStore:
    return TargetStore(target_engine)


@pytest_asyncio.fixture
async def vault_db(tmp_path):
    engine = make_engine(f"sqlite+aiosqlite:///{tmp_path / 'vault.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session
    await engine.dispose()


@pytest_asyncio.fixture
async def ctx(target_store: TargetStore, vault_db: AsyncSession) -> DisguiseContext:
    return DisguiseContext(target=target_store, vault=vault_db)


@pytest_asyncio.fixture
async def vault_19(vault_db: AsyncSession):
    """A vault for contact 19 whose placeholder is contact 0."""
    from db import repositories

    vault = await repositories.create_vault(
        vault_db,
        vault_id="19",
        email="bea@mail.com",
        placeholder_info={"table": "contact_info", "pred": "contact_id=0"},
    )
    await vault_db.commit()
    return vault


async def fetch_all(store: TargetStore, sql: str) -> list[tuple]:
    """Read rows back as plain tuples for before/after comparisons."""
    async with store.engine.connect() as conn:
        result = await conn.exec_driver_sql(sql)
        return [tuple(row) for row in result.all()]


@pytest.fixture
def fixed_clock():
    return lambda: NOW
