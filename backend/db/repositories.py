import logging
from datetime import datetime

from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession

from db.models import Vault, Disguise, DisguiseFunction

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Vault CRUD
# ---------------------------------------------------------------------------

async def create_vault(
    db: AsyncSession,
    vault_id: str,
    email: str,
    placeholder_info: dict,
) -> Vault:
    """Create a vault identity pointing at an existing placeholder row."""
    vault = Vault(
        vault_id=vault_id,
        email=email,
        placeholder_info=placeholder_info,
    )
    db.add(vault)
    await db.flush()
    await db.refresh(vault)
    return vault


async def get_vault(db: AsyncSession, vault_id: str) -> Vault | None:
    """Retrieve a vault by its id."""
    result = await db.execute(select(Vault).where(Vault.vault_id == vault_id))
    return result.scalar_one_or_none()


async def get_vault_by_email(db: AsyncSession, email: str) -> Vault | None:
    """Retrieve a vault by its owner's email."""
    result = await db.execute(select(Vault).where(Vault.email == email))
    return result.scalar_one_or_none()


# ---------------------------------------------------------------------------
# Disguise / Function CRUD
# ---------------------------------------------------------------------------

async def create_disguise(
    db: AsyncSession,
    disguise_type: str,
    vault_id: str,
    applied_at: datetime,
) -> Disguise:
    """Create a disguise header; flushes so the generated id is available."""
    disguise = Disguise(
        disguise_type=disguise_type,
        vault_id=vault_id,
        applied_at=applied_at,
    )
    db.add(disguise)
    await db.flush()
    return disguise


async def create_function(
    db: AsyncSession,
    disguise_id: int,
    function_type: str,
    table_name: str,
    predicate: str,
    original: str,
    updated: str,
) -> DisguiseFunction:
    """Append one undo step to a disguise."""
    function = DisguiseFunction(
        disguise_id=disguise_id,
        function_type=function_type,
        table_name=table_name,
        predicate=predicate,
        original=original,
        updated=updated,
    )
    db.add(function)
    # flush per row so function_id follows insertion order
    await db.flush()
    return function


async def get_latest_disguise(
    db: AsyncSession, disguise_type: str, vault_id: str
) -> Disguise | None:
    """Return the most recently applied disguise of a type for a vault."""
    result = await db.execute(
        select(Disguise)
        .where(Disguise.disguise_type == disguise_type, Disguise.vault_id == vault_id)
        .order_by(Disguise.applied_at.desc(), Disguise.disguise_id.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def get_disguises_by_name(
    db: AsyncSession, vault_id: str, disguise_type: str
) -> list[Disguise]:
    result = await db.execute(
        select(Disguise)
        .where(Disguise.vault_id == vault_id, Disguise.disguise_type == disguise_type)
        .order_by(Disguise.disguise_id.asc())
    )
    return list(result.scalars().all())


async def get_disguises_applied_before(
    db: AsyncSession, cutoff: datetime
) -> list[Disguise]:
    """Return every disguise applied strictly before *cutoff*, oldest first."""
    result = await db.execute(
        select(Disguise)
        .where(Disguise.applied_at < cutoff)
        .order_by(Disguise.disguise_id.asc())
    )
    return list(result.scalars().all())


async def get_functions(
    db: AsyncSession, disguise_id: int, function_type: str | None = None
) -> list[DisguiseFunction]:
    """Return a disguise's functions in insertion order."""
    stmt = select(DisguiseFunction).where(DisguiseFunction.disguise_id == disguise_id)
    if function_type is not None:
        stmt = stmt.where(DisguiseFunction.function_type == function_type)
    result = await db.execute(stmt.order_by(DisguiseFunction.function_id.asc()))
    return list(result.scalars().all())


async def delete_disguise(db: AsyncSession, disguise_id: int) -> None:
    """Delete a disguise's functions, then the header itself."""
    await db.execute(
        delete(DisguiseFunction).where(DisguiseFunction.disguise_id == disguise_id)
    )
    await db.execute(delete(Disguise).where(Disguise.disguise_id == disguise_id))
    await db.flush()
