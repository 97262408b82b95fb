from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from db.database import get_target_store, get_vault_db
from db.target_store import TargetStore
from disguiser.context import DisguiseContext


def get_disguise_context(
    vault: AsyncSession = Depends(get_vault_db),
    target: TargetStore = Depends(get_target_store),
) -> DisguiseContext:
    return DisguiseContext(target=target, vault=vault)
