from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from api.dependencies import get_disguise_context
from disguiser.context import DisguiseContext
from schemas.api import ClearVaultResponse, PolicyResponse, Requirement
from services import disguise_service

logger = logging.getLogger(__name__)
router = APIRouter()


def _applied(record) -> PolicyResponse:
    return PolicyResponse(
        message="The policy has been applied.",
        disguise_id=record.disguise_id,
        functions=len(record.functions),
    )


@router.post("/userscrub", response_model=PolicyResponse)
async def scrub_user(
    requirement: Requirement,
    ctx: DisguiseContext = Depends(get_disguise_context),
):
    """Delete the user's information but retain their anonymised publications."""
    return _applied(await disguise_service.scrub_user(ctx, requirement))


@router.post("/anonymize", response_model=PolicyResponse)
async def anonymize(
    requirement: Requirement,
    ctx: DisguiseContext = Depends(get_disguise_context),
):
    """Anonymise the contributions of the user."""
    return _applied(await disguise_service.anonymize(ctx, requirement))


@router.post("/expiration", response_model=PolicyResponse)
async def expiration(
    requirement: Requirement,
    ctx: DisguiseContext = Depends(get_disguise_context),
):
    """Disguise users inactive for ``delete_age`` years along with their contributions."""
    return _applied(await disguise_service.expiration(ctx, requirement))


@router.post("/clearvault", response_model=ClearVaultResponse)
async def clear_vault(
    requirement: Requirement,
    ctx: DisguiseContext = Depends(get_disguise_context),
):
    """Forget old disguises for good. They can no longer be recovered."""
    removed = await disguise_service.clear_vault(ctx, requirement)
    return ClearVaultResponse(
        message="The old data in vault has been deleted.", disguises_removed=removed
    )


@router.post("/recover", response_model=PolicyResponse)
async def recover_disguise(
    requirement: Requirement,
    ctx: DisguiseContext = Depends(get_disguise_context),
):
    """Recover an applied disguise and delete it from the vault."""
    record = await disguise_service.recover_disguise(ctx, requirement)
    return PolicyResponse(
        message="The disguise has been recovered.",
        disguise_id=record.disguise_id,
        functions=len(record.functions),
    )
