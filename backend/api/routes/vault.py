from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from api.dependencies import get_disguise_context
from disguiser.context import DisguiseContext
from disguiser.ledger import VaultLedger
from schemas.api import GenerateVault, VaultResponse
from services import vault_service

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/generate", response_model=VaultResponse, status_code=201)
async def generate_vault(
    body: GenerateVault,
    ctx: DisguiseContext = Depends(get_disguise_context),
):
    """Create the user's placeholder in the target store and their vault."""
    identity = await vault_service.generate_vault(ctx, body)
    return VaultResponse.from_identity(identity)


@router.get("", response_model=VaultResponse)
async def get_vault_by_email(
    email: str,
    ctx: DisguiseContext = Depends(get_disguise_context),
):
    """Get a vault by its owner's email."""
    identity = await VaultLedger(ctx).get_vault_by_email(email)
    return VaultResponse.from_identity(identity)


@router.get("/{vault_id}", response_model=VaultResponse)
async def get_vault(
    vault_id: str,
    ctx: DisguiseContext = Depends(get_disguise_context),
):
    """Get a vault by id."""
    identity = await VaultLedger(ctx).get_vault(vault_id)
    return VaultResponse.from_identity(identity)
