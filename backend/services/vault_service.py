from __future__ import annotations

import logging

from db import repositories
from disguiser.context import DisguiseContext
from disguiser.errors import InvalidInputError
from schemas.api import GenerateVault
from schemas.entities import PlaceholderLocator, VaultIdentity

logger = logging.getLogger(__name__)


async def generate_vault(ctx: DisguiseContext, body: GenerateVault) -> VaultIdentity:
    """Create a user's placeholder row in the target store, then their vault.

    The placeholder is what decorrelated rows get repointed to. It is created
    once per vault and never touched by the disguise engine afterwards.
    """
    if await repositories.get_vault(ctx.vault, body.vault_id) is not None:
        raise InvalidInputError(f"Vault {body.vault_id!r} already exists.")
    if await repositories.get_vault_by_email(ctx.vault, body.email) is not None:
        raise InvalidInputError(f"A vault for {body.email!r} already exists.")

    placeholder = body.generate_placeholder
    columns = [c.strip() for c in placeholder.fields.split(",") if c.strip()]
    placeholder_id = await ctx.target.insert_row(
        placeholder.table, columns, placeholder.field_values, returning=placeholder.primary_key_name
    )
    if placeholder_id is None:
        raise InvalidInputError(
            f"The store did not report a key for the new placeholder in {placeholder.table!r}."
        )
    key_literal = (
        str(placeholder_id)
        if isinstance(placeholder_id, int)
        else "'" + str(placeholder_id).replace("'", "''") + "'"
    )
    locator = PlaceholderLocator(
        table=placeholder.table, predicate=f"{placeholder.primary_key_name}={key_literal}"
    )

    await repositories.create_vault(
        ctx.vault,
        vault_id=body.vault_id,
        email=body.email,
        placeholder_info=locator.to_json(),
    )
    await ctx.vault.commit()
    logger.info("Generated vault %s with placeholder %s", body.vault_id, locator.predicate)
    return VaultIdentity(vault_id=body.vault_id, email=body.email, placeholder=locator)
